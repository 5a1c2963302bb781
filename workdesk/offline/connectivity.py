# -*- coding: utf-8 -*-
"""
Connectivity Monitor - WorkDesk
===============================

Two-state ONLINE/OFFLINE machine. Listeners subscribe explicitly and get an
unsubscribe handle back; they are notified only on a transition.

Usage:
    monitor = ConnectivityMonitor(online=False)
    unsubscribe = monitor.subscribe(lambda online: print("online" if online else "offline"))
    await monitor.set_online(True)
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from workdesk.config import CONNECTIVITY_PROBE_INTERVAL
from .events import Subscribers, Listener

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]


class ConnectivityState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class ConnectivityMonitor:
    """Holds the connectivity state and notifies listeners of transitions."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners = Subscribers("connectivity")

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def state(self) -> ConnectivityState:
        return ConnectivityState.ONLINE if self._online else ConnectivityState.OFFLINE

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers listener(online: bool); returns a handle that unsubscribes it"""
        return self._listeners.subscribe(listener)

    async def set_online(self, online: bool) -> bool:
        """
        Updates the state.

        Returns:
            True when the state changed (listeners were notified)
        """
        online = bool(online)
        if online == self._online:
            return False
        self._online = online
        logger.info(f"[Connectivity] Now {self.state.value}")
        await self._listeners.notify(online)
        return True

    async def check(self, probe: Probe) -> bool:
        """Sets the state from an async probe; a probe that raises means offline"""
        try:
            online = bool(await probe())
        except Exception as e:
            logger.debug(f"[Connectivity] Probe failed: {e}")
            online = False
        await self.set_online(online)
        return online

    async def watch(self, probe: Probe, interval: float = CONNECTIVITY_PROBE_INTERVAL) -> None:
        """Polls the probe until cancelled"""
        while True:
            await self.check(probe)
            await asyncio.sleep(interval)
