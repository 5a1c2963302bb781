# -*- coding: utf-8 -*-
"""
Subscriber lists with unsubscribe handles.

Listeners may be plain callables or coroutine functions; they are invoked in
subscription order and awaitables are awaited before the next listener runs.
"""

import contextlib
import inspect
import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Subscribers:
    """Ordered listeners for one kind of notification"""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._listeners)

    async def notify(self, *args: Any) -> None:
        """Calls every listener; a failing one is logged and the rest still run"""
        for listener in list(self._listeners):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"[Events] {self.name} listener {listener!r} failed")
