# -*- coding: utf-8 -*-
"""
Velocity Module - WorkDesk
==========================

Sprint burndown metrics.
"""

from .burndown import (
    BurndownPoint,
    BurndownReport,
    calculate_burndown,
    task_points,
    is_completed,
)

__all__ = [
    "BurndownPoint",
    "BurndownReport",
    "calculate_burndown",
    "task_points",
    "is_completed",
]
