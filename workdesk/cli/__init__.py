# -*- coding: utf-8 -*-
"""
WorkDesk CLI
============

Usage:
    python -m workdesk status
    workdesk sync
"""

from .main import CLI, run_cli, main
from .output import Output, Color

__all__ = ["CLI", "run_cli", "main", "Output", "Color"]
