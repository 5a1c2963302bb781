# -*- coding: utf-8 -*-
"""
WorkDesk
========

Personal productivity platform: tasks, knowledge base, sprints and an
offline-first client that keeps working while the API is unreachable.
"""

__version__ = "1.0.0"
