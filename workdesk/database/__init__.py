# -*- coding: utf-8 -*-
"""Database layer: engine/session, models and repositories."""
