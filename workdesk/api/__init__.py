# -*- coding: utf-8 -*-
"""
WorkDesk REST API

Routers are assembled in workdesk.api.app.create_app().
"""
