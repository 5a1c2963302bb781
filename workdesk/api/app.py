# -*- coding: utf-8 -*-
"""
WorkDesk API
============

FastAPI application: auth, tasks, knowledge, sprints, admin, reports.

Run:
    uvicorn workdesk.api.app:app --port 8000
    python -m workdesk serve
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from workdesk import __version__
from workdesk.config import API_TITLE, CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, validate_environment
from workdesk.database.connection import get_db, init_db, check_db_health
from workdesk.api.auth import auth_router
from workdesk.api.error_handler import unhandled_exception_handler
from workdesk.api import task_routes, knowledge_routes, sprint_routes, admin_routes, report_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_environment(raise_on_error=True)
    init_db()
    logger.info(f"[API] {API_TITLE} v{__version__} started")
    yield
    logger.info("[API] Shutting down")


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Builds the application.

    Args:
        use_lifespan: Validate the environment and create tables on startup
    """
    app = FastAPI(
        title=API_TITLE,
        description="Tasks, knowledge base and sprints with offline-capable clients",
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.include_router(task_routes.router)
    app.include_router(knowledge_routes.router)
    app.include_router(sprint_routes.router)
    app.include_router(admin_routes.router)
    app.include_router(report_routes.router)

    @app.get("/health", tags=["Health"])
    def health(db: Session = Depends(get_db)):
        database = check_db_health(db)
        return {
            "status": "healthy" if database["status"] == "healthy" else "degraded",
            "version": __version__,
            "database": database,
        }

    return app


app = create_app()
