# -*- coding: utf-8 -*-
"""
Database connection - WorkDesk
Supports PostgreSQL (production) and SQLite (local fallback)
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from workdesk.config import DATABASE_URL, DATA_DIR

logger = logging.getLogger(__name__)

IS_POSTGRES = "postgresql" in DATABASE_URL

# ============================================
# Engine
# ============================================


def build_engine(url: str = DATABASE_URL, **kwargs):
    """Creates an engine for the given URL (SQLite gets foreign keys enabled)"""
    if "postgresql" in url:
        return create_engine(url, pool_size=10, max_overflow=5, pool_pre_ping=True, echo=False, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    sqlite_engine = create_engine(url, echo=False, **kwargs)

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


if not IS_POSTGRES and DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ============================================
# Base for the models
# ============================================

Base = declarative_base()

# ============================================
# Dependency injection for FastAPI
# ============================================


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_context(session_factory=None) -> Generator[Session, None, None]:
    """
    Session with transaction boundaries.

    Usage:
        with transaction_context() as db:
            UserRepository(db).set_role(user_id, UserRole.ADMIN)
            # commit at the end of the block, rollback on exception
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

# ============================================
# Initialization
# ============================================


def init_db(bind=None) -> bool:
    """Creates every table"""
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"[DB] {'PostgreSQL' if IS_POSTGRES else 'SQLite'} database initialized")
    return True


def check_db_health(db: Session) -> dict:
    """Runs a trivial query against the database"""
    health = {"status": "unknown", "type": "PostgreSQL" if IS_POSTGRES else "SQLite"}
    try:
        db.execute(text("SELECT 1"))
        health["status"] = "healthy"
    except Exception as e:
        logger.warning(f"[DB] Health check failed: {e}")
        health["status"] = "unhealthy"
    return health
