# -*- coding: utf-8 -*-
"""
WorkDesk configuration
REST server and offline client settings
"""
import os
import logging
import secrets
from pathlib import Path
from dotenv import load_dotenv

# Load .env if present
load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = PROJECT_ROOT / "workdesk"
DATA_DIR = Path(os.getenv("WORKDESK_DATA_DIR", PROJECT_ROOT / "data"))

WORKDESK_DB = DATA_DIR / "workdesk.db"

# =============================================================================
# ENVIRONMENT
# =============================================================================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def is_production() -> bool:
    """True when running with ENVIRONMENT=production"""
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


# =============================================================================
# DATABASE
# =============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{WORKDESK_DB}")

# =============================================================================
# AUTH
# =============================================================================

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", 7))

# Development only: regenerated per process, tokens do not survive a restart
_DEV_SECRET = secrets.token_urlsafe(64)


def get_jwt_secret() -> str:
    """Returns the signing key, failing loudly in production when unset"""
    key = os.getenv("JWT_SECRET_KEY", JWT_SECRET_KEY)
    if key:
        return key
    if is_production():
        raise ConfigValidationError("JWT_SECRET_KEY is required in production")
    return _DEV_SECRET


# =============================================================================
# API
# =============================================================================

API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", 8000))
API_TITLE = "WorkDesk API"

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
CORS_ALLOW_CREDENTIALS = True

# =============================================================================
# OFFLINE CLIENT
# =============================================================================

WORKDESK_API_URL = os.getenv("WORKDESK_API_URL", f"http://{API_HOST}:{API_PORT}")
WORKDESK_STORE_PATH = Path(os.getenv("WORKDESK_STORE_PATH", DATA_DIR / "offline_store.json"))
WORKDESK_TOKEN = os.getenv("WORKDESK_TOKEN", "")

# Seconds between connectivity probes
CONNECTIVITY_PROBE_INTERVAL = float(os.getenv("CONNECTIVITY_PROBE_INTERVAL", 15))

# =============================================================================
# ENVIRONMENT VALIDATION
# =============================================================================


class ConfigValidationError(Exception):
    """Invalid or missing configuration"""
    pass


REQUIRED_ENV_VARS = {
    "production": [
        ("JWT_SECRET_KEY", "JWT signing key (python -c \"import secrets; print(secrets.token_urlsafe(64))\")"),
        ("DATABASE_URL", "Database connection URL"),
    ],
    "development": [],
}


def validate_environment(raise_on_error: bool = False) -> dict:
    """
    Validates environment variables at startup.

    Returns:
        {"valid": bool, "errors": [...], "warnings": [...], "environment": str}
    """
    result = {
        "valid": True,
        "errors": [],
        "warnings": [],
        "environment": "production" if is_production() else "development"
    }

    for var_name, description in REQUIRED_ENV_VARS.get(result["environment"], []):
        if not os.getenv(var_name, ""):
            error_msg = f"Missing required variable: {var_name} - {description}"
            result["errors"].append(error_msg)
            result["valid"] = False
            logger.error(f"[CONFIG] {error_msg}")

    secret = os.getenv("JWT_SECRET_KEY", "")
    if secret and len(secret) < 32:
        warning_msg = "JWT_SECRET_KEY is short (32+ characters recommended)"
        result["warnings"].append(warning_msg)
        logger.warning(f"[CONFIG] {warning_msg}")

    if raise_on_error and not result["valid"]:
        raise ConfigValidationError(f"Invalid configuration: {', '.join(result['errors'])}")

    return result
