"""
Configuration management for the Public Slip API.

Centralizes all configuration settings, environment variables, and constants.
"""

import os
import re
from typing import Dict, Any
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent

# Logging Configuration
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
LOG_FILE = LOG_DIR / "slip_api.log"
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "4000"))
API_TITLE = "Public Slip API"
API_DESCRIPTION = (
    "Read and synchronization surface for master slips, generated slips and "
    "their match legs. Receives bulk pushes from the slip engine and serves "
    "the placement-slip contract to downstream consumers."
)
SERVICE_NAME = "Public Slip API"

# Placement contract version reported in every placement response
ENGINE_VERSION = os.getenv("ENGINE_VERSION", "v1")

# Storage Configuration
MONGO_URI = os.getenv("MONGO_URI", "mongodb://127.0.0.1:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "generatedslips")
DB_CONNECT_TIMEOUT_MS = int(os.getenv("DB_CONNECT_TIMEOUT_MS", "5000"))
DB_AUTO_RECONNECT = os.getenv("DB_AUTO_RECONNECT", "true").lower() == "true"

# Collection names
MASTER_SLIPS = "master_slips"
GENERATED_SLIPS = "generated_slips"
GENERATED_SLIP_LEGS = "generated_slip_legs"
OPTIMIZED_SLIPS = "optimized_slips"
MASTER_SLIP_MATCHES = "master_slip_matches"
MATCHES = "matches"
LEGACY_SLIPS = "slips"

COLLECTION_NAMES = [
    MASTER_SLIPS,
    GENERATED_SLIPS,
    GENERATED_SLIP_LEGS,
    OPTIMIZED_SLIPS,
    MASTER_SLIP_MATCHES,
    MATCHES,
    LEGACY_SLIPS,
]

# Paths that stay reachable while storage is down
STORAGE_EXEMPT_PATHS = ["/", "/health"]
STORAGE_EXEMPT_PREFIXES = ["/api/db"]

# CORS Configuration
CORS_ALLOW_ORIGIN = os.getenv("CORS_ALLOW_ORIGIN", "*")
CORS_ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"
CORS_ALLOW_HEADERS = os.getenv(
    "CORS_ALLOW_HEADERS", "Content-Type,Authorization,X-Requested-With"
)

# Pagination Configuration
DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 20
WITH_SLIPS_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "500"))

# Slip Configuration
ALLOWED_SLIP_STATUSES = ["active", "won", "lost", "void"]
DEFAULT_SLIP_STATUS = "active"
SYNC_SLIP_ID_PREFIX = "gen"
BATCH_SLIP_ID_PREFIX = "gs"
LEGACY_MASTER_SLIP_PREFIX = "MS"

# Error Messages
ERROR_MESSAGES = {
    "DB_UNAVAILABLE": "Database unavailable",
    "MASTER_SLIP_NOT_FOUND": "Master slip not found",
    "GENERATED_SLIP_NOT_FOUND": "Generated slip not found",
    "MASTER_SLIP_REQUIRED": "Invalid payload: master_slip is required",
    "MASTER_SLIP_ID_REQUIRED": "Invalid payload: master_slip.id or master_slip.master_slip_id is required",
    "CREATE_FIELDS_REQUIRED": "master_slip_id and user_id are required",
    "MASTER_SLIP_EXISTS": "Master slip with this ID already exists",
    "SLIPS_REQUIRED": "Invalid payload: slips array is required",
    "INVALID_STATUS": "Invalid status value",
    "INVALID_PAYLOAD": "Invalid request payload",
}


def mask_mongo_uri(uri: str) -> str:
    """Hide the password part of a connection URI for logs."""
    return re.sub(r"(//)([^:@/]+):([^@]+)@", r"\1\2:****@", uri)


def get_config() -> Dict[str, Any]:
    """Get complete configuration dictionary."""
    return {
        "api": {
            "host": API_HOST,
            "port": API_PORT,
            "title": API_TITLE,
            "engine_version": ENGINE_VERSION,
        },
        "storage": {
            "uri": mask_mongo_uri(MONGO_URI),
            "database": MONGO_DB_NAME,
            "connect_timeout_ms": DB_CONNECT_TIMEOUT_MS,
            "auto_reconnect": DB_AUTO_RECONNECT,
            "collections": list(COLLECTION_NAMES),
        },
        "logging": {
            "log_dir": str(LOG_DIR),
            "log_file": str(LOG_FILE),
            "log_level": LOG_LEVEL,
        },
        "cors": {
            "allow_origin": CORS_ALLOW_ORIGIN,
            "allow_methods": CORS_ALLOW_METHODS,
            "allow_headers": CORS_ALLOW_HEADERS,
        },
        "pagination": {
            "default_limit": DEFAULT_PAGE_LIMIT,
            "with_slips_limit": WITH_SLIPS_PAGE_LIMIT,
            "max_limit": MAX_PAGE_LIMIT,
        },
    }


def validate_config() -> bool:
    """Validate configuration values."""
    errors = []

    if API_PORT < 1 or API_PORT > 65535:
        errors.append("PORT must be between 1 and 65535")

    if DB_CONNECT_TIMEOUT_MS < 100:
        errors.append("DB_CONNECT_TIMEOUT_MS must be at least 100")

    if not MONGO_URI.startswith(("mongodb://", "mongodb+srv://")):
        errors.append("MONGO_URI must start with mongodb:// or mongodb+srv://")

    if not MONGO_DB_NAME:
        errors.append("MONGO_DB_NAME cannot be empty")

    if MAX_PAGE_LIMIT < DEFAULT_PAGE_LIMIT:
        errors.append("MAX_PAGE_LIMIT must not be below the default page limit")

    if errors:
        raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    return True
