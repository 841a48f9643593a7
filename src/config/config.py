"""
Configuration module for Signal Dispatch.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# The .env file should be in the root directory (parent of src/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


def _env_list(name: str) -> list[str]:
    """Read a comma-separated environment variable as a list of non-empty values."""
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
# Default: "development" for safe local testing
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode (Flask debugger and DEBUG log level)
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

# Root log level name
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

# HTTP port for the submission server
PORT: int = int(os.getenv("PORT", "3000"))

# Token required by the /admin/entries dump; the endpoint is closed when empty
ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "")


# =============================================================================
# Storage Configuration
# =============================================================================

# Which backend holds entries and the send ledger: "sqlite", "airtable" or "memory"
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "sqlite").lower()

# SQLite database file (relative paths resolve against the working directory)
DATABASE_PATH: str = os.getenv("DATABASE_PATH", "database.sqlite")

# Airtable API key for authentication
AIRTABLE_API_KEY: str = os.getenv("AIRTABLE_API_KEY", "")

# Airtable base ID holding both tables
AIRTABLE_BASE_ID: str = os.getenv("AIRTABLE_BASE_ID", "")

# Table of submitted entries
AIRTABLE_ENTRIES_TABLE: str = os.getenv("AIRTABLE_ENTRIES_TABLE", "Entries")

# Key/value table holding the last-sent timestamp
AIRTABLE_META_TABLE: str = os.getenv("AIRTABLE_META_TABLE", "Meta")


# =============================================================================
# Email Delivery (Resend)
# =============================================================================

RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")

# Verified sender address, e.g. "news@example.org"
NEWSLETTER_FROM: str = os.getenv("NEWSLETTER_FROM", "")

# Recipients, comma separated
NEWSLETTER_TO: list[str] = _env_list("NEWSLETTER_TO")

# Display name used in the From header
NEWSLETTER_SENDER_NAME: str = os.getenv("NEWSLETTER_SENDER_NAME", "DHLab Newsletter")

# Subject prefix, followed by the item count
NEWSLETTER_TITLE: str = os.getenv("NEWSLETTER_TITLE", "DHLab Signal Dispatch")

# Public submission form linked from the digest footer
FORM_URL: str = os.getenv("FORM_URL", "")


# =============================================================================
# Network Configuration
# =============================================================================

# HTTP request timeout in seconds for Airtable and Resend
# Default: 30 seconds - generous timeout for slow APIs
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

# Timeout for a single link preview fetch
PREVIEW_TIMEOUT: float = float(os.getenv("PREVIEW_TIMEOUT", "10"))

# Number of previews fetched in parallel
PREVIEW_MAX_WORKERS: int = int(os.getenv("PREVIEW_MAX_WORKERS", "4"))


# =============================================================================
# Scheduling
# =============================================================================

# Daily evaluation time (server local time), default 09:00
SCHEDULE_HOUR: int = int(os.getenv("SCHEDULE_HOUR", "9"))
SCHEDULE_MINUTE: int = int(os.getenv("SCHEDULE_MINUTE", "0"))

# Start the daily job together with the web server
SCHEDULER_ENABLED: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"


# =============================================================================
# Helper Functions
# =============================================================================

VALID_BACKENDS = ("sqlite", "airtable", "memory")


def is_production() -> bool:
    """Check if running in production environment."""
    return APP_ENV == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return APP_ENV == "development"


def validate_config() -> list[str]:
    """
    Validate that required configuration is present for production.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    errors = []

    if STORAGE_BACKEND not in VALID_BACKENDS:
        errors.append(
            f"STORAGE_BACKEND must be one of {', '.join(VALID_BACKENDS)}, got {STORAGE_BACKEND!r}"
        )

    if is_production():
        if not RESEND_API_KEY:
            errors.append("RESEND_API_KEY is required in production")
        if not NEWSLETTER_FROM:
            errors.append("NEWSLETTER_FROM is required in production")
        if not NEWSLETTER_TO:
            errors.append("NEWSLETTER_TO is required in production")
        if STORAGE_BACKEND == "memory":
            errors.append("STORAGE_BACKEND=memory is not durable and not allowed in production")

    if STORAGE_BACKEND == "airtable":
        if not AIRTABLE_API_KEY:
            errors.append("AIRTABLE_API_KEY is required for the airtable backend")
        if not AIRTABLE_BASE_ID:
            errors.append("AIRTABLE_BASE_ID is required for the airtable backend")

    if REQUEST_TIMEOUT < 1:
        errors.append("REQUEST_TIMEOUT must be at least 1 second")

    if PREVIEW_TIMEOUT <= 0:
        errors.append("PREVIEW_TIMEOUT must be positive")

    if PREVIEW_MAX_WORKERS < 1:
        errors.append("PREVIEW_MAX_WORKERS must be at least 1")

    if not (0 <= SCHEDULE_HOUR <= 23):
        errors.append("SCHEDULE_HOUR must be between 0 and 23")

    if not (0 <= SCHEDULE_MINUTE <= 59):
        errors.append("SCHEDULE_MINUTE must be between 0 and 59")

    return errors


def print_config_summary() -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    print(f"  APP_ENV: {APP_ENV}")
    print(f"  DEBUG: {DEBUG}")
    print(f"  STORAGE_BACKEND: {STORAGE_BACKEND}")
    if STORAGE_BACKEND == "sqlite":
        print(f"  DATABASE_PATH: {DATABASE_PATH}")
    if STORAGE_BACKEND == "airtable":
        print(f"  AIRTABLE_API_KEY: {'***' if AIRTABLE_API_KEY else '(not set)'}")
        print(f"  AIRTABLE_BASE_ID: {'***' if AIRTABLE_BASE_ID else '(not set)'}")
        print(f"  AIRTABLE_ENTRIES_TABLE: {AIRTABLE_ENTRIES_TABLE}")
        print(f"  AIRTABLE_META_TABLE: {AIRTABLE_META_TABLE}")
    print(f"  RESEND_API_KEY: {'***' if RESEND_API_KEY else '(not set)'}")
    print(f"  NEWSLETTER_FROM: {NEWSLETTER_FROM or '(not set)'}")
    print(f"  NEWSLETTER_TO: {len(NEWSLETTER_TO)} recipient(s)")
    print(f"  FORM_URL: {FORM_URL or '(not set)'}")
    print(f"  ADMIN_TOKEN: {'***' if ADMIN_TOKEN else '(not set)'}")
    print(f"  PREVIEW_TIMEOUT: {PREVIEW_TIMEOUT}s")
    print(f"  PREVIEW_MAX_WORKERS: {PREVIEW_MAX_WORKERS}")
    print(f"  SCHEDULE: daily at {SCHEDULE_HOUR:02d}:{SCHEDULE_MINUTE:02d}")


def configure_logging(level: str = None) -> None:
    """
    Configure root logging once for CLI and server entry points.

    Args:
        level: Log level name. Defaults to LOG_LEVEL.
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
