"""
Configuration module.

Handles environment variables, API keys, and application settings.
"""

from src.config.config import (
    APP_ENV,
    DEBUG,
    LOG_LEVEL,
    PORT,
    ADMIN_TOKEN,
    STORAGE_BACKEND,
    DATABASE_PATH,
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_ENTRIES_TABLE,
    AIRTABLE_META_TABLE,
    RESEND_API_KEY,
    NEWSLETTER_FROM,
    NEWSLETTER_TO,
    NEWSLETTER_SENDER_NAME,
    NEWSLETTER_TITLE,
    FORM_URL,
    REQUEST_TIMEOUT,
    PREVIEW_TIMEOUT,
    PREVIEW_MAX_WORKERS,
    SCHEDULE_HOUR,
    SCHEDULE_MINUTE,
    SCHEDULER_ENABLED,
    is_production,
    is_development,
    validate_config,
    print_config_summary,
    configure_logging,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "LOG_LEVEL",
    "PORT",
    "ADMIN_TOKEN",
    "STORAGE_BACKEND",
    "DATABASE_PATH",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_ENTRIES_TABLE",
    "AIRTABLE_META_TABLE",
    "RESEND_API_KEY",
    "NEWSLETTER_FROM",
    "NEWSLETTER_TO",
    "NEWSLETTER_SENDER_NAME",
    "NEWSLETTER_TITLE",
    "FORM_URL",
    "REQUEST_TIMEOUT",
    "PREVIEW_TIMEOUT",
    "PREVIEW_MAX_WORKERS",
    "SCHEDULE_HOUR",
    "SCHEDULE_MINUTE",
    "SCHEDULER_ENABLED",
    "is_production",
    "is_development",
    "validate_config",
    "print_config_summary",
    "configure_logging",
]
