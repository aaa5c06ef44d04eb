"""
System-wide settings kept by administrators.

Settings are stored per section (general, security, notifications, sync,
ai) as JSON documents. Sections that were never saved fall back to the
defaults below.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Tuple

from indaba.core.errors import BadRequestError
from indaba.core.models.io.admin import ConnectionChannel

SECTIONS = ("general", "security", "notifications", "sync", "ai")

DEFAULT_SYSTEM_SETTINGS: Dict[str, Dict[str, Any]] = {
    "general": {
        "site_name": "Indaba Care",
        "logo_url": "",
        "banner_url": "",
        "primary_color": "#3b82f6",
        "secondary_color": "#6366f1",
        "accent_color": "#f59e0b",
        "default_theme": "light",
        "maintenance_mode": False,
        "maintenance_message": "The system is currently undergoing scheduled maintenance. Please check back later.",
    },
    "security": {
        "password_min_length": 10,
        "require_uppercase": True,
        "require_lowercase": True,
        "require_numbers": True,
        "require_symbols": True,
        "password_expiry_days": 90,
        "session_timeout_minutes": 30,
        "max_concurrent_sessions": 3,
        "audit_logging_enabled": True,
        "log_retention_days": 90,
        "detailed_logging": False,
    },
    "notifications": {
        "global_alert": {"enabled": False, "message": "", "priority": "info"},
        "email_provider": {"provider": "smtp", "smtp_host": "", "smtp_port": "587", "from_email": "", "from_name": "Indaba Care"},
        "sms_provider": {"provider": "none", "account_sid": "", "auth_token": "", "from_number": ""},
        "push_provider": {"provider": "none", "api_key": "", "app_id": ""},
        "keyword_threshold": 2,
        "auto_flag": True,
    },
    "sync": {
        "sync_interval_minutes": 15,
        "conflict_resolution": "lastWriteWins",
        "max_cache_mb": 200,
        "warn_at_percentage": 80,
        "enable_background_sync": True,
        "sync_on_wifi_only": False,
        "max_sync_retries": 3,
        "sync_priorities": {"observations": 1, "messages": 2, "profiles": 3, "media": 4},
    },
    "ai": {
        "openai": {"enabled": False, "model": "gpt-4o-mini", "temperature": 0.7, "max_tokens": 2000},
        "features": {
            "auto_tagging": True,
            "message_summarization": True,
            "content_generation": True,
            "chat_assistant": True,
            "emergency_detection": True,
        },
        "limits": {
            "max_daily_api_calls": 1000,
            "max_daily_api_calls_per_user": 100,
            "max_summary_words": 200,
            "max_response_tokens": 2000,
        },
    },
}


def default_section(section: str) -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_SYSTEM_SETTINGS[section])


# (channel, provider) -> fields that must be present and non-empty
_REQUIRED_FIELDS: Dict[Tuple[ConnectionChannel, str], Tuple[List[str], str]] = {
    (ConnectionChannel.AI, "openai"): (["api_key"], "API key is required for OpenAI"),
    (ConnectionChannel.EMAIL, "smtp"): (
        ["smtp_host", "smtp_port", "from_email"],
        "SMTP host, port, and from email are required",
    ),
    (ConnectionChannel.EMAIL, "sendgrid"): (["api_key", "from_email"], "API key and from email are required"),
    (ConnectionChannel.EMAIL, "mailchimp"): (["api_key", "from_email"], "API key and from email are required"),
}

_CHANNEL_LABELS = {
    ConnectionChannel.AI: "AI",
    ConnectionChannel.EMAIL: "Email",
    ConnectionChannel.SMS: "SMS",
    ConnectionChannel.PUSH: "Push notification",
}


def check_connection(channel: ConnectionChannel, provider: str, config: Dict[str, Any]) -> str:
    """Validate a provider configuration and return a success message.

    No network call is made; the check only verifies that the settings a
    provider needs are filled in.

    Raises:
        BadRequestError: If a required setting is missing
    """
    label = _CHANNEL_LABELS[channel]
    provider = provider.lower()
    if provider == "none":
        return f"{label} provider is set to None. No test needed."

    if channel == ConnectionChannel.SMS:
        required, message = ["account_sid", "auth_token", "from_number"], "Account SID, Auth Token, and From Number are required"
    elif channel == ConnectionChannel.PUSH:
        required, message = ["api_key", "app_id"], "API key and app ID are required"
    elif (channel, provider) in _REQUIRED_FIELDS:
        required, message = _REQUIRED_FIELDS[(channel, provider)]
    else:
        raise BadRequestError(f"Unsupported {label.lower()} provider: {provider}")

    if any(not config.get(field) for field in required):
        raise BadRequestError(message)
    return f"{label} connection test successful"
