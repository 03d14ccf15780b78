"""
Configuration module for Reader Stats

Loads configuration from environment variables using python-dotenv
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env file (override=True ensures .env has priority over shell environment)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=True)


# Reader Bot backend
READER_API_BASE_URL: str = os.getenv(
    "READER_API_BASE_URL", "http://localhost:3002/api/reader"
)

# Telegram WebApp initData (sent as "Authorization: tma <initData>")
READER_INIT_DATA: str = os.getenv("READER_INIT_DATA", "")

# HTTP behaviour
READER_API_TIMEOUT: float = float(os.getenv("READER_API_TIMEOUT", "30"))
READER_API_RETRIES: int = int(os.getenv("READER_API_RETRIES", "3"))

# Optional: user to warm up in demo_stats.py
READER_USER_ID: Optional[str] = os.getenv("READER_USER_ID") or None

# Environment
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Optional: Sentry
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")


# Validation
def validate_config() -> bool:
    """Validate required configuration variables"""
    errors = []

    if not READER_API_BASE_URL:
        errors.append("READER_API_BASE_URL is required")
    elif not READER_API_BASE_URL.startswith(("http://", "https://")):
        errors.append("READER_API_BASE_URL must start with http:// or https://")

    if READER_API_TIMEOUT <= 0:
        errors.append("READER_API_TIMEOUT must be positive")

    if READER_API_RETRIES < 1:
        errors.append("READER_API_RETRIES must be at least 1")

    if errors:
        error_message = "\n".join(f"  - {error}" for error in errors)
        raise ValueError(
            f"Configuration validation failed:\n{error_message}\n\n"
            "Please check your .env file and ensure all required variables are set."
        )

    return True
