# config/validation.py

"""
Environment variable validation for the quality monitor.
Validates required environment variables at startup.
"""

import os
import sys
from typing import List, Mapping, Optional, Tuple

GOOGLE_CREDENTIAL_VARS = ("GOOGLE_SERVICE_ACCOUNT_EMAIL", "GOOGLE_PRIVATE_KEY")


def _flag(env: Mapping[str, str], name: str, default: str) -> bool:
    return env.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def validate_environment(flask_env: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable
        env: Mapping to validate. Defaults to os.environ.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    env = os.environ if env is None else env
    if flask_env is None:
        flask_env = env.get("FLASK_ENV", "development")

    errors = []

    # Only validate in production
    if flask_env != "production":
        return True, []

    secret_key = env.get("SECRET_KEY", "")
    if not secret_key or secret_key in {"your-secret-key", "your_secret_key"}:
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not env.get("DATABASE_URL"):
        errors.append("DATABASE_URL is required in production. Set it to your database connection string.")

    if _flag(env, "SYNC_ENABLED", "true"):
        for name in GOOGLE_CREDENTIAL_VARS:
            if not env.get(name):
                errors.append(f"{name} is required when SYNC_ENABLED=true")

    if _flag(env, "SYNC_AUTO_ENABLED", "false") and not env.get("RETURNS_SHEET_ID"):
        errors.append("RETURNS_SHEET_ID is required when SYNC_AUTO_ENABLED=true")

    interval = env.get("SYNC_INTERVAL_MINUTES")
    if interval is not None and not interval.strip().isdigit():
        errors.append("SYNC_INTERVAL_MINUTES must be a positive integer")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: Optional[str] = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.
    """
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)
