# config/base.py
import os
from datetime import timedelta


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None):
    try:
        number = int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        number = default
    if minimum is not None:
        number = max(minimum, number)
    return number


def _sqlite_engine_options(uri):
    if uri and uri.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    return {}


class Config:
    # SECRET_KEY must be set via environment variable in production.
    # Generate with: python -c "import secrets; print(secrets.token_hex(32))"
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "Set SECRET_KEY before deploying.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Sheet sync
    SYNC_ENABLED = _coerce_bool(os.environ.get("SYNC_ENABLED"), default=True)
    SYNC_WORKER_ENABLED = _coerce_bool(os.environ.get("SYNC_WORKER_ENABLED"), default=False)
    SYNC_AUTO_ENABLED = _coerce_bool(os.environ.get("SYNC_AUTO_ENABLED"), default=False)
    SYNC_INTERVAL_MINUTES = _coerce_int(os.environ.get("SYNC_INTERVAL_MINUTES"), 10, minimum=1)
    SYNC_TASK_TIME_LIMIT = _coerce_int(os.environ.get("SYNC_TASK_TIME_LIMIT"), 15 * 60, minimum=60)
    SYNC_TASK_SOFT_TIME_LIMIT = _coerce_int(os.environ.get("SYNC_TASK_SOFT_TIME_LIMIT"), 12 * 60, minimum=30)
    GOOGLE_SHEETS_TIMEOUT = _coerce_int(os.environ.get("GOOGLE_SHEETS_TIMEOUT"), 30, minimum=1)

    RETURNS_SHEET_ID = os.environ.get("RETURNS_SHEET_ID")
    RETURNS_SHEET_GID = os.environ.get("RETURNS_SHEET_GID", "0")
    ROSTER_SHEET_ID = os.environ.get("ROSTER_SHEET_ID")
    ROSTER_SHEET_GID = os.environ.get("ROSTER_SHEET_GID", "0")

    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")
    CELERY_SQLITE_PATH = os.environ.get("CELERY_SQLITE_PATH")
    CELERY_CONFIG = os.environ.get("CELERY_CONFIG")

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"


class DevelopmentConfig(Config):
    DEBUG = True
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URIs need forward slashes, including on Windows.
    db_path = os.path.join(instance_path, "quality_monitor_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI)
    SYNC_ENABLED = True
    SYNC_WORKER_ENABLED = False
    SYNC_AUTO_ENABLED = False
    CELERY_CONFIG = {"task_always_eager": True, "task_eager_propagates": True}


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(uri)
    SESSION_COOKIE_SECURE = True
