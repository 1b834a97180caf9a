# conftest.py

import os

import pytest
from flask_login import FlaskLoginClient

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from quality_monitor.models import IssueSource, User, UserRole, db  # noqa: E402
from quality_monitor.sync.adapters.google_sheets.extractor import SheetData, build_sheet_data  # noqa: E402
from quality_monitor.utils.logging_config import setup_logging  # noqa: E402
from quality_monitor.utils.sync import SYNC_EXTENSION_KEY  # noqa: E402


class FakeExtractor:
    """
    In-memory sheet source keyed by ``(sheet_id, gid)``.

    Values are a raw ``values`` matrix (header row first), a ``SheetData``,
    or an exception instance to raise from ``fetch_sheet``.
    """

    def __init__(self):
        self.sheets = {}
        self.calls = []

    def add_sheet(self, sheet_id, values, gid="0"):
        self.sheets[(sheet_id, str(gid))] = values

    def fail_sheet(self, sheet_id, exc, gid="0"):
        self.sheets[(sheet_id, str(gid))] = exc

    def fetch_sheet(self, spreadsheet_id, gid="0", cell_range=None):
        self.calls.append((spreadsheet_id, str(gid)))
        entry = self.sheets.get((spreadsheet_id, str(gid)))
        if isinstance(entry, BaseException):
            raise entry
        if entry is None:
            return SheetData()
        if isinstance(entry, SheetData):
            return entry
        return build_sheet_data(entry)


@pytest.fixture(scope="function")
def app():
    """The application with a clean in-memory database per test"""
    flask_app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "WARNING",
            "SYNC_ENABLED": True,
            "SYNC_WORKER_ENABLED": False,
            "RETURNS_SHEET_ID": None,
            "RETURNS_SHEET_GID": "0",
            "ROSTER_SHEET_ID": None,
            "ROSTER_SHEET_GID": "0",
        }
    )
    setup_logging(flask_app)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()

    flask_app.extensions[SYNC_EXTENSION_KEY].update({"extractor_factory": None, "adapter_readiness": {}})


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def fake_extractor(app):
    """Route every sync in the test through a ``FakeExtractor``."""
    extractor = FakeExtractor()
    app.extensions[SYNC_EXTENSION_KEY]["extractor_factory"] = lambda: extractor
    return extractor


@pytest.fixture
def source_factory():
    def _factory(name, *, sheet_id=None, gid="0", is_active=True):
        source = IssueSource(
            name=name,
            display_name=f"{name} issues",
            google_sheet_id=sheet_id or f"sheet-{name.lower()}",
            sheet_gid=gid,
            is_active=is_active,
        )
        db.session.add(source)
        db.session.commit()
        return source

    return _factory


@pytest.fixture
def user_factory():
    def _factory(full_name, *, email=None, role=UserRole.CC, cc_abbreviation=None, team=None):
        user = User(
            email=email or f"{full_name.lower().replace(' ', '.')}@example.com",
            full_name=full_name,
            role=role,
            cc_abbreviation=cc_abbreviation,
            team=team,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _factory


@pytest.fixture
def admin_user(user_factory):
    return user_factory("Ada Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def login_client(app):
    """Return a factory building test clients logged in as the given user."""
    previous_class = app.test_client_class
    app.test_client_class = FlaskLoginClient

    def _client(user):
        return app.test_client(user=user)

    yield _client
    app.test_client_class = previous_class
