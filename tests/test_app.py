from quality_monitor.models import User


def test_app_extension_registration(app):
    assert "sqlalchemy" in app.extensions
    assert app.login_manager is not None
    assert app.extensions["sync"]["enabled"] is True
    assert "sync" in app.blueprints
    assert "sync" in app.cli.commands


def test_app_testing_config(app):
    assert app.config["TESTING"] is True
    assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite:///:memory:"
    assert app.config["SYNC_AUTO_ENABLED"] is False


def test_unknown_route_returns_json(client):
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found", "path": "/does-not-exist"}


def test_user_loader(app, user_factory):
    user = user_factory("Ivan Petrov")
    loader = app.login_manager._user_callback
    assert loader(str(user.id)) == user
    assert loader("not-a-number") is None
    assert isinstance(loader(str(user.id)), User)
