from types import SimpleNamespace

from quality_monitor.models import Issue, Return, SyncLog, SyncStatus, db
from quality_monitor.sync import get_celery_app, refresh_adapter_readiness

ISSUE_VALUES = [["Date", "Type", "CID"], ["2024-01-15", "Rude", "C-1"], ["2024-01-16", "Late", "C-2"]]


def test_health_is_public(client):
    response = client.get("/api/sync/health")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["enabled"] is True


def test_reads_require_authentication(client):
    for path in ("/api/sync/status", "/api/sync/logs", "/api/sync/returns/logs", "/api/sync/sources"):
        assert client.get(path).status_code == 401


def test_triggers_require_admin(login_client, user_factory, source_factory):
    source_factory("LV")
    agent = user_factory("Ivan Petrov")
    client = login_client(agent)

    assert client.post("/api/sync/trigger").status_code == 403
    assert client.post("/api/sync/trigger/LV").status_code == 403
    assert client.post("/api/sync/returns/trigger").status_code == 403
    assert client.get("/api/sync/status").status_code == 200


def test_trigger_all_runs_inline(login_client, admin_user, source_factory, fake_extractor):
    lv = source_factory("LV")
    source_factory("CS")
    fake_extractor.add_sheet(lv.google_sheet_id, ISSUE_VALUES)

    response = login_client(admin_user).post("/api/sync/trigger")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["total"] == 2
    assert payload["succeeded"] == 2
    assert [result["source"] for result in payload["results"]] == ["CS", "LV"]
    assert Issue.query.count() == 2


def test_trigger_single_source(login_client, admin_user, source_factory, fake_extractor):
    lv = source_factory("LV")
    fake_extractor.add_sheet(lv.google_sheet_id, ISSUE_VALUES)
    client = login_client(admin_user)

    response = client.post("/api/sync/trigger/lv")
    assert response.status_code == 200
    assert response.get_json()["rows_inserted"] == 2

    missing = client.post("/api/sync/trigger/unknown")
    assert missing.status_code == 404
    assert "unknown" in missing.get_json()["error"]


def test_trigger_enqueues_when_worker_enabled(app, login_client, admin_user, source_factory, monkeypatch):
    source = source_factory("LV")
    app.config["SYNC_WORKER_ENABLED"] = True
    sent = []

    def fake_send_task(name, kwargs=None):
        sent.append((name, kwargs))
        return SimpleNamespace(id="task-123")

    monkeypatch.setattr(get_celery_app(app), "send_task", fake_send_task)

    response = login_client(admin_user).post("/api/sync/trigger/LV")

    assert response.status_code == 202
    assert response.get_json() == {"status": "queued", "task": "sync.run_source", "task_id": "task-123"}
    assert sent == [("sync.run_source", {"source_id": source.id})]


def test_returns_trigger_requires_configuration(app, login_client, admin_user, fake_extractor):
    client = login_client(admin_user)
    assert client.post("/api/sync/returns/trigger").status_code == 400

    app.config["RETURNS_SHEET_ID"] = "returns-sheet"
    fake_extractor.add_sheet(
        "returns-sheet",
        [["Return Receive Date", "CID", "CC", "Initial Returns Number"], ["2024-01-15", "C-1", "ivp", "1"]],
    )
    response = client.post("/api/sync/returns/trigger")
    assert response.status_code == 200
    assert response.get_json()["rows_inserted"] == 1
    assert Return.query.count() == 1


def test_logs_status_and_sources(login_client, admin_user, source_factory, fake_extractor):
    lv = source_factory("LV")
    source_factory("OLD", is_active=False)
    fake_extractor.add_sheet(lv.google_sheet_id, ISSUE_VALUES)
    client = login_client(admin_user)
    client.post("/api/sync/trigger/LV")

    logs = client.get("/api/sync/logs?limit=5").get_json()["logs"]
    assert len(logs) == 1
    assert logs[0]["source_name"] == "LV"
    assert logs[0]["status"] == "success"
    assert logs[0]["rows_inserted"] == 2

    assert client.get("/api/sync/logs?limit=abc").status_code == 400

    status = client.get("/api/sync/status").get_json()
    assert status["is_running"] is False
    assert status["last_sync"] is not None
    assert [source["name"] for source in status["sources"]] == ["LV"]

    sources = client.get("/api/sync/sources").get_json()["sources"]
    assert [source["name"] for source in sources] == ["LV"]


def test_status_reports_running_sync(login_client, admin_user, source_factory):
    source = source_factory("LV")
    db.session.add(SyncLog(source_id=source.id, status=SyncStatus.RUNNING))
    db.session.commit()

    status = login_client(admin_user).get("/api/sync/status").get_json()
    assert status["is_running"] is True
    assert status["last_sync"] is None


def test_health_reports_stored_adapter_readiness(app, client, monkeypatch):
    monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "svc@example.iam.gserviceaccount.com")
    monkeypatch.setenv("GOOGLE_PRIVATE_KEY", "key")
    refresh_adapter_readiness(app)

    payload = client.get("/api/sync/health").get_json()

    assert payload["adapter"]["status"] == "ready"
    assert payload["adapter"]["missing_env_vars"] == []
