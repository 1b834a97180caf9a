import json
import logging

from quality_monitor.utils.logging_config import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("app", logging.INFO, __file__, 10, "Sync finished for %s", ("LV",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JSONFormatter().format(_record(sync_source="LV", sync_rows_inserted=3, sync_log_id=7)))
    assert payload["message"] == "Sync finished for LV"
    assert payload["level"] == "INFO"
    assert payload["sync_source"] == "LV"
    assert payload["sync_rows_inserted"] == 3


def test_json_formatter_stringifies_unserializable_extra():
    payload = json.loads(JSONFormatter().format(_record(sync_started=object())))
    assert isinstance(payload["sync_started"], str)


def test_setup_logging_respects_config(app, tmp_path):
    app.config.update(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="json",
        ENABLE_CONSOLE_LOGGING=True,
        ENABLE_FILE_LOGGING=True,
        LOG_DIR=str(tmp_path / "logs"),
    )
    setup_logging(app)

    assert app.logger.level == logging.DEBUG
    handler_types = {type(handler).__name__ for handler in app.logger.handlers}
    assert handler_types == {"StreamHandler", "RotatingFileHandler"}
    assert all(isinstance(handler.formatter, JSONFormatter) for handler in app.logger.handlers)
    assert (tmp_path / "logs").is_dir()

    for handler in list(app.logger.handlers):
        handler.close()
        app.logger.removeHandler(handler)


def test_setup_logging_without_handlers_is_silent(app):
    app.config.update(ENABLE_CONSOLE_LOGGING=False, ENABLE_FILE_LOGGING=False)
    setup_logging(app)
    assert [type(handler).__name__ for handler in app.logger.handlers] == ["NullHandler"]
