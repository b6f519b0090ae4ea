"""Tests for settings, logging setup and notifications."""

import logging
from pathlib import Path

from famgraph.config import GRAPHVIZ_PROG, load_settings
from famgraph.logging_config import get_project_logger, setup_logger
from famgraph.notifications import ERROR_TITLE, NotificationCenter


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FAMGRAPH_DB", str(tmp_path / "x.db"))
    monkeypatch.setenv("FAMGRAPH_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("FAMGRAPH_GRAPHVIZ_PROG", "/opt/graphviz/dot")

    settings = load_settings()

    assert settings.db_path == tmp_path / "x.db"
    assert settings.log_level == "DEBUG"
    assert settings.graphviz_prog == "/opt/graphviz/dot"


def test_settings_defaults(monkeypatch):
    for name in ("FAMGRAPH_DB", "FAMGRAPH_LOG_LEVEL", "FAMGRAPH_GRAPHVIZ_PROG"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.db_path.name == "famgraph.db"
    assert isinstance(settings.db_path, Path)
    assert settings.log_level == "INFO"
    assert settings.graphviz_prog == GRAPHVIZ_PROG


def test_setup_logger_does_not_duplicate_handlers():
    logger = setup_logger("famgraph.test_duplicate", "WARNING")
    again = setup_logger("famgraph.test_duplicate", "ERROR")

    assert again is logger
    assert len(logger.handlers) == 1
    assert logger.level == logging.ERROR


def test_verbose_wins_over_level():
    logger = get_project_logger(verbose=True, level="WARNING")
    assert logger.name == "famgraph"
    assert logger.level == logging.DEBUG


def test_notifications_are_logged(caplog):
    center = NotificationCenter()

    with caplog.at_level(logging.ERROR, logger="famgraph.notifications"):
        notification = center.error("Something broke")

    assert notification.title == ERROR_TITLE
    assert notification.color == "red"
    assert center.last is notification
    assert "Something broke" in caplog.text


def test_empty_notification_center():
    assert NotificationCenter().last is None
