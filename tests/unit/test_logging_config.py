"""Unit tests for ordabok.logging_config."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import structlog

from ordabok.config import LoggingSettings
from ordabok.logging_config import setup_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    def test_json_lines_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="INFO", format="json"))
        structlog.get_logger().info("dataset_opened", path="/tmp/dict.db")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip())
        assert event["event"] == "dataset_opened"
        assert event["path"] == "/tmp/dict.db"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="WARNING", format="json"))
        log = structlog.get_logger()
        log.info("dataset_opened")
        log.warning("dataset_replace_failed")

        lines = capsys.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["dataset_replace_failed"]

    def test_text_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(level="DEBUG", format="text"))
        structlog.get_logger().debug("search_loaded", query="cat")
        assert "search_loaded" in capsys.readouterr().err
