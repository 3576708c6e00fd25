"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from dvidxfer.config.logging import configure_logging


class TestConfigureLogging:
    def test_default_level_is_info(self) -> None:
        configure_logging()
        assert logging.getLogger("dvidxfer").level == logging.INFO
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("dvidxfer").level == logging.DEBUG

    def test_quiet_hides_progress(self) -> None:
        configure_logging(quiet=True)
        assert logging.getLogger("dvidxfer").level == logging.WARNING

    def test_verbose_beats_quiet(self) -> None:
        configure_logging(verbose=True, quiet=True)
        assert logging.getLogger("dvidxfer").level == logging.DEBUG

    def test_urllib3_kept_quiet(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_json_mode_structlog(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        structlog.get_logger("dvidxfer.test").warning("json test", strips=4)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "json test"
        assert parsed["strips"] == 4
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "dvidxfer.test"
        assert "timestamp" in parsed

    def test_json_mode_stdlib_progress(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        logging.getLogger("dvidxfer.services.transfer").info("Transferring %s -> %s", "a", "b")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Transferring a -> b"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "dvidxfer.services.transfer"

    def test_quiet_suppresses_info(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(quiet=True, log_json=True)
        logging.getLogger("dvidxfer.services.transfer").info("Transferring")
        assert capfd.readouterr().err == ""
