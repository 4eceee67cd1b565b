"""Tests for logging setup."""
from __future__ import annotations

import io
import logging
import logging.handlers
from pathlib import Path

import pytest

from cmdjail.log import LOGGER_NAME, configure_logging


def _emit(level: int, message: str) -> None:
    logging.getLogger(f"{LOGGER_NAME}.test").log(level, message)


class TestConfigureLogging:
    """Handler selection and level filtering."""

    def test_stderr_shows_warnings_only(self) -> None:
        stream = io.StringIO()
        configure_logging(None, verbose=False, stream=stream)

        _emit(logging.INFO, "quiet")
        _emit(logging.ERROR, "loud")

        assert stream.getvalue() == "[error] loud\n"

    def test_verbose_shows_debug(self) -> None:
        stream = io.StringIO()
        configure_logging(None, verbose=True, stream=stream)

        _emit(logging.DEBUG, "detail")
        assert "[debug] detail" in stream.getvalue()

    def test_no_audit_handler_when_disabled(self) -> None:
        logger = configure_logging(None, stream=io.StringIO())
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_file_handler_appends_info(self, tmp_path: Path) -> None:
        log = tmp_path / "audit.log"
        log.write_text("existing\n")
        configure_logging(str(log), stream=io.StringIO())

        _emit(logging.DEBUG, "hidden")
        _emit(logging.INFO, "allowed: ls: matched allow rule")

        lines = log.read_text().splitlines()
        assert lines[0] == "existing"
        assert lines[-1].endswith("[info] allowed: ls: matched allow rule")
        assert "hidden" not in log.read_text()

    def test_empty_path_selects_syslog(self) -> None:
        logger = configure_logging("", stream=io.StringIO())
        assert any(isinstance(h, logging.handlers.SysLogHandler) for h in logger.handlers)

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging(None, stream=io.StringIO())
        logger = configure_logging(None, stream=io.StringIO())
        assert len(logger.handlers) == 1

    def test_unopenable_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            configure_logging(str(tmp_path / "missing" / "audit.log"), stream=io.StringIO())
