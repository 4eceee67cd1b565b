"""Shared fixtures for cmdjail tests."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from cmdjail.core.types import Rule, RuleAction, RuleKind
from cmdjail.execution.subprocess import ShellRunner
from cmdjail.log import LOGGER_NAME

SHELL_CMD = ("/bin/sh", "-c")


def make_rule(
    raw: str = "+ 'ls",
    kind: RuleKind = RuleKind.LITERAL,
    payload: str = "ls",
    action: RuleAction = RuleAction.ALLOW,
    line_number: int = 1,
    location: str = "/tmp/.cmd.jail",
) -> Rule:
    return Rule(
        raw=raw,
        line_number=line_number,
        location=location,
        action=action,
        kind=kind,
        payload=payload,
    )


@pytest.fixture
def rule_factory() -> Callable[..., Rule]:
    """Build a :class:`Rule` with overridable defaults."""
    return make_rule


@pytest.fixture
def runner() -> ShellRunner:
    """A /bin/sh runner with a short timeout."""
    return ShellRunner(SHELL_CMD, timeout=5)


@pytest.fixture
def write_jail(tmp_path: Path) -> Callable[[str], Path]:
    """Write jail file content to ``tmp_path/.cmd.jail`` and return its path."""

    def _write(content: str, name: str = ".cmd.jail") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_cmdjail_logger() -> Iterator[None]:
    """Undo handlers installed by ``configure_logging`` between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
