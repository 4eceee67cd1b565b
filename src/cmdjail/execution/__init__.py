"""Shell subprocess execution for command matchers and approved commands.

* **ShellRunner** -- runs a script through the shell-invocation prefix,
  feeding stdin and enforcing a timeout.
* **ProcessResult** -- exit status and captured output.
"""
from __future__ import annotations

from cmdjail.execution.subprocess import (
    DEFAULT_SHELL_CMD,
    DEFAULT_TIMEOUT_S,
    GRACEFUL_SHUTDOWN_S,
    MAX_TIMEOUT_S,
    MIN_TIMEOUT_S,
    ProcessResult,
    ShellRunner,
)

__all__ = [
    "DEFAULT_SHELL_CMD",
    "DEFAULT_TIMEOUT_S",
    "GRACEFUL_SHUTDOWN_S",
    "MAX_TIMEOUT_S",
    "MIN_TIMEOUT_S",
    "ProcessResult",
    "ShellRunner",
]
