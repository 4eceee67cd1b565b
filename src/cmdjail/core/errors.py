"""cmdjail error-code hierarchy.

Every failure the jail can report is a concrete exception class carrying a
stable error code and the process exit status the CLI uses for it.

Hierarchy
---------
::

    CmdJailError
    +-- ConfigurationError   (CJ-E1xx)  exit 1
    +-- JailFileError        (CJ-E2xx)  exit 1
    +-- ExecutionError       (CJ-E3xx)  exit 1
    +-- PolicyViolation      (CJ-E4xx)  exit 77

Usage
-----
Raise concrete subclasses directly::

    raise EmptyJailFile(details={"location": "/etc/.cmd.jail"})

Catch by category::

    try:
        ...
    except PolicyViolation:
        # JailFileManipulation, BinaryManipulation, LogManipulation
        ...
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cmdjail.core.types import Rule

# Exit statuses shared by every CLI mode.
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BLOCKED = 77

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class CmdJailError(Exception):
    """Base exception for all cmdjail errors.

    Attributes
    ----------
    code : str
        cmdjail error code, e.g. ``"CJ-E200"``.
    exit_code : int
        Process exit status the CLI reports for this error.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the operator.
    """

    code: str = "CJ-E000"
    exit_code: int = EXIT_FAILURE
    message: str = "Unknown cmdjail error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for structured log records."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class ConfigurationError(CmdJailError):
    """CJ-E1xx -- Flag, environment or argument errors."""

    code = "CJ-E1XX"


class JailFileError(CmdJailError):
    """CJ-E2xx -- Jail file loading and parsing errors."""

    code = "CJ-E2XX"


class ExecutionError(CmdJailError):
    """CJ-E3xx -- Subprocess and matcher operational errors."""

    code = "CJ-E3XX"


class PolicyViolation(CmdJailError):
    """CJ-E4xx -- The intent command targets a resource protected by the jail."""

    code = "CJ-E4XX"
    exit_code = EXIT_BLOCKED


# ===================================================================
# CJ-E1xx  Configuration Errors
# ===================================================================

class InvalidConfiguration(ConfigurationError):
    """CJ-E100 -- A configuration value failed validation."""

    code = "CJ-E100"
    message = "Invalid configuration"
    resolution = "Check the CMDJAIL_* environment variables and flags."


class CmdNotWrappedInQuotes(ConfigurationError):
    """CJ-E101 -- More than one argument was given after ``--``."""

    code = "CJ-E101"
    message = "cmd must be wrapped in single quotes"
    resolution = "Pass the intent command as one argument: cmdjail -- 'ls -al'"


class JailFileAndCheckCmdsFromStdin(ConfigurationError):
    """CJ-E102 -- Jail file and batch commands both claim standard input."""

    code = "CJ-E102"
    message = "jail file and intent cmds to check cannot both be read from stdin"
    resolution = "Read either the jail file or the intent cmds from a file."


class NoIntentCmd(ConfigurationError):
    """CJ-E103 -- The selected mode needs an intent command and none was given."""

    code = "CJ-E103"
    message = "no intent cmd provided"
    resolution = "Pass it after --, in CMDJAIL_CMD, or via --env-reference."


class MultiLineIntentCmd(ConfigurationError):
    """CJ-E104 -- A recorded intent command would span more than one jail file line."""

    code = "CJ-E104"
    message = "cannot record an intent cmd containing a line break"
    resolution = "Record each command separately, on a single line."


# ===================================================================
# CJ-E2xx  Jail File Errors
# ===================================================================

REASON_MISSING_PREFIX = "missing +/- prefix"
REASON_MISSING_MATCHER = "missing matcher"


class JailFileParseError(JailFileError):
    """CJ-E200 -- A jail file line is malformed.

    Carries the source location, 1-based line number, the trimmed line and
    the reason, so the operator can jump straight to the offending rule.
    """

    code = "CJ-E200"
    message = "parsing jail file"
    resolution = (
        "Every rule line must start with + (allow) or - (deny) followed by "
        "a matcher: 'literal, r'regex or a shell command."
    )

    def __init__(self, location: str, line_number: int, line: str, reason: str) -> None:
        self.location = location
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(
            f"parsing jail file: {reason}\n\t{location}:{line_number}: {line}",
            details={
                "location": location,
                "line_number": line_number,
                "line": line,
                "reason": reason,
            },
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JailFileParseError):
            return (
                self.location == other.location
                and self.line_number == other.line_number
                and self.line == other.line
                and self.reason == other.reason
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.location, self.line_number, self.line, self.reason))


class EmptyJailFile(JailFileError):
    """CJ-E201 -- The jail file defines no rules at all."""

    code = "CJ-E201"
    message = "empty jail file"
    resolution = (
        "Add at least one rule. An empty jail file neither allows nor "
        "denies everything."
    )


class JailFileUnreadable(JailFileError):
    """CJ-E202 -- The jail file could not be opened or read."""

    code = "CJ-E202"
    message = "unable to read jail file"
    resolution = "Check the --jail-file path and its permissions."


# ===================================================================
# CJ-E3xx  Execution Errors
# ===================================================================

class SpawnFailure(ExecutionError):
    """CJ-E300 -- The shell process could not be started."""

    code = "CJ-E300"
    message = "failed to start process"
    resolution = "Check the --shell-cmd value and that the shell is executable."


class ExecutionTimeout(ExecutionError):
    """CJ-E301 -- The process did not exit within its time budget."""

    code = "CJ-E301"
    message = "process exceeded its timeout"
    resolution = "Make the matcher script exit faster or raise --timeout."


class MatcherError(ExecutionError):
    """CJ-E302 -- A matcher malfunctioned while deciding a command.

    Distinct from "no match": the evaluator resolves it as Denied.
    """

    code = "CJ-E302"
    message = "error running matcher"
    resolution = "Fix the rule at the reported jail file line."

    def __init__(self, rule: Rule, cause: str) -> None:
        self.rule = rule
        self.cause = cause
        super().__init__(
            f"{rule.location}:{rule.line_number}: matcher '{rule.raw}': {cause}",
            details={
                "location": rule.location,
                "line_number": rule.line_number,
                "rule": rule.raw,
                "cause": cause,
            },
        )


# ===================================================================
# CJ-E4xx  Policy Violations
# ===================================================================

class JailFileManipulation(PolicyViolation):
    """CJ-E400 -- The intent command references the jail file."""

    code = "CJ-E400"
    message = "attempting to manipulate the jail file. Aborted"


class BinaryManipulation(PolicyViolation):
    """CJ-E401 -- The intent command references the cmdjail binary."""

    code = "CJ-E401"
    message = "attempting to manipulate the cmdjail binary. Aborted"


class LogManipulation(PolicyViolation):
    """CJ-E402 -- The intent command references the active log file."""

    code = "CJ-E402"
    message = "attempting to manipulate the cmdjail log. Aborted"
