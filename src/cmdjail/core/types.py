"""cmdjail shared domain types.

Key design decisions:
* ``Rule`` and ``CheckResult`` are frozen, slotted dataclasses: a rule is
  created once by the parser and a result once per evaluation; neither is
  mutated afterwards.
* Enums use *string* values so they read cleanly in logs and ``--check``
  output.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cmdjail.rules.matchers import Matcher

STDIN_SENTINEL = "-"
"""Jail file / batch file value meaning "read from standard input"."""

STDIN_LOCATION = "stdin"
"""Location reported in errors for rules read from standard input."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RuleAction(enum.StrEnum):
    """Which list a rule belongs to, selected by its ``+``/``-`` prefix."""

    ALLOW = "allow"
    DENY = "deny"

    @property
    def prefix(self) -> str:
        return "+" if self is RuleAction.ALLOW else "-"


class RuleKind(enum.StrEnum):
    """Matcher variant selected by the rule body prefix.

    * **literal** -- ``'text``, exact comparison
    * **regex** -- ``r'pattern``, unanchored search
    * **command** -- anything else, run as a shell script
    """

    LITERAL = "literal"
    REGEX = "regex"
    COMMAND = "command"


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Rule:
    """A single jail file rule.

    Attributes
    ----------
    raw:
        The trimmed source line, e.g. ``"- r'^rm"``.
    line_number:
        1-based line number in the source.
    location:
        Jail file path, or ``"stdin"``.
    action:
        Allow or deny.
    kind:
        Matcher variant.
    payload:
        The rule body with its kind prefix removed: the literal text, the
        regex source, or the shell script.
    """

    raw: str
    line_number: int
    location: str
    action: RuleAction
    kind: RuleKind
    payload: str

    def __str__(self) -> str:
        return f"{self.location}:{self.line_number}: {self.raw}"


# ---------------------------------------------------------------------------
# CheckResult
# ---------------------------------------------------------------------------

REASON_MATCHED_DENY = "matched deny rule"
REASON_MATCHED_ALLOW = "matched allow rule"
REASON_DEFAULT_ALLOW = "no allow rules, default allow"
REASON_IMPLICITLY_BLOCKED = "implicitly blocked"
REASON_MATCHER_ERROR = "error running matcher"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """The decision for one intent command.

    Attributes
    ----------
    cmd:
        The intent command that was evaluated.
    allowed:
        Whether the command may run.
    reason:
        Human-readable explanation of the decision.
    matcher:
        The matcher whose rule decided the outcome, or ``None`` for the
        default-allow, implicit-block and matcher-error outcomes.
    """

    cmd: str
    allowed: bool
    reason: str
    matcher: Matcher | None = None

    @property
    def rule(self) -> Rule | None:
        """The matched rule, if any."""
        return self.matcher.rule if self.matcher is not None else None

    def describe(self) -> str:
        """One-line report used by the ``--check`` modes."""
        verdict = "allowed" if self.allowed else "blocked"
        line = f"[{verdict}] {self.cmd}: {self.reason}"
        if self.rule is not None:
            line += f" ({self.rule})"
        return line
