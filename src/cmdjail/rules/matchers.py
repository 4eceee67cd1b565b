"""Rule matchers.

A matcher decides whether one intent command satisfies one jail file rule.
There are exactly three variants, chosen by the rule body prefix:

* :class:`LiteralMatcher` -- ``'text``: exact, case-sensitive equality.
* :class:`RegexMatcher` -- ``r'pattern``: unanchored search.
* :class:`CommandMatcher` -- anything else: a shell script that reads the
  intent command on stdin and matches by exiting 0.

Every matcher implements :class:`Matcher`.  ``decide`` returns ``True`` or
``False`` for match / no match and raises :class:`MatcherError` when it
cannot tell.  It never reports a malfunction as "no match".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from cmdjail.core.errors import ExecutionError, MatcherError
from cmdjail.core.types import Rule
from cmdjail.execution.subprocess import ShellRunner
from cmdjail.rules.pattern_engine import PatternEngine

logger = logging.getLogger(__name__)


@runtime_checkable
class Matcher(Protocol):
    """Interface shared by the three matcher variants."""

    rule: Rule

    def decide(self, candidate: str) -> bool:
        """Return whether *candidate* satisfies the rule.

        Raises
        ------
        cmdjail.core.errors.MatcherError
            If the matcher malfunctioned.
        """
        ...


@dataclass(frozen=True, slots=True)
class LiteralMatcher:
    """Exact string comparison; no trimming, no case folding."""

    rule: Rule
    text: str

    def decide(self, candidate: str) -> bool:
        logger.debug("literal: comparing intent %r with rule string %r", candidate, self.text)
        return candidate == self.text


@dataclass(frozen=True, slots=True)
class RegexMatcher:
    """Unanchored regex search over the whole intent command.

    The pattern is compiled once when the jail file is parsed.
    """

    rule: Rule
    pattern: Any
    engine: PatternEngine = field(default_factory=PatternEngine, compare=False)

    def decide(self, candidate: str) -> bool:
        logger.debug("regex: matching intent %r against pattern %r", candidate, self.rule.payload)
        try:
            return self.engine.search(self.pattern, candidate)
        except ExecutionError as exc:
            raise MatcherError(self.rule, exc.message) from exc
        except Exception as exc:
            # e.g. RE2 refusing to encode surrogate-escaped bytes as UTF-8
            logger.error("%s: regex search failed: %s", self.rule, exc)
            raise MatcherError(self.rule, str(exc)) from exc


@dataclass(frozen=True, slots=True)
class CommandMatcher:
    """Delegate the decision to a shell script.

    The script runs as ``shell_cmd + [script]`` with the intent command on
    stdin.  Exit status 0 is a match; any other exit status, including
    termination by a signal, is no match.  Only a failure to start the
    process, a failed wait or a timeout is an error.
    """

    rule: Rule
    script: str
    runner: ShellRunner = field(default_factory=ShellRunner, compare=False)

    def decide(self, candidate: str) -> bool:
        logger.debug("command: executing %r with stdin: %s", self.script, candidate)
        try:
            result = self.runner.run(self.script, stdin_data=candidate)
        except ExecutionError as exc:
            logger.error("%s: matcher failed: %s", self.rule, exc.message)
            raise MatcherError(self.rule, exc.message) from exc

        if result.stderr:
            logger.debug("%s: matcher stderr: %s", self.rule, result.stderr.rstrip())
        if result.exit_code < 0:
            logger.warning("%s: matcher killed by signal %d", self.rule, -result.exit_code)
        return result.succeeded
