"""Jail file parsing.

Grammar (one rule per line, UTF-8)::

    # comment line, ignored
    + 'literal exact string          allow, exact match
    - 'literal exact string          deny, exact match
    + r'^regex-pattern               allow, unanchored search
    - r'^regex-pattern               deny, unanchored search
    + shell command line             allow, external-process oracle
    - shell command line             deny, external-process oracle

Lines are trimmed before parsing; blank lines and ``#`` comments are
skipped.  Rules keep file order inside their list, because the evaluator
stops at the first match.  A file that defines no rules is an error.
"""
from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from cmdjail.core.errors import (
    REASON_MISSING_MATCHER,
    REASON_MISSING_PREFIX,
    EmptyJailFile,
    JailFileParseError,
    JailFileUnreadable,
)
from cmdjail.core.types import (
    STDIN_LOCATION,
    STDIN_SENTINEL,
    Rule,
    RuleAction,
    RuleKind,
)
from cmdjail.execution.subprocess import DEFAULT_SHELL_CMD, DEFAULT_TIMEOUT_S, ShellRunner
from cmdjail.rules.matchers import CommandMatcher, LiteralMatcher, Matcher, RegexMatcher
from cmdjail.rules.pattern_engine import PATTERN_ERRORS, PatternEngine

logger = logging.getLogger(__name__)

LITERAL_PREFIX = "'"
REGEX_PREFIX = "r'"
COMMENT_PREFIX = "#"

_ACTIONS = {"+": RuleAction.ALLOW, "-": RuleAction.DENY}


@dataclass(frozen=True, slots=True)
class JailFile:
    """The parsed, immutable ruleset.

    Attributes
    ----------
    allow:
        Allow matchers in file order.
    deny:
        Deny matchers in file order.
    """

    allow: tuple[Matcher, ...] = ()
    deny: tuple[Matcher, ...] = ()

    def __len__(self) -> int:
        return len(self.allow) + len(self.deny)

    def __iter__(self) -> Iterator[Matcher]:
        """Iterate every matcher in source line order."""
        return iter(sorted((*self.allow, *self.deny), key=lambda m: m.rule.line_number))

    @property
    def rules(self) -> list[Rule]:
        """All rules in source line order."""
        return [m.rule for m in self]

    def describe(self) -> str:
        """Human-readable listing used by ``--check`` without an intent command."""
        lines = [f"{len(self.allow)} allow rule(s), {len(self.deny)} deny rule(s)"]
        for rule in self.rules:
            lines.append(f"  {rule.action:<5} {rule.kind:<7} {rule}")
        return "\n".join(lines)


class JailFileParser:
    """Build a :class:`JailFile` from jail file text.

    Parameters
    ----------
    location:
        Path reported in parse errors and rule references (``"stdin"`` for
        standard input).
    runner:
        Shell runner handed to every command matcher.  Defaults to
        ``/bin/sh -c`` with the default timeout.
    pattern_engine:
        Engine used to compile and run regex rules.
    """

    def __init__(
        self,
        location: str = STDIN_LOCATION,
        runner: ShellRunner | None = None,
        pattern_engine: PatternEngine | None = None,
    ) -> None:
        self._location = location
        self._runner = runner or ShellRunner()
        self._engine = pattern_engine or PatternEngine()

    def parse(self, source: Iterable[str]) -> JailFile:
        """Parse every line of *source*.

        Raises
        ------
        JailFileParseError
            On the first malformed line; no partial ruleset is returned.
        EmptyJailFile
            If the source defines no rules.
        """
        allow: list[Matcher] = []
        deny: list[Matcher] = []

        for line_number, text in enumerate(source, start=1):
            line = text.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue

            action = _ACTIONS.get(line[0])
            if action is None:
                raise JailFileParseError(self._location, line_number, line, REASON_MISSING_PREFIX)

            body = line[1:].strip()
            if not body:
                raise JailFileParseError(self._location, line_number, line, REASON_MISSING_MATCHER)

            matcher = self._build_matcher(line, line_number, action, body)
            (allow if action is RuleAction.ALLOW else deny).append(matcher)

        if not allow and not deny:
            raise EmptyJailFile(
                f"empty jail file: {self._location}",
                details={"location": self._location},
            )

        logger.debug(
            "parsed %s: %d allow rule(s), %d deny rule(s)",
            self._location, len(allow), len(deny),
        )
        return JailFile(allow=tuple(allow), deny=tuple(deny))

    def _build_matcher(self, line: str, line_number: int, action: RuleAction, body: str) -> Matcher:
        if body.startswith(LITERAL_PREFIX):
            rule = self._rule(line, line_number, action, RuleKind.LITERAL, body[len(LITERAL_PREFIX):])
            return LiteralMatcher(rule=rule, text=rule.payload)

        if body.startswith(REGEX_PREFIX):
            rule = self._rule(line, line_number, action, RuleKind.REGEX, body[len(REGEX_PREFIX):])
            try:
                pattern = self._engine.compile(rule.payload)
            except PATTERN_ERRORS as exc:
                raise JailFileParseError(
                    self._location, line_number, line, f"invalid regex: {exc}",
                ) from exc
            return RegexMatcher(rule=rule, pattern=pattern, engine=self._engine)

        rule = self._rule(line, line_number, action, RuleKind.COMMAND, body)
        return CommandMatcher(rule=rule, script=body, runner=self._runner)

    def _rule(
        self, line: str, line_number: int, action: RuleAction, kind: RuleKind, payload: str,
    ) -> Rule:
        return Rule(
            raw=line,
            line_number=line_number,
            location=self._location,
            action=action,
            kind=kind,
            payload=payload,
        )


def parse_jail_file(
    source: Iterable[str] | str,
    *,
    location: str = STDIN_LOCATION,
    shell_cmd: Sequence[str] | None = None,
    timeout: float | None = None,
) -> JailFile:
    """Parse jail file text (a string or an iterable of lines).

    Convenience wrapper around :class:`JailFileParser`.
    """
    if isinstance(source, str):
        source = source.splitlines()
    runner = ShellRunner(
        shell_cmd or DEFAULT_SHELL_CMD,
        DEFAULT_TIMEOUT_S if timeout is None else timeout,
    )
    return JailFileParser(location=location, runner=runner).parse(source)


def load_jail_file(
    path: str | Path,
    *,
    shell_cmd: Sequence[str] | None = None,
    timeout: float | None = None,
    stdin: TextIO | None = None,
) -> JailFile:
    """Read and parse the jail file at *path*, or *stdin* for ``-``.

    Raises
    ------
    JailFileUnreadable
        If the file cannot be opened or decoded.
    """
    path = str(path)
    if path == STDIN_SENTINEL:
        try:
            return parse_jail_file(
                stdin or sys.stdin, location=STDIN_LOCATION, shell_cmd=shell_cmd, timeout=timeout,
            )
        except (OSError, UnicodeDecodeError) as exc:
            raise JailFileUnreadable(
                f"reading jail file from stdin: {exc}",
                details={"location": STDIN_LOCATION, "original_error": str(exc)},
            ) from exc

    try:
        with open(path, encoding="utf-8") as fh:
            return parse_jail_file(fh, location=path, shell_cmd=shell_cmd, timeout=timeout)
    except FileNotFoundError as exc:
        raise JailFileUnreadable(
            f"finding jail file: {path}",
            details={"location": path},
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise JailFileUnreadable(
            f"opening jail file: {path}: {exc}",
            details={"location": path, "original_error": str(exc)},
        ) from exc
