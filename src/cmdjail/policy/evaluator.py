"""Intent command evaluation order.

:func:`evaluate_cmd` decides one intent command against a parsed
:class:`~cmdjail.rules.jailfile.JailFile`, in strict order:

1. **Deny rules** -- scanned in file order; the first match BLOCKS.
2. **Matcher errors** -- any matcher error aborts evaluation and BLOCKS.
3. **Blacklist mode** -- no allow rules at all: the command is ALLOWED.
4. **Allow rules** -- scanned in file order; the first match ALLOWS.
5. **Implicit block** -- an allowlist exists and nothing matched: BLOCK.

Evaluation keeps no state between calls: the decision depends only on the
command and the ruleset.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from cmdjail.core.errors import MatcherError
from cmdjail.core.types import (
    REASON_DEFAULT_ALLOW,
    REASON_IMPLICITLY_BLOCKED,
    REASON_MATCHED_ALLOW,
    REASON_MATCHED_DENY,
    REASON_MATCHER_ERROR,
    CheckResult,
)
from cmdjail.rules.jailfile import JailFile
from cmdjail.rules.matchers import Matcher

logger = logging.getLogger(__name__)


def evaluate_cmd(intent_cmd: str, jail_file: JailFile) -> CheckResult:
    """Evaluate *intent_cmd* against *jail_file* without executing it.

    Never raises for matcher failures: they resolve to a blocked result
    whose reason carries the error.
    """
    logger.debug("evaluating intent command: %s", intent_cmd)

    try:
        # -- Step 1: Deny rules ---------------------------------------------
        deny = _first_match(intent_cmd, jail_file.deny)
        if deny is not None:
            return CheckResult(cmd=intent_cmd, allowed=False, reason=REASON_MATCHED_DENY, matcher=deny)

        # -- Step 3: Blacklist-only mode ------------------------------------
        if not jail_file.allow:
            return CheckResult(cmd=intent_cmd, allowed=True, reason=REASON_DEFAULT_ALLOW)

        # -- Step 4: Allow rules --------------------------------------------
        allow = _first_match(intent_cmd, jail_file.allow)
        if allow is not None:
            return CheckResult(cmd=intent_cmd, allowed=True, reason=REASON_MATCHED_ALLOW, matcher=allow)

    # -- Step 2: Fail closed on any matcher error ---------------------------
    except MatcherError as exc:
        return CheckResult(
            cmd=intent_cmd,
            allowed=False,
            reason=f"{REASON_MATCHER_ERROR}: {exc.message}",
        )

    # -- Step 5: Default deny once an allowlist exists ----------------------
    return CheckResult(cmd=intent_cmd, allowed=False, reason=REASON_IMPLICITLY_BLOCKED)


def _first_match(intent_cmd: str, matchers: Iterable[Matcher]) -> Matcher | None:
    for i, matcher in enumerate(matchers, start=1):
        logger.debug("checking %s rule #%d: %s", matcher.rule.action, i, matcher.rule.raw)
        if matcher.decide(intent_cmd):
            return matcher
    return None


class Evaluator:
    """Evaluate many intent commands against one immutable ruleset.

    Used by the interactive and batch modes.  Holds only the ruleset;
    each call to :meth:`evaluate` is independent of the previous ones.
    """

    def __init__(self, jail_file: JailFile) -> None:
        self._jail_file = jail_file

    @property
    def jail_file(self) -> JailFile:
        return self._jail_file

    def evaluate(self, intent_cmd: str) -> CheckResult:
        result = evaluate_cmd(intent_cmd, self._jail_file)
        logger.debug(
            "%s: %s: %s",
            "allowed" if result.allowed else "blocked", intent_cmd, result.reason,
        )
        return result

    def evaluate_all(self, intent_cmds: Iterable[str]) -> list[CheckResult]:
        """Evaluate every non-blank command, in order."""
        return [self.evaluate(cmd) for cmd in intent_cmds if cmd.strip()]
