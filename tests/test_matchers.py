"""Tests for the rule matchers and the pattern engine.

Covers:

1. **LiteralMatcher** -- exact, case-sensitive comparison.
2. **RegexMatcher** -- unanchored search, RE2 restrictions, timeouts.
3. **CommandMatcher** -- exit status as the match signal, stdin delivery,
   and operational failures raised as MatcherError.
4. **PatternEngine** -- compilation caching and invalid patterns.
"""
from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import pytest

from cmdjail.core.errors import ExecutionTimeout, MatcherError
from cmdjail.core.types import Rule, RuleKind
from cmdjail.execution.subprocess import ShellRunner
from cmdjail.rules import (
    RE2_AVAILABLE,
    CommandMatcher,
    LiteralMatcher,
    Matcher,
    PatternEngine,
    RegexMatcher,
    parse_jail_file,
)
from cmdjail.rules.pattern_engine import PATTERN_ERRORS


def _regex(pattern: str) -> Matcher:
    return parse_jail_file(f"+ r'{pattern}").allow[0]


@pytest.fixture
def command_matcher(
    rule_factory: Callable[..., Rule], runner: ShellRunner,
) -> Callable[[str], CommandMatcher]:
    def _make(script: str) -> CommandMatcher:
        rule = rule_factory(raw=f"+ {script}", kind=RuleKind.COMMAND, payload=script)
        return CommandMatcher(rule=rule, script=script, runner=runner)

    return _make


# ===================================================================
# LiteralMatcher
# ===================================================================


class TestLiteralMatcher:
    """Exact comparison with no normalisation."""

    @pytest.fixture
    def matcher(self, rule_factory: Callable[..., Rule]) -> LiteralMatcher:
        return LiteralMatcher(rule=rule_factory(raw="+ 'ls -l", payload="ls -l"), text="ls -l")

    def test_exact_match(self, matcher: LiteralMatcher) -> None:
        assert matcher.decide("ls -l")

    @pytest.mark.parametrize("candidate", ["ls -l ", " ls -l", "LS -L", "ls  -l", "ls -la", "ls", ""])
    def test_no_match(self, matcher: LiteralMatcher, candidate: str) -> None:
        assert not matcher.decide(candidate)

    def test_implements_matcher(self, matcher: LiteralMatcher) -> None:
        assert isinstance(matcher, Matcher)


# ===================================================================
# RegexMatcher
# ===================================================================


class TestRegexMatcher:
    """Unanchored search semantics."""

    @pytest.mark.parametrize("candidate", ["rm -rf /", "rm"])
    def test_anchored_pattern_matches(self, candidate: str) -> None:
        assert _regex("^rm").decide(candidate)

    @pytest.mark.parametrize("candidate", ["form", " rm", "RM -rf /"])
    def test_anchored_pattern_does_not_match(self, candidate: str) -> None:
        assert not _regex("^rm").decide(candidate)

    def test_search_is_unanchored(self) -> None:
        assert _regex("rm").decide("sudo rm -rf /")
        assert _regex("rm").decide("form")

    def test_case_sensitive(self) -> None:
        assert not _regex("whoami").decide("WHOAMI")

    def test_full_anchor(self) -> None:
        matcher = _regex("^(date|uptime)$")
        assert matcher.decide("date")
        assert not matcher.decide("date; whoami")

    def test_timeout_raises_matcher_error(self, rule_factory: Callable[..., Rule]) -> None:
        class _SlowPattern:
            def search(self, text: str) -> None:
                time.sleep(0.5)

        rule = rule_factory(raw="+ r'slow", kind=RuleKind.REGEX, payload="slow")
        matcher = RegexMatcher(rule=rule, pattern=_SlowPattern(), engine=PatternEngine(timeout_ms=20))

        with pytest.raises(MatcherError) as exc_info:
            matcher.decide("anything")

        assert isinstance(exc_info.value.__cause__, ExecutionTimeout)
        assert exc_info.value.rule is rule

    def test_search_failure_raises_matcher_error(self, rule_factory: Callable[..., Rule]) -> None:
        class _BrokenPattern:
            def search(self, text: str) -> None:
                raise UnicodeEncodeError("utf-8", text, 3, 4, "surrogates not allowed")

        rule = rule_factory(raw="- r'^rm", kind=RuleKind.REGEX, payload="^rm")
        matcher = RegexMatcher(rule=rule, pattern=_BrokenPattern())

        with pytest.raises(MatcherError) as exc_info:
            matcher.decide("ls \udcff")

        assert "surrogates not allowed" in exc_info.value.cause
        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)

    @pytest.mark.skipif(not RE2_AVAILABLE, reason="google-re2 not installed")
    def test_backreferences_rejected_by_re2(self) -> None:
        with pytest.raises(PATTERN_ERRORS):
            PatternEngine().compile(r"(a)\1")


# ===================================================================
# CommandMatcher
# ===================================================================


class TestCommandMatcher:
    """Exit status 0 is a match; only operational failures raise."""

    def test_match_on_exit_zero(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        assert command_matcher("true").decide("ls")

    def test_no_match_on_exit_one(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        assert not command_matcher("false").decide("any command")

    @pytest.mark.parametrize("status", [2, 3, 126, 127])
    def test_no_match_on_other_exit_status(
        self, command_matcher: Callable[[str], CommandMatcher], status: int,
    ) -> None:
        assert not command_matcher(f"exit {status}").decide("any command")

    def test_script_not_found_is_no_match(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        # The shell started and reported 127: an exit status, not a spawn failure.
        assert not command_matcher("/path/to/nonexistent/script").decide("any command")

    def test_candidate_is_written_to_stdin(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        matcher = command_matcher("grep -qE '^(date|uptime)$'")
        assert matcher.decide("date")
        assert matcher.decide("uptime")
        assert not matcher.decide("whoami")

    def test_script_ignoring_stdin(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        assert command_matcher("exit 0").decide("x" * 200_000)

    def test_stderr_is_not_an_error(self, command_matcher: Callable[[str], CommandMatcher]) -> None:
        assert not command_matcher("echo oops >&2; exit 1").decide("ls")

    def test_non_executable_script_is_no_match(
        self, command_matcher: Callable[[str], CommandMatcher], tmp_path: Path,
    ) -> None:
        script = tmp_path / "matcher.sh"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)

        assert not command_matcher(str(script)).decide("any command")

    def test_missing_shell_raises(self, rule_factory: Callable[..., Rule]) -> None:
        rule = rule_factory(raw="+ true", kind=RuleKind.COMMAND, payload="true")
        runner = ShellRunner(["/nonexistent/shell", "-c"])
        matcher = CommandMatcher(rule=rule, script="true", runner=runner)

        with pytest.raises(MatcherError) as exc_info:
            matcher.decide("ls")

        assert "failed to start" in exc_info.value.cause
        assert exc_info.value.rule is rule

    def test_timeout_raises(self, rule_factory: Callable[..., Rule]) -> None:
        rule = rule_factory(raw="+ sleep 3", kind=RuleKind.COMMAND, payload="sleep 3")
        matcher = CommandMatcher(rule=rule, script="exec sleep 3", runner=ShellRunner(timeout=0.2))

        with pytest.raises(MatcherError) as exc_info:
            matcher.decide("ls")

        assert isinstance(exc_info.value.__cause__, ExecutionTimeout)

    def test_error_message_names_rule(self, rule_factory: Callable[..., Rule]) -> None:
        rule = rule_factory(raw="+ true", kind=RuleKind.COMMAND, payload="true", line_number=7)
        matcher = CommandMatcher(rule=rule, script="true", runner=ShellRunner(["/nonexistent/shell"]))

        with pytest.raises(MatcherError) as exc_info:
            matcher.decide("ls")

        assert exc_info.value.message.startswith("/tmp/.cmd.jail:7: matcher '+ true'")


# ===================================================================
# PatternEngine
# ===================================================================


class TestPatternEngine:
    """Compilation and caching."""

    def test_engine_name(self) -> None:
        assert PatternEngine().engine_name in ("re (stdlib)", "google-re2")
        assert PatternEngine(prefer_re2=False).engine_name == "re (stdlib)"

    def test_timeout_property(self) -> None:
        assert PatternEngine(timeout_ms=50.0).timeout_ms == 50.0

    def test_invalid_pattern_raises(self) -> None:
        with pytest.raises(PATTERN_ERRORS):
            PatternEngine().compile("[invalid")

    def test_pattern_compilation_caching(self) -> None:
        engine = PatternEngine()
        PatternEngine.clear_cache()
        engine.compile(r"cache_test\d+")
        info1 = PatternEngine.cache_info()
        engine.compile(r"cache_test\d+")
        info2 = PatternEngine.cache_info()
        assert info2.hits > info1.hits

    def test_search(self) -> None:
        engine = PatternEngine()
        compiled = engine.compile(r"git\s+status")
        assert engine.search(compiled, "cd repo && git  status")
        assert not engine.search(compiled, "git log")
