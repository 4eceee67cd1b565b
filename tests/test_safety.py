"""Tests for the self-tampering guard."""
from __future__ import annotations

import pytest

from cmdjail.core.errors import (
    EXIT_BLOCKED,
    BinaryManipulation,
    JailFileManipulation,
    LogManipulation,
    PolicyViolation,
)
from cmdjail.policy import SafetyGuard
from cmdjail.policy.safety import JAIL_FILENAME, binary_name, check_cmd_safety


@pytest.fixture
def guard() -> SafetyGuard:
    return SafetyGuard(jail_file="/etc/cmdjail/.cmd.jail", binary="cmdjail")


# ===================================================================
# Violations
# ===================================================================


class TestViolations:
    """Commands naming a protected resource are rejected."""

    @pytest.mark.parametrize("cmd", [
        "cat .cmd.jail",
        "rm /etc/cmdjail/.cmd.jail",
        "echo '+ r.*' >> .cmd.jail",
        "vi ./.cmd.jail.bak",
    ])
    def test_jail_file(self, guard: SafetyGuard, cmd: str) -> None:
        with pytest.raises(JailFileManipulation) as exc_info:
            guard.check(cmd)

        assert exc_info.value.message == "attempting to manipulate: .cmd.jail. Aborted"
        assert exc_info.value.details == {"resource": ".cmd.jail", "intent_cmd": cmd}

    @pytest.mark.parametrize("cmd", ["rm /usr/local/bin/cmdjail", "cp cmdjail /tmp/x", "cmdjail -- 'ls'"])
    def test_binary(self, guard: SafetyGuard, cmd: str) -> None:
        with pytest.raises(BinaryManipulation) as exc_info:
            guard.check(cmd)

        assert "cmdjail" in exc_info.value.message

    def test_log_file(self) -> None:
        guard = SafetyGuard(binary="cmdjail", log_path="/var/log/jail.log")

        with pytest.raises(LogManipulation) as exc_info:
            guard.check("truncate -s0 /var/log/jail.log")

        assert exc_info.value.message == "attempting to manipulate: /var/log/jail.log. Aborted"

    def test_log_path_override(self, guard: SafetyGuard) -> None:
        with pytest.raises(LogManipulation):
            guard.check("cat /tmp/audit.log", log_path="/tmp/audit.log")

    def test_custom_jail_name_is_protected(self) -> None:
        guard = SafetyGuard(jail_file="/srv/rules.jail", binary="cmdjail")

        with pytest.raises(JailFileManipulation):
            guard.check("cat /srv/rules.jail")
        with pytest.raises(JailFileManipulation):
            guard.check("cat .cmd.jail")

    def test_jail_file_checked_first(self, guard: SafetyGuard) -> None:
        with pytest.raises(JailFileManipulation):
            guard.check("cmdjail -j .cmd.jail")

    def test_violations_are_blocking(self, guard: SafetyGuard) -> None:
        with pytest.raises(PolicyViolation) as exc_info:
            guard.check("cat .cmd.jail")

        assert exc_info.value.exit_code == EXIT_BLOCKED


# ===================================================================
# Safe commands
# ===================================================================


class TestSafeCommands:
    """Everything else passes."""

    @pytest.mark.parametrize("cmd", ["ls -al", "whoami", "cat /etc/hosts", "", "jail", "cmd"])
    def test_passes(self, guard: SafetyGuard, cmd: str) -> None:
        guard.check(cmd)

    def test_empty_binary_and_log_are_ignored(self) -> None:
        guard = SafetyGuard(binary="", log_path="")
        guard.check("ls")
        assert guard.protected == (JAIL_FILENAME,)

    def test_stdin_jail_file_protects_default_name_only(self) -> None:
        guard = SafetyGuard(jail_file="-", binary="")

        assert guard.protected == (JAIL_FILENAME,)
        guard.check("echo - hello")

    def test_protected_lists_every_name(self) -> None:
        guard = SafetyGuard(jail_file="/srv/rules.jail", binary="cmdjail", log_path="/tmp/cj.log")
        assert guard.protected == (".cmd.jail", "rules.jail", "cmdjail", "/tmp/cj.log")

    def test_obfuscation_is_not_detected(self, guard: SafetyGuard) -> None:
        # Substring containment only.
        guard.check('cat ".cmd."jail')


# ===================================================================
# Helpers
# ===================================================================


class TestHelpers:
    """Module-level shortcut and binary name detection."""

    def test_check_cmd_safety(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["/usr/local/bin/cmdjail"])

        check_cmd_safety("ls")
        with pytest.raises(JailFileManipulation):
            check_cmd_safety("cat .cmd.jail")
        with pytest.raises(BinaryManipulation):
            check_cmd_safety("rm /usr/local/bin/cmdjail")
        with pytest.raises(LogManipulation):
            check_cmd_safety("cat /tmp/x.log", log_path="/tmp/x.log")

    @pytest.mark.parametrize(("argv", "expected"), [
        (["/usr/local/bin/cmdjail"], "cmdjail"),
        (["/opt/site/cmdjail/__main__.py"], "cmdjail"),
        (["-c"], ""),
        ([""], ""),
        ([], ""),
    ])
    def test_binary_name(self, monkeypatch: pytest.MonkeyPatch, argv: list[str], expected: str) -> None:
        monkeypatch.setattr("sys.argv", argv)
        assert binary_name() == expected
