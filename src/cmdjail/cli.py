"""cmdjail command-line entry point.

Modes, selected from the resolved :class:`~cmdjail.core.config.CmdJailConfig`:

* **record** (``--record FILE``) -- run the intent command and append it
  to FILE as a literal allow rule.
* **batch check** (``--check-intent-cmds FILE``) -- report a decision for
  every command in FILE.
* **check** (``--check``) -- report the decision for the intent command
  without running it, or list the jail file's rules when there is none.
* **shell** (no intent command) -- read commands from stdin, one per
  line, and run the approved ones.
* **single-shot** -- run the intent command if it is approved.

Exit statuses: ``0`` allowed, ``77`` blocked by policy, ``1`` operational
failure.  In single-shot mode an approved command's own status is returned.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

from cmdjail.core.config import CmdJailConfig, load_config
from cmdjail.core.errors import (
    EXIT_BLOCKED,
    EXIT_FAILURE,
    EXIT_OK,
    CmdJailError,
    InvalidConfiguration,
    JailFileUnreadable,
    MultiLineIntentCmd,
    NoIntentCmd,
    PolicyViolation,
)
from cmdjail.core.types import STDIN_SENTINEL, CheckResult
from cmdjail.execution.subprocess import ShellRunner
from cmdjail.log import configure_logging
from cmdjail.policy.evaluator import Evaluator
from cmdjail.policy.safety import SafetyGuard
from cmdjail.rules.jailfile import JailFile, load_jail_file

logger = logging.getLogger(__name__)

SHELL_PROMPT = "cmdjail> "
SHELL_EXIT_WORDS = frozenset({"exit", "quit"})
# Every boundary str.splitlines() honours.
LINE_BREAKS = ("\n", "\r", "\v", "\f", "\x1c", "\x1d", "\x1e", "\x85", "\u2028", "\u2029")


def literal_rule(intent_cmd: str) -> str:
    """The allow rule that matches exactly *intent_cmd*.

    Raises
    ------
    MultiLineIntentCmd
        If *intent_cmd* contains a line break, which would smuggle extra
        rules into the jail file.
    """
    if any(brk in intent_cmd for brk in LINE_BREAKS):
        raise MultiLineIntentCmd(details={"intent_cmd": intent_cmd})
    return f"+ '{intent_cmd}"


def record_rule(path: str | Path, intent_cmd: str) -> bool:
    """Append a literal allow rule for *intent_cmd* to *path*.

    Returns ``False`` without writing when the rule is already present.
    """
    path = Path(path)
    rule = literal_rule(intent_cmd)
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    if rule in (line.strip() for line in existing.splitlines()):
        return False
    with path.open("a", encoding="utf-8") as fh:
        if existing and not existing.endswith("\n"):
            fh.write("\n")
        fh.write(rule + "\n")
    return True


class CmdJail:
    """Run one cmdjail invocation.

    Parameters
    ----------
    config:
        The resolved configuration.
    stdin, stdout:
        Streams for shell mode, stdin-sourced files and ``--check``
        reports.  Default to the process streams.
    """

    def __init__(
        self,
        config: CmdJailConfig,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self._config = config
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._runner = ShellRunner(config.shell_cmd, config.matcher_timeout)
        self._guard = SafetyGuard(jail_file=config.jail_file, log_path=config.file_log_path)

    def run(self) -> int:
        """Dispatch to the configured mode and return the exit status."""
        try:
            if self._config.record_file:
                return self.record()
            if self._config.check_intent_cmds_file:
                return self.check_batch()
            if self._config.check_mode:
                return self.check()
            if self._config.shell_mode:
                return self.shell()
            return self.run_single()
        except CmdJailError as exc:
            logger.error("%s", exc.message)
            return exc.exit_code

    # -- modes --------------------------------------------------------------

    def run_single(self) -> int:
        cmd = self._config.intent_cmd
        self._guard.check(cmd)
        result = Evaluator(self._load_jail_file()).evaluate(cmd)
        self._report(result)
        if not result.allowed:
            return EXIT_BLOCKED
        return self._runner.run_attached(cmd)

    def check(self) -> int:
        jail_file = self._load_jail_file()
        cmd = self._config.intent_cmd
        if not cmd:
            self._print(jail_file.describe())
            return EXIT_OK

        result = self._check_one(Evaluator(jail_file), cmd)
        self._print(result.describe())
        return EXIT_OK if result.allowed else EXIT_BLOCKED

    def check_batch(self) -> int:
        evaluator = Evaluator(self._load_jail_file())
        status = EXIT_OK
        for cmd in self._read_intent_cmds():
            result = self._check_one(evaluator, cmd)
            self._print(result.describe())
            if not result.allowed:
                status = EXIT_BLOCKED
        return status

    def shell(self) -> int:
        if self._config.jail_file == STDIN_SENTINEL:
            raise InvalidConfiguration("jail file cannot be read from stdin in shell mode")

        evaluator = Evaluator(self._load_jail_file())
        interactive = self._stdin.isatty()
        status = EXIT_OK
        while True:
            if interactive:
                self._stdout.write(SHELL_PROMPT)
                self._stdout.flush()
            try:
                line = self._stdin.readline()
            except UnicodeDecodeError as exc:
                logger.error("reading stdin: %s", exc)
                return EXIT_FAILURE
            if not line:
                break
            cmd = line.rstrip("\r\n")
            if not cmd.strip():
                continue
            if cmd.strip() in SHELL_EXIT_WORDS:
                break

            try:
                self._guard.check(cmd)
            except PolicyViolation as exc:
                logger.error("%s", exc.message)
                status = exc.exit_code
                continue

            result = evaluator.evaluate(cmd)
            self._report(result)
            status = self._runner.run_attached(cmd) if result.allowed else EXIT_BLOCKED
        return status

    def record(self) -> int:
        cmd = self._config.intent_cmd
        if not cmd:
            raise NoIntentCmd()
        rule = literal_rule(cmd)
        self._guard.check(cmd)

        status = self._runner.run_attached(cmd)
        try:
            added = record_rule(self._config.record_file, cmd)
        except OSError as exc:
            logger.error("recording to %s: %s", self._config.record_file, exc)
            return EXIT_FAILURE
        if added:
            logger.info("recorded %s to %s", rule, self._config.record_file)
        return status

    # -- helpers ------------------------------------------------------------

    def _load_jail_file(self) -> JailFile:
        return load_jail_file(
            self._config.jail_file,
            shell_cmd=self._config.shell_cmd,
            timeout=self._config.matcher_timeout,
            stdin=self._stdin,
        )

    def _read_intent_cmds(self) -> list[str]:
        path = self._config.check_intent_cmds_file
        try:
            if path == STDIN_SENTINEL:
                lines = self._stdin.read().splitlines()
            else:
                lines = Path(path).read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise JailFileUnreadable(
                f"reading intent cmds: {path}: {exc}",
                details={"location": path},
            ) from exc
        return [line for line in lines if line.strip()]

    def _check_one(self, evaluator: Evaluator, cmd: str) -> CheckResult:
        try:
            self._guard.check(cmd)
        except PolicyViolation as exc:
            return CheckResult(cmd=cmd, allowed=False, reason=f"policy violation: {exc.message}")
        return evaluator.evaluate(cmd)

    @staticmethod
    def _report(result: CheckResult) -> None:
        if result.allowed:
            logger.info("allowed: %s: %s", result.cmd, result.reason)
        else:
            logger.error("blocked: %s: %s", result.cmd, result.reason)

    def _print(self, text: str) -> None:
        self._stdout.write(text + "\n")
        self._stdout.flush()


def main(argv: list[str] | None = None) -> int:
    """Console-script entry point."""
    try:
        config = load_config(argv)
    except CmdJailError as exc:
        sys.stderr.write(f"[error] {exc.message}\n")
        return exc.exit_code

    try:
        configure_logging(config.log_file, config.verbose)
    except OSError as exc:
        sys.stderr.write(f"[error] configuring logger: {exc}\n")
        return EXIT_FAILURE

    return CmdJail(config).run()


if __name__ == "__main__":
    raise SystemExit(main())
