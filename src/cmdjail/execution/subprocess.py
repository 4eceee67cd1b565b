"""Shell subprocess execution.

This module implements the :class:`ShellRunner` which runs a script through
the configured shell-invocation prefix (``/bin/sh -c`` by default).  It
serves two callers:

* the command matcher, which pipes the intent command to a rule script and
  reads back only the exit status;
* the CLI, which launches an approved intent command with the caller's
  stdio attached.

Key guarantees:
1. The script is always passed as the final argument of the prefix,
   never interpolated into it.
2. Matcher runs are bounded by a timeout; a process exceeding it is sent
   SIGTERM, then SIGKILL after a grace period.
3. A failure to start the process is an error, never an exit status.
"""
from __future__ import annotations

import contextlib
import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from cmdjail.core.errors import ExecutionTimeout, SpawnFailure

logger = logging.getLogger(__name__)

DEFAULT_SHELL_CMD: tuple[str, ...] = ("/bin/sh", "-c")

# Matcher timeout bounds, in seconds.
MIN_TIMEOUT_S = 0.1
MAX_TIMEOUT_S = 600
DEFAULT_TIMEOUT_S = 30

# Grace period before SIGKILL after SIGTERM.
GRACEFUL_SHUTDOWN_S = 2


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Exit status and captured output of a finished process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ShellRunner:
    """Run scripts through a shell-invocation prefix.

    Usage::

        runner = ShellRunner(["/bin/bash", "-c"], timeout=5)
        result = runner.run("grep -q '^ls'", stdin_data="ls -al")
        # result.exit_code, result.stderr

    Parameters
    ----------
    shell_cmd:
        argv-style prefix; the script is appended as the last argument.
    timeout:
        Maximum seconds :meth:`run` waits for the process.  Clamped to
        [MIN_TIMEOUT_S, MAX_TIMEOUT_S].
    """

    def __init__(
        self,
        shell_cmd: Sequence[str] = DEFAULT_SHELL_CMD,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if not shell_cmd:
            raise ValueError("shell_cmd must contain at least one element")
        self._shell_cmd = tuple(shell_cmd)
        self._timeout = _clamp_timeout(timeout)

    @property
    def shell_cmd(self) -> tuple[str, ...]:
        return self._shell_cmd

    @property
    def timeout(self) -> float:
        return self._timeout

    def argv(self, script: str) -> list[str]:
        """Return the full argument vector used to run *script*."""
        return [*self._shell_cmd, script]

    def run(self, script: str, stdin_data: str = "") -> ProcessResult:
        """Run *script*, feed *stdin_data* and wait for exit.

        Returns
        -------
        ProcessResult
            Contains ``exit_code``, ``stdout`` and ``stderr``.  A process
            killed by a signal reports a negative exit code.

        Raises
        ------
        SpawnFailure
            If the process could not be started.
        ExecutionTimeout
            If the process exceeds the timeout.
        """
        argv = self.argv(script)
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                close_fds=True,
                text=True,
                errors="replace",
            )
        except (OSError, ValueError) as exc:
            raise SpawnFailure(
                f"failed to start {argv[0]!r}: {exc}",
                details={"argv": argv, "original_error": str(exc)},
            ) from exc

        try:
            stdout, stderr = proc.communicate(input=stdin_data, timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            self._terminate_process(proc)
            raise ExecutionTimeout(
                f"process exceeded timeout of {self._timeout:g}s",
                details={"argv": argv, "timeout_s": self._timeout},
            ) from exc
        except OSError as exc:
            self._terminate_process(proc)
            raise SpawnFailure(
                f"waiting for {argv[0]!r} failed: {exc}",
                details={"argv": argv, "original_error": str(exc)},
            ) from exc

        return ProcessResult(exit_code=proc.returncode, stdout=stdout, stderr=stderr)

    def run_attached(self, script: str) -> int:
        """Run *script* with the caller's stdin, stdout and stderr.

        Used for approved intent commands, so no timeout applies.

        Raises
        ------
        SpawnFailure
            If the process could not be started.
        """
        argv = self.argv(script)
        logger.debug("running: %s", argv)
        try:
            completed = subprocess.run(argv, check=False)
        except OSError as exc:
            raise SpawnFailure(
                f"failed to start {argv[0]!r}: {exc}",
                details={"argv": argv, "original_error": str(exc)},
            ) from exc
        return completed.returncode

    @staticmethod
    def _terminate_process(proc: subprocess.Popen[str]) -> None:
        """Terminate a subprocess: SIGTERM, then SIGKILL after a grace period."""
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()
        try:
            proc.communicate(timeout=GRACEFUL_SHUTDOWN_S)
        except subprocess.TimeoutExpired:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            proc.communicate()


def _clamp_timeout(timeout: float) -> float:
    """Clamp *timeout* to the [MIN, MAX] range."""
    return max(float(MIN_TIMEOUT_S), min(float(timeout), float(MAX_TIMEOUT_S)))
