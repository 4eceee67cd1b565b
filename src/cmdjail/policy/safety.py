"""Self-tampering guard.

An approved command must not be usable to read, modify or delete the jail
itself: the jail file, the cmdjail binary, or the active log file.  The
:class:`SafetyGuard` rejects any intent command whose text contains one of
those names.

The check is plain substring containment.  Shell quoting or other
obfuscation (``cat ".cmd."jail``) evades it; it is a heuristic, not a
security boundary.
"""
from __future__ import annotations

import sys
from pathlib import Path

from cmdjail.core.errors import (
    BinaryManipulation,
    JailFileManipulation,
    LogManipulation,
    PolicyViolation,
)
from cmdjail.core.types import STDIN_SENTINEL

JAIL_FILENAME = ".cmd.jail"


def binary_name() -> str:
    """Base name of the running program, e.g. ``cmdjail``.

    ``python -m cmdjail`` reports the package directory; ``python -c``
    reports nothing.
    """
    if not sys.argv or not sys.argv[0] or sys.argv[0] == "-c":
        return ""
    path = Path(sys.argv[0])
    if path.name == "__main__.py":
        return path.parent.name
    return path.name


class SafetyGuard:
    """Block intent commands that reference protected resources.

    Parameters
    ----------
    jail_file:
        Path of the active jail file.  Its base name is protected along
        with the default ``.cmd.jail`` name.  ``-`` (stdin) protects only
        the default name.
    binary:
        Base name of the cmdjail binary.  Defaults to ``argv[0]``'s.
    log_path:
        Active log file path; empty when logging to syslog or disabled.
    """

    def __init__(
        self,
        jail_file: str = JAIL_FILENAME,
        binary: str | None = None,
        log_path: str = "",
    ) -> None:
        names = [JAIL_FILENAME]
        if jail_file and jail_file != STDIN_SENTINEL:
            name = Path(jail_file).name
            if name and name not in names:
                names.append(name)
        self._jail_names = tuple(names)
        self._binary = binary_name() if binary is None else binary
        self._log_path = log_path

    @property
    def protected(self) -> tuple[str, ...]:
        """Every name the guard looks for."""
        extra = tuple(n for n in (self._binary, self._log_path) if n)
        return self._jail_names + extra

    def check(self, candidate: str, log_path: str | None = None) -> None:
        """Raise a :class:`PolicyViolation` if *candidate* targets the jail.

        Parameters
        ----------
        candidate:
            The intent command.
        log_path:
            Overrides the log path given at construction.

        Raises
        ------
        JailFileManipulation, BinaryManipulation, LogManipulation
        """
        log_path = self._log_path if log_path is None else log_path

        for name in self._jail_names:
            if name in candidate:
                raise self._violation(JailFileManipulation, name, candidate)
        if self._binary and self._binary in candidate:
            raise self._violation(BinaryManipulation, self._binary, candidate)
        if log_path and log_path in candidate:
            raise self._violation(LogManipulation, log_path, candidate)

    @staticmethod
    def _violation(cls: type[PolicyViolation], resource: str, candidate: str) -> PolicyViolation:
        return cls(
            f"attempting to manipulate: {resource}. Aborted",
            details={"resource": resource, "intent_cmd": candidate},
        )


def check_cmd_safety(candidate: str, log_path: str = "", jail_file: str = JAIL_FILENAME) -> None:
    """Module-level shortcut for ``SafetyGuard(jail_file).check(candidate, log_path)``."""
    SafetyGuard(jail_file=jail_file).check(candidate, log_path)
