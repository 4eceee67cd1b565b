"""cmdjail configuration.

Defines the validated configuration model consumed by the CLI and the
loader that builds it from ``CMDJAIL_*`` environment variables and
command-line flags.  Flags take precedence over environment variables.

Intent command precedence:

1. the single argument after ``--``;
2. ``CMDJAIL_CMD``;
3. the environment variable named by ``--env-reference`` (for example
   ``SSH_ORIGINAL_COMMAND``).

With no intent command and no ``--check`` flag, cmdjail runs as an
interactive shell.
"""
from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cmdjail import __version__
from cmdjail.core.errors import (
    CmdNotWrappedInQuotes,
    InvalidConfiguration,
    JailFileAndCheckCmdsFromStdin,
)
from cmdjail.core.types import STDIN_SENTINEL
from cmdjail.execution.subprocess import DEFAULT_SHELL_CMD, DEFAULT_TIMEOUT_S
from cmdjail.policy.safety import JAIL_FILENAME

logger = logging.getLogger(__name__)

ENV_PREFIX = "CMDJAIL"


def default_jail_file() -> str:
    """``.cmd.jail`` next to the running executable."""
    exe = Path(sys.argv[0]).resolve() if sys.argv and sys.argv[0] else Path.cwd() / "cmdjail"
    return str(exe.parent / JAIL_FILENAME)


class CmdJailConfig(BaseModel):
    """Configuration for one cmdjail invocation."""

    model_config = ConfigDict(frozen=True)

    intent_cmd: str = Field(
        default="",
        description="The command to authorize; empty selects shell mode.",
    )
    log_file: str | None = Field(
        default=None,
        description=(
            "Audit log destination: None disables logging, an empty "
            "string logs to syslog, anything else is a file path."
        ),
    )
    env_reference: str = Field(
        default="",
        description="Name of an environment variable holding the intent command.",
    )
    jail_file: str = Field(
        default_factory=default_jail_file,
        description="Jail file path, or '-' to read it from stdin.",
    )
    verbose: bool = Field(
        default=False,
        description="Emit debug output on stderr.",
    )
    record_file: str = Field(
        default="",
        description=(
            "When set, run the intent command and append it to this file "
            "as a literal allow rule."
        ),
    )
    check_mode: bool = Field(
        default=False,
        description="Evaluate without running anything.",
    )
    check_intent_cmds_file: str = Field(
        default="",
        description="File of intent commands to evaluate, one per line; '-' is stdin.",
    )
    shell_cmd: tuple[str, ...] = Field(
        default=DEFAULT_SHELL_CMD,
        description="Shell-invocation prefix for command matchers and approved commands.",
    )
    matcher_timeout: float = Field(
        default=DEFAULT_TIMEOUT_S,
        gt=0,
        description="Seconds a command matcher may run before it is killed.",
    )

    @field_validator("shell_cmd", mode="before")
    @classmethod
    def _split_shell_cmd(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return value

    @field_validator("shell_cmd")
    @classmethod
    def _non_empty_shell_cmd(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("shell_cmd must contain at least one element")
        return value

    @property
    def shell_mode(self) -> bool:
        """No intent command and nothing to check: run the interactive shell."""
        return not self.intent_cmd and not self.check_mode

    @property
    def file_log_path(self) -> str:
        """The log file path when logging to a file, else ``""``."""
        return self.log_file or ""


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

# Environment variable suffix -> model field.
_ENV_FIELDS = {
    "CMD": "intent_cmd",
    "LOGFILE": "log_file",
    "ENV_REFERENCE": "env_reference",
    "JAILFILE": "jail_file",
    "RECORDFILE": "record_file",
    "VERBOSE": "verbose",
    "SHELL_CMD": "shell_cmd",
    "TIMEOUT": "matcher_timeout",
}


def split_at_end_of_args(args: Sequence[str]) -> tuple[list[str], list[str] | None]:
    """Split *args* (without the program name) at the first ``--``.

    Returns the flags before it and the arguments after it, or ``None``
    for the latter when there is no ``--``.
    """
    args = list(args)
    if "--" in args:
        i = args.index("--")
        return args[:i], args[i + 1:]
    return args, None


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdjail",
        description="Authorize a command against allow/deny rules in a jail file before running it.",
        epilog="Pass the intent command as one quoted argument after --, e.g. cmdjail -- 'ls -al'.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Enable verbose mode.")
    parser.add_argument(
        "-l", "--log-file", nargs="?", const="", default=None,
        help="Log file location e.g. /var/log/cmdjail.log. Empty logs to syslog. Unset disables logging.",
    )
    parser.add_argument(
        "-e", "--env-reference", default=None,
        help="Name of an environment variable that holds the cmd to execute e.g. SSH_ORIGINAL_COMMAND.",
    )
    parser.add_argument("-j", "--jail-file", default=None, help="Jail file location; '-' reads it from stdin.")
    parser.add_argument(
        "-r", "--record", dest="record_file", default=None,
        help="Run the intent cmd and append it to this file as a literal allow rule.",
    )
    parser.add_argument(
        "--check", action="store_true", default=False,
        help="Check the intent cmd (or just the jail file) without running anything.",
    )
    parser.add_argument(
        "--check-intent-cmds", dest="check_intent_cmds_file", default=None, metavar="FILE",
        help="Check every intent cmd in FILE ('-' for stdin), one per line.",
    )
    parser.add_argument(
        "--shell-cmd", default=None,
        help="Shell-invocation prefix, e.g. 'bash -c'. Defaults to '/bin/sh -c'.",
    )
    parser.add_argument(
        "--timeout", dest="matcher_timeout", type=float, default=None,
        help=f"Seconds a command matcher may run. Defaults to {DEFAULT_TIMEOUT_S}.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> CmdJailConfig:
    """Build a :class:`CmdJailConfig` from *argv* and *environ*.

    Parameters
    ----------
    argv:
        Arguments without the program name.  Defaults to ``sys.argv[1:]``.
    environ:
        Environment mapping.  Defaults to ``os.environ``.

    Raises
    ------
    CmdNotWrappedInQuotes
        If more than one argument follows ``--``.
    JailFileAndCheckCmdsFromStdin
        If both the jail file and the batch commands are read from stdin.
    InvalidConfiguration
        If a value fails validation.
    """
    if argv is None:
        argv = sys.argv[1:]
    if environ is None:
        environ = os.environ

    flag_args, cmd_args = split_at_end_of_args(argv)
    flags = build_arg_parser().parse_args(flag_args)

    values: dict[str, Any] = {}
    for suffix, name in _ENV_FIELDS.items():
        key = f"{ENV_PREFIX}_{suffix}"
        # An empty variable counts as unset.
        if environ.get(key):
            values[name] = environ[key]
            logger.debug("loaded $%s", key)

    for name in ("verbose", "log_file", "env_reference", "jail_file", "record_file",
                 "check_intent_cmds_file", "shell_cmd", "matcher_timeout"):
        value = getattr(flags, name)
        if value is not None:
            values[name] = value
            logger.debug("flag set: %s=%r", name, value)

    intent_cmd = values.get("intent_cmd", "")
    env_reference = values.get("env_reference", "")
    if intent_cmd and env_reference:
        logger.warning(
            "both $%s_CMD and an env reference are set; using $%s_CMD",
            ENV_PREFIX, ENV_PREFIX,
        )
    if not intent_cmd and env_reference:
        intent_cmd = environ.get(env_reference, "")
        logger.debug("intent command loaded from $%s", env_reference)

    if cmd_args:
        if len(cmd_args) > 1:
            raise CmdNotWrappedInQuotes(details={"args": cmd_args})
        intent_cmd = cmd_args[0]
        logger.debug("intent command loaded from arguments")

    values["intent_cmd"] = intent_cmd
    values["check_mode"] = flags.check or bool(values.get("check_intent_cmds_file"))

    if (
        values.get("jail_file") == STDIN_SENTINEL
        and values.get("check_intent_cmds_file") == STDIN_SENTINEL
    ):
        raise JailFileAndCheckCmdsFromStdin()

    try:
        return CmdJailConfig.model_validate(values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidConfiguration(
            f"invalid configuration: {problems}",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
