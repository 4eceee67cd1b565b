"""Logging setup for the cmdjail CLI.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
are installed here, once, from the resolved configuration:

* **stderr** -- ``[level] message``; warnings and errors, or everything
  from DEBUG up in verbose mode.
* **audit** -- decisions and errors at INFO and above, to a file
  (appended) for a path, to syslog for an empty string, nowhere for
  ``None``.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from typing import TextIO

LOGGER_NAME = "cmdjail"
SYSLOG_IDENT = "cmdjail: "
SYSLOG_ADDRESS = "/dev/log"

_STDERR_FORMAT = "[%(levelname)s] %(message)s"
_FILE_FORMAT = "%(asctime)s %(filename)s:%(lineno)d: [%(levelname)s] %(message)s"
_SYSLOG_FORMAT = "%(filename)s:%(lineno)d: [%(levelname)s] %(message)s"


class _LowercaseLevelFormatter(logging.Formatter):
    """Render level names as ``error``/``warning``/``debug``."""

    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = record.levelname.lower()
        return super().format(record)


def _syslog_handler() -> logging.Handler:
    address: str | tuple[str, int] = SYSLOG_ADDRESS
    if not os.path.exists(SYSLOG_ADDRESS):
        address = ("localhost", logging.handlers.SYSLOG_UDP_PORT)
    handler = logging.handlers.SysLogHandler(
        address=address,
        facility=logging.handlers.SysLogHandler.LOG_SYSLOG,
    )
    handler.ident = SYSLOG_IDENT
    handler.setFormatter(_LowercaseLevelFormatter(_SYSLOG_FORMAT))
    return handler


def configure_logging(
    log_file: str | None = None,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install the stderr and audit handlers on the ``cmdjail`` logger.

    Calling it again replaces the handlers from the previous call.

    Raises
    ------
    OSError
        If the log file cannot be opened or syslog is unreachable.
    """
    root = logging.getLogger(LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)
    root.propagate = False

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(_LowercaseLevelFormatter(_STDERR_FORMAT))
    root.addHandler(console)

    if log_file is None:
        return root

    if log_file == "":
        audit = _syslog_handler()
    else:
        audit = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        audit.setFormatter(_LowercaseLevelFormatter(_FILE_FORMAT))
    audit.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(audit)

    root.debug("logging to: %s", log_file or "syslog")
    return root
