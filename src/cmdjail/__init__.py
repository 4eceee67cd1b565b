"""cmdjail -- allow/deny rules for the commands a session may run.

A jail file lists allow (``+``) and deny (``-``) rules.  Each intent
command is checked deny-first; once any allow rule exists, anything not
explicitly allowed is blocked.

Packages
--------
* :mod:`cmdjail.rules` -- jail file grammar and matchers
* :mod:`cmdjail.policy` -- evaluation order and the self-tampering guard
* :mod:`cmdjail.execution` -- shell subprocess execution
* :mod:`cmdjail.core` -- shared types, errors and configuration
"""
from __future__ import annotations

__version__ = "0.4.0"

from cmdjail.core.config import CmdJailConfig, load_config
from cmdjail.core.errors import (
    EXIT_BLOCKED,
    EXIT_FAILURE,
    EXIT_OK,
    CmdJailError,
    ConfigurationError,
    EmptyJailFile,
    ExecutionError,
    JailFileError,
    JailFileParseError,
    MatcherError,
    PolicyViolation,
)
from cmdjail.core.types import CheckResult, Rule, RuleAction, RuleKind
from cmdjail.policy import Evaluator, SafetyGuard, evaluate_cmd
from cmdjail.rules import (
    CommandMatcher,
    JailFile,
    LiteralMatcher,
    Matcher,
    RegexMatcher,
    load_jail_file,
    parse_jail_file,
)

__all__ = [
    "__version__",
    # Exit statuses
    "EXIT_BLOCKED",
    "EXIT_FAILURE",
    "EXIT_OK",
    # Errors
    "CmdJailError",
    "ConfigurationError",
    "EmptyJailFile",
    "ExecutionError",
    "JailFileError",
    "JailFileParseError",
    "MatcherError",
    "PolicyViolation",
    # Types
    "CheckResult",
    "Rule",
    "RuleAction",
    "RuleKind",
    # Configuration
    "CmdJailConfig",
    "load_config",
    # Rules
    "CommandMatcher",
    "JailFile",
    "LiteralMatcher",
    "Matcher",
    "RegexMatcher",
    "load_jail_file",
    "parse_jail_file",
    # Policy
    "Evaluator",
    "SafetyGuard",
    "evaluate_cmd",
]
