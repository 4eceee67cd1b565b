"""Authorization decisions.

* **evaluate_cmd** / **Evaluator** -- deny-first evaluation of an intent
  command against a jail file.
* **SafetyGuard** -- blocks intent commands that reference the jail file,
  the cmdjail binary or its log.
"""
from __future__ import annotations

from cmdjail.policy.evaluator import Evaluator, evaluate_cmd
from cmdjail.policy.safety import JAIL_FILENAME, SafetyGuard, check_cmd_safety

__all__ = [
    "JAIL_FILENAME",
    "Evaluator",
    "SafetyGuard",
    "check_cmd_safety",
    "evaluate_cmd",
]
