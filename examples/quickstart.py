#!/usr/bin/env python3
"""cmdjail quickstart -- checking commands against a jail file.

Demonstrates the core workflow:

1. Parse a jail file with literal, regex and command rules.
2. Evaluate a handful of intent commands.
3. Reject a command that targets the jail itself.
4. Inspect the decisions.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

from cmdjail import PolicyViolation, SafetyGuard, evaluate_cmd, parse_jail_file

JAIL = """\
# Read-only inspection commands.
+ 'whoami
+ r'^ls( -[al]+)?$
+ grep -qE '^(date|uptime)$'

# Never allow deletions, even when an allow rule matches.
- r'^rm
"""


def main() -> None:
    # -- Step 1: Parse the jail file -----------------------------------------
    jail_file = parse_jail_file(JAIL, location="quickstart.jail")
    print(f"[1] {jail_file.describe()}")

    # -- Step 2: Evaluate intent commands ------------------------------------
    print("[2] Decisions:")
    for cmd in ("whoami", "ls -al", "uptime", "rm -rf /tmp/x", "curl example.com"):
        print(f"    {evaluate_cmd(cmd, jail_file).describe()}")

    # -- Step 3: The guard runs before evaluation ----------------------------
    guard = SafetyGuard(jail_file="quickstart.jail", binary="cmdjail")
    try:
        guard.check("cat quickstart.jail")
    except PolicyViolation as exc:
        print(f"[3] Guard: [{exc.code}] {exc.message}")

    print("\nDone. Only the allow-listed commands would run.")


if __name__ == "__main__":
    main()
