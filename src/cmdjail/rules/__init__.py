"""Jail file rules.

This subpackage turns jail file text into an ordered ruleset:

* **JailFileParser** / **parse_jail_file** / **load_jail_file** -- the
  line-oriented ``+``/``-`` grammar.
* **JailFile** -- the immutable allow and deny matcher lists.
* **LiteralMatcher**, **RegexMatcher**, **CommandMatcher** -- the three
  matcher variants behind the **Matcher** interface.
* **PatternEngine** -- RE2 regex compilation and timed search.
"""
from __future__ import annotations

from cmdjail.rules.jailfile import (
    JailFile,
    JailFileParser,
    load_jail_file,
    parse_jail_file,
)
from cmdjail.rules.matchers import (
    CommandMatcher,
    LiteralMatcher,
    Matcher,
    RegexMatcher,
)
from cmdjail.rules.pattern_engine import RE2_AVAILABLE, PatternEngine

__all__ = [
    "RE2_AVAILABLE",
    "CommandMatcher",
    "JailFile",
    "JailFileParser",
    "LiteralMatcher",
    "Matcher",
    "PatternEngine",
    "RegexMatcher",
    "load_jail_file",
    "parse_jail_file",
]
