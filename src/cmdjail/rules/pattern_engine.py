"""Pattern matching engine for regex rules.

Provides RE2 pattern matching with graceful fallback to the standard
library ``re`` module when ``google-re2`` is not installed.

Intent commands are attacker-controlled, so:
* RE2 semantics (linear-time matching, no backreferences) are preferred.
* Each search runs under a wall-clock timeout; exceeding it raises
  :class:`~cmdjail.core.errors.ExecutionTimeout` so the evaluator can
  fail closed.  A timeout is never reported as "matched", because for an
  allow rule that would grant permission.
* Compiled patterns are cached.
"""
from __future__ import annotations

import re
import threading
from functools import lru_cache
from typing import Any

from cmdjail.core.errors import ExecutionTimeout

# ---------------------------------------------------------------------------
# Attempt to import google-re2; fall back to ``re`` if unavailable
# ---------------------------------------------------------------------------

RE2_AVAILABLE = False
_re2_module: Any = None

try:
    import re2 as _re2_module  # type: ignore[no-redef]

    RE2_AVAILABLE = True
except ImportError:
    pass

PATTERN_ERRORS: tuple[type[Exception], ...] = (re.error,)
if RE2_AVAILABLE:
    PATTERN_ERRORS = (re.error, _re2_module.error)

DEFAULT_TIMEOUT_MS = 1000.0


# ---------------------------------------------------------------------------
# Compiled pattern cache (module-level)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=512)
def _compile_pattern(pattern: str, use_re2: bool) -> Any:
    """Compile and cache a case-sensitive regex pattern.

    Raises one of :data:`PATTERN_ERRORS` if the pattern is invalid.
    """
    if use_re2 and RE2_AVAILABLE:
        return _re2_module.compile(pattern)
    return re.compile(pattern)


# ---------------------------------------------------------------------------
# PatternEngine
# ---------------------------------------------------------------------------

class PatternEngine:
    """RE2 pattern matching engine with timeout support.

    Parameters
    ----------
    timeout_ms:
        Maximum wall-clock time in milliseconds for a single search.
    prefer_re2:
        If ``True`` (the default), use ``google-re2`` when available.
    """

    def __init__(
        self,
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        prefer_re2: bool = True,
    ) -> None:
        self._timeout_s = timeout_ms / 1000.0
        self._use_re2 = prefer_re2 and RE2_AVAILABLE

    # -- public properties --------------------------------------------------

    @property
    def engine_name(self) -> str:
        """Return the name of the active regex engine."""
        return "google-re2" if self._use_re2 else "re (stdlib)"

    @property
    def timeout_ms(self) -> float:
        """Return the configured timeout in milliseconds."""
        return self._timeout_s * 1000.0

    # -- compilation --------------------------------------------------------

    def compile(self, pattern: str) -> Any:
        """Compile *pattern* with the active engine.

        Raises one of :data:`PATTERN_ERRORS` if the pattern is invalid, so
        bad rules are rejected when the jail file is parsed.
        """
        return _compile_pattern(pattern, self._use_re2)

    # -- matching -----------------------------------------------------------

    def search(self, compiled: Any, text: str) -> bool:
        """Return ``True`` if *compiled* matches anywhere in *text*.

        Raises
        ------
        ExecutionTimeout
            If the search does not finish within the timeout.
        """
        result_box: list[bool] = [False]
        exception_box: list[BaseException | None] = [None]

        def _worker() -> None:
            try:
                result_box[0] = compiled.search(text) is not None
            except Exception as exc:
                exception_box[0] = exc

        thread = threading.Thread(target=_worker, daemon=True)
        thread.start()
        thread.join(timeout=self._timeout_s)

        if thread.is_alive():
            raise ExecutionTimeout(
                f"regex search exceeded timeout of {self.timeout_ms:g}ms",
                details={"timeout_ms": self.timeout_ms, "engine": self.engine_name},
            )

        if exception_box[0] is not None:
            raise exception_box[0]

        return result_box[0]

    # -- cache management ---------------------------------------------------

    @staticmethod
    def clear_cache() -> None:
        """Clear the compiled pattern cache."""
        _compile_pattern.cache_clear()

    @staticmethod
    def cache_info() -> Any:
        """Return cache statistics."""
        return _compile_pattern.cache_info()
