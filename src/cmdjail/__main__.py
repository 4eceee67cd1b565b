"""Allow ``python -m cmdjail``."""
from __future__ import annotations

from cmdjail.cli import main

raise SystemExit(main())
