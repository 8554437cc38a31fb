"""
Clock helpers.

Notifications are stamped in epoch milliseconds (what polling clients sort on);
job dates are plain ISO calendar dates. Keeping both behind functions lets tests pin
the clock with `monkeypatch`.
"""

from __future__ import annotations

import time
from datetime import date


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def today_iso() -> str:
    """Today's local date as `YYYY-MM-DD`."""
    return date.today().isoformat()
