from datetime import datetime, timezone
from typing import Optional

from app.enums.offer_types import WindowStatus
from app.schemas.pricing import TimeWindow


def as_utc(moment: datetime) -> datetime:
    # Naive timestamps are stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def window_status(window: Optional[TimeWindow], now: datetime) -> WindowStatus:
    """
    Where `now` sits relative to a promotion window.

    Both bounds are inclusive. A window with start > end is never
    rejected here; `now` is compared against each bound independently.
    """
    if window is None or (window.start is None and window.end is None):
        return WindowStatus.no_window

    current = as_utc(now)
    if window.start is not None and current < as_utc(window.start):
        return WindowStatus.scheduled
    if window.end is not None and current > as_utc(window.end):
        return WindowStatus.expired
    return WindowStatus.active


def is_live(window: Optional[TimeWindow], now: datetime) -> bool:
    return window_status(window, now) in (WindowStatus.active, WindowStatus.no_window)


def as_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Storage form: naive UTC, like every other timestamp column."""
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)
