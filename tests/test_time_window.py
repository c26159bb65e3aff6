from datetime import datetime, timedelta, timezone

from app.enums.offer_types import WindowStatus
from app.schemas.pricing import TimeWindow
from app.services.pricing_service.time_window import as_naive_utc, is_live, window_status

NOW = datetime(2024, 5, 10, 12, 0, 0)


def test_missing_window_has_no_window_status():
    assert window_status(None, NOW) == WindowStatus.no_window
    assert window_status(TimeWindow(), NOW) == WindowStatus.no_window


def test_status_relative_to_bounds():
    window = TimeWindow(start=NOW - timedelta(days=1), end=NOW + timedelta(days=1))
    assert window_status(window, NOW) == WindowStatus.active
    assert window_status(window, NOW - timedelta(days=2)) == WindowStatus.scheduled
    assert window_status(window, NOW + timedelta(days=2)) == WindowStatus.expired


def test_bounds_are_inclusive():
    window = TimeWindow(start=NOW, end=NOW + timedelta(hours=1))
    assert window_status(window, NOW) == WindowStatus.active
    assert window_status(window, NOW + timedelta(hours=1)) == WindowStatus.active


def test_open_ended_windows():
    assert window_status(TimeWindow(start=NOW - timedelta(days=1)), NOW) == WindowStatus.active
    assert window_status(TimeWindow(end=NOW - timedelta(seconds=1)), NOW) == WindowStatus.expired
    assert window_status(TimeWindow(start=NOW + timedelta(seconds=1)), NOW) == WindowStatus.scheduled


def test_inverted_window_is_compared_bound_by_bound():
    window = TimeWindow(start=NOW + timedelta(days=1), end=NOW - timedelta(days=1))
    assert window_status(window, NOW) == WindowStatus.scheduled
    assert window_status(window, NOW + timedelta(days=2)) == WindowStatus.expired


def test_date_only_bounds_cover_the_whole_day():
    window = TimeWindow(start="2024-05-10", end="2024-05-10")
    assert window.start == datetime(2024, 5, 10, 0, 0, 0)
    assert window.end == datetime(2024, 5, 10, 23, 59, 59)
    assert window_status(window, datetime(2024, 5, 10, 23, 30)) == WindowStatus.active


def test_empty_strings_mean_unset():
    assert window_status(TimeWindow(start="", end=""), NOW) == WindowStatus.no_window


def test_aware_and_naive_timestamps_compare_as_utc():
    window = TimeWindow(
        start=datetime(2024, 5, 10, 14, 0, tzinfo=timezone(timedelta(hours=3))),
        end=datetime(2024, 5, 10, 13, 0),
    )
    # 14:00+03:00 is 11:00 UTC
    assert window_status(window, NOW) == WindowStatus.active
    assert window_status(window, datetime(2024, 5, 10, 10, 59, tzinfo=timezone.utc)) == WindowStatus.scheduled


def test_is_live_and_storage_form():
    assert is_live(None, NOW)
    assert is_live(TimeWindow(start=NOW), NOW)
    assert not is_live(TimeWindow(end=NOW - timedelta(minutes=1)), NOW)

    aware = datetime(2024, 5, 10, 15, 0, tzinfo=timezone(timedelta(hours=3)))
    assert as_naive_utc(aware) == datetime(2024, 5, 10, 12, 0)
    assert as_naive_utc(None) is None
