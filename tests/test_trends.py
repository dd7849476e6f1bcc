from datetime import datetime, timezone

from impound_console.trends import growth, monthly_counts


def test_six_buckets_oldest_first_across_year_boundary():
    now = datetime(2026, 2, 15, tzinfo=timezone.utc)
    buckets = monthly_counts([], now)
    assert [(b.year, b.month) for b in buckets] == [
        (2025, 9), (2025, 10), (2025, 11), (2025, 12), (2026, 1), (2026, 2),
    ]
    assert [b.label for b in buckets] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]


def test_counts_skip_bad_and_out_of_window_values():
    now = datetime(2026, 10, 19, tzinfo=timezone.utc)
    stamps = [
        "2026-10-01T08:00:00+00:00",
        "2026-10-18T23:59:59Z",
        "2026-09-30T12:00:00",
        "2026-05-01T00:00:00+00:00",
        "2025-10-05T00:00:00+00:00",
        "not a date",
        None,
    ]
    counts = [b.count for b in monthly_counts(stamps, now)]
    assert counts == [1, 0, 0, 0, 1, 2]


def test_growth():
    assert growth([2, 0, 0, 0, 3, 6]) == 100
    assert growth([0, 0, 0, 0, 0, 0]) == 0
    assert growth([0, 0, 0, 0, 0, 4]) == 100
    assert growth([0, 0, 0, 0, 4, 1]) == -75
