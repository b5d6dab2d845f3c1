"""Tests for volume and timing analysis."""

import datetime as dt

import pytest

from radar.analysis.models import DailyActivity, VolumeAnalysis
from radar.analysis.volume import (
    analyze_contributor_patterns,
    analyze_volume,
    calculate_consistency_score,
    classify_volume,
)

JAN = dt.date(2025, 1, 1)


def _day(offset: int, commits: int, additions: int = 0, deletions: int = 0) -> DailyActivity:
    return DailyActivity(
        date=JAN + dt.timedelta(days=offset),
        commits=commits,
        additions=additions,
        deletions=deletions,
    )


def test_no_activity() -> None:
    analysis = analyze_volume([])

    assert analysis.pattern == "no_activity"
    assert analysis.total_commits == 0
    assert analysis.total_days == 0


def test_deadline_dumper() -> None:
    # 45 of 50 commits on the last day of a 10-day window
    activities = [_day(i, 1) for i in range(5)] + [_day(9, 45)]

    analysis = analyze_volume(activities, JAN, JAN + dt.timedelta(days=9))

    assert analysis.total_days == 10
    assert analysis.total_commits == 50
    assert analysis.last_day_percentage == pytest.approx(90.0)
    assert analysis.final_period_percentage == pytest.approx(90.0)
    assert analysis.pattern == "deadline_dumper"


def test_daily_builder() -> None:
    analysis = analyze_volume([_day(i, 3) for i in range(10)])

    assert analysis.active_days == 10
    assert analysis.consistency_score == pytest.approx(100.0)
    assert analysis.pattern == "daily_builder"


def test_burst_coder() -> None:
    analysis = analyze_volume([_day(0, 10), _day(4, 1)], JAN, JAN + dt.timedelta(days=9))

    assert analysis.consistency_score < 40
    assert analysis.max_daily_commits == 10
    assert analysis.pattern == "burst_coder"


def test_window_filters_buckets_and_merges_duplicates() -> None:
    activities = [_day(-3, 7), _day(1, 2, additions=5), _day(1, 3, deletions=4), _day(2, 1)]

    analysis = analyze_volume(activities, JAN, JAN + dt.timedelta(days=2))

    assert analysis.total_commits == 6
    assert analysis.total_additions == 5
    assert analysis.total_deletions == 4
    assert [d.commits for d in analysis.daily_breakdown] == [5, 1]
    assert sum(d.commits for d in analysis.daily_breakdown) == analysis.total_commits
    assert analysis.active_days <= analysis.total_days


def test_window_end_before_start_is_rejected() -> None:
    with pytest.raises(ValueError):
        analyze_volume([_day(0, 1)], JAN, JAN - dt.timedelta(days=1))


def test_consistency_score_bounds() -> None:
    assert calculate_consistency_score([], 10) == 0.0
    assert calculate_consistency_score([_day(0, 0)], 1) == 0.0
    score = calculate_consistency_score([_day(0, 1), _day(1, 9)], 2)
    assert 0.0 <= score <= 100.0


@pytest.mark.parametrize(
    ("fields", "expected"),
    [
        ({"total_commits": 0}, "no_activity"),
        ({"total_commits": 10, "final_period_percentage": 51.0, "consistency_score": 90}, "deadline_dumper"),
        ({"total_commits": 10, "consistency_score": 70.0}, "daily_builder"),
        ({"total_commits": 10, "consistency_score": 40.0}, "moderate_builder"),
        (
            {"total_commits": 10, "consistency_score": 20.0, "max_daily_commits": 7, "average_commits_per_day": 2.0},
            "burst_coder",
        ),
        (
            {"total_commits": 10, "consistency_score": 20.0, "max_daily_commits": 6, "average_commits_per_day": 2.0},
            "sporadic",
        ),
    ],
)
def test_classification_order(fields: dict, expected: str) -> None:
    pattern, description = classify_volume(VolumeAnalysis(**fields))

    assert pattern == expected
    assert description


def test_contributor_patterns_report_peak_day() -> None:
    patterns = analyze_contributor_patterns(
        {
            "alice": [_day(0, 2), _day(1, 5), _day(2, 5)],
            "bob": [_day(0, 1)],
        }
    )

    assert [p.identity for p in patterns] == ["alice", "bob"]
    alice = patterns[0]
    assert alice.total_commits == 12
    assert alice.peak_day == JAN + dt.timedelta(days=1)
    assert alice.peak_day_commits == 5
    assert patterns[1].peak_day == JAN
