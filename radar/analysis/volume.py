"""Volume and timing analysis of daily activity.

Classifies how work is spread over an observation window: steady daily
building, a rush of commits near the end, bursts with quiet periods, or no
discernible rhythm. Buckets outside an explicit window are ignored and
duplicate dates are summed.
"""

import datetime as dt
from collections.abc import Callable, Iterable, Mapping, Sequence

from radar.analysis.models import (
    ContributorVolumePattern,
    DailyActivity,
    DayBreakdown,
    VolumeAnalysis,
)

FINAL_PERIOD_FRACTION = 0.2
DEADLINE_SHARE = 50.0
DAILY_BUILDER_SCORE = 70.0
MODERATE_BUILDER_SCORE = 40.0
BURST_FACTOR = 3.0

# Ordered decision list: (pattern, description, predicate); first match wins
VOLUME_RULES: list[tuple[str, str, Callable[[VolumeAnalysis], bool]]] = [
    ("no_activity", "No activity recorded", lambda a: a.total_commits == 0),
    (
        "deadline_dumper",
        "Most commits pushed near the deadline (>50% in final 20% of time)",
        lambda a: a.final_period_percentage > DEADLINE_SHARE,
    ),
    (
        "daily_builder",
        "Consistent daily activity throughout the period",
        lambda a: a.consistency_score >= DAILY_BUILDER_SCORE,
    ),
    (
        "moderate_builder",
        "Moderately consistent activity",
        lambda a: a.consistency_score >= MODERATE_BUILDER_SCORE,
    ),
    (
        "burst_coder",
        "Activity comes in bursts with quiet periods between",
        lambda a: a.max_daily_commits > a.average_commits_per_day * BURST_FACTOR,
    ),
    ("sporadic", "Irregular activity pattern", lambda a: True),
]


def classify_volume(analysis: VolumeAnalysis) -> tuple[str, str]:
    """Return the (pattern, description) of the first matching rule."""
    for pattern, description, matches in VOLUME_RULES:
        if matches(analysis):
            return pattern, description
    raise AssertionError("VOLUME_RULES must end with a catch-all rule")


def _merge_by_date(activities: Iterable[DailyActivity]) -> list[DailyActivity]:
    merged: dict[dt.date, DailyActivity] = {}
    for a in activities:
        existing = merged.get(a.date)
        if existing is None:
            merged[a.date] = a.model_copy()
        else:
            existing.commits += a.commits
            existing.additions += a.additions
            existing.deletions += a.deletions
    return [merged[day] for day in sorted(merged)]


def calculate_consistency_score(activities: Sequence[DailyActivity], total_days: int) -> float:
    """Score how steady activity is, from 0 to 100.

    Averages the percentage of window days with a commit and an inverse
    variance term ``100 / (1 + variance / mean)`` over the observed days.

    Args:
        activities: Observed days, one bucket per date
        total_days: Window length in days

    Returns:
        Score in [0, 100]
    """
    if total_days <= 0 or not activities:
        return 0.0

    active_days = sum(1 for a in activities if a.commits > 0)
    activity_rate = active_days / total_days * 100

    counts = [a.commits for a in activities]
    mean = sum(counts) / len(counts)
    if mean == 0:
        return 0.0
    variance = sum((c - mean) ** 2 for c in counts) / len(counts)
    variance_score = 100 / (1 + variance / mean)

    return min(100.0, max(0.0, (activity_rate + variance_score) / 2))


def analyze_volume(
    activities: Iterable[DailyActivity],
    window_start: dt.date | None = None,
    window_end: dt.date | None = None,
) -> VolumeAnalysis:
    """Analyze the volume and timing of activity over a window.

    The window defaults to the span of the observed days. Either bound may be
    given alone; the other is taken from the data.

    Args:
        activities: Daily activity buckets in any order
        window_start: First day of the observation window (inclusive)
        window_end: Last day of the observation window (inclusive)

    Returns:
        VolumeAnalysis with pattern classification

    Raises:
        ValueError: If window_end precedes window_start
    """
    if window_start and window_end and window_end < window_start:
        raise ValueError(f"Window end {window_end} precedes start {window_start}")

    days = _merge_by_date(activities)
    if window_start is not None:
        days = [a for a in days if a.date >= window_start]
    if window_end is not None:
        days = [a for a in days if a.date <= window_end]

    start = window_start or (days[0].date if days else None)
    end = window_end or (days[-1].date if days else None)

    analysis = VolumeAnalysis(window_start=start, window_end=end)
    if start is not None and end is not None and end >= start:
        analysis.total_days = (end - start).days + 1

    for a in days:
        if a.commits > 0:
            analysis.active_days += 1
        analysis.total_commits += a.commits
        analysis.total_additions += a.additions
        analysis.total_deletions += a.deletions
        analysis.max_daily_commits = max(analysis.max_daily_commits, a.commits)

    if analysis.total_days > 0:
        analysis.average_commits_per_day = analysis.total_commits / analysis.total_days

    total = analysis.total_commits
    analysis.daily_breakdown = [
        DayBreakdown(
            date=a.date,
            commits=a.commits,
            additions=a.additions,
            deletions=a.deletions,
            percentage=a.commits / total * 100 if total > 0 else 0.0,
        )
        for a in days
    ]

    if days and end is not None and total > 0:
        analysis.last_day_percentage = days[-1].commits / total * 100

        final_days = max(1, int(analysis.total_days * FINAL_PERIOD_FRACTION))
        cutoff = end - dt.timedelta(days=final_days - 1)
        final_commits = sum(a.commits for a in days if a.date >= cutoff)
        analysis.final_period_percentage = final_commits / total * 100

    analysis.consistency_score = calculate_consistency_score(days, analysis.total_days)
    analysis.pattern, analysis.pattern_description = classify_volume(analysis)
    return analysis


def analyze_contributor_patterns(
    contributor_activities: Mapping[str, Iterable[DailyActivity]],
    window_start: dt.date | None = None,
    window_end: dt.date | None = None,
) -> list[ContributorVolumePattern]:
    """Run the volume analysis independently for each contributor.

    Args:
        contributor_activities: Daily buckets keyed by contributor identity
        window_start: Shared window start (defaults per contributor)
        window_end: Shared window end (defaults per contributor)

    Returns:
        One pattern per contributor, most commits first. The peak day is the
        earliest day holding the contributor's highest daily count.
    """
    patterns: list[ContributorVolumePattern] = []

    for identity, activities in contributor_activities.items():
        analysis = analyze_volume(activities, window_start, window_end)

        peak_day: dt.date | None = None
        peak_commits = 0
        for day in analysis.daily_breakdown:
            if day.commits > peak_commits:
                peak_commits = day.commits
                peak_day = day.date

        patterns.append(
            ContributorVolumePattern(
                identity=identity,
                pattern=analysis.pattern,
                total_commits=analysis.total_commits,
                daily_average=analysis.average_commits_per_day,
                peak_day=peak_day,
                peak_day_commits=peak_commits,
            )
        )

    patterns.sort(key=lambda p: p.total_commits, reverse=True)
    return patterns
