"""Tests for contribution distribution analysis."""

import pytest

from radar.analysis.distribution import (
    analyze_distribution,
    calculate_gini,
    classify_distribution,
)
from radar.analysis.models import ContributorActivity, ContributorShare, DistributionAnalysis


def _activity(identity: str, commits: int, additions: int = 0, deletions: int = 0):
    return ContributorActivity(
        identity=identity, commit_count=commits, additions=additions, deletions=deletions
    )


def test_gini_of_equal_shares_is_zero() -> None:
    assert calculate_gini([25, 25, 25, 25]) == pytest.approx(0.0, abs=1e-9)


def test_gini_of_maximal_inequality() -> None:
    # One holder of everything among n: (n - 1) / n
    assert calculate_gini([0, 0, 0, 100]) == pytest.approx(0.75)


def test_gini_degenerate_inputs() -> None:
    assert calculate_gini([]) == 0.0
    assert calculate_gini([0, 0]) == 0.0


def test_gini_is_order_independent() -> None:
    assert calculate_gini([10, 50, 40]) == pytest.approx(calculate_gini([50, 40, 10]))


def test_no_contributors() -> None:
    analysis = analyze_distribution([])

    assert analysis.pattern == "no_activity"
    assert analysis.gini_coefficient is None
    assert analysis.top_contributor is None


def test_single_contributor_is_solo_without_gini() -> None:
    analysis = analyze_distribution([_activity("alice", 12)])

    assert analysis.pattern == "solo"
    assert analysis.gini_coefficient is None
    assert analysis.top_contributor is not None
    assert analysis.top_contributor.commit_share == 100.0


def test_shares_sum_to_hundred_and_sort_descending() -> None:
    analysis = analyze_distribution(
        [
            _activity("carol", 3, additions=30),
            _activity("alice", 10, additions=50, deletions=20),
            _activity("bob", 7),
        ]
    )

    assert [c.identity for c in analysis.contributors] == ["alice", "bob", "carol"]
    assert sum(c.commit_share for c in analysis.contributors) == pytest.approx(100.0)
    assert sum(c.code_share for c in analysis.contributors) == pytest.approx(100.0)
    assert analysis.total_commits == 20
    assert analysis.gini_coefficient is not None
    assert 0.0 <= analysis.gini_coefficient <= 1.0


def test_lone_wolf_takes_priority_over_gini() -> None:
    analysis = analyze_distribution([_activity("alice", 85), _activity("bob", 15)])

    assert analysis.pattern == "lone_wolf"


def test_balanced_team() -> None:
    analysis = analyze_distribution([_activity(name, 10) for name in ("a", "b", "c", "d")])

    assert analysis.pattern == "balanced"
    assert analysis.gini_coefficient == pytest.approx(0.0, abs=1e-9)
    assert analysis.commit_std_dev == 0.0


def test_zero_commit_contributors_do_not_divide_by_zero() -> None:
    analysis = analyze_distribution([_activity("a", 0), _activity("b", 0)])

    assert all(c.commit_share == 0.0 for c in analysis.contributors)
    assert analysis.gini_coefficient == 0.0


@pytest.mark.parametrize(
    ("gini", "expected"),
    [(0.1, "balanced"), (0.3, "moderate_imbalance"), (0.49, "moderate_imbalance"), (0.5, "imbalanced")],
)
def test_classification_thresholds(gini: float, expected: str) -> None:
    analysis = DistributionAnalysis(
        total_contributors=3,
        gini_coefficient=gini,
        top_contributor=ContributorShare(identity="a", commit_share=60.0),
    )

    pattern, _ = classify_distribution(analysis)

    assert pattern == expected
