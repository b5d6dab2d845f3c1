"""Contribution distribution analysis across a repository's contributors.

Shares are percentages of the repository total. Inequality is measured with
the discrete Gini coefficient over commit shares: sort ascending, then::

    G = (2 * sum(i * share_i)) / (n * sum(share_i)) - (n + 1) / n

for 1-indexed positions ``i``. The pattern is chosen by the first matching
rule in ``DISTRIBUTION_RULES``.
"""

import statistics
from collections.abc import Callable, Sequence

from radar.analysis.models import ContributorActivity, ContributorShare, DistributionAnalysis

LONE_WOLF_SHARE = 80.0
BALANCED_GINI = 0.3
MODERATE_GINI = 0.5


def calculate_gini(values: Sequence[float]) -> float:
    """Calculate the Gini coefficient of a distribution.

    Args:
        values: Non-negative values (shares or counts)

    Returns:
        Coefficient in [0, 1]; 0 for empty input or an all-zero distribution
    """
    n = len(values)
    if n == 0:
        return 0.0

    ordered = sorted(values)
    total = sum(ordered)
    if total == 0:
        return 0.0

    weighted = sum(position * value for position, value in enumerate(ordered, start=1))
    gini = (2 * weighted) / (n * total) - (n + 1) / n
    return min(1.0, max(0.0, gini))


def _top_share(analysis: DistributionAnalysis) -> float:
    if analysis.top_contributor is None:
        return 0.0
    return analysis.top_contributor.commit_share


def _gini(analysis: DistributionAnalysis) -> float:
    return analysis.gini_coefficient or 0.0


# Ordered decision list: (pattern, description, predicate); first match wins
DISTRIBUTION_RULES: list[tuple[str, str, Callable[[DistributionAnalysis], bool]]] = [
    ("no_activity", "No contributions found", lambda a: a.total_contributors == 0),
    ("solo", "Single contributor project", lambda a: a.total_contributors == 1),
    (
        "lone_wolf",
        "Dominated by a single contributor (>80% of commits)",
        lambda a: _top_share(a) > LONE_WOLF_SHARE,
    ),
    ("balanced", "Well-balanced contribution distribution", lambda a: _gini(a) < BALANCED_GINI),
    ("moderate_imbalance", "Moderately imbalanced distribution", lambda a: _gini(a) < MODERATE_GINI),
    ("imbalanced", "Highly imbalanced contribution distribution", lambda a: True),
]


def classify_distribution(analysis: DistributionAnalysis) -> tuple[str, str]:
    """Return the (pattern, description) of the first matching rule."""
    for pattern, description, matches in DISTRIBUTION_RULES:
        if matches(analysis):
            return pattern, description
    raise AssertionError("DISTRIBUTION_RULES must end with a catch-all rule")


def analyze_distribution(contributors: Sequence[ContributorActivity]) -> DistributionAnalysis:
    """Compute contribution shares, Gini coefficient and pattern.

    Args:
        contributors: One row per contributor of a single repository

    Returns:
        DistributionAnalysis with contributors sorted by commit count
        (descending). The Gini coefficient is None with fewer than two
        contributors.
    """
    analysis = DistributionAnalysis(total_contributors=len(contributors))

    if contributors:
        total_commits = sum(c.commit_count for c in contributors)
        total_lines = sum(c.additions + c.deletions for c in contributors)
        analysis.total_commits = total_commits

        shares: list[ContributorShare] = []
        for c in contributors:
            commit_share = c.commit_count / total_commits * 100 if total_commits > 0 else 0.0
            code_share = (c.additions + c.deletions) / total_lines * 100 if total_lines > 0 else 0.0
            shares.append(
                ContributorShare(
                    identity=c.identity,
                    commits=c.commit_count,
                    commit_share=commit_share,
                    additions=c.additions,
                    deletions=c.deletions,
                    code_share=code_share,
                )
            )

        shares.sort(key=lambda s: s.commits, reverse=True)
        analysis.contributors = shares
        analysis.top_contributor = shares[0]
        analysis.commit_std_dev = statistics.pstdev(c.commit_count for c in contributors)

        if len(shares) > 1:
            analysis.gini_coefficient = calculate_gini([s.commit_share for s in shares])

    analysis.pattern, analysis.pattern_description = classify_distribution(analysis)
    return analysis
