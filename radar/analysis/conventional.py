"""Conventional commit message parsing and commit quality statistics.

Only the first line of a message is inspected. The accepted shape is::

    type[(scope)][!]: description

where ``type`` belongs to a closed vocabulary and is matched
case-insensitively. Anything else is classified as not conventional; that is
a result, not an error.
"""

import re
from collections.abc import Iterable

from radar.analysis.models import CommitQualityAnalysis, ConventionalCommit

CONVENTIONAL_TYPES: frozenset[str] = frozenset(
    {
        "feat",
        "fix",
        "docs",
        "style",
        "refactor",
        "perf",
        "test",
        "build",
        "ci",
        "chore",
        "revert",
    }
)

_TYPE_TOKEN = re.compile(r"[A-Za-z]+")


def _split_scope(prefix: str) -> tuple[str, str | None] | None:
    """Split ``type(scope)`` into its parts.

    Returns None when the parentheses are not a single balanced pair closing
    the prefix.
    """
    open_idx = prefix.find("(")
    if open_idx == -1:
        if ")" in prefix:
            return None
        return prefix, None
    if not prefix.endswith(")"):
        return None
    scope = prefix[open_idx + 1 : -1]
    if not scope or "(" in scope or ")" in scope:
        return None
    return prefix[:open_idx], scope


def parse_conventional_commit(message: str) -> ConventionalCommit:
    """Classify a commit message against the conventional-commit grammar.

    Args:
        message: Raw commit message, possibly multi-line

    Returns:
        ConventionalCommit with is_valid=False and no other fields populated
        when the first line does not match

    Example:
        >>> parse_conventional_commit("feat(api)!: drop v1 routes").scope
        'api'
    """
    if not message:
        return ConventionalCommit()

    first_line = message.split("\n", 1)[0].rstrip("\r")

    colon_idx = first_line.find(":")
    if colon_idx <= 0:
        return ConventionalCommit()

    prefix = first_line[:colon_idx]
    description = first_line[colon_idx + 1 :].strip()
    if not description:
        return ConventionalCommit()

    is_breaking = prefix.endswith("!")
    if is_breaking:
        prefix = prefix[:-1]

    parts = _split_scope(prefix)
    if parts is None:
        return ConventionalCommit()
    type_token, scope = parts

    if not _TYPE_TOKEN.fullmatch(type_token):
        return ConventionalCommit()

    commit_type = type_token.lower()
    if commit_type not in CONVENTIONAL_TYPES:
        return ConventionalCommit()

    return ConventionalCommit(
        is_valid=True,
        type=commit_type,
        scope=scope,
        description=description,
        is_breaking=is_breaking,
    )


def analyze_commit_quality(messages: Iterable[str]) -> CommitQualityAnalysis:
    """Summarize conventional-commit adoption over a set of messages.

    Args:
        messages: Commit messages

    Returns:
        CommitQualityAnalysis (all zeros for no messages)
    """
    messages = list(messages)
    analysis = CommitQualityAnalysis(total_commits=len(messages))
    if not messages:
        return analysis

    total_length = 0
    for message in messages:
        total_length += len(message)
        parsed = parse_conventional_commit(message)
        if not parsed.is_valid:
            continue
        analysis.conventional_count += 1
        commit_type = parsed.type or ""
        analysis.type_distribution[commit_type] = analysis.type_distribution.get(commit_type, 0) + 1
        if parsed.is_breaking:
            analysis.breaking_changes += 1
        if parsed.scope:
            analysis.commits_with_scope += 1

    analysis.conventional_pct = analysis.conventional_count / analysis.total_commits * 100
    analysis.average_message_length = total_length / analysis.total_commits
    return analysis
