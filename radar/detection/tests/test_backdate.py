"""Tests for backdated commit detection."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from radar.detection.backdate import BackdateDetector, backdate_hours
from radar.shared.models import AlertType, Severity

PUSHED_AT = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


def test_25_hours_is_suspicious_not_critical() -> None:
    detector = BackdateDetector(suspicious_hours=24, critical_hours=72)

    result = detector.analyze(PUSHED_AT - timedelta(hours=25), PUSHED_AT)

    assert result.difference_hours == 25
    assert result.is_suspicious is True
    assert result.is_critical is False
    assert result.alert_type == AlertType.BACKDATE_SUSPICIOUS
    assert result.severity == Severity.WARNING


def test_critical_implies_suspicious() -> None:
    detector = BackdateDetector()

    result = detector.analyze(PUSHED_AT - timedelta(hours=100), PUSHED_AT)

    assert result.is_suspicious is True
    assert result.is_critical is True
    assert result.alert_type == AlertType.BACKDATE_CRITICAL
    assert result.severity == Severity.CRITICAL


def test_threshold_is_exclusive() -> None:
    detector = BackdateDetector(suspicious_hours=24, critical_hours=72)

    result = detector.analyze(PUSHED_AT - timedelta(hours=24), PUSHED_AT)

    assert result.is_flagged is False


def test_hours_are_truncated_not_rounded() -> None:
    assert backdate_hours(PUSHED_AT - timedelta(hours=24, minutes=59), PUSHED_AT) == 24
    assert backdate_hours(PUSHED_AT + timedelta(minutes=90), PUSHED_AT) == -1


def test_negative_lag_is_kept_signed_and_not_flagged() -> None:
    detector = BackdateDetector()

    result = detector.analyze(PUSHED_AT + timedelta(hours=5), PUSHED_AT)

    assert result.difference_hours == -5
    assert result.is_flagged is False
    assert detector.build_alert(result, "abc") is None


def test_offsets_are_normalized() -> None:
    minus_five = timezone(timedelta(hours=-5))
    author = datetime(2025, 3, 9, 6, 0, tzinfo=minus_five)  # 11:00 UTC

    assert backdate_hours(author, PUSHED_AT) == 25


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive_push = PUSHED_AT.replace(tzinfo=None)

    assert backdate_hours(naive_push - timedelta(hours=30), PUSHED_AT) == 30


def test_custom_thresholds() -> None:
    detector = BackdateDetector(suspicious_hours=1, critical_hours=2)

    result = detector.analyze(PUSHED_AT - timedelta(hours=3), PUSHED_AT)

    assert result.is_critical is True


def test_critical_below_suspicious_is_rejected() -> None:
    with pytest.raises(ValueError):
        BackdateDetector(suspicious_hours=48, critical_hours=24)


def test_build_alert_emits_single_alert_with_metadata() -> None:
    detector = BackdateDetector()
    result = detector.analyze(PUSHED_AT - timedelta(hours=30), PUSHED_AT)

    alert = detector.build_alert(result, "deadbeef")

    assert alert is not None
    assert alert.alert_type == AlertType.BACKDATE_SUSPICIOUS
    assert alert.severity == Severity.WARNING
    assert alert.commit_sha == "deadbeef"
    assert alert.title == "Backdated commit detected"
    assert alert.metadata["backdate_hours"] == 30
    assert alert.metadata["pushed_at"] == PUSHED_AT.isoformat()
