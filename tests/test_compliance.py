"""Tests for the device compliance scorer."""

from datetime import datetime, timedelta, timezone

import pytest

from bastion.scoring.compliance import DeviceComplianceScorer, days_since
from bastion.scoring.signals import DevicePosture

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def compliant_posture(**overrides) -> DevicePosture:
    fields = dict(
        device_id="dev-001",
        firewall_enabled=True,
        antivirus=True,
        disk_encrypted=True,
        last_security_update=NOW - timedelta(days=3),
        compliance_score=95,
    )
    fields.update(overrides)
    return DevicePosture(**fields)


class TestDeviceComplianceScorer:
    """Tests for DeviceComplianceScorer class."""

    def setup_method(self):
        self.scorer = DeviceComplianceScorer()

    def test_fully_compliant_device(self):
        assert self.scorer.score(compliant_posture(), NOW) == 0
        assert self.scorer.evaluate(compliant_posture(), NOW).factors == []

    def test_worst_case_device_scores_100(self):
        posture = DevicePosture(
            firewall_enabled=False,
            antivirus=False,
            disk_encrypted=False,
            last_security_update=NOW - timedelta(days=91),
            compliance_score=10,
        )
        assert self.scorer.score(posture, NOW) == 100

    def test_firewall_penalty(self):
        assert self.scorer.score(compliant_posture(firewall_enabled=False), NOW) == 20

    def test_antivirus_penalty(self):
        assert self.scorer.score(compliant_posture(antivirus=False), NOW) == 20

    def test_encryption_penalty(self):
        assert self.scorer.score(compliant_posture(disk_encrypted=False), NOW) == 15

    def test_unknown_flags_count_as_non_compliant(self):
        posture = compliant_posture(firewall_enabled=None, antivirus=None, disk_encrypted=None)
        assert self.scorer.score(posture, NOW) == 55

    @pytest.mark.parametrize(
        "days,expected",
        [(0, 0), (30, 0), (31, 5), (90, 5), (91, 10), (400, 10)],
    )
    def test_update_penalty_bands(self, days, expected):
        assert self.scorer.calculate_update_penalty(NOW - timedelta(days=days), NOW) == expected

    def test_unknown_update_date_is_stale(self):
        assert self.scorer.calculate_update_penalty(None, NOW) == 10

    def test_future_update_date_is_fresh(self):
        assert self.scorer.calculate_update_penalty(NOW + timedelta(days=5), NOW) == 0

    def test_naive_update_date_treated_as_utc(self):
        naive = (NOW - timedelta(days=45)).replace(tzinfo=None)
        assert self.scorer.calculate_update_penalty(naive, NOW) == 5

    @pytest.mark.parametrize(
        "compliance,expected",
        [(0, 35), (49, 35), (50, 20), (74, 20), (75, 10), (89, 10), (90, 0), (100, 0)],
    )
    def test_compliance_penalty_bands(self, compliance, expected):
        assert self.scorer.calculate_compliance_penalty(compliance) == expected

    def test_unreported_compliance_score(self):
        assert self.scorer.calculate_compliance_penalty(None) == 35

    def test_factor_weights_sum_to_raw_score(self):
        posture = compliant_posture(
            firewall_enabled=False,
            last_security_update=NOW - timedelta(days=60),
            compliance_score=70,
        )
        result = self.scorer.evaluate(posture, NOW)
        assert result.raw_score == 20 + 5 + 20
        assert sum(f.weight for f in result.factors) == result.raw_score
        assert [f.name for f in result.factors] == [
            "Firewall Disabled",
            "Outdated Security Updates",
            "Low Compliance Score",
        ]
        assert result.factors[-1].description == "Device compliance score is 70%"

    def test_score_never_exceeds_100(self):
        posture = DevicePosture()
        result = self.scorer.evaluate(posture, NOW)
        assert result.raw_score == 100
        assert result.score == 100


class TestDaysSince:
    def test_whole_days(self):
        assert days_since(NOW - timedelta(days=2, hours=23), NOW) == 2

    def test_mixed_awareness(self):
        assert days_since(datetime(2026, 5, 1), NOW) == 31


class TestPartialTelemetry:
    """Tests for evaluating only the reported compliance fields."""

    def setup_method(self):
        self.scorer = DeviceComplianceScorer()

    def test_unknown_fields_add_nothing(self):
        result = self.scorer.evaluate(DevicePosture(), NOW, fail_closed=False)
        assert result.raw_score == 0
        assert result.factors == []

    def test_reported_failures_still_count(self):
        posture = DevicePosture(firewall_enabled=False, compliance_score=40)
        result = self.scorer.evaluate(posture, NOW, fail_closed=False)
        assert result.raw_score == 20 + 35
        assert [f.name for f in result.factors] == ["Firewall Disabled", "Low Compliance Score"]

    def test_recent_update_alone_is_clean(self):
        posture = DevicePosture(last_security_update=NOW)
        assert self.scorer.evaluate(posture, NOW, fail_closed=False).raw_score == 0
