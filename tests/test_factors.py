"""
Unit tests for the individual health score components.
"""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from healthops.schemas.health import HealthStatus, Severity
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig
from healthops.scoring.factors import (
    EngagementMetrics,
    PaymentMetrics,
    ProductUsageMetrics,
    determine_health_status,
    round_half_up,
    score_engagement,
    score_payment,
    score_product_usage,
    score_support,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _types(result):
    return [rf.type for rf in result.risk_factors]


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(10.5) == 11

    def test_below_half_rounds_down(self):
        assert round_half_up(55.2) == 55
        assert round_half_up(22.49) == 22


class TestEngagement:
    def test_zero_users_short_circuits(self):
        r = score_engagement(EngagementMetrics(0, 0, 0, None), NOW)
        assert r.score == 0
        assert len(r.risk_factors) == 1
        assert r.risk_factors[0].type == "no_users"
        assert r.risk_factors[0].severity == Severity.CRITICAL
        assert r.recommendations == []

    def test_exact_twenty_percent_is_not_low_activity(self):
        """10 users, 2 active, 1 login, active today → 8 + 5 + 25 = 38."""
        r = score_engagement(EngagementMetrics(10, 2, 1, NOW), NOW)
        assert r.score == 38
        assert "low_login_frequency" in _types(r)
        assert "low_active_users" not in _types(r)

    def test_below_twenty_percent_is_low_activity(self):
        r = score_engagement(EngagementMetrics(10, 1, 5, NOW), NOW)
        assert "low_active_users" in _types(r)
        assert r.risk_factors[0].description == "Only 10% of users active in last 30 days"
        assert r.recommendations[0].action == "Conduct user onboarding review and re-engagement campaign"

    def test_fully_engaged(self):
        r = score_engagement(EngagementMetrics(5, 5, 14, NOW - timedelta(hours=3)), NOW)
        assert r.score == 100
        assert r.risk_factors == []

    @pytest.mark.parametrize("days_ago, points", [
        (0.5, 25), (1, 20), (2, 15), (3, 15), (5, 10), (7, 10), (10, 5), (14, 5), (15, 0),
    ])
    def test_recency_tiers(self, days_ago, points):
        # 10/10 active (40) and 7 logins (35) leave recency as the only variable
        last = NOW - timedelta(days=days_ago)
        r = score_engagement(EngagementMetrics(10, 10, 7, last), NOW)
        assert r.score == 75 + points

    def test_inactive_high_then_critical(self):
        r = score_engagement(EngagementMetrics(4, 4, 7, NOW - timedelta(days=10)), NOW)
        inactive = [rf for rf in r.risk_factors if rf.type == "inactive_company"][0]
        assert inactive.severity == Severity.HIGH
        assert inactive.description == "No activity for 10 days"

        r = score_engagement(EngagementMetrics(4, 4, 7, NOW - timedelta(days=15)), NOW)
        inactive = [rf for rf in r.risk_factors if rf.type == "inactive_company"][0]
        assert inactive.severity == Severity.CRITICAL
        assert r.recommendations[-1].action == "Immediate outreach to company admin"

    def test_no_activity_ever_is_critical_inactivity(self):
        r = score_engagement(EngagementMetrics(3, 0, 0, None), NOW)
        assert r.score == 0
        assert _types(r) == ["low_active_users", "inactive_company", "low_login_frequency"]
        assert r.risk_factors[1].severity == Severity.CRITICAL
        assert len(r.recommendations) == 2

    def test_activity_slightly_in_future_counts_as_today(self):
        r = score_engagement(EngagementMetrics(10, 10, 7, NOW + timedelta(minutes=5)), NOW)
        assert r.score == 100
        assert "inactive_company" not in _types(r)

    def test_frequency_capped(self):
        r = score_engagement(EngagementMetrics(10, 0, 100, NOW), NOW)
        # 0 + 35 + 25
        assert r.score == 60


class TestProductUsage:
    def test_nothing_built(self):
        r = score_product_usage(ProductUsageMetrics(0, 0, 0, 0, 0))
        assert r.score == 0
        assert _types(r) == ["no_landing_pages", "no_leads"]
        assert len(r.recommendations) == 2

    def test_fully_used(self):
        r = score_product_usage(ProductUsageMetrics(6, 5, 99, 20, 5))
        assert r.score == 100
        assert r.risk_factors == []

    def test_pages_not_published(self):
        r = score_product_usage(ProductUsageMetrics(2, 0, 10, 3, 1))
        assert "no_active_landing_pages" in _types(r)
        assert "no_landing_pages" not in _types(r)
        assert r.recommendations[0].action == "Help publish first landing page"

    def test_declining_leads(self):
        # 5 + 2 + log10(6)*20 ≈ 15.56 → 22.56
        r = score_product_usage(ProductUsageMetrics(1, 1, 5, 0, 0))
        assert r.score == 23
        assert _types(r) == ["declining_leads"]
        assert r.recommendations == []


class TestSupport:
    def test_placeholder_constant(self):
        r = score_support()
        assert r.score == 100
        assert r.risk_factors == []
        assert r.recommendations == []

    def test_placeholder_follows_config(self):
        assert score_support(replace(DEFAULT_CONFIG, support_placeholder_score=70)).score == 70


class TestPayment:
    @pytest.mark.parametrize("status, score, risk", [
        ("active", 100, None),
        ("trialing", 90, None),
        ("past_due", 40, "payment_past_due"),
        ("canceled", 0, "subscription_canceled"),
        ("incomplete", 30, "incomplete_subscription"),
        (None, 50, "no_subscription"),
        ("paused", 50, "no_subscription"),
    ])
    def test_status_mapping(self, status, score, risk):
        r = score_payment(PaymentMetrics(status), NOW)
        assert r.score == score
        assert _types(r) == ([risk] if risk else [])

    def test_past_due_has_recommendation(self):
        r = score_payment(PaymentMetrics("past_due"), NOW)
        assert r.recommendations[0].action == "Contact customer about payment issue"

    def test_expiring_within_week(self):
        r = score_payment(PaymentMetrics("active", NOW + timedelta(days=3)), NOW)
        assert r.score == 100
        assert _types(r) == ["subscription_expiring"]
        assert r.risk_factors[0].description == "Subscription expires in 3 days"
        assert r.recommendations[0].action == "Proactive renewal outreach"

    def test_expiry_uses_whole_days(self):
        r = score_payment(PaymentMetrics("active", NOW + timedelta(days=7, hours=20)), NOW)
        assert _types(r) == ["subscription_expiring"]

    def test_no_warning_with_less_than_a_day_left(self):
        r = score_payment(PaymentMetrics("active", NOW + timedelta(hours=12)), NOW)
        assert r.risk_factors == []
        assert r.recommendations == []

    def test_no_warning_outside_window_or_in_past(self):
        assert score_payment(PaymentMetrics("active", NOW + timedelta(days=8)), NOW).risk_factors == []
        assert score_payment(PaymentMetrics("active", NOW - timedelta(hours=1)), NOW).risk_factors == []

    def test_expiry_independent_of_status(self):
        r = score_payment(PaymentMetrics("past_due", NOW + timedelta(days=1)), NOW)
        assert _types(r) == ["payment_past_due", "subscription_expiring"]


class TestHealthStatus:
    @pytest.mark.parametrize("score, status", [
        (100, HealthStatus.EXCELLENT),
        (80, HealthStatus.EXCELLENT),
        (79, HealthStatus.HEALTHY),
        (60, HealthStatus.HEALTHY),
        (59, HealthStatus.AT_RISK),
        (40, HealthStatus.AT_RISK),
        (39, HealthStatus.CRITICAL),
        (0, HealthStatus.CRITICAL),
    ])
    def test_tiers(self, score, status):
        assert determine_health_status(score) == status


class TestConfig:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            HealthScoreConfig(engagement_weight=0.5)

    def test_thresholds_overridable(self):
        config = replace(DEFAULT_CONFIG, excellent_threshold=90)
        assert determine_health_status(85, config) == HealthStatus.HEALTHY
