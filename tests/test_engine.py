"""
Integration tests for the full health scoring engine over an in-memory store.
"""
from datetime import timedelta

import pytest

from healthops.schemas.health import HealthStatus, Severity
from healthops.scoring import factors
from healthops.scoring.engine import calculate_health_score, combine_components
from healthops.store.base import ACTIVITY_EVENT, COMPANY, FEATURE_USAGE, LANDING_PAGE, LEAD, SUBSCRIPTION, USER


async def _seed_company(store, now, company_id="co-1", users=0, logins=(), pages=0, published=0,
                        leads=0, recent_leads=0, features=0, subscription=None):
    """Baseline company; every input collection is filled from the keyword arguments."""
    await store.insert(COMPANY, {"id": company_id, "status": "active", "created_at": now - timedelta(days=400)})
    for i in range(users):
        await store.insert(USER, {"id": f"{company_id}-u{i}", "company_id": company_id})
    for user_id, action, at in logins:
        await store.insert(ACTIVITY_EVENT, {
            "company_id": company_id, "user_id": user_id, "action": action, "created_at": at,
        })
    for i in range(pages):
        await store.insert(LANDING_PAGE, {
            "company_id": company_id, "status": "published" if i < published else "draft",
        })
    for i in range(leads):
        at = now - timedelta(days=1) if i < recent_leads else now - timedelta(days=90)
        await store.insert(LEAD, {"company_id": company_id, "status": "new", "created_at": at})
    for i in range(features):
        await store.insert(FEATURE_USAGE, {"company_id": company_id, "feature_key": f"f{i}", "usage_count": 3})
    if subscription:
        await store.insert(SUBSCRIPTION, {"company_id": company_id, "created_at": now - timedelta(days=30), **subscription})


class TestCombine:

    def test_overall_is_rounded_weighted_sum(self):
        e = factors.ComponentResult("engagement", 38)
        u = factors.ComponentResult("product_usage", 23)
        s = factors.ComponentResult("support", 100)
        p = factors.ComponentResult("payment", 100)
        result = combine_components("co-1", e, u, s, p)

        # 13.3 + 6.9 + 20 + 15 = 55.2
        assert result.overall_score == 55
        assert result.health_status == HealthStatus.AT_RISK
        assert result.engagement_score == 38
        assert result.product_usage_score == 23

    def test_risks_concatenated_in_component_order(self, now):
        e = factors.score_engagement(factors.EngagementMetrics(0, 0, 0, None), now)
        u = factors.score_product_usage(factors.ProductUsageMetrics(0, 0, 0, 0, 0))
        s = factors.score_support()
        p = factors.score_payment(factors.PaymentMetrics("canceled"), now)
        result = combine_components("co-1", e, u, s, p)

        assert [rf.type for rf in result.risk_factors] == [
            "no_users", "no_landing_pages", "no_leads", "subscription_canceled",
        ]
        assert [r.action for r in result.recommendations] == [
            "Schedule onboarding call to help create first landing page",
            "Review landing page performance and optimization",
        ]


class TestEngineEndToEnd:

    @pytest.mark.asyncio
    async def test_empty_company_is_critical(self, store, now):
        await _seed_company(store, now)
        result = await calculate_health_score("co-1", store, now=now)

        assert result.engagement_score == 0
        assert result.risk_factors[0].type == "no_users"
        assert result.risk_factors[0].severity == Severity.CRITICAL
        assert result.product_usage_score == 0
        assert result.support_score == 100
        assert result.payment_score == 50
        assert result.health_status == HealthStatus.CRITICAL
        assert [rf.type for rf in result.risk_factors] == [
            "no_users", "no_landing_pages", "no_leads", "no_subscription",
        ]

    @pytest.mark.asyncio
    async def test_thriving_company_is_excellent(self, store, now):
        logins = [(f"co-1-u{i}", "admin.login", now - timedelta(hours=1 + i)) for i in range(10)]
        await _seed_company(
            store, now, users=10, logins=logins, pages=6, published=5, leads=99, recent_leads=20,
            features=5, subscription={"status": "active", "current_period_end": now + timedelta(days=30)},
        )
        result = await calculate_health_score("co-1", store, now=now)

        assert result.engagement_score == 100
        assert result.product_usage_score == 100
        assert result.payment_score == 100
        assert result.overall_score == 100
        assert result.health_status == HealthStatus.EXCELLENT
        assert result.risk_factors == []
        assert result.recommendations == []

    @pytest.mark.asyncio
    async def test_active_users_count_distinct_logins_in_window(self, store, now):
        logins = [
            ("co-1-u0", "admin.login", now - timedelta(days=1)),
            ("co-1-u0", "admin.login", now - timedelta(days=2)),     # same user twice
            ("co-1-u1", "lead.created", now - timedelta(days=1)),    # not a login
            ("co-1-u2", "admin.login", now - timedelta(days=31)),    # outside window
        ]
        await _seed_company(store, now, users=10, logins=logins)
        result = await calculate_health_score("co-1", store, now=now)

        # 1/10 active → 4; 2 logins in 7d → 10; last activity 1 day ago → 20
        assert result.engagement_score == 34
        types = [rf.type for rf in result.risk_factors]
        assert "low_active_users" in types
        assert "low_login_frequency" in types
        assert "inactive_company" not in types

    @pytest.mark.asyncio
    async def test_latest_subscription_wins(self, store, now):
        await _seed_company(store, now)
        await store.insert(SUBSCRIPTION, {
            "company_id": "co-1", "status": "canceled", "created_at": now - timedelta(days=200),
        })
        await store.insert(SUBSCRIPTION, {
            "company_id": "co-1", "status": "trialing", "created_at": now - timedelta(days=2),
        })
        result = await calculate_health_score("co-1", store, now=now)
        assert result.payment_score == 90

    @pytest.mark.asyncio
    async def test_overall_always_matches_components(self, store, now):
        logins = [("co-1-u0", "admin.login", now - timedelta(days=4))]
        await _seed_company(
            store, now, users=3, logins=logins, pages=2, published=1, leads=12, recent_leads=2,
            features=1, subscription={"status": "past_due", "current_period_end": now + timedelta(days=2)},
        )
        result = await calculate_health_score("co-1", store, now=now)

        expected = factors.round_half_up(
            result.engagement_score * 0.35
            + result.product_usage_score * 0.30
            + result.support_score * 0.20
            + result.payment_score * 0.15
        )
        assert result.overall_score == expected
        assert 0 <= result.overall_score <= 100
        assert result.payment_score == 40
        assert [rf.type for rf in result.risk_factors][-2:] == ["payment_past_due", "subscription_expiring"]

    @pytest.mark.asyncio
    async def test_other_companies_are_ignored(self, store, now):
        await _seed_company(store, now, company_id="co-1")
        await _seed_company(store, now, company_id="co-2", users=4, pages=3, leads=5)
        result = await calculate_health_score("co-1", store, now=now)
        assert result.engagement_score == 0
        assert result.product_usage_score == 0
