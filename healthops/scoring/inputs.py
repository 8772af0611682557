"""
Metric collection for the health score components.

The only place the engine touches the store. Every query is scoped to one
company; time windows are measured back from the caller's `now`.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from healthops.scoring.config import HealthScoreConfig
from healthops.scoring.factors import EngagementMetrics, PaymentMetrics, ProductUsageMetrics
from healthops.store.base import ACTIVITY_EVENT, FEATURE_USAGE, LANDING_PAGE, LEAD, SUBSCRIPTION, USER, Store


async def collect_engagement(
    store: Store, company_id: str, now: datetime, config: HealthScoreConfig,
) -> EngagementMetrics:
    scope = [("company_id", "eq", company_id)]

    total_users = await store.count(USER, scope)
    if total_users == 0:
        return EngagementMetrics(0, 0, 0, None)

    login_scope = scope + [("action", "eq", config.login_action)]
    active_since = now - timedelta(days=config.active_window_days)
    login_since = now - timedelta(days=config.login_window_days)

    logins_30d = await store.query(
        ACTIVITY_EVENT, login_scope + [("created_at", "gte", active_since)],
    )
    active_users = len({e.get("user_id") for e in logins_30d if e.get("user_id") is not None})

    recent_logins = await store.count(
        ACTIVITY_EVENT, login_scope + [("created_at", "gte", login_since)],
    )

    latest = await store.query(
        ACTIVITY_EVENT, scope, order_by="created_at", descending=True, limit=1,
    )
    last_activity_at = latest[0]["created_at"] if latest else None

    return EngagementMetrics(
        total_users=total_users,
        active_users=active_users,
        recent_logins=recent_logins,
        last_activity_at=last_activity_at,
    )


async def collect_product_usage(
    store: Store, company_id: str, now: datetime, config: HealthScoreConfig,
) -> ProductUsageMetrics:
    scope = [("company_id", "eq", company_id)]
    recent_since = now - timedelta(days=config.active_window_days)

    return ProductUsageMetrics(
        total_landing_pages=await store.count(LANDING_PAGE, scope),
        published_landing_pages=await store.count(
            LANDING_PAGE, scope + [("status", "eq", "published")],
        ),
        total_leads=await store.count(LEAD, scope),
        recent_leads=await store.count(
            LEAD, scope + [("created_at", "gte", recent_since)],
        ),
        features_used=await store.count(
            FEATURE_USAGE, scope + [("usage_count", "gt", 0)],
        ),
    )


async def collect_payment(store: Store, company_id: str) -> PaymentMetrics:
    latest = await store.query(
        SUBSCRIPTION,
        [("company_id", "eq", company_id)],
        order_by="created_at",
        descending=True,
        limit=1,
    )
    if not latest:
        return PaymentMetrics(subscription_status=None)

    subscription = latest[0]
    return PaymentMetrics(
        subscription_status=subscription.get("status"),
        current_period_end=subscription.get("current_period_end"),
    )
