"""
Health score components — pure scoring functions.

Each component:
  1. Takes already-collected metrics (see inputs.py)
  2. Adds up its bounded sub-scores
  3. Emits the risk factors and recommendations that explain a low score

Weights are applied in the engine, not here.

Convention: HIGHER score = HEALTHIER account, every component is 0-100.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from healthops.schemas.health import HealthStatus, Priority, Recommendation, RiskFactor, Severity
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig

DAY_SECONDS = 24 * 60 * 60

# Days-since-activity used when a company has no activity at all
NO_ACTIVITY_DAYS = 999


@dataclass
class ComponentResult:
    name: str
    score: int
    risk_factors: list[RiskFactor] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)


@dataclass(frozen=True)
class EngagementMetrics:
    total_users: int
    active_users: int              # distinct users with a login in the active window
    recent_logins: int             # login events in the login window
    last_activity_at: Optional[datetime]


@dataclass(frozen=True)
class ProductUsageMetrics:
    total_landing_pages: int
    published_landing_pages: int
    total_leads: int
    recent_leads: int
    features_used: int


@dataclass(frozen=True)
class PaymentMetrics:
    subscription_status: Optional[str]     # None = no subscription at all
    current_period_end: Optional[datetime] = None


def round_half_up(value: float) -> int:
    """Round x.5 away from zero; Python's round() would pick the even neighbour."""
    return int(math.floor(value + 0.5))


def whole_days(seconds: float) -> int:
    return math.floor(seconds / DAY_SECONDS)


# ═══════════════════════════════════════════════════════════════
# 1. ENGAGEMENT  (weight = 0.35)
#    active users 0-40 · login frequency 0-35 · recency 0-25
# ═══════════════════════════════════════════════════════════════
def score_engagement(
    metrics: EngagementMetrics,
    now: datetime,
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> ComponentResult:
    result = ComponentResult("engagement", 0)

    if metrics.total_users <= 0:
        result.risk_factors.append(RiskFactor(
            type="no_users",
            severity=Severity.CRITICAL,
            description="No users in company",
            impact="Cannot assess engagement without users",
        ))
        return result

    active_ratio = metrics.active_users / metrics.total_users
    # Clock skew can put the latest event slightly ahead of now
    days_since_activity = (
        max(0, whole_days((now - metrics.last_activity_at).total_seconds()))
        if metrics.last_activity_at is not None else NO_ACTIVITY_DAYS
    )

    score = 0.0
    score += min(40.0, active_ratio * 100 * 0.4)
    # One login per day over the window earns the maximum
    score += min(35.0, metrics.recent_logins / config.login_window_days * 35)
    for max_days, points in config.recency_tiers:
        if days_since_activity <= max_days:
            score += points
            break

    if active_ratio < config.low_active_ratio:
        result.risk_factors.append(RiskFactor(
            type="low_active_users",
            severity=Severity.HIGH,
            description=(
                f"Only {round_half_up(active_ratio * 100)}% of users active "
                f"in last {config.active_window_days} days"
            ),
            impact="Low user adoption and engagement",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.HIGH,
            action="Conduct user onboarding review and re-engagement campaign",
            rationale="Low percentage of active users indicates poor adoption",
            expected_impact="Increase active user base by 15-20%",
        ))

    if days_since_activity > config.inactive_days:
        result.risk_factors.append(RiskFactor(
            type="inactive_company",
            severity=(
                Severity.CRITICAL if days_since_activity > config.critical_inactive_days
                else Severity.HIGH
            ),
            description=f"No activity for {days_since_activity} days",
            impact="High churn risk",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.HIGH,
            action="Immediate outreach to company admin",
            rationale="Extended inactivity suggests abandonment",
            expected_impact="Prevent churn through re-engagement",
        ))

    if metrics.recent_logins < config.min_weekly_logins:
        result.risk_factors.append(RiskFactor(
            type="low_login_frequency",
            severity=Severity.MEDIUM,
            description=f"Only {metrics.recent_logins} logins in last {config.login_window_days} days",
            impact="Low engagement with platform",
        ))

    result.score = min(100, round_half_up(score))
    return result


# ═══════════════════════════════════════════════════════════════
# 2. PRODUCT USAGE  (weight = 0.30)
#    pages 0-30 · published 0-10 · leads 0-40 (log scale)
#    recent leads 0-10 · feature adoption 0-10
# ═══════════════════════════════════════════════════════════════
def score_product_usage(metrics: ProductUsageMetrics) -> ComponentResult:
    result = ComponentResult("product_usage", 0)

    score = 0.0
    score += min(30.0, metrics.total_landing_pages * 5)
    score += min(10.0, metrics.published_landing_pages * 2)
    score += min(40.0, math.log10(metrics.total_leads + 1) * 20)
    score += min(10.0, metrics.recent_leads * 0.5)
    score += min(10.0, metrics.features_used * 2)

    if metrics.total_landing_pages == 0:
        result.risk_factors.append(RiskFactor(
            type="no_landing_pages",
            severity=Severity.HIGH,
            description="No landing pages created",
            impact="Not using core product functionality",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.HIGH,
            action="Schedule onboarding call to help create first landing page",
            rationale="Landing pages are core product value",
            expected_impact="Activate product usage and demonstrate value",
        ))
    elif metrics.published_landing_pages == 0:
        result.risk_factors.append(RiskFactor(
            type="no_active_landing_pages",
            severity=Severity.MEDIUM,
            description="Landing pages created but none published",
            impact="Not realizing product value",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            action="Help publish first landing page",
            rationale="Created pages but not activated",
            expected_impact="Start generating leads",
        ))

    if metrics.total_leads == 0:
        result.risk_factors.append(RiskFactor(
            type="no_leads",
            severity=Severity.HIGH,
            description="No leads generated yet",
            impact="No ROI demonstrated",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.HIGH,
            action="Review landing page performance and optimization",
            rationale="No leads = no value realization",
            expected_impact="Generate first leads and demonstrate ROI",
        ))
    elif metrics.recent_leads == 0:
        result.risk_factors.append(RiskFactor(
            type="declining_leads",
            severity=Severity.MEDIUM,
            description="No new leads in last 30 days",
            impact="Declining product value",
        ))

    result.score = min(100, round_half_up(score))
    return result


# ═══════════════════════════════════════════════════════════════
# 3. SUPPORT  (weight = 0.20)
#    PLACEHOLDER: there is no ticketing system to read from yet, so every
#    company gets the configured constant (100) and no risk factors.
#    Once tickets exist this should look at open ticket count, resolution
#    time, critical issues and satisfaction. Do not feed it other data.
# ═══════════════════════════════════════════════════════════════
def score_support(config: HealthScoreConfig = DEFAULT_CONFIG) -> ComponentResult:
    return ComponentResult("support", config.support_placeholder_score)


# ═══════════════════════════════════════════════════════════════
# 4. PAYMENT  (weight = 0.15)
#    Latest subscription status, plus an independent expiry warning
# ═══════════════════════════════════════════════════════════════
def score_payment(
    metrics: PaymentMetrics,
    now: datetime,
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> ComponentResult:
    result = ComponentResult("payment", config.missing_subscription_score)
    status_scores = dict(config.payment_status_scores)
    status = metrics.subscription_status

    if status not in status_scores:
        # No subscription, or a status we do not recognise
        result.risk_factors.append(RiskFactor(
            type="no_subscription",
            severity=Severity.MEDIUM,
            description="No active subscription",
            impact="Limited product access",
        ))
    else:
        result.score = status_scores[status]

    if status == "past_due":
        result.risk_factors.append(RiskFactor(
            type="payment_past_due",
            severity=Severity.HIGH,
            description="Payment is past due",
            impact="High churn risk",
        ))
        result.recommendations.append(Recommendation(
            priority=Priority.HIGH,
            action="Contact customer about payment issue",
            rationale="Past due payments indicate financial issues or dissatisfaction",
            expected_impact="Resolve payment and retain customer",
        ))
    elif status == "canceled":
        result.risk_factors.append(RiskFactor(
            type="subscription_canceled",
            severity=Severity.CRITICAL,
            description="Subscription has been canceled",
            impact="Customer churned",
        ))
    elif status == "incomplete":
        result.risk_factors.append(RiskFactor(
            type="incomplete_subscription",
            severity=Severity.HIGH,
            description="Subscription setup incomplete",
            impact="Onboarding not completed",
        ))

    if metrics.current_period_end is not None:
        days_until_expiry = whole_days((metrics.current_period_end - now).total_seconds())
        # Less than a full day left does not warn
        if 0 < days_until_expiry <= config.expiry_warning_days:
            result.risk_factors.append(RiskFactor(
                type="subscription_expiring",
                severity=Severity.MEDIUM,
                description=f"Subscription expires in {days_until_expiry} days",
                impact="Renewal risk",
            ))
            result.recommendations.append(Recommendation(
                priority=Priority.MEDIUM,
                action="Proactive renewal outreach",
                rationale="Subscription expiring soon",
                expected_impact="Ensure smooth renewal",
            ))

    return result


# ═══════════════════════════════════════════════════════════════
# Status tier
# ═══════════════════════════════════════════════════════════════
def determine_health_status(overall_score: int, config: HealthScoreConfig = DEFAULT_CONFIG) -> HealthStatus:
    if overall_score >= config.excellent_threshold:
        return HealthStatus.EXCELLENT
    if overall_score >= config.healthy_threshold:
        return HealthStatus.HEALTHY
    if overall_score >= config.at_risk_threshold:
        return HealthStatus.AT_RISK
    return HealthStatus.CRITICAL
