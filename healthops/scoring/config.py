"""
Health score model constants.

Held in one frozen value so tests and callers can override individual
weights or thresholds with dataclasses.replace() instead of patching
module-level literals.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class HealthScoreConfig:
    # ── Component weights (must sum to 1.0) ──
    engagement_weight: float = 0.35
    product_usage_weight: float = 0.30
    support_weight: float = 0.20
    payment_weight: float = 0.15

    # ── Status tiers (lower bound inclusive) ──
    excellent_threshold: int = 80
    healthy_threshold: int = 60
    at_risk_threshold: int = 40

    # ── Time windows (days) ──
    active_window_days: int = 30
    login_window_days: int = 7
    expiry_warning_days: int = 7

    # ── Engagement ──
    login_action: str = "admin.login"
    low_active_ratio: float = 0.20
    inactive_days: int = 7
    critical_inactive_days: int = 14
    min_weekly_logins: int = 3
    # (max days since last activity, points), first match wins
    recency_tiers: tuple[tuple[int, int], ...] = field(
        default=((0, 25), (1, 20), (3, 15), (7, 10), (14, 5)),
    )

    # ── Payment: subscription status → score ──
    payment_status_scores: tuple[tuple[str, int], ...] = field(
        default=(
            ("active", 100),
            ("trialing", 90),
            ("past_due", 40),
            ("canceled", 0),
            ("incomplete", 30),
        ),
    )
    missing_subscription_score: int = 50

    # ── Support ──
    support_placeholder_score: int = 100

    def __post_init__(self):
        total = (
            self.engagement_weight
            + self.product_usage_weight
            + self.support_weight
            + self.payment_weight
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Component weights must sum to 1.0, got {total}")


DEFAULT_CONFIG = HealthScoreConfig()
