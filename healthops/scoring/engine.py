"""
Customer Health Scoring Engine

Orchestrates:
  1. Metric collection per component (inputs.py)
  2. The four component scores (factors.py)
  3. Weighted overall score
  4. Status tier assignment
  5. Risk factor / recommendation aggregation

Called by the bulk processor (company.recalculate_health) and the health
refresh job. Persisting the result is the caller's job.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

import structlog

from healthops.core.metrics import HEALTH_CALCULATIONS, HEALTH_OVERALL_SCORE
from healthops.schemas.health import HealthScoreResult
from healthops.scoring import factors, inputs
from healthops.scoring.config import DEFAULT_CONFIG, HealthScoreConfig
from healthops.store.base import Store

logger = structlog.get_logger()


def combine_components(
    company_id: str,
    engagement: factors.ComponentResult,
    product_usage: factors.ComponentResult,
    support: factors.ComponentResult,
    payment: factors.ComponentResult,
    config: HealthScoreConfig = DEFAULT_CONFIG,
) -> HealthScoreResult:
    """
    Weighted composite of the four components.
    Risk factors and recommendations keep component order
    (engagement, usage, support, payment) and are neither de-duplicated nor sorted.
    """
    overall = factors.round_half_up(
        engagement.score * config.engagement_weight
        + product_usage.score * config.product_usage_weight
        + support.score * config.support_weight
        + payment.score * config.payment_weight
    )
    overall = max(0, min(100, overall))

    components = (engagement, product_usage, support, payment)
    return HealthScoreResult(
        company_id=company_id,
        overall_score=overall,
        engagement_score=engagement.score,
        product_usage_score=product_usage.score,
        support_score=support.score,
        payment_score=payment.score,
        health_status=factors.determine_health_status(overall, config),
        risk_factors=[rf for c in components for rf in c.risk_factors],
        recommendations=[rec for c in components for rec in c.recommendations],
    )


async def calculate_health_score(
    company_id: str,
    store: Store,
    config: HealthScoreConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> HealthScoreResult:
    """
    Main scoring entry point.
    """
    t0 = time.perf_counter_ns()
    now = now or datetime.now(timezone.utc)

    # ── Step 1: Collect + score each component ──
    engagement = factors.score_engagement(
        await inputs.collect_engagement(store, company_id, now, config), now, config,
    )
    product_usage = factors.score_product_usage(
        await inputs.collect_product_usage(store, company_id, now, config),
    )
    support = factors.score_support(config)
    payment = factors.score_payment(
        await inputs.collect_payment(store, company_id), now, config,
    )

    # ── Step 2: Composite + tier ──
    result = combine_components(company_id, engagement, product_usage, support, payment, config)

    elapsed_ms = int((time.perf_counter_ns() - t0) / 1_000_000)
    HEALTH_CALCULATIONS.labels(health_status=result.health_status.value).inc()
    HEALTH_OVERALL_SCORE.observe(result.overall_score)

    logger.info(
        "health_score_calculated",
        company_id=company_id,
        overall_score=result.overall_score,
        health_status=result.health_status.value,
        engagement=result.engagement_score,
        product_usage=result.product_usage_score,
        support=result.support_score,
        payment=result.payment_score,
        risk_factor_count=len(result.risk_factors),
        elapsed_ms=elapsed_ms,
    )
    return result
