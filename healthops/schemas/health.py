"""
Health score payloads.

HealthScoreResult is what the engine returns; HealthSnapshot is the persisted,
dated form that reporting surfaces read back by company and date range.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    CRITICAL = "critical"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskFactor(BaseModel):
    """Derived observation explaining a depressed score component."""
    type: str
    severity: Severity
    description: str
    impact: str


class Recommendation(BaseModel):
    priority: Priority
    action: str
    rationale: str
    expected_impact: str


class HealthScoreResult(BaseModel):
    company_id: str
    overall_score: int = Field(ge=0, le=100)
    engagement_score: int = Field(ge=0, le=100)
    product_usage_score: int = Field(ge=0, le=100)
    support_score: int = Field(ge=0, le=100)
    payment_score: int = Field(ge=0, le=100)
    health_status: HealthStatus
    risk_factors: list[RiskFactor] = []
    recommendations: list[Recommendation] = []

    def snapshot_values(self) -> dict:
        """Column values for a health_snapshot row (calculated_at is added by the caller)."""
        return self.model_dump(mode="json")


class HealthSnapshot(HealthScoreResult):
    id: str
    calculated_at: datetime


class HealthHistoryPoint(BaseModel):
    calculated_at: datetime
    overall_score: int
    health_status: HealthStatus


class CompanyHealthResponse(BaseModel):
    company_id: str
    current_score: HealthSnapshot
    history: list[HealthHistoryPoint] = []


class HealthScoreListResponse(BaseModel):
    scores: list[HealthSnapshot]
    total: int
    limit: int
    offset: int


class HealthCalculateRequest(BaseModel):
    """POST /v1/health/calculate. Omit company_id to recalculate every active company."""
    company_id: Optional[str] = None


class HealthCalculateResult(BaseModel):
    company_id: str
    snapshot_id: str
    overall_score: int
    health_status: HealthStatus
    action: str = Field(description="created | updated")


class HealthCalculateError(BaseModel):
    company_id: str
    error_message: str


class HealthCalculateResponse(BaseModel):
    success: bool
    snapshot_date: date
    calculated: int
    failed: int
    results: list[HealthCalculateResult] = []
    errors: list[HealthCalculateError] = []
