"""
ORM tables behind SQLAlchemyStore.

Entity tables (leads, companies, subscriptions) are owned by the wider product;
this service only touches the columns its operations name. health_scores and
bulk_operation_logs are owned here.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# ── Entities mutated by bulk operations ──

class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=True)
    slug = Column(String(200), nullable=True)
    status = Column(String(30), nullable=True, index=True)
    tags = Column(JSON, nullable=True)
    cs_manager_id = Column(String(36), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    def __repr__(self):
        return f"<Company {self.id} status={self.status}>"


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=True, index=True)
    name = Column(String(200), nullable=True)
    email = Column(String(320), nullable=True)
    status = Column(String(30), nullable=True)
    tags = Column(JSON, nullable=True)
    assigned_to = Column(String(36), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False, index=True)

    def __repr__(self):
        return f"<Lead {self.id} status={self.status}>"


class Subscription(Base):
    __tablename__ = "company_subscriptions"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=True, index=True)
    plan_id = Column(String(36), nullable=True)
    status = Column(String(30), nullable=True)
    billing_cycle = Column(String(20), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    next_billing_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    def __repr__(self):
        return f"<Subscription {self.id} status={self.status}>"


# ── Engine inputs (read-only here) ──

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False, index=True)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class ActivityEvent(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=True)
    action = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_company_created", "company_id", "created_at"),
    )


class LandingPage(Base):
    __tablename__ = "landing_pages"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    status = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class FeatureUsage(Base):
    __tablename__ = "feature_usage"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False, index=True)
    feature_key = Column(String(100), nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


# ── Owned by this service ──

class HealthScoreSnapshot(Base):
    """One row per company per calendar day; same-day recalculation updates in place."""
    __tablename__ = "health_scores"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False)

    overall_score = Column(Integer, nullable=False)
    engagement_score = Column(Integer, nullable=False)
    product_usage_score = Column(Integer, nullable=False)
    support_score = Column(Integer, nullable=False)
    payment_score = Column(Integer, nullable=False)
    health_status = Column(String(20), nullable=False)

    risk_factors = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)

    calculated_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    __table_args__ = (
        Index("ix_health_scores_company_calculated", "company_id", "calculated_at"),
    )

    def __repr__(self):
        return f"<HealthScoreSnapshot {self.company_id} {self.calculated_at} score={self.overall_score}>"


class BulkOperationLog(Base):
    __tablename__ = "bulk_operation_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    entity_type = Column(String(20), nullable=False, index=True)
    operation = Column(String(50), nullable=False, index=True)
    entity_ids = Column(JSON, nullable=False)
    parameters = Column(JSON, nullable=False, default=dict)

    total_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    error_details = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, index=True)
    executed_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<BulkOperationLog {self.id} {self.entity_type}.{self.operation} status={self.status}>"


COLLECTION_MODELS: dict[str, type[Base]] = {
    "lead": Lead,
    "company": Company,
    "subscription": Subscription,
    "health_snapshot": HealthScoreSnapshot,
    "operation_log": BulkOperationLog,
    "user": Profile,
    "activity_event": ActivityEvent,
    "landing_page": LandingPage,
    "feature_usage": FeatureUsage,
}
