"""
Bulk operation payloads.

Operation parameters are one typed record per (entity_type, operation) pair;
the processor looks the pair up in its operation table and validates the raw
parameter map against that record for every item.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, StrictBool


class EntityType(str, Enum):
    LEAD = "lead"
    COMPANY = "company"
    SUBSCRIPTION = "subscription"


class BulkOperationStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


# ── Parameter records ──

class OperationParams(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NoParams(OperationParams):
    pass


class ChangeStatusParams(OperationParams):
    status: str = Field(min_length=1)


class TagParams(OperationParams):
    tags: list[str]


class AssignParams(OperationParams):
    assignee_id: str = Field(min_length=1)


class DeleteParams(OperationParams):
    # Strict: only a literal boolean true confirms a hard delete
    confirm: Optional[StrictBool] = None


class AddNoteParams(OperationParams):
    note: str = Field(min_length=1)
    created_by: Optional[str] = None


class AssignCSManagerParams(OperationParams):
    cs_manager_id: str = Field(min_length=1)


class ChangePlanParams(OperationParams):
    plan_id: str = Field(min_length=1)
    # Accepted for API compatibility; plan changes always apply immediately without proration
    effective_date: Optional[date] = None
    prorate: Optional[bool] = None


class ChangeBillingCycleParams(OperationParams):
    billing_cycle: BillingCycle
    effective_date: Optional[date] = None


class ExtendNextBillingParams(OperationParams):
    days: int


# ── Request / response ──

class ErrorDetail(BaseModel):
    entity_id: str
    error_message: str


class BulkOperationRequest(BaseModel):
    """POST /v1/bulk/{entity_type}"""
    operation: str = Field(min_length=1)
    entity_ids: list[str] = Field(min_length=1)
    parameters: dict[str, Any] = {}
    executed_by: str = Field(min_length=1, description="Actor id of the operator")


class BulkOperationResponse(BaseModel):
    success: bool
    operation_id: str
    total_count: int
    success_count: int
    failed_count: int
    errors: Optional[list[ErrorDetail]] = None
    message: str


class BulkOperationLog(BaseModel):
    id: str
    entity_type: str
    operation: str
    entity_ids: list[str]
    parameters: dict[str, Any] = {}
    total_count: int
    success_count: int
    failed_count: int
    error_details: list[ErrorDetail] = []
    status: BulkOperationStatus
    executed_by: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class BulkOperationsListResponse(BaseModel):
    operations: list[BulkOperationLog]
    total: int
    limit: int
    offset: int
