"""
Exception hierarchy shared by the engine, the bulk processor and the stores.

Per-item errors (not found, validation, unknown operation, persistence) are
recovered by the bulk processor and recorded in the run log. Only
OperationLogError escapes a bulk run.
"""
from __future__ import annotations


class HealthOpsError(Exception):
    """Base class for all service errors."""


class EntityNotFoundError(HealthOpsError):
    def __init__(self, collection: str, entity_id: str):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} {entity_id} not found")


class OperationValidationError(HealthOpsError):
    """Parameters are missing, malformed or fail an operation precondition."""


class UnknownOperationError(OperationValidationError):
    def __init__(self, entity_type: str, operation: str):
        self.entity_type = entity_type
        self.operation = operation
        super().__init__(f"Unknown operation: {entity_type}.{operation}")


class PersistenceError(HealthOpsError):
    """The store rejected or failed a read/write."""


class OperationLogError(HealthOpsError):
    """The bulk operation log could not be created; the run is aborted."""
