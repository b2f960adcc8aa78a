"""
ForgeOps - Exception Hierarchy

Typed exceptions with stable error codes. Domain code raises them; the
use cases convert them into Result failures and the HTTP layer maps the
codes to status codes.

Usage:
    from forgeops.exceptions import EntityNotFoundError, ValidationError

    raise EntityNotFoundError("Product", product_id)
    raise ValidationError("Quantity must be greater than zero", field="quantity")
"""
from typing import Any, Dict, List, Optional


class ForgeOpsException(Exception):
    """
    Base exception for all ForgeOps errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "ENTITY_NOT_FOUND")
        status_code: HTTP status code to return
        details: Additional context for the caller
    """

    error_code: str = "FORGEOPS_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(ForgeOpsException):
    """Raised when input or entity invariants are violated."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class EntityNotFoundError(ForgeOpsException):
    """Raised when a referenced entity does not exist."""

    error_code = "ENTITY_NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        entity_type: str = "Entity",
        entity_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["entity_type"] = entity_type
        if entity_id is not None:
            details["entity_id"] = str(entity_id)
            message = f"{entity_type} with id {entity_id} not found"
        else:
            message = f"{entity_type} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class InvalidStatusTransitionError(ForgeOpsException):
    """Raised when a state-machine edge is not in the transition table."""

    error_code = "INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(
        self,
        entity_type: str,
        current_status: str,
        target_status: str,
        *,
        allowed: Optional[List[str]] = None,
    ):
        self.entity_type = entity_type
        self.current_status = current_status
        self.target_status = target_status
        details: Dict[str, Any] = {
            "entity_type": entity_type,
            "current_status": current_status,
            "target_status": target_status,
        }
        if allowed is not None:
            details["allowed_statuses"] = allowed
        super().__init__(
            f"Cannot transition {entity_type} from {current_status} to {target_status}",
            details=details,
        )


# ===================
# 422 Business Rule Errors
# ===================


class BusinessRuleViolationError(ForgeOpsException):
    """Raised when a domain rule fails."""

    error_code = "BUSINESS_RULE_VIOLATION"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class InsufficientMaterialError(BusinessRuleViolationError):
    """
    Raised when free stock cannot cover one or more material requirements.

    Every short component is listed, not just the first one found.
    """

    def __init__(self, shortages: List[Dict[str, Any]]):
        self.shortages = shortages
        components = ", ".join(str(s["component_id"]) for s in shortages)
        super().__init__(
            f"Insufficient stock for {len(shortages)} component(s): {components}",
            rule="material_availability",
            details={"insufficient_components": shortages},
        )


# ===================
# Use case failures
# ===================


class OperationFailedError(ForgeOpsException):
    """Carries a use case Failure to the HTTP layer with its mapped status."""

    def __init__(
        self,
        error_code: str,
        message: str,
        *,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message, details=details)
