"""
Unity ERP - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes so business-rule
rejections can be told apart from transport/persistence failures.

Usage:
    from unity_erp.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Order", order_id)
    raise ValidationError("Quantity must be greater than zero", field="quantity")
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class UnityException(Exception):
    """
    Base exception for all Unity ERP errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "UNITY_ERROR"
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


class ValidationError(UnityException):
    """Raised when input validation fails."""

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


class NotFoundError(UnityException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(UnityException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
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


class InsufficientInventoryError(BusinessRuleError):
    """Raised when there's not enough inventory."""

    error_code = "INSUFFICIENT_INVENTORY"

    def __init__(
        self,
        component_code: str,
        *,
        requested: Decimal,
        available: Decimal,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["component"] = component_code
        details["requested"] = str(requested)
        details["available"] = str(available)
        message = f"Insufficient stock for {component_code}. Available: {available}, Requested: {requested}"
        super().__init__(message, details=details)


class ReversalQuantityError(BusinessRuleError):
    """Raised when a reversal asks for more than is left on the issuance."""

    error_code = "REVERSAL_EXCEEDS_REMAINING"

    def __init__(
        self,
        issuance_id: int,
        *,
        requested: Decimal,
        remaining: Decimal,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["issuance_id"] = issuance_id
        details["requested"] = str(requested)
        details["remaining"] = str(remaining)
        message = (
            f"Cannot reverse {requested} units from issuance {issuance_id}: "
            f"only {remaining} remain issued"
        )
        super().__init__(message, details=details)


class DraftStatusNotFoundError(BusinessRuleError):
    """Raised when the supplier order status used for new purchase orders is missing."""

    error_code = "DRAFT_STATUS_NOT_FOUND"

    def __init__(
        self,
        status_name: str = "Draft",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["status_name"] = status_name
        super().__init__(f"{status_name} status not found", details=details)
