# File: tradedesk/core/exceptions.py

from datetime import datetime
from typing import Any, Dict, List, Optional


class TradeDeskException(Exception):
    """Base exception for all TradeDesk errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a TradeDesk exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(TradeDeskException):
    """Base exception for domain-related errors."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# Estimate-related exceptions
class EstimateException(TradeDeskException):
    """Base exception for estimate-related errors."""

    CODE_PREFIX = "ESTIMATE_"


class EstimateAlreadyConvertedException(EstimateException):
    """Raised when an estimate has already been turned into a job."""

    def __init__(self, estimate_id: str, job_id: Optional[str] = None):
        details = {"estimate_id": estimate_id}
        if job_id is not None:
            details["job_id"] = job_id
        super().__init__(
            "Estimate already converted",
            f"{self.CODE_PREFIX}001",
            details,
        )


# Ledger-related exceptions
class LedgerException(TradeDeskException):
    """Base exception for stock ledger errors."""

    CODE_PREFIX = "LEDGER_"


class LedgerInconsistencyException(LedgerException):
    """
    Raised when an item's balance and its audit trail do not agree, or when
    the paired balance/audit write could not be completed together.
    """

    def __init__(self, inventory_id: str, message: str, details: Optional[Dict[str, Any]] = None):
        payload = {"inventory_id": inventory_id}
        payload.update(details or {})
        super().__init__(message, f"{self.CODE_PREFIX}001", payload)


# Validation exceptions
class ValidationException(TradeDeskException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Concurrency exceptions
class ConcurrentModificationException(TradeDeskException):
    """Raised when a concurrent modification is detected."""

    def __init__(
        self,
        message: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        details = {}
        if expected_version is not None:
            details["expected_version"] = expected_version
        if actual_version is not None:
            details["actual_version"] = actual_version
        super().__init__(message, "CONCURRENCY_001", details)


# Security exceptions
class SecurityException(TradeDeskException):
    """Base exception for security-related errors."""

    CODE_PREFIX = "SECURITY_"


class UnauthorizedException(SecurityException):
    """Raised when a caller could not be authenticated."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, f"{self.CODE_PREFIX}001", {})


# Integration exceptions
class IntegrationException(TradeDeskException):
    """Base exception for failures of collaborating systems."""

    CODE_PREFIX = "INTEGRATION_"


class UpstreamUnavailableException(IntegrationException):
    """Raised when the entity store could not be reached or timed out. Retryable."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        super().__init__(
            f"Entity store unavailable during {operation}",
            f"{self.CODE_PREFIX}001",
            {"operation": operation, "reason": reason, "retryable": True},
        )


# Business rule exceptions
class BusinessRuleException(TradeDeskException):
    """Raised when an operation would violate a business rule."""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, rule or "BUSINESS_RULE_001", details)


class InvalidStatusTransitionException(BusinessRuleException):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, message: str, allowed_transitions: Optional[List[str]] = None):
        super().__init__(
            message,
            "INVALID_STATUS_TRANSITION",
            {"allowed_transitions": allowed_transitions or []},
        )
