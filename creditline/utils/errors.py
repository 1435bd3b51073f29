"""Standardized error handling for the application."""

import logging
from typing import Any, Dict, Optional, Union

# Configure logger
logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception class for all application errors."""

    def __init__(
        self,
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for API responses.

        Returns:
            Dict containing error details
        """
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def log(self, level: Optional[int] = None) -> None:
        """Log the error with appropriate level and context.

        Args:
            level: Logging level to use. Defaults to WARNING for client errors
                and ERROR for server errors.
        """
        if level is None:
            level = logging.WARNING if self.status_code < 500 else logging.ERROR
        log_context = {
            "error_type": self.__class__.__name__,
            "status_code": self.status_code,
            **self.details,
        }
        logger.log(level, f"{self.message}", extra=log_context)


# Authentication
class AuthenticationError(LedgerError):
    """Bad or missing credential."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(message=message, status_code=status_code)


class WebhookSignatureError(AuthenticationError):
    """Webhook signature missing or not matching the request body."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message=message, status_code=400)


class WebhookNotConfiguredError(AuthenticationError):
    """No webhook secret configured; webhooks are rejected."""

    def __init__(self, message: str = "Webhook secret is not configured"):
        super().__init__(message=message, status_code=500)


# Request validation
class ValidationError(LedgerError):
    """Request rejected before touching the ledger."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, details=details)


class PlanNotFoundError(ValidationError):
    """Plan id does not resolve in the catalog."""

    def __init__(self, plan_id: str):
        super().__init__(message=f"Unknown plan: {plan_id}", details={"plan_id": plan_id})


# Ledger state
class StateConflictError(LedgerError):
    """Lifecycle transition not allowed from the current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=409, details=details)


class InsufficientCreditError(LedgerError):
    """Deduction larger than the remaining balance."""

    def __init__(self, remaining_credits: Union[int, str], requested: int):
        self.remaining_credits = remaining_credits
        self.requested = requested
        super().__init__(
            message="Insufficient credits",
            status_code=402,
            details={"remainingCredits": remaining_credits, "requested": requested},
        )


class RecordNotFoundError(LedgerError):
    """No subscription record stored for the user."""

    def __init__(self, user_id: str):
        super().__init__(
            message=f"No subscription record for user {user_id}",
            status_code=404,
            details={"user_id": user_id},
        )


# Infrastructure
class StoreUnavailableError(LedgerError):
    """Subscription store could not be reached."""

    def __init__(self, message: str = "Subscription store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=503, details=details)


class BillerError(LedgerError):
    """Payment gateway call failed."""

    def __init__(self, message: str, status_code: int = 502, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status_code, details=details)


class BillerTimeoutError(BillerError):
    """Payment gateway call did not answer in time."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            message=f"Billing provider timed out during {operation}",
            status_code=504,
            details={"operation": operation, "timeout": timeout},
        )


class AnalyzerError(LedgerError):
    """Analyzer unavailable or returned an error."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message=message, status_code=status_code)
