"""
Standardized error handling for the recovery orchestrator.

Every failure the orchestrator can report is a StandardError carrying an
ErrorCode; severity and retryability are derived from the code.
"""

import json
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(Enum):
    """Error classification codes."""

    # Topology / platform errors
    ADDRESS_UNAVAILABLE = "ADDRESS_UNAVAILABLE"
    KUBERNETES_API = "KUBERNETES_API"
    POD_STUCK = "POD_STUCK"

    # Controller API errors
    TRANSPORT = "TRANSPORT"
    APP_NOT_ACTIVATED = "APP_NOT_ACTIVATED"

    # Snapshot errors
    BACKUP_INVALID = "BACKUP_INVALID"

    # Configuration errors
    CONFIGURATION = "CONFIGURATION"
    VALIDATION = "VALIDATION"

    # Run control
    POLL_TIMEOUT = "POLL_TIMEOUT"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


class Severity(Enum):
    """Error severity levels."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class StandardError(Exception):
    """Standardized error with rich context."""

    def __init__(
        self,
        code: ErrorCode,
        component: str,
        operation: str,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None
    ):
        self.code = code
        self.component = component
        self.operation = operation
        self.message = message
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)
        self.stack_trace = traceback.format_exc()
        self.user_message = user_message

        self.severity = self._get_severity_for_code(code)
        self.retryable = self._is_retryable_code(code)

        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message."""
        if self.cause:
            return f"[{self.code.value}] {self.message}: {str(self.cause)}"
        return f"[{self.code.value}] {self.message}"

    def _get_severity_for_code(self, code: ErrorCode) -> Severity:
        """Map error codes to default severity levels."""
        critical_codes = {ErrorCode.BACKUP_INVALID, ErrorCode.POD_STUCK}
        high_codes = {
            ErrorCode.ADDRESS_UNAVAILABLE, ErrorCode.APP_NOT_ACTIVATED,
            ErrorCode.KUBERNETES_API, ErrorCode.CONFIGURATION
        }
        medium_codes = {ErrorCode.TRANSPORT, ErrorCode.POLL_TIMEOUT}
        low_codes = {ErrorCode.VALIDATION, ErrorCode.CANCELLED}

        if code in critical_codes:
            return Severity.CRITICAL
        elif code in high_codes:
            return Severity.HIGH
        elif code in medium_codes:
            return Severity.MEDIUM
        elif code in low_codes:
            return Severity.LOW
        else:
            return Severity.MEDIUM

    def _is_retryable_code(self, code: ErrorCode) -> bool:
        """Determine if an error code represents a retryable operation.

        A retryable error means re-invoking the whole recovery may
        succeed; nothing inside a single run retries on this flag.
        """
        retryable_codes = {
            ErrorCode.TRANSPORT, ErrorCode.KUBERNETES_API,
            ErrorCode.ADDRESS_UNAVAILABLE, ErrorCode.POLL_TIMEOUT,
            ErrorCode.POD_STUCK, ErrorCode.APP_NOT_ACTIVATED
        }
        return code in retryable_codes

    def with_context(self, key: str, value: Any) -> 'StandardError':
        """Add context to the error."""
        self.context[key] = value
        return self

    def with_user_message(self, message: str) -> 'StandardError':
        """Set a user-friendly message."""
        self.user_message = message
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            'code': self.code.value,
            'message': self.message,
            'severity': self.severity.value,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
            'component': self.component,
            'operation': self.operation,
            'retryable': self.retryable,
            'user_message': self.user_message,
            'cause': str(self.cause) if self.cause else None
        }

    def to_json(self) -> str:
        """Convert error to JSON representation."""
        return json.dumps(self.to_dict(), indent=2)


# Convenience functions for the recovery error taxonomy
def new_address_unavailable_error(pod_name: str, message: str, cause: Exception = None) -> StandardError:
    """Create an error for a pod whose IP address cannot be resolved."""
    return StandardError(
        ErrorCode.ADDRESS_UNAVAILABLE, "directory", "resolve", message, cause
    ).with_context("pod", pod_name)


def new_backup_invalid_error(path: str, message: str) -> StandardError:
    """Create the fail-fast error for a missing or empty snapshot."""
    return StandardError(
        ErrorCode.BACKUP_INVALID, "snapshot", "validate", message
    ).with_context("path", path)


def new_transport_error(operation: str, url: str, cause: Exception = None) -> StandardError:
    """Create an HTTP transport error."""
    return StandardError(
        ErrorCode.TRANSPORT, "controller", operation, f"request to {url} failed", cause
    ).with_context("url", url)


def new_pod_stuck_error(pod_name: str, message: str, cause: Exception = None) -> StandardError:
    """Create an error for a pod that never came back Running."""
    return StandardError(
        ErrorCode.POD_STUCK, "lifecycle", "wait_until_recreated", message, cause
    ).with_context("pod", pod_name)


def new_app_not_activated_error(address: str, message: str, cause: Exception = None) -> StandardError:
    """Create an error for a controller whose apps never activated."""
    return StandardError(
        ErrorCode.APP_NOT_ACTIVATED, "readiness", "wait_until_activated", message, cause
    ).with_context("address", address)


def new_kubernetes_error(operation: str, message: str, cause: Exception = None) -> StandardError:
    """Create Kubernetes API errors."""
    return StandardError(ErrorCode.KUBERNETES_API, "kubernetes", operation, message, cause)


def new_configuration_error(operation: str, message: str, cause: Exception = None) -> StandardError:
    """Create configuration-related errors."""
    return StandardError(ErrorCode.CONFIGURATION, "config", operation, message, cause)


def new_validation_error(component: str, field: str, message: str) -> StandardError:
    """Create validation errors."""
    return StandardError(ErrorCode.VALIDATION, component, "validation", message).with_context("field", field)


def new_poll_timeout_error(description: str, deadline: float, attempts: int) -> StandardError:
    """Create an error for a poll loop that ran past its deadline."""
    return StandardError(
        ErrorCode.POLL_TIMEOUT, "polling", "poll_until",
        f"{description} not satisfied within {deadline:g}s"
    ).with_context("attempts", attempts)


def new_cancelled_error(operation: str) -> StandardError:
    """Create the error raised when an operator cancels the run."""
    return StandardError(ErrorCode.CANCELLED, "recovery", operation, "recovery cancelled by operator")


# Utility functions
def is_code(error: Exception, code: ErrorCode) -> bool:
    """Check if an error has a specific error code."""
    if isinstance(error, StandardError):
        return error.code == code
    return False


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, StandardError):
        return error.retryable
    return False


def get_code(error: Exception) -> ErrorCode:
    """Extract the error code from an error."""
    if isinstance(error, StandardError):
        return error.code
    return ErrorCode.UNKNOWN


def get_severity(error: Exception) -> Severity:
    """Extract the severity from an error."""
    if isinstance(error, StandardError):
        return error.severity
    return Severity.MEDIUM


def wrap_error(error: Exception, code: ErrorCode, component: str, operation: str, message: str) -> StandardError:
    """Wrap an existing error with standardized context."""
    return StandardError(code, component, operation, message, error)


class ErrorHandler:
    """Centralized error handling and logging."""

    def __init__(self, component: str, logger=None):
        self.component = component
        self.logger = logger

    def handle(self, error: Exception, operation: str) -> StandardError:
        """Process and log a standardized error."""
        std_err = self.to_standard_error(error, operation)
        self._log_error(std_err)
        return std_err

    def to_standard_error(self, error: Exception, operation: str) -> StandardError:
        """Convert any error to a StandardError."""
        if isinstance(error, StandardError):
            return error

        return wrap_error(error, ErrorCode.UNKNOWN, self.component, operation, "unexpected error")

    def _log_error(self, error: StandardError) -> None:
        """Log the error based on its severity."""
        if not self.logger:
            return

        log_data = {
            'error_code': error.code.value,
            'severity': error.severity.value,
            'retryable': error.retryable,
            'timestamp': error.timestamp.isoformat(),
            'context': error.context
        }

        if error.severity in [Severity.CRITICAL, Severity.HIGH]:
            self.logger.error(f"{error.operation}: {error}", extra=log_data, exc_info=error.cause)
        elif error.severity == Severity.MEDIUM:
            self.logger.warning(f"{error.operation}: {error}", extra=log_data)
        else:
            self.logger.info(f"{error.operation}: {error}", extra=log_data)


class ErrorFormatter:
    """Error formatting utilities."""

    def to_user_friendly(self, error: Exception) -> str:
        """Convert an error to an operator-facing message."""
        if isinstance(error, StandardError) and error.user_message:
            return error.user_message

        if isinstance(error, StandardError):
            code_messages = {
                ErrorCode.BACKUP_INVALID: "Failed to backup node config file. No pod was touched.",
                ErrorCode.ADDRESS_UNAVAILABLE: "Could not resolve a controller pod address. Is the pod running?",
                ErrorCode.POD_STUCK: "A SONA pod did not come back Running in time. Re-run the recovery once the pod is healthy.",
                ErrorCode.APP_NOT_ACTIVATED: "SONA apps did not activate in time. Re-run the recovery once the controller is up.",
                ErrorCode.CONFIGURATION: "Invalid recovery configuration.",
                ErrorCode.KUBERNETES_API: "kubectl call failed. Check cluster access.",
                ErrorCode.CANCELLED: "Recovery cancelled.",
            }
            return code_messages.get(error.code, "An unexpected error occurred during recovery.")

        return "An error occurred during recovery."


# Default formatter instance
error_formatter = ErrorFormatter()
