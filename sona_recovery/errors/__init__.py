from .errors import (
    ErrorCode,
    Severity,
    StandardError,
    ErrorHandler,
    ErrorFormatter,
    error_formatter,
    new_address_unavailable_error,
    new_backup_invalid_error,
    new_transport_error,
    new_pod_stuck_error,
    new_app_not_activated_error,
    new_kubernetes_error,
    new_configuration_error,
    new_validation_error,
    new_poll_timeout_error,
    new_cancelled_error,
    is_code,
    is_retryable,
    get_code,
    get_severity,
    wrap_error,
)
