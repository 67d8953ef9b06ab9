"""
Tests for the recovery error handling system.
"""

import json
import logging
import unittest
from datetime import datetime
from unittest.mock import Mock

from .errors import (
    StandardError, ErrorCode, Severity,
    new_address_unavailable_error, new_backup_invalid_error,
    new_transport_error, new_pod_stuck_error, new_validation_error,
    new_kubernetes_error, new_poll_timeout_error, new_cancelled_error,
    is_code, is_retryable, get_code, get_severity, wrap_error,
    ErrorHandler, ErrorFormatter
)


class TestStandardError(unittest.TestCase):
    """Test StandardError functionality."""

    def test_basic_error(self):
        """Test basic error creation."""
        err = StandardError(
            ErrorCode.BACKUP_INVALID,
            "snapshot",
            "validate",
            "snapshot is empty"
        )

        self.assertEqual(err.code, ErrorCode.BACKUP_INVALID)
        self.assertEqual(err.component, "snapshot")
        self.assertEqual(err.operation, "validate")
        self.assertEqual(err.message, "snapshot is empty")
        self.assertEqual(err.severity, Severity.CRITICAL)
        self.assertFalse(err.retryable)
        self.assertIsInstance(err.timestamp, datetime)

    def test_error_with_cause(self):
        """Test error with underlying cause."""
        cause = ConnectionError("connection refused")
        err = new_transport_error("sync_states", "http://10.0.0.1:8181/onos", cause)

        self.assertEqual(err.code, ErrorCode.TRANSPORT)
        self.assertEqual(err.cause, cause)
        self.assertTrue(err.retryable)
        self.assertEqual(err.severity, Severity.MEDIUM)
        self.assertIn("connection refused", str(err))
        self.assertEqual(err.context["url"], "http://10.0.0.1:8181/onos")

    def test_error_serialization(self):
        """Test error serialization."""
        err = new_pod_stuck_error("sona-onos-1", "pod not Running").with_context("attempts", 12)

        data = err.to_dict()
        self.assertEqual(data["code"], "POD_STUCK")
        self.assertEqual(data["component"], "lifecycle")
        self.assertEqual(data["context"]["pod"], "sona-onos-1")
        self.assertEqual(data["context"]["attempts"], 12)

        decoded = json.loads(err.to_json())
        self.assertEqual(decoded["severity"], "CRITICAL")


class TestConvenienceFunctions(unittest.TestCase):
    """Test convenience functions for creating errors."""

    def test_new_address_unavailable_error(self):
        err = new_address_unavailable_error("sona-onos-0", "no IP assigned")
        self.assertEqual(err.code, ErrorCode.ADDRESS_UNAVAILABLE)
        self.assertEqual(err.component, "directory")
        self.assertEqual(err.context["pod"], "sona-onos-0")

    def test_new_backup_invalid_error(self):
        err = new_backup_invalid_error("network-cfg.json", "snapshot missing")
        self.assertEqual(err.code, ErrorCode.BACKUP_INVALID)
        self.assertEqual(err.context["path"], "network-cfg.json")
        self.assertFalse(err.retryable)

    def test_new_poll_timeout_error(self):
        err = new_poll_timeout_error("pod sona-onos-2 Running", 30.0, 6)
        self.assertEqual(err.code, ErrorCode.POLL_TIMEOUT)
        self.assertIn("30s", err.message)
        self.assertEqual(err.context["attempts"], 6)

    def test_wrap_error(self):
        original_err = ValueError("original error")
        wrapped_err = wrap_error(original_err, ErrorCode.KUBERNETES_API, "kubectl", "delete_pod", "delete failed")

        self.assertEqual(wrapped_err.code, ErrorCode.KUBERNETES_API)
        self.assertEqual(wrapped_err.cause, original_err)


class TestErrorHelpers(unittest.TestCase):
    """Test error helper functions."""

    def test_is_code(self):
        err = new_backup_invalid_error("cfg.json", "empty")
        self.assertTrue(is_code(err, ErrorCode.BACKUP_INVALID))
        self.assertFalse(is_code(err, ErrorCode.VALIDATION))
        self.assertFalse(is_code(ValueError("regular error"), ErrorCode.BACKUP_INVALID))

    def test_is_retryable(self):
        self.assertTrue(is_retryable(new_kubernetes_error("list_pods", "API timeout")))
        self.assertFalse(is_retryable(new_validation_error("config", "port", "invalid port")))
        self.assertFalse(is_retryable(ValueError("regular error")))

    def test_get_code(self):
        self.assertEqual(get_code(new_cancelled_error("run")), ErrorCode.CANCELLED)
        self.assertEqual(get_code(ValueError("regular error")), ErrorCode.UNKNOWN)

    def test_get_severity(self):
        self.assertEqual(get_severity(new_pod_stuck_error("p", "stuck")), Severity.CRITICAL)
        self.assertEqual(get_severity(new_validation_error("config", "field", "bad")), Severity.LOW)
        self.assertEqual(get_severity(KeyError("x")), Severity.MEDIUM)


class TestErrorHandler(unittest.TestCase):
    """Test ErrorHandler functionality."""

    def setUp(self):
        self.logger = Mock(spec=logging.Logger)
        self.handler = ErrorHandler("recovery", self.logger)

    def test_handle_standard_error(self):
        original_err = new_backup_invalid_error("cfg.json", "empty")
        handled_err = self.handler.handle(original_err, "backup")

        self.assertIs(handled_err, original_err)
        self.logger.error.assert_called_once()

    def test_handle_regular_error(self):
        regular_err = RuntimeError("boom")
        handled_err = self.handler.handle(regular_err, "run")

        self.assertEqual(handled_err.code, ErrorCode.UNKNOWN)
        self.assertEqual(handled_err.component, "recovery")
        self.assertEqual(handled_err.cause, regular_err)
        self.logger.warning.assert_called_once()

    def test_log_level_follows_severity(self):
        self.handler.handle(new_cancelled_error("run"), "run")
        self.logger.info.assert_called_once()
        _, kwargs = self.logger.info.call_args
        self.assertEqual(kwargs["extra"]["error_code"], "CANCELLED")

    def test_handler_without_logger(self):
        handler = ErrorHandler("recovery")
        err = handler.handle(ValueError("x"), "run")
        self.assertEqual(err.code, ErrorCode.UNKNOWN)


class TestErrorFormatter(unittest.TestCase):
    """Test ErrorFormatter functionality."""

    def setUp(self):
        self.formatter = ErrorFormatter()

    def test_to_user_friendly_with_user_message(self):
        err = new_pod_stuck_error("sona-onos-0", "stuck").with_user_message("Pod sona-onos-0 is stuck.")
        self.assertEqual(self.formatter.to_user_friendly(err), "Pod sona-onos-0 is stuck.")

    def test_to_user_friendly_by_code(self):
        err = new_backup_invalid_error("cfg.json", "empty")
        self.assertEqual(
            self.formatter.to_user_friendly(err),
            "Failed to backup node config file. No pod was touched."
        )

    def test_to_user_friendly_regular_error(self):
        self.assertEqual(self.formatter.to_user_friendly(ValueError("x")), "An error occurred during recovery.")


class TestSeverityMapping(unittest.TestCase):
    """Test severity and retryable mapping for error codes."""

    def test_severity_mapping(self):
        test_cases = [
            (ErrorCode.BACKUP_INVALID, Severity.CRITICAL),
            (ErrorCode.POD_STUCK, Severity.CRITICAL),
            (ErrorCode.ADDRESS_UNAVAILABLE, Severity.HIGH),
            (ErrorCode.KUBERNETES_API, Severity.HIGH),
            (ErrorCode.TRANSPORT, Severity.MEDIUM),
            (ErrorCode.VALIDATION, Severity.LOW),
            (ErrorCode.UNKNOWN, Severity.MEDIUM),
        ]

        for code, expected_severity in test_cases:
            with self.subTest(code=code):
                err = StandardError(code, "test", "test", "test")
                self.assertEqual(err.severity, expected_severity)

    def test_retryable_mapping(self):
        test_cases = [
            (ErrorCode.TRANSPORT, True),
            (ErrorCode.KUBERNETES_API, True),
            (ErrorCode.POD_STUCK, True),
            (ErrorCode.BACKUP_INVALID, False),
            (ErrorCode.CONFIGURATION, False),
            (ErrorCode.CANCELLED, False),
        ]

        for code, expected_retryable in test_cases:
            with self.subTest(code=code):
                err = StandardError(code, "test", "test", "test")
                self.assertEqual(err.retryable, expected_retryable)


if __name__ == '__main__':
    unittest.main()
