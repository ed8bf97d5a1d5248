"""
Data Anonymization - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exceptions raised by the anonymization engine.

- Provides a small, explicit exception hierarchy
- Carries context for debugging and audit
- Wraps collaborator (record/log store) failures

============================================================
EXCEPTION HIERARCHY
============================================================
AnonymizationError (base)
├── ConfigurationError
│   └── InvalidConfigError
├── InvalidAnonymizationRequest
└── StoreError
    ├── RecordStoreError
    └── LogStoreError

Unknown privacy methods and empty data types are NOT errors.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for operators."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# BASE EXCEPTION
# ============================================================

class AnonymizationError(Exception):
    """
    Base exception for all anonymization errors.

    All exceptions carry:
    - severity: for alerting
    - context: for debugging
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(AnonymizationError):
    """Error in engine configuration."""

    default_severity = Severity.HIGH


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            context={
                "config_key": key,
                "actual_value": str(value)[:100],
                "reason": reason,
            },
        )
        self.key = key


# ============================================================
# REQUEST ERRORS
# ============================================================

class InvalidAnonymizationRequest(AnonymizationError):
    """The anonymization request failed validation."""

    default_severity = Severity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        super().__init__(message, context=context, **kwargs)
        self.field = field


# ============================================================
# COLLABORATOR ERRORS
# ============================================================

class StoreError(AnonymizationError):
    """A record store or log store call failed."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        operation: str,
        cause: Optional[Exception] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        context["operation"] = operation
        super().__init__(message, context=context, cause=cause, **kwargs)
        self.operation = operation


class RecordStoreError(StoreError):
    """Fetching original records failed."""


class LogStoreError(StoreError):
    """Appending or querying the anonymization log failed."""
