"""Prohori Exception Hierarchy.

Exception types shared by the Prohori packages, each carrying rich context
for logging, metrics and API error bodies.

Exception Hierarchy:
    ProhoriException (base)
    ├── ConfigurationError
    └── FeedException
        ├── SourceUnavailable
        ├── InvalidRecord
        ├── InvalidQuery
        └── SchedulerFault

All exceptions include rich context:
- error_code: Unique error identifier
- source: Name of the source or component that raised the error
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from prohori.exceptions import InvalidQuery
    >>> raise InvalidQuery(
    ...     message="Latitude out of range",
    ...     context={"lat": 91.0, "lng": 92.0},
    ... )

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class ProhoriException(Exception):
    """Base exception for all Prohori errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "PH_FEED_INVALID_QUERY")
        source: Source or component that raised the error (optional)
        context: Dictionary with error-specific details
        timestamp: When the error occurred (UTC)
    """

    ERROR_PREFIX = "PH"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        source: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.source = source
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def _generate_error_code(self) -> str:
        """Generate an error code from the class name.

        Returns:
            Error code like "PH_FEED_SOURCE_UNAVAILABLE"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "source": self.source,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.source:
            parts.append(f"Source: {self.source}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"source='{self.source}')"
        )


class ConfigurationError(ProhoriException):
    """Configuration is invalid or incomplete.

    Example:
        >>> raise ConfigurationError(
        ...     message="Unknown disaster category in collection mapping",
        ...     context={"category": "meteor"}
        ... )
    """
    pass


# ==============================================================================
# Feed Exceptions
# ==============================================================================

class FeedException(ProhoriException):
    """Base exception for disaster feed errors."""
    ERROR_PREFIX = "PH_FEED"


class SourceUnavailable(FeedException):
    """A disaster source could not be read.

    Recovered locally by the aggregator: the source contributes no records
    for the cycle and the failure is logged and counted.

    Example:
        >>> raise SourceUnavailable(
        ...     message="Request timed out after 10.0s",
        ...     source="fire",
        ...     timeout_seconds=10.0,
        ... )
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize source failure.

        Args:
            message: Error message
            source: Source identifier
            context: Error context
            cause: Original exception that caused this error
            timeout_seconds: Timeout that expired, when the failure is a timeout
        """
        context = context or {}
        if cause is not None:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        if timeout_seconds is not None:
            context["timeout_seconds"] = timeout_seconds
        super().__init__(message, source=source, context=context)

    @property
    def is_timeout(self) -> bool:
        return "timeout_seconds" in self.context


class InvalidRecord(FeedException):
    """A fetched record cannot be shown to consumers.

    Filtering outcome rather than a failure; carried for diagnostics.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        record_id: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        context = context or {}
        if record_id:
            context["record_id"] = record_id
        if reason:
            context["reason"] = reason
        super().__init__(message, source=source, context=context)


class InvalidQuery(FeedException):
    """A risk assessment was requested with unusable coordinates.

    Example:
        >>> raise InvalidQuery(
        ...     message="Latitude 91.0 is outside [-90, 90]",
        ...     invalid_fields={"lat": "out of range"},
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize query error.

        Args:
            message: Error message
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
        """
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        super().__init__(message, source="risk_engine", context=context)


class SchedulerFault(FeedException):
    """An unexpected error escaped a refresh cycle.

    The scheduler loop survives it and keeps the previous snapshot.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        context = context or {}
        if cause is not None:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        super().__init__(message, source="scheduler", context=context)


# ==============================================================================
# Utilities
# ==============================================================================

def format_exception_chain(exc: BaseException) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current: Optional[BaseException] = exc

    while current is not None:
        if isinstance(current, ProhoriException):
            lines.append(str(current))
            if current.context:
                lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = current.__cause__

    return "\n".join(lines)


def is_retriable(exc: Exception) -> bool:
    """Check if exception is retriable.

    Source outages and scheduler faults are transient; bad queries,
    bad records and bad configuration are not.
    """
    if isinstance(exc, (SourceUnavailable, SchedulerFault)):
        return True
    return False


__all__ = [
    "ProhoriException",
    "ConfigurationError",
    "FeedException",
    "SourceUnavailable",
    "InvalidRecord",
    "InvalidQuery",
    "SchedulerFault",
    "format_exception_chain",
    "is_retriable",
]
