"""
Package-level exception hierarchy for PlanSense.

All exceptions inherit from PlanSenseError, enabling:
- Catching all PlanSense errors with a single except clause
- Rich context fields for debugging (source, field, config_key, etc.)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    PlanSenseError
    ├── ParseError                 – EXPLAIN text could not be parsed
    │   ├── EmptyInputError        – Input was empty or whitespace only
    │   ├── UnsupportedFormatError – Input matched none of the known formats
    │   ├── MalformedExplainError  – Format recognised but header/data missing
    │   └── InputTooLargeError     – Input exceeds the configured size limit
    ├── InvalidValueError          – Value object rejected its input
    └── ConfigurationError         – Invalid configuration
"""

from __future__ import annotations

from typing import Any


class PlanSenseError(Exception):
    """
    Base exception for all PlanSense errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanSenseError):
    """
    Failed to parse EXPLAIN text.

    Attributes:
        source: Which stage failed (e.g. "input", "detect", "csv").
        detail: Technical details for debugging (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "unknown",
        detail: str | None = None,
    ) -> None:
        self.source = source
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        result["detail"] = self.detail
        return result


class EmptyInputError(ParseError):
    """Raised when the EXPLAIN text is empty or whitespace only."""

    def __init__(self) -> None:
        super().__init__(
            "Empty or whitespace-only EXPLAIN result provided",
            source="input",
        )


class UnsupportedFormatError(ParseError):
    """Raised when no format detector recognises the input."""

    def __init__(self, supported: list[str]) -> None:
        self.supported = list(supported)
        super().__init__(
            "Unsupported EXPLAIN format. Supported formats: "
            + ", ".join(self.supported)
            + ".",
            source="detect",
        )


class MalformedExplainError(ParseError):
    """Raised when a recognised format lacks a usable header or data rows."""


class InputTooLargeError(ParseError):
    """Raised when the EXPLAIN text exceeds the configured size limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"EXPLAIN input too large: {size:,} bytes (max {limit:,})",
            source="resource_limit",
            detail="Trim the input or raise PLANSENSE_MAX_EXPLAIN_BYTES",
        )


# ── Value Errors ─────────────────────────────────────────────────────────


class InvalidValueError(PlanSenseError, ValueError):
    """
    A value object was constructed with a value outside its domain.

    Attributes:
        field: Name of the value object or field (e.g. "access type").
        value: The rejected value.
    """

    def __init__(self, field: str, value: Any, message: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid {field}: {value}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        result["value"] = self.value
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(PlanSenseError):
    """
    Error in configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
