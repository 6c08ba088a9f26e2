# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""NPA Gateway error code system.

Standardized error codes and exception classes for the NPA Gateway.
Every error carries a machine-readable code, a human-readable message and a
remediation hint, so tool results stay actionable for an LLM caller.

Error Response Schema:
```json
{
  "error": {
    "code": "RESOURCE_NOT_FOUND",
    "message": "Resource not found with name: web-ap\\nDid you mean one of these?\\n- web-app (ID: 12)",
    "details": {"resource_type": "private_app", "identifier": "web-ap"},
    "suggestion": "List the resources first and retry with an exact name or ID"
  }
}
```
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NPAErrorCode(str, Enum):
    """Standard NPA Gateway error codes.

    Each code maps to a specific HTTP status and has a default suggestion.
    """

    # 400 Bad Request
    INVALID_ACTION = "INVALID_ACTION"
    INVALID_PARAMS = "INVALID_PARAMS"
    INVALID_FORMAT = "INVALID_FORMAT"

    # 404 Not Found
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # 409 Conflict
    DEPENDENCY_CONFLICT = "DEPENDENCY_CONFLICT"

    # 500 Internal Server Error
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # 502 Bad Gateway
    BACKEND_ERROR = "BACKEND_ERROR"
    DELETION_FAILED = "DELETION_FAILED"

    # 503 Service Unavailable
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # 504 Gateway Timeout
    BACKEND_TIMEOUT = "BACKEND_TIMEOUT"


# HTTP status code mapping
ERROR_CODE_TO_HTTP_STATUS: dict[NPAErrorCode, int] = {
    # 400
    NPAErrorCode.INVALID_ACTION: 400,
    NPAErrorCode.INVALID_PARAMS: 400,
    NPAErrorCode.INVALID_FORMAT: 400,
    # 404
    NPAErrorCode.TOOL_NOT_FOUND: 404,
    NPAErrorCode.RESOURCE_NOT_FOUND: 404,
    # 409
    NPAErrorCode.DEPENDENCY_CONFLICT: 409,
    # 500
    NPAErrorCode.INTERNAL_ERROR: 500,
    NPAErrorCode.CONFIGURATION_ERROR: 500,
    # 502
    NPAErrorCode.BACKEND_ERROR: 502,
    NPAErrorCode.DELETION_FAILED: 502,
    # 503
    NPAErrorCode.SERVICE_UNAVAILABLE: 503,
    # 504
    NPAErrorCode.BACKEND_TIMEOUT: 504,
}


# Default suggestions for each error code (helps LLMs guide users)
ERROR_CODE_SUGGESTIONS: dict[NPAErrorCode, str] = {
    NPAErrorCode.INVALID_ACTION: "Check the 'action' parameter against allowed values in the tool schema",
    NPAErrorCode.INVALID_PARAMS: "Verify required parameters are provided and have correct types",
    NPAErrorCode.INVALID_FORMAT: "Use a 5-field cron expression ('0 2 * * SUN') or the 'DAY HH:MM' shorthand",
    NPAErrorCode.TOOL_NOT_FOUND: "List the available tools and retry with an exact tool name",
    NPAErrorCode.RESOURCE_NOT_FOUND: "List the resources first and retry with an exact name or ID",
    NPAErrorCode.DEPENDENCY_CONFLICT: "Review the listed policies manually or retry with force=true",
    NPAErrorCode.INTERNAL_ERROR: "Retry the request; if persistent, check the gateway logs",
    NPAErrorCode.CONFIGURATION_ERROR: "Set NETSKOPE_BASE_URL and NETSKOPE_API_TOKEN in the environment",
    NPAErrorCode.BACKEND_ERROR: "The Netskope API returned an error; check the request and tenant status",
    NPAErrorCode.DELETION_FAILED: "Policy cleanup already ran; re-run the deletion once the API recovers",
    NPAErrorCode.SERVICE_UNAVAILABLE: "The Netskope API could not be reached; check network access and retry",
    NPAErrorCode.BACKEND_TIMEOUT: "The Netskope API took too long; retry or raise NETSKOPE_TIMEOUT",
}


class NPAErrorDetail(BaseModel):
    """Standard error response body."""

    code: str = Field(
        ...,
        description="Machine-readable error code (e.g., 'RESOURCE_NOT_FOUND')",
        examples=["RESOURCE_NOT_FOUND", "BACKEND_TIMEOUT", "INVALID_FORMAT"],
    )
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional context for debugging")
    suggestion: str | None = Field(None, description="Remediation hint for LLM-assisted recovery")


class NPAErrorResponse(BaseModel):
    """Wrapper for error responses."""

    error: NPAErrorDetail


class NPAError(Exception):
    """Base exception for NPA Gateway errors.

    Usage:
        raise NPAError(
            code=NPAErrorCode.RESOURCE_NOT_FOUND,
            message=f"Publisher '{name}' not found",
            details={"identifier": name},
        )
    """

    def __init__(
        self,
        code: NPAErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize the error.

        Args:
            code: Error code (NPAErrorCode enum or string)
            message: Human-readable error message
            details: Additional context for debugging
            suggestion: Override default suggestion (optional)
        """
        self.code = code if isinstance(code, NPAErrorCode) else NPAErrorCode(code)
        self.message = message
        self.details = details
        self.suggestion = suggestion or ERROR_CODE_SUGGESTIONS.get(self.code)
        super().__init__(message)

    @property
    def http_status(self) -> int:
        """Get HTTP status code for this error."""
        return ERROR_CODE_TO_HTTP_STATUS.get(self.code, 500)

    @property
    def retryable(self) -> bool:
        """Whether a retry loop may attempt the call again."""
        return False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "suggestion": self.suggestion,
            }
        }

    def to_tool_result(self) -> dict[str, Any]:
        """Convert to the flat dict returned by tool handlers."""
        result: dict[str, Any] = {
            "error": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def to_response(self) -> NPAErrorResponse:
        """Convert to Pydantic response model."""
        return NPAErrorResponse(
            error=NPAErrorDetail(
                code=self.code.value,
                message=self.message,
                details=self.details,
                suggestion=self.suggestion,
            )
        )


# =============================================================================
# Specific Error Classes
# =============================================================================


class ConfigurationError(NPAError):
    """Raised when settings are missing or malformed at startup."""

    def __init__(self, problems: list[str]):
        super().__init__(
            code=NPAErrorCode.CONFIGURATION_ERROR,
            message="Invalid configuration: " + "; ".join(problems),
            details={"problems": problems},
        )
        self.problems = problems


class FormatError(NPAError):
    """Raised for malformed schedule or identifier input. Never retried."""

    def __init__(
        self,
        message: str,
        value: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=NPAErrorCode.INVALID_FORMAT,
            message=message,
            details=details or ({"value": value} if value is not None else None),
        )


class HttpError(NPAError):
    """Raised when the Resource API answers with a non-2xx status."""

    def __init__(
        self,
        status: int,
        status_text: str = "",
        path: str | None = None,
        body: Any = None,
    ):
        details: dict[str, Any] = {"status": status}
        if path:
            details["path"] = path
        if body:
            details["body"] = body
        super().__init__(
            code=NPAErrorCode.BACKEND_ERROR,
            message=f"API request failed: {status} {status_text}".rstrip(),
            details=details,
        )
        self.status = status
        self.status_text = status_text

    @property
    def is_client_error(self) -> bool:
        """4xx responses are terminal."""
        return 400 <= self.status < 500

    @property
    def retryable(self) -> bool:
        return not self.is_client_error


class RequestTimeoutError(NPAError):
    """Raised when a call is cancelled after exceeding its deadline."""

    def __init__(self, path: str, timeout_ms: int):
        super().__init__(
            code=NPAErrorCode.BACKEND_TIMEOUT,
            message=f"Request timeout after {timeout_ms}ms",
            details={"path": path, "timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms

    @property
    def retryable(self) -> bool:
        return True


class ConnectionFailedError(NPAError):
    """Raised when the Resource API cannot be reached at all."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=NPAErrorCode.SERVICE_UNAVAILABLE,
            message=f"API request failed: {reason}",
            details={"path": path},
        )

    @property
    def retryable(self) -> bool:
        return True


class NotFoundError(NPAError):
    """Raised when a lookup by name or ID finds nothing."""

    def __init__(
        self,
        message: str,
        resource_type: str = "resource",
        identifier: str | None = None,
        suggestions: list[str] | None = None,
    ):
        details: dict[str, Any] = {"resource_type": resource_type}
        if identifier is not None:
            details["identifier"] = identifier
        if suggestions:
            details["suggestions"] = suggestions
        super().__init__(
            code=NPAErrorCode.RESOURCE_NOT_FOUND,
            message=message,
            details=details,
        )
        self.suggestions = suggestions or []


class DependencyRemainingError(NPAError):
    """Raised when policies still reference an app after cleanup."""

    def __init__(self, app_name: str, policy_names: list[str]):
        super().__init__(
            code=NPAErrorCode.DEPENDENCY_CONFLICT,
            message=(
                f"Cannot delete '{app_name}': still referenced by policies: "
                f"{', '.join(policy_names)}"
            ),
            details={"app_name": app_name, "remaining_policies": policy_names},
        )
        self.policy_names = policy_names


class DeletionFailedError(NPAError):
    """Raised when the final application delete call fails."""

    def __init__(self, app_id: str, reason: str):
        super().__init__(
            code=NPAErrorCode.DELETION_FAILED,
            message=f"Failed to delete private app {app_id}: {reason}",
            details={"app_id": app_id},
        )


class InvalidActionError(NPAError):
    """Raised when an invalid action is provided."""

    def __init__(
        self,
        action: str,
        valid_actions: list[str] | None = None,
        message: str | None = None,
    ):
        details: dict[str, Any] = {"action": action}
        if valid_actions:
            details["valid_actions"] = valid_actions

        super().__init__(
            code=NPAErrorCode.INVALID_ACTION,
            message=message or f"Unknown action: '{action}'",
            details=details,
            suggestion=f"Valid actions are: {', '.join(valid_actions)}" if valid_actions else None,
        )


class InvalidParamsError(NPAError):
    """Raised when required parameters are missing or invalid."""

    def __init__(
        self,
        param: str,
        reason: str = "is required",
        message: str | None = None,
    ):
        super().__init__(
            code=NPAErrorCode.INVALID_PARAMS,
            message=message or f"Parameter '{param}' {reason}",
            details={"parameter": param, "reason": reason},
        )


# =============================================================================
# Helper Functions
# =============================================================================


def is_retryable(exc: BaseException) -> bool:
    """Classify an exception for the retry loop.

    Client-side failures (4xx, bad input, lookup misses) are terminal.
    Timeouts, 5xx and anything unrecognised are retried.
    """
    if isinstance(exc, NPAError):
        return exc.retryable
    return True


def error_result(
    code: NPAErrorCode | str,
    message: str,
    details: dict[str, Any] | None = None,
    suggestion: str | None = None,
) -> dict[str, Any]:
    """Create a standardized error result dict for tool handlers.

    Example:
        return error_result(
            NPAErrorCode.INVALID_PARAMS,
            "id is required",
            details={"parameter": "id"},
        )
    """
    error_code = code if isinstance(code, NPAErrorCode) else NPAErrorCode(code)
    result: dict[str, Any] = {
        "error": error_code.value,
        "message": message,
    }
    if details:
        result["details"] = details
    result["suggestion"] = suggestion or ERROR_CODE_SUGGESTIONS.get(error_code)
    return result
