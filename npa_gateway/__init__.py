"""NPA Gateway - Netskope Private Access fleet management exposed as tools."""

__version__ = "0.1.0"

from .errors import (
    NPAErrorCode,
    NPAError,
    NPAErrorDetail,
    NPAErrorResponse,
    error_result,
    is_retryable,
    ConfigurationError,
    FormatError,
    HttpError,
    RequestTimeoutError,
    ConnectionFailedError,
    NotFoundError,
    DependencyRemainingError,
    DeletionFailedError,
    InvalidActionError,
    InvalidParamsError,
)

__all__ = [
    "NPAErrorCode",
    "NPAError",
    "NPAErrorDetail",
    "NPAErrorResponse",
    "error_result",
    "is_retryable",
    "ConfigurationError",
    "FormatError",
    "HttpError",
    "RequestTimeoutError",
    "ConnectionFailedError",
    "NotFoundError",
    "DependencyRemainingError",
    "DeletionFailedError",
    "InvalidActionError",
    "InvalidParamsError",
]
