# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tests for the NPA error code system."""

import pytest

from npa_gateway.errors import (
    ERROR_CODE_SUGGESTIONS,
    ERROR_CODE_TO_HTTP_STATUS,
    ConnectionFailedError,
    DependencyRemainingError,
    FormatError,
    HttpError,
    InvalidActionError,
    InvalidParamsError,
    NotFoundError,
    NPAError,
    NPAErrorCode,
    RequestTimeoutError,
    error_result,
    is_retryable,
)


class TestNPAErrorCode:
    """Test NPAErrorCode enum."""

    def test_error_codes_are_strings(self):
        for code in NPAErrorCode:
            assert code.value == code.name

    def test_all_codes_have_http_status(self):
        for code in NPAErrorCode:
            assert code in ERROR_CODE_TO_HTTP_STATUS, f"Missing HTTP status for {code}"

    def test_all_codes_have_suggestions(self):
        for code in NPAErrorCode:
            assert code in ERROR_CODE_SUGGESTIONS, f"Missing suggestion for {code}"

    def test_http_status_ranges(self):
        for code, status in ERROR_CODE_TO_HTTP_STATUS.items():
            assert 400 <= status < 600, f"Invalid HTTP status {status} for {code}"


class TestNPAError:
    """Test NPAError and its serializations."""

    def test_default_suggestion(self):
        error = NPAError(code=NPAErrorCode.INTERNAL_ERROR, message="boom")
        assert error.suggestion == ERROR_CODE_SUGGESTIONS[NPAErrorCode.INTERNAL_ERROR]
        assert str(error) == "boom"

    def test_string_code(self):
        error = NPAError(code="RESOURCE_NOT_FOUND", message="gone")
        assert error.code == NPAErrorCode.RESOURCE_NOT_FOUND
        assert error.http_status == 404

    def test_to_dict(self):
        error = NPAError(code=NPAErrorCode.INVALID_PARAMS, message="bad", details={"p": 1})
        assert error.to_dict()["error"]["code"] == "INVALID_PARAMS"
        assert error.to_dict()["error"]["details"] == {"p": 1}

    def test_to_tool_result(self):
        result = InvalidParamsError("id").to_tool_result()
        assert result["error"] == "INVALID_PARAMS"
        assert result["message"] == "Parameter 'id' is required"
        assert result["details"] == {"parameter": "id", "reason": "is required"}

    def test_to_response(self):
        response = NotFoundError("missing", resource_type="publisher").to_response()
        assert response.error.code == "RESOURCE_NOT_FOUND"


class TestRetryClassification:
    """Test which errors the retry loop may repeat."""

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422, 499])
    def test_client_errors_are_terminal(self, status):
        assert is_retryable(HttpError(status)) is False

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_are_retried(self, status):
        assert is_retryable(HttpError(status)) is True

    def test_transport_errors_are_retried(self):
        assert is_retryable(RequestTimeoutError("/a", 100)) is True
        assert is_retryable(ConnectionFailedError("/a", "refused")) is True

    def test_input_errors_are_terminal(self):
        assert is_retryable(FormatError("bad")) is False
        assert is_retryable(NotFoundError("gone")) is False

    def test_unknown_errors_are_retried(self):
        assert is_retryable(RuntimeError("?")) is True


class TestSpecificErrors:
    """Test specific error classes."""

    def test_http_error_message(self):
        error = HttpError(503, "Service Unavailable", path="/x")
        assert error.message == "API request failed: 503 Service Unavailable"
        assert error.details["path"] == "/x"

    def test_dependency_remaining(self):
        error = DependencyRemainingError("gitlab", ["a", "b"])
        assert error.policy_names == ["a", "b"]
        assert "a, b" in error.message
        assert error.http_status == 409

    def test_invalid_action_suggestion(self):
        error = InvalidActionError("frobnicate", ["list", "get"])
        assert error.suggestion == "Valid actions are: list, get"


class TestErrorResult:
    """Test the error_result() helper."""

    def test_basic(self):
        result = error_result(NPAErrorCode.TOOL_NOT_FOUND, "nope")
        assert result["error"] == "TOOL_NOT_FOUND"
        assert result["suggestion"] == ERROR_CODE_SUGGESTIONS[NPAErrorCode.TOOL_NOT_FOUND]
        assert "details" not in result
