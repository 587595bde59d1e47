"""Tests for shared/exceptions.py."""

from shared.exceptions import (
    PredictXError,
    ApiError,
    NetworkError,
    AuthenticationError,
)


class TestPredictXError:
    def test_message(self):
        """PredictXError should store message."""
        error = PredictXError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_default_code(self):
        """PredictXError should default code to class name."""
        assert PredictXError("Test error").code == "PredictXError"

    def test_custom_code_and_details(self):
        """PredictXError should accept custom code and details."""
        error = PredictXError("Test error", code="CUSTOM", details={"key": "value"})
        assert error.code == "CUSTOM"
        assert error.details == {"key": "value"}

    def test_to_dict(self):
        """PredictXError should convert to dict."""
        result = PredictXError("Test error", code="TEST_ERROR").to_dict()
        assert result == {"error": "TEST_ERROR", "message": "Test error", "details": {}}

    def test_authentication_error_is_predictx_error(self):
        """AuthenticationError should inherit from the base."""
        assert isinstance(AuthenticationError("nope"), PredictXError)


class TestApiError:
    def test_carries_status_and_payload(self):
        """ApiError should expose status, code and payload."""
        error = ApiError("Boom", status=500, code="server_error", payload={"x": 1})
        assert error.status == 500
        assert error.code == "server_error"
        assert error.payload == {"x": 1}
        assert error.details == {"status": 500}

    def test_from_response_plain_string(self):
        """A plain-string payload should be both message and code."""
        error = ApiError.from_response(400, "  InvalidCredentials ")
        assert error.message == "InvalidCredentials"
        assert error.code == "InvalidCredentials"
        assert error.status == 400

    def test_from_response_prefers_detail(self):
        """detail should win over message and title."""
        error = ApiError.from_response(
            400, {"detail": "Bad input", "message": "ignored", "title": "Validation"}
        )
        assert error.message == "Bad input"
        assert error.code == "Validation"

    def test_from_response_message(self):
        """message should be used when there is no detail."""
        error = ApiError.from_response(409, {"message": "Email taken", "code": "email_taken"})
        assert error.message == "Email taken"
        assert error.code == "email_taken"

    def test_from_response_validation_errors(self):
        """The first validation message should be used."""
        error = ApiError.from_response(
            400,
            {"title": "One or more validation errors occurred.",
             "errors": {"Email": ["Email is required", "Email is invalid"]}},
        )
        assert error.message == "Email is required"

    def test_from_response_nested_error(self):
        """error.message and error.code should be used for nested errors."""
        error = ApiError.from_response(403, {"error": {"message": "Forbidden", "code": "forbidden"}})
        assert error.message == "Forbidden"
        assert error.code == "forbidden"

    def test_from_response_string_error_code(self):
        """A string error field should become the code."""
        error = ApiError.from_response(401, {"error": "invalid_token"})
        assert error.code == "invalid_token"
        assert error.message == "Request failed (401)"

    def test_from_response_fallback(self):
        """Without any usable field the message should mention the status."""
        error = ApiError.from_response(502, None)
        assert error.message == "Request failed (502)"
        assert error.code == "ApiError"
        assert error.payload is None


class TestNetworkError:
    def test_network_error(self):
        """NetworkError should have no status and a fixed code."""
        error = NetworkError("Connection refused")
        assert isinstance(error, ApiError)
        assert error.status is None
        assert error.code == "network_error"
