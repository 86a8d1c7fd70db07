"""Property-based tests for error conversion and user-facing error messages."""

import json
from unittest.mock import Mock, patch

import httpx
import pytest
from hypothesis import given, strategies as st

from boardshelf.services.errors import (
    ApiError,
    AppError,
    EmptyCollectionError,
    EnrichmentBatchError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    MalformedDocumentError,
    TransportError,
    ValidationError,
)


def status_error(status_code: int, url: str = "https://example.com/collection") -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class TestErrorHandlingProperties:
    """Property-based tests for user-friendly error handling."""

    @given(
        error_type=st.sampled_from([
            "network_error",
            "timeout_error",
            "http_4xx_error",
            "http_5xx_error",
            "request_error",
        ]),
        error_message=st.text(min_size=5, max_size=100),
    )
    def test_transport_errors_become_user_friendly(self, error_type: str, error_message: str) -> None:
        """**Feature: boardshelf, Property 10: User-friendly error messages**

        For any transport failure, the service returns a network-category error
        with suggestions while logging the technical details.
        """
        if error_type == "network_error":
            error = httpx.ConnectError(error_message)
        elif error_type == "timeout_error":
            error = httpx.ReadTimeout(error_message)
        elif error_type == "http_4xx_error":
            error = status_error(404)
        elif error_type == "http_5xx_error":
            error = status_error(503)
        else:
            error = httpx.RequestError(error_message)

        service = ErrorHandlingService()
        with patch("boardshelf.services.errors.log") as mock_logger:
            user_error = service.handle_error(
                error,
                operation="fetch_collection",
                component="collection_client",
                context={"url": "https://example.com/collection"},
            )

        assert user_error.category == ErrorCategory.NETWORK
        assert user_error.message
        assert user_error.suggested_actions
        assert user_error.technical_details
        assert mock_logger.error.called
        logged = mock_logger.error.call_args.kwargs
        assert logged["operation"] == "fetch_collection"
        assert logged["technical_details"] == user_error.technical_details

    @given(st.lists(st.sampled_from([ValueError("bad"), RuntimeError("boom"), KeyError("id")]), max_size=30))
    def test_history_is_bounded(self, errors: list[Exception]) -> None:
        service = ErrorHandlingService(max_history_size=10)
        for error in errors:
            service.handle_error(error, operation="op", component="test")

        assert len(service.get_recent_errors(count=100)) == min(len(errors), 10)
        assert sum(service.get_error_count_by_category().values()) == min(len(errors), 10)


class TestErrorConversionExamples:
    """Unit test examples for converting exceptions."""

    def test_status_error_message_and_code(self) -> None:
        user_error = ErrorHandlingService().handle_error(status_error(429), operation="lookup", component="test")

        assert user_error.message == "Too many requests. Please wait before trying again."
        assert "Status: 429" in user_error.technical_details
        assert "Wait a few minutes before retrying" in user_error.suggested_actions

    def test_app_errors_pass_through(self) -> None:
        original = EmptyCollectionError()
        service = ErrorHandlingService()

        user_error = service.handle_error(original, operation="load", component="session")

        assert service.get_recent_errors()[-1] is original
        assert user_error.category == ErrorCategory.PARSING
        assert user_error.message == "No games found in collection"

    def test_json_decode_error_is_validation(self) -> None:
        try:
            json.loads("{ nope")
        except json.JSONDecodeError as e:
            error = e
        user_error = ErrorHandlingService().handle_error(error, operation="load_config", component="config")

        assert user_error.category == ErrorCategory.VALIDATION
        assert "Invalid JSON" in user_error.message

    def test_value_error_keeps_field_context(self) -> None:
        service = ErrorHandlingService()
        service.handle_error(
            ValueError("batch_size must be positive"),
            operation="save_config",
            component="config",
            context={"field": "batch_size", "value": 0},
        )
        error = service.get_recent_errors()[-1]

        assert isinstance(error, ValidationError)
        assert error.field == "batch_size"
        assert error.value == 0

    def test_unexpected_errors_keep_context(self) -> None:
        service = ErrorHandlingService()
        user_error = service.handle_error(RuntimeError("boom"), operation="enrich", component="session")
        error = service.get_recent_errors()[-1]

        assert user_error.category == ErrorCategory.UNEXPECTED
        assert "RuntimeError: boom" in user_error.technical_details
        assert error.context is not None
        assert error.context.operation == "enrich"

    def test_warnings_are_logged_as_warnings(self) -> None:
        error = EnrichmentBatchError("Enrichment batch 2 of 3 failed", batch_index=1, game_ids=["1", "2"])
        with patch("boardshelf.services.errors.log") as mock_logger:
            ErrorHandlingService().handle_error(error, operation="enrich", component="fetcher")

        assert mock_logger.warning.called
        assert not mock_logger.error.called


class TestErrorTypes:
    """Exception classes carry what callers need to report them."""

    def test_parse_errors_share_a_base(self) -> None:
        for error in (MalformedDocumentError(), ApiError("Invalid username specified"), EmptyCollectionError()):
            assert isinstance(error, AppError)
            assert error.category == ErrorCategory.PARSING

    def test_malformed_document_details(self) -> None:
        error = MalformedDocumentError(ValueError("unclosed token"))
        assert error.message == "Error parsing XML response"
        assert error.technical_details == "ValueError: unclosed token"

    def test_enrichment_batch_error_is_recoverable_warning(self) -> None:
        cause = httpx.ConnectError("refused")
        error = EnrichmentBatchError("Enrichment batch 1 of 1 failed", batch_index=0, game_ids=["13"], original_error=cause)

        assert error.severity == ErrorSeverity.WARNING
        assert error.recoverable
        assert error.original_error is cause
        assert "IDs: 13" in error.technical_details

    @pytest.mark.parametrize(("status_code", "expected"), [
        (429, "Wait a few minutes before retrying"),
        (404, "Check the configured service URL"),
        (502, "Try again later"),
        (None, "Check your internet connection"),
    ])
    def test_transport_error_suggestions(self, status_code: int | None, expected: str) -> None:
        error = TransportError("failed", status_code=status_code)
        assert expected in error.suggested_actions

    def test_create_user_message_limits_suggestions(self) -> None:
        error = ValidationError("Bad filter", field="player_count", constraints=["a", "b", "c"])
        message = ErrorHandlingService().create_user_message(error.to_user_friendly())

        assert message.startswith("Bad filter\n")
        assert message.count("  • ") == 3
        assert "Bad filter" == ErrorHandlingService().create_user_message(
            error.to_user_friendly(), include_suggestions=False
        )

    def test_handle_error_with_mocked_request(self) -> None:
        response = Mock()
        response.status_code = 500
        error = httpx.HTTPStatusError("Server error", request=Mock(url="https://example.com/x"), response=response)

        user_error = ErrorHandlingService().handle_error(error, operation="fetch", component="test")

        assert user_error.message.startswith("The collection service encountered an error")
