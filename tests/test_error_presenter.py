"""
Tests for ErrorPresenter - outcome classification and user-facing messages.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from consultlink.domain.exceptions import (
    ActiveConnectionConflictError,
    AlreadyConnectedError,
    ConnectionNotFoundError,
    ConsultLinkDomainError,
    DuplicatePendingError,
    InvalidTransitionError,
    ParticipantNotFoundError,
    SelfConnectionError,
    StorageUnavailableError,
    UnauthorizedTransitionError,
    ValidationError,
)
from consultlink.domain.models import ParticipantRef
from consultlink.infrastructure.config.config_models import StorageConfig
from consultlink.infrastructure.presentation.error_presenter import (
    INTERNAL,
    INVALID_REQUEST,
    NOT_ALLOWED,
    NOT_FOUND,
    TRY_AGAIN,
    ErrorPresenter,
)
from consultlink.infrastructure.resilience import CircuitBreakerError


def config_error() -> PydanticValidationError:
    try:
        StorageConfig(url="no-scheme")
    except PydanticValidationError as e:
        return e
    raise AssertionError("expected a validation error")


class TestClassify:
    """Test suite for ErrorPresenter.classify."""

    @pytest.mark.parametrize("error,kind,status,exit_code", [
        (ValidationError("bad id"), INVALID_REQUEST, 400, 2),
        (ParticipantNotFoundError(ParticipantRef.client(4)), NOT_FOUND, 404, 3),
        (ConnectionNotFoundError(9), NOT_FOUND, 404, 3),
        (UnauthorizedTransitionError("not yours"), NOT_ALLOWED, 403, 4),
        (SelfConnectionError("Cannot connect to yourself"), NOT_ALLOWED, 409, 4),
        (DuplicatePendingError("pending"), NOT_ALLOWED, 409, 4),
        (AlreadyConnectedError("connected"), NOT_ALLOWED, 409, 4),
        (InvalidTransitionError("closed"), NOT_ALLOWED, 409, 4),
        (ActiveConnectionConflictError("race"), NOT_ALLOWED, 409, 4),
        (StorageUnavailableError("down"), TRY_AGAIN, 503, 5),
        (CircuitBreakerError("open"), TRY_AGAIN, 503, 5),
        (FileNotFoundError("Configuration file not found: x.yaml"), INVALID_REQUEST, 400, 2),
        (ConsultLinkDomainError("odd"), INTERNAL, 500, 1),
        (KeyError("bug"), INTERNAL, 500, 1),
    ])
    def test_outcomes(self, error, kind, status, exit_code):
        """Test category, status and exit code per error type."""
        outcome = ErrorPresenter.classify(error)

        assert outcome.kind == kind
        assert outcome.status == status
        assert outcome.exit_code == exit_code
        assert outcome.retryable is (kind == TRY_AGAIN)

    def test_domain_code_and_details_kept(self):
        """Test that domain errors keep their code and details."""
        outcome = ErrorPresenter.classify(ConnectionNotFoundError(42))

        assert outcome.code == "not_found"
        assert outcome.message == "Connection 42 not found"
        assert outcome.details == {"connection_id": 42}

    def test_unexpected_errors_hide_internals(self):
        """Test that unknown exceptions get a generic message."""
        outcome = ErrorPresenter.classify(RuntimeError("password=hunter2"))

        assert outcome.code == "internal_error"
        assert "hunter2" not in outcome.message

    def test_configuration_errors(self):
        """Test pydantic validation errors from config loading."""
        outcome = ErrorPresenter.classify(config_error())

        assert outcome.kind == INVALID_REQUEST
        assert outcome.code == "invalid_configuration"
        assert outcome.details["errors"]

    def test_to_dict_envelope(self):
        """Test the JSON error envelope."""
        data = ErrorPresenter.classify(DuplicatePendingError("pending", {"connection_id": 1})).to_dict()

        assert data == {
            "success": False,
            "error": {
                "kind": "not_allowed",
                "code": "duplicate_pending",
                "message": "pending",
                "details": {"connection_id": 1},
            },
        }


class TestPresent:
    """Test suite for ErrorPresenter.present."""

    def test_participant_not_found(self):
        """Test the friendly message for an unknown participant."""
        result = ErrorPresenter.present(ParticipantNotFoundError(ParticipantRef.consultant(3)))

        assert "❌ Error: consultant 3 not found" in result
        assert "💡 Suggestions:" in result
        assert "Traceback" not in result

    def test_storage_unavailable_non_verbose(self):
        """Test that storage failures hide driver details by default."""
        error = StorageUnavailableError("Connection store is unavailable", {"operation": "list_page"})

        result = ErrorPresenter.present(error, verbose=False)

        assert "The connection store is unavailable" in result
        assert "try again" in result
        assert "list_page" not in result
        assert "Technical Details" not in result

    def test_storage_unavailable_verbose(self):
        """Test that verbose mode adds technical details and traceback."""
        try:
            try:
                raise OSError("disk I/O error")
            except OSError as cause:
                raise StorageUnavailableError("Connection store is unavailable", {"operation": "list_page"}) from cause
        except StorageUnavailableError as e:
            error = e

        result = ErrorPresenter.present(error, verbose=True)

        assert "🔍 Technical Details:" in result
        assert "Error Type: StorageUnavailableError" in result
        assert "Error Code: storage_unavailable" in result
        assert "operation: list_page" in result
        assert "Caused by: OSError: disk I/O error" in result
        assert "📋 Traceback:" in result

    def test_invalid_transition_lists_allowed(self):
        """Test that the hint names the statuses still reachable."""
        error = InvalidTransitionError("Invalid status transition", {"allowed": ["accepted", "rejected"]})

        assert "Allowed from here: accepted, rejected" in ErrorPresenter.present(error)

    def test_invalid_transition_from_terminal(self):
        """Test the hint for a closed connection."""
        error = InvalidTransitionError("Invalid status transition", {"allowed": []})

        assert "send a new request" in ErrorPresenter.present(error)

    def test_unauthorized(self):
        """Test the permission hint."""
        result = ErrorPresenter.present(UnauthorizedTransitionError("Only the receiver can accept"))

        assert "Only the receiver can accept or reject a pending request" in result

    def test_configuration_error_lists_fields(self):
        """Test that config errors name the offending field."""
        result = ErrorPresenter.present(config_error())

        assert "Configuration is invalid" in result
        assert "url:" in result

    def test_unknown_error(self):
        """Test the generic fallback."""
        result = ErrorPresenter.present(ZeroDivisionError("division by zero"))

        assert "An error occurred: ZeroDivisionError" in result
        assert "--verbose" in result

    def test_keyboard_interrupt(self):
        """Test the cancellation message."""
        assert "Operation cancelled by user" in ErrorPresenter.present(KeyboardInterrupt())
