"""
ErrorPresenter - User-friendly error message generation.

Maps exceptions to a stable outcome (category, HTTP-style status, CLI
exit code) and renders actionable messages. Supports verbose mode for
technical details.
"""

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import pydantic

from ...domain.exceptions import (
    ActiveConnectionConflictError,
    AlreadyConnectedError,
    ConnectionNotFoundError,
    ConnectionRuleViolation,
    ConsultLinkDomainError,
    DuplicatePendingError,
    InvalidTransitionError,
    NotFoundError,
    ParticipantNotFoundError,
    SelfConnectionError,
    StorageUnavailableError,
    UnauthorizedTransitionError,
    ValidationError,
)
from ..resilience import CircuitBreakerError

NOT_FOUND = "not_found"
NOT_ALLOWED = "not_allowed"
INVALID_REQUEST = "invalid_request"
TRY_AGAIN = "try_again"
INTERNAL = "internal"

EXIT_CODES = {
    INTERNAL: 1,
    INVALID_REQUEST: 2,
    NOT_FOUND: 3,
    NOT_ALLOWED: 4,
    TRY_AGAIN: 5,
}


@dataclass(frozen=True)
class ErrorOutcome:
    """Caller-facing classification of a failure."""
    kind: str
    status: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind == TRY_AGAIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "kind": self.kind,
                "code": self.code,
                "message": self.message,
                "details": self.details,
            },
        }


class ErrorPresenter:
    """
    Presents errors to users with helpful messages and actions.

    Provides two modes:
    - Normal: User-friendly message with actionable suggestions
    - Verbose: Technical details including stack trace
    """

    @staticmethod
    def classify(error: BaseException) -> ErrorOutcome:
        """
        Map an exception to its outcome.

        Domain errors keep their message and code verbatim; anything
        unexpected becomes an internal error with a generic message.

        Args:
            error: Exception to classify

        Returns:
            ErrorOutcome
        """
        if isinstance(error, ValidationError):
            return ErrorOutcome(INVALID_REQUEST, 400, error.code, error.message, dict(error.details))

        if isinstance(error, NotFoundError):
            return ErrorOutcome(NOT_FOUND, 404, error.code, error.message, dict(error.details))

        if isinstance(error, UnauthorizedTransitionError):
            return ErrorOutcome(NOT_ALLOWED, 403, error.code, error.message, dict(error.details))

        if isinstance(error, (ConnectionRuleViolation, ActiveConnectionConflictError)):
            return ErrorOutcome(NOT_ALLOWED, 409, error.code, error.message, dict(error.details))

        if isinstance(error, StorageUnavailableError):
            return ErrorOutcome(TRY_AGAIN, 503, error.code, error.message, dict(error.details))

        if isinstance(error, CircuitBreakerError):
            return ErrorOutcome(TRY_AGAIN, 503, CircuitBreakerError.code, str(error))

        if isinstance(error, pydantic.ValidationError):
            return ErrorOutcome(
                INVALID_REQUEST,
                400,
                "invalid_configuration",
                f"Invalid configuration: {error.error_count()} error(s)",
                {"errors": [e["msg"] for e in error.errors()]},
            )

        if isinstance(error, FileNotFoundError):
            return ErrorOutcome(INVALID_REQUEST, 400, "file_not_found", str(error))

        if isinstance(error, ConsultLinkDomainError):
            return ErrorOutcome(INTERNAL, 500, error.code, error.message, dict(error.details))

        return ErrorOutcome(INTERNAL, 500, "internal_error", "An unexpected error occurred")

    @staticmethod
    def present(error: BaseException, verbose: bool = False) -> str:
        """
        Present error with user-friendly message.

        Args:
            error: Exception to present
            verbose: Show technical details (stack trace, error type)

        Returns:
            Formatted error message
        """
        message, suggestions = ErrorPresenter._get_friendly_message(error)

        if verbose:
            return ErrorPresenter._format_verbose(error, message, suggestions)
        else:
            return ErrorPresenter._format_friendly(message, suggestions)

    @staticmethod
    def _get_friendly_message(error: BaseException) -> Tuple[str, List[str]]:
        """
        Get friendly message and actionable suggestions for error.

        Args:
            error: Exception to analyze

        Returns:
            Tuple of (message, suggestions)
        """
        if isinstance(error, ParticipantNotFoundError):
            return (
                error.message,
                [
                    "Check the participant kind and id (e.g. consultant:12 or client:7)",
                    "Deleted participants cannot take part in connections",
                ]
            )

        if isinstance(error, ConnectionNotFoundError):
            return (
                error.message,
                ["List your connections: `consultlink list --as <kind>:<id>`"]
            )

        if isinstance(error, SelfConnectionError):
            return (error.message, [])

        if isinstance(error, DuplicatePendingError):
            return (
                error.message,
                ["Wait for the other participant to respond, or check `consultlink pending`"]
            )

        if isinstance(error, AlreadyConnectedError):
            return (
                error.message,
                ["Check the connection: `consultlink status --as <you> <them>`"]
            )

        if isinstance(error, UnauthorizedTransitionError):
            return (
                error.message,
                [
                    "Only the receiver can accept or reject a pending request",
                    "Either party can remove an accepted connection",
                ]
            )

        if isinstance(error, InvalidTransitionError):
            allowed = error.details.get("allowed") or []
            hint = (
                f"Allowed from here: {', '.join(allowed)}" if allowed
                else "This connection is closed; send a new request instead"
            )
            return (error.message, [hint])

        if isinstance(error, ValidationError):
            return (error.message, ["Run with --help to see accepted values"])

        if isinstance(error, (StorageUnavailableError, CircuitBreakerError)):
            return (
                "The connection store is unavailable",
                [
                    "Wait a few seconds and try again",
                    "Check storage.url in your configuration",
                    "Run `consultlink init-db` if the database was never created",
                ]
            )

        if isinstance(error, pydantic.ValidationError):
            return (
                "Configuration is invalid",
                [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()]
                + ["Show the effective settings: `consultlink config --show`"]
            )

        if isinstance(error, FileNotFoundError):
            return (
                str(error),
                ["Check the path passed to --config"]
            )

        if isinstance(error, KeyboardInterrupt):
            return (
                "Operation cancelled by user",
                []
            )

        error_type = type(error).__name__
        error_msg = str(error) if str(error) else "No details available"

        return (
            f"An error occurred: {error_type}",
            [
                f"Error details: {error_msg}",
                "Run with --verbose for more information",
                "Check the log file for details"
            ]
        )

    @staticmethod
    def _format_friendly(message: str, suggestions: List[str]) -> str:
        """
        Format user-friendly error message.

        Args:
            message: Main error message
            suggestions: List of actionable suggestions

        Returns:
            Formatted string
        """
        output = [f"❌ Error: {message}"]

        if suggestions:
            output.append("")
            output.append("💡 Suggestions:")
            for suggestion in suggestions:
                output.append(f"  • {suggestion}")

        return "\n".join(output)

    @staticmethod
    def _format_verbose(error: BaseException, message: str, suggestions: List[str]) -> str:
        """
        Format verbose error message with technical details.

        Args:
            error: Original exception
            message: User-friendly message
            suggestions: Actionable suggestions

        Returns:
            Formatted string with full details
        """
        output = [ErrorPresenter._format_friendly(message, suggestions)]

        output.append("")
        output.append("🔍 Technical Details:")
        output.append(f"  Error Type: {type(error).__name__}")
        output.append(f"  Error Message: {str(error)}")
        if isinstance(error, ConsultLinkDomainError):
            output.append(f"  Error Code: {error.code}")
            for key, value in error.details.items():
                output.append(f"  {key}: {value}")

        if error.__cause__:
            output.append(f"  Caused by: {type(error.__cause__).__name__}: {str(error.__cause__)}")

        output.append("")
        output.append("📋 Traceback:")
        tb_lines = traceback.format_exception(type(error), error, error.__traceback__)
        for line in tb_lines:
            for sub_line in line.rstrip().split('\n'):
                output.append(f"  {sub_line}")

        return "\n".join(output)
