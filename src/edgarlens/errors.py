"""Error taxonomy shared by the research core, the CLI and the web API."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DOCS_REQUIRED = "DOCS_REQUIRED"
    IDENTITY_REQUIRED = "IDENTITY_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 2,
    ErrorCode.DOCS_REQUIRED: 2,
    ErrorCode.IDENTITY_REQUIRED: 3,
    ErrorCode.RATE_LIMITED: 4,
    ErrorCode.NOT_FOUND: 5,
    ErrorCode.NETWORK_ERROR: 6,
    ErrorCode.PARSE_ERROR: 7,
    ErrorCode.INTERNAL_ERROR: 10,
}


class ResearchError(Exception):
    """Base error carrying a stable code and a retriable flag."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, retriable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.retriable = retriable

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.code, 10)

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code.value, "message": self.message, "retriable": self.retriable}


class ValidationError(ResearchError):
    """Malformed query, parameters, manifest shape or selection source."""

    code = ErrorCode.VALIDATION_ERROR


class DocumentsRequiredError(ResearchError):
    """No explicit documents and no usable cached corpus."""

    code = ErrorCode.DOCS_REQUIRED


class IdentityRequiredError(ResearchError):
    code = ErrorCode.IDENTITY_REQUIRED


class RateLimitedError(ResearchError):
    code = ErrorCode.RATE_LIMITED

    def __init__(
        self, message: str, *, retriable: bool = True, retry_after: float | None = None
    ) -> None:
        super().__init__(message, retriable=retriable)
        self.retry_after = retry_after


class NotFoundError(ResearchError):
    """Missing local file, cached artifact or remote filing."""

    code = ErrorCode.NOT_FOUND


class NetworkError(ResearchError):
    code = ErrorCode.NETWORK_ERROR

    def __init__(
        self, message: str, *, retriable: bool = False, retry_after: float | None = None
    ) -> None:
        super().__init__(message, retriable=retriable)
        self.retry_after = retry_after


class ParseError(ResearchError):
    """Persisted or fetched content that does not have the expected shape."""

    code = ErrorCode.PARSE_ERROR


def to_research_error(exc: BaseException) -> ResearchError:
    """Wrap unexpected exceptions so callers always see a coded error."""
    if isinstance(exc, ResearchError):
        return exc
    error = ResearchError(str(exc) or exc.__class__.__name__)
    error.__cause__ = exc
    return error
