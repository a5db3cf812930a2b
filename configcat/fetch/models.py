"""Data models for the config fetch layer."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class FetchOutcome(str, Enum):
    """Outcome of one fetch attempt.

    - FETCHED: Server returned a new config document
    - NOT_MODIFIED: Server confirmed the held validator is current
    - FAILED: Transport, server, or parse failure
    """

    FETCHED = "FETCHED"
    NOT_MODIFIED = "NOT_MODIFIED"
    FAILED = "FAILED"


class FetchErrorClass(str, Enum):
    """Classification of fetch failures.

    - TRANSPORT_ERROR: Connection, DNS, or timeout failure
    - SERVER_ERROR: Response status other than 200 or 304
    - PARSE_ERROR: 200 response with a malformed body
    - CLIENT_STOPPED: Refresh requested after the client was closed
    """

    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    CLIENT_STOPPED = "CLIENT_STOPPED"


class HttpResponse(BaseModel):
    """Response returned by an HTTP getter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(ge=100, le=599, description="HTTP status code")
    body: bytes = Field(default=b"", description="Response body")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers"
    )

    def header(self, name: str) -> str | None:
        """Look up a response header case-insensitively.

        Args:
            name: Header name.

        Returns:
            Header value, or None if absent.
        """
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class FetchError(BaseModel):
    """Typed error from a fetch attempt.

    Carries the underlying cause (transport failures) or the offending
    response (server errors) so callers of ``force_refresh`` can inspect it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )
    response: HttpResponse | None = Field(
        default=None, description="Non-success response, if any"
    )
    cause: Exception | None = Field(
        default=None, description="Underlying exception, if any"
    )


class FetchResult(BaseModel):
    """Tagged result of one HTTP fetch attempt. Not stored."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: FetchOutcome
    document: dict[str, Any] | None = Field(
        default=None, description="Parsed document (FETCHED only)"
    )
    validator: str | None = Field(
        default=None, description="ETag of the fetched document (FETCHED only)"
    )
    error: FetchError | None = Field(
        default=None, description="Failure details (FAILED only)"
    )

    @classmethod
    def fetched(cls, document: dict[str, Any], validator: str | None) -> "FetchResult":
        """Build a FETCHED result."""
        return cls(
            outcome=FetchOutcome.FETCHED, document=document, validator=validator
        )

    @classmethod
    def not_modified(cls) -> "FetchResult":
        """Build a NOT_MODIFIED result."""
        return cls(outcome=FetchOutcome.NOT_MODIFIED)

    @classmethod
    def failed(cls, error: FetchError) -> "FetchResult":
        """Build a FAILED result."""
        return cls(outcome=FetchOutcome.FAILED, error=error)

    @classmethod
    def transport_error(cls, cause: Exception) -> "FetchResult":
        """Build a FAILED result for a transport-level failure."""
        return cls.failed(
            FetchError(
                error_class=FetchErrorClass.TRANSPORT_ERROR,
                message=f"Transport failure: {cause}",
                cause=cause,
            )
        )

    @classmethod
    def server_error(cls, response: HttpResponse) -> "FetchResult":
        """Build a FAILED result for an unexpected response status."""
        return cls.failed(
            FetchError(
                error_class=FetchErrorClass.SERVER_ERROR,
                message=f"Unexpected response status ({response.status_code})",
                status_code=response.status_code,
                response=response,
            )
        )

    @property
    def is_failure(self) -> bool:
        """Check if the attempt failed."""
        return self.outcome == FetchOutcome.FAILED


class RefreshResult(BaseModel):
    """Outcome of a forced refresh, handed back to the caller."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: FetchOutcome
    error: FetchError | None = None

    @classmethod
    def from_fetch(cls, result: FetchResult) -> "RefreshResult":
        """Project a fetch result onto the caller-facing result."""
        return cls(outcome=result.outcome, error=result.error)

    @property
    def is_success(self) -> bool:
        """Check if the refresh succeeded, whether or not the config changed."""
        return self.error is None and self.outcome != FetchOutcome.FAILED
