"""Validated client construction options."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from configcat.constants import DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT_SECONDS
from configcat.policy.models import AutoPollPolicy, FetchPolicy


class ClientOptions(BaseModel):
    """Options recognized when a client is constructed.

    Immutable once the client has started.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sdk_key: Annotated[str, Field(min_length=1, description="ConfigCat SDK key")]
    fetch_policy: FetchPolicy = Field(default_factory=AutoPollPolicy)
    base_url: Annotated[str, Field(min_length=1)] = DEFAULT_BASE_URL
    initial_config: dict[str, Any] | None = Field(
        default=None, description="Document to seed the cache with"
    )
    request_timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = (
        DEFAULT_REQUEST_TIMEOUT_SECONDS
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the base URL is absolute HTTP(S)."""
        if not v.startswith(("http://", "https://")):
            msg = f"base_url must start with http:// or https://, got '{v}'"
            raise ValueError(msg)
        return v
