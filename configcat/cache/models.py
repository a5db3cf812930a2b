"""Data models for the config cache."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from configcat.constants import NEVER_FETCHED


class ConfigEntry(BaseModel):
    """One generation of cached configuration.

    Immutable; updates produce a new entry via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document: dict[str, Any] = Field(
        default_factory=dict, description="Flag key to flag definition"
    )
    validator: str | None = Field(
        default=None, description="ETag from the last 200 response"
    )
    fetched_at: datetime = Field(
        default=NEVER_FETCHED, description="When this generation was produced"
    )

    @property
    def has_document(self) -> bool:
        """Check if the entry holds any flags."""
        return bool(self.document)

    @property
    def is_never_fetched(self) -> bool:
        """Check if the entry predates any fetch."""
        return self.fetched_at == NEVER_FETCHED

    def is_expired(self, expiry_seconds: float, now: datetime) -> bool:
        """Check if the entry is older than an expiry window.

        Args:
            expiry_seconds: Expiry window in seconds.
            now: Current time.

        Returns:
            True if ``now - fetched_at >= expiry_seconds``.
        """
        return (now - self.fetched_at).total_seconds() >= expiry_seconds
