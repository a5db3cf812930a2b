"""Fetch policy configuration models."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from configcat.constants import (
    DEFAULT_CACHE_EXPIRY_SECONDS,
    DEFAULT_MAX_INIT_WAIT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
)


class PolicyMode(str, Enum):
    """Fetch policy modes, valued by their user agent code.

    - MANUAL: Fetch only when the caller forces a refresh
    - AUTO_POLL: Fetch at startup and then on a fixed interval
    - LAZY_LOAD: Fetch on read once the cached entry has expired
    """

    MANUAL = "m"
    AUTO_POLL = "a"
    LAZY_LOAD = "l"


class ManualPolicy(BaseModel):
    """No automatic fetching; the caller must force a refresh."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal[PolicyMode.MANUAL] = PolicyMode.MANUAL


class AutoPollPolicy(BaseModel):
    """Background fetch at startup and every ``poll_interval_seconds``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal[PolicyMode.AUTO_POLL] = PolicyMode.AUTO_POLL
    poll_interval_seconds: Annotated[float, Field(gt=0.0)] = (
        DEFAULT_POLL_INTERVAL_SECONDS
    )
    max_init_wait_seconds: Annotated[
        float,
        Field(ge=0.0, description="How long reads wait for the first poll"),
    ] = DEFAULT_MAX_INIT_WAIT_SECONDS


class LazyLoadPolicy(BaseModel):
    """Synchronous fetch on read once the entry is older than the expiry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal[PolicyMode.LAZY_LOAD] = PolicyMode.LAZY_LOAD
    cache_expiry_seconds: Annotated[float, Field(ge=0.0)] = (
        DEFAULT_CACHE_EXPIRY_SECONDS
    )


FetchPolicy = Annotated[
    ManualPolicy | AutoPollPolicy | LazyLoadPolicy,
    Field(discriminator="mode"),
]
