"""Fetch policies and the engine that applies them."""

from configcat.policy.engine import FetchPolicyEngine, utc_now
from configcat.policy.models import (
    AutoPollPolicy,
    FetchPolicy,
    LazyLoadPolicy,
    ManualPolicy,
    PolicyMode,
)
from configcat.policy.state_machine import (
    FetchState,
    FetchStateError,
    FetchStateMachine,
)


__all__ = [
    # Engine
    "FetchPolicyEngine",
    "utc_now",
    # Policies
    "AutoPollPolicy",
    "FetchPolicy",
    "LazyLoadPolicy",
    "ManualPolicy",
    "PolicyMode",
    # State machine
    "FetchState",
    "FetchStateError",
    "FetchStateMachine",
]
