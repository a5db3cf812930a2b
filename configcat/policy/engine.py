"""Fetch policy engine: decides when to fetch and commits results."""

from collections.abc import Callable
from datetime import UTC, datetime
from threading import Event, Lock, Thread

import structlog

from configcat.cache.models import ConfigEntry
from configcat.cache.store import ConfigStore
from configcat.constants import COMPONENT_POLICY
from configcat.fetch.client import ConfigFetcher
from configcat.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    RefreshResult,
)
from configcat.policy.models import AutoPollPolicy, FetchPolicy, LazyLoadPolicy
from configcat.policy.state_machine import FetchState, FetchStateMachine


logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get the current UTC time."""
    return datetime.now(UTC)


def _stopped_result() -> FetchResult:
    return FetchResult.failed(
        FetchError(
            error_class=FetchErrorClass.CLIENT_STOPPED,
            message="Client has been stopped",
        )
    )


class FetchPolicyEngine:
    """Drives fetch cycles according to the configured policy.

    Every fetch cycle, whether triggered by the poll timer, a forced
    refresh, or an expired lazy read, runs through ``_fetch_and_commit``
    under a single fetch lock. Cycles are therefore strictly serialized:
    a refresh issued while another cycle is in flight waits for it and
    then performs its own fetch.
    """

    def __init__(
        self,
        policy: FetchPolicy,
        fetcher: ConfigFetcher,
        store: ConfigStore,
        clock: Clock = utc_now,
        log_key: str = "",
    ) -> None:
        """Initialize the engine. Call ``start`` to begin polling.

        Args:
            policy: Fetch policy, fixed for the engine's lifetime.
            fetcher: Config fetcher.
            store: Store receiving committed entries.
            clock: Source of timezone-aware current time.
            log_key: Masked SDK key for logging.
        """
        self._policy = policy
        self._fetcher = fetcher
        self._store = store
        self._clock = clock
        self._fetch_lock = Lock()
        self._stop_event = Event()
        self._initialized = Event()
        self._poll_thread: Thread | None = None
        self._state_machine = FetchStateMachine(log_key)
        self._log = logger.bind(
            component=COMPONENT_POLICY,
            sdk_key=log_key,
            policy=policy.mode.name,
        )

    @property
    def policy(self) -> FetchPolicy:
        """Get the fetch policy."""
        return self._policy

    @property
    def state(self) -> FetchState:
        """Get the current engine state."""
        return self._state_machine.state

    @property
    def is_stopped(self) -> bool:
        """Check if the engine has been stopped."""
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the engine.

        Auto polling launches the background poll thread; the other
        policies have no background activity.
        """
        with self._fetch_lock:
            if self._poll_thread is not None or self._stop_event.is_set():
                return

            if not isinstance(self._policy, AutoPollPolicy):
                self._initialized.set()
                return

            self._poll_thread = Thread(
                target=self._poll_loop,
                name="configcat-auto-poll",
                daemon=True,
            )
            self._poll_thread.start()

        self._log.info(
            "auto_poll_started",
            poll_interval_seconds=self._policy.poll_interval_seconds,
        )

    def stop(self) -> None:
        """Stop the engine.

        Cancels the pending poll and waits for an in-flight cycle to finish.
        Results of a cycle still in flight are discarded. Idempotent.
        """
        self._stop_event.set()
        self._initialized.set()

        thread = self._poll_thread
        if thread is not None and thread.is_alive():
            thread.join()

        with self._fetch_lock:
            if self._state_machine.is_terminal():
                return
            self._state_machine.transition(FetchState.STOPPED)

        self._log.info("engine_stopped")

    def refresh(self) -> RefreshResult:
        """Perform exactly one fetch cycle.

        Returns:
            The cycle's outcome; failures are returned, never raised.
        """
        with self._fetch_lock:
            if self._stop_event.is_set():
                result = _stopped_result()
            else:
                result = self._fetch_and_commit(trigger="forced")
        return RefreshResult.from_fetch(result)

    def current_entry(self) -> ConfigEntry:
        """Get the entry a read should be served from.

        Lazy loading fetches synchronously when the entry has expired.
        Auto polling waits up to ``max_init_wait_seconds`` for the first
        poll to finish.

        Returns:
            The current ConfigEntry.
        """
        if isinstance(self._policy, LazyLoadPolicy):
            self._refresh_if_expired(self._policy.cache_expiry_seconds)
        elif isinstance(self._policy, AutoPollPolicy):
            self._initialized.wait(self._policy.max_init_wait_seconds)
        return self._store.current()

    def _refresh_if_expired(self, expiry_seconds: float) -> None:
        if not self._store.current().is_expired(expiry_seconds, self._clock()):
            return

        with self._fetch_lock:
            if self._stop_event.is_set():
                return
            # Another reader may have refreshed while we waited for the lock
            if not self._store.current().is_expired(expiry_seconds, self._clock()):
                return
            self._fetch_and_commit(trigger="lazy")

    def _poll_loop(self) -> None:
        interval = self._policy.poll_interval_seconds
        while not self._stop_event.is_set():
            try:
                with self._fetch_lock:
                    if not self._stop_event.is_set():
                        self._fetch_and_commit(trigger="poll")
            except Exception:  # noqa: BLE001
                # One bad cycle must not end polling
                self._log.exception("poll_cycle_failed")
            self._initialized.set()
            if self._stop_event.wait(interval):
                break
        self._log.info("auto_poll_stopped")

    def _fetch_and_commit(self, trigger: str) -> FetchResult:
        """Run one fetch cycle. Caller must hold the fetch lock.

        Args:
            trigger: What started the cycle, for logging.

        Returns:
            The fetch result.
        """
        self._state_machine.transition(FetchState.FETCHING)
        try:
            previous = self._store.current()
            result = self._fetcher.fetch(previous.validator)

            if self._stop_event.is_set():
                self._log.info(
                    "fetch_result_discarded",
                    trigger=trigger,
                    outcome=result.outcome.value,
                )
                return _stopped_result()

            entry = ConfigStore.update(result, previous, self._clock())
            self._store.replace(entry)
            self._log.debug(
                "fetch_cycle_complete",
                trigger=trigger,
                outcome=result.outcome.value,
                flags=len(entry.document),
            )
            return result
        finally:
            self._state_machine.transition(self._resting_state())

    def _resting_state(self) -> FetchState:
        if self._poll_thread is not None and not self._stop_event.is_set():
            return FetchState.SCHEDULED
        return FetchState.IDLE
