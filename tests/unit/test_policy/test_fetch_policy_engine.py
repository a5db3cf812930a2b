"""Unit tests for the fetch policy engine."""

import threading
import time
from collections.abc import Callable, Generator
from datetime import timedelta

import pytest

from configcat.cache.store import ConfigStore
from configcat.fetch.client import ConfigFetcher
from configcat.fetch.models import (
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    HttpResponse,
)
from configcat.fetch.transport import HttpTransportError
from configcat.policy.engine import FetchPolicyEngine
from configcat.policy.models import (
    AutoPollPolicy,
    FetchPolicy,
    LazyLoadPolicy,
    ManualPolicy,
)
from configcat.policy.state_machine import FetchState
from tests.helpers.stub_http import (
    CONFIG,
    FEATURE,
    StubHttpGetter,
    json_response,
    status_response,
)
from tests.helpers.time import FakeClock


EngineFactory = Callable[..., tuple[FetchPolicyEngine, ConfigStore]]


class GatedGetter(StubHttpGetter):
    """Stub getter that blocks every request until released."""

    def __init__(self, *responses: HttpResponse | Exception) -> None:
        super().__init__(list(responses))
        self.entered = threading.Event()
        self.release = threading.Event()
        self.in_flight = 0
        self.max_in_flight = 0
        self._counter_lock = threading.Lock()

    def get(self, url: str, headers: dict[str, str]) -> HttpResponse:
        with self._counter_lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.entered.set()
        self.release.wait(timeout=5)
        try:
            return super().get(url, headers)
        finally:
            with self._counter_lock:
                self.in_flight -= 1


class FailingOnceFetcher(ConfigFetcher):
    """Fetcher whose first cycle raises instead of returning a result."""

    def __init__(self, getter: StubHttpGetter) -> None:
        super().__init__(sdk_key="SDK_KEY", getter=getter, mode_code="a")
        self.attempts = 0

    def fetch(self, validator: str | None = None) -> FetchResult:
        self.attempts += 1
        if self.attempts == 1:
            msg = "cycle failed"
            raise RuntimeError(msg)
        return super().fetch(validator)


def wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll a condition until it holds or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def clock() -> FakeClock:
    """A fixed, manually advanced clock."""
    return FakeClock()


@pytest.fixture
def make_engine(
    clock: FakeClock,
) -> Generator[EngineFactory]:
    """Build started engines and stop them after the test."""
    engines: list[FetchPolicyEngine] = []

    def factory(
        policy: FetchPolicy,
        getter: StubHttpGetter,
        initial_config: dict[str, object] | None = None,
    ) -> tuple[FetchPolicyEngine, ConfigStore]:
        store = ConfigStore(initial_config)
        fetcher = ConfigFetcher(
            sdk_key="SDK_KEY",
            getter=getter,
            mode_code=policy.mode.value,
        )
        engine = FetchPolicyEngine(policy, fetcher, store, clock=clock)
        engine.start()
        engines.append(engine)
        return engine, store

    yield factory

    for engine in engines:
        engine.stop()


@pytest.mark.unit
class TestManualPolicy:
    """Tests for the manual policy."""

    def test_reads_never_fetch(self, make_engine: EngineFactory) -> None:
        """Reading under the manual policy performs no fetch."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(ManualPolicy(), getter)

        assert engine.current_entry().document == {}
        assert getter.call_count == 0
        assert engine.state == FetchState.IDLE

    def test_refresh_fetches_and_commits(self, make_engine: EngineFactory) -> None:
        """A forced refresh fetches once and publishes the document."""
        getter = StubHttpGetter([json_response(CONFIG, etag="E1")])
        engine, store = make_engine(ManualPolicy(), getter)

        result = engine.refresh()

        assert result.is_success
        assert result.outcome == FetchOutcome.FETCHED
        assert getter.call_count == 1
        assert store.current().document == CONFIG
        assert store.current().validator == "E1"
        assert engine.state == FetchState.IDLE

    def test_refresh_sends_held_validator(self, make_engine: EngineFactory) -> None:
        """The second refresh is conditional on the first response's ETag."""
        getter = StubHttpGetter(
            [json_response(CONFIG, etag="ETAG"), status_response(304, etag="ETAG")]
        )
        engine, store = make_engine(ManualPolicy(), getter)

        engine.refresh()
        first_fetched_at = store.current().fetched_at
        result = engine.refresh()

        assert "If-None-Match" not in getter.requests[0].headers
        assert getter.requests[1].headers["If-None-Match"] == "ETAG"
        assert result.outcome == FetchOutcome.NOT_MODIFIED
        assert result.is_success
        assert store.current().document == CONFIG
        assert store.current().fetched_at >= first_fetched_at

    def test_refresh_failure_keeps_entry(self, make_engine: EngineFactory) -> None:
        """A failing refresh reports the error and keeps the prior entry."""
        getter = StubHttpGetter([json_response(CONFIG), status_response(503)])
        engine, store = make_engine(ManualPolicy(), getter)
        engine.refresh()
        before = store.current()

        result = engine.refresh()

        assert not result.is_success
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.SERVER_ERROR
        assert result.error.status_code == 503
        assert store.current() is before


@pytest.mark.unit
class TestLazyLoadPolicy:
    """Tests for the lazy loading policy."""

    def test_reads_within_window_fetch_once(self, make_engine: EngineFactory) -> None:
        """Two reads inside the expiry window trigger one fetch."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(LazyLoadPolicy(cache_expiry_seconds=300), getter)

        engine.current_entry()
        entry = engine.current_entry()

        assert getter.call_count == 1
        assert entry.document == CONFIG

    def test_zero_expiry_fetches_on_every_read(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """With a zero window each read fetches."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(LazyLoadPolicy(cache_expiry_seconds=0), getter)

        engine.current_entry()
        engine.current_entry()

        assert getter.call_count == 2

    def test_expired_entry_refetches(
        self,
        make_engine: EngineFactory,
        clock: FakeClock,
    ) -> None:
        """Reads after the window elapses fetch again."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(LazyLoadPolicy(cache_expiry_seconds=300), getter)

        engine.current_entry()
        clock.advance(299)
        engine.current_entry()
        assert getter.call_count == 1

        clock.advance(1)
        engine.current_entry()
        assert getter.call_count == 2

    def test_not_modified_restarts_window(
        self,
        make_engine: EngineFactory,
        clock: FakeClock,
    ) -> None:
        """A 304 restarts the expiry clock."""
        getter = StubHttpGetter(
            [json_response(CONFIG, etag="E"), status_response(304)]
        )
        engine, _ = make_engine(LazyLoadPolicy(cache_expiry_seconds=300), getter)

        engine.current_entry()
        clock.advance(300)
        entry = engine.current_entry()
        clock.advance(10)
        engine.current_entry()

        assert getter.call_count == 2
        assert entry.document == CONFIG
        assert entry.fetched_at == clock.now - timedelta(seconds=10)

    def test_failure_retries_on_next_read(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """A failed fetch leaves the entry stale, so the next read retries."""
        getter = StubHttpGetter([HttpTransportError("down")])
        engine, _ = make_engine(
            LazyLoadPolicy(cache_expiry_seconds=300),
            getter,
            initial_config=CONFIG,
        )

        assert engine.current_entry().document == CONFIG
        assert engine.current_entry().document == CONFIG
        assert getter.call_count == 2

    def test_concurrent_expired_reads_coalesce(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """Readers racing on an expired entry share one fetch."""
        getter = GatedGetter(json_response(CONFIG))
        engine, _ = make_engine(LazyLoadPolicy(cache_expiry_seconds=300), getter)
        results: list[dict[str, object]] = []

        def read() -> None:
            results.append(engine.current_entry().document)

        readers = [threading.Thread(target=read) for _ in range(5)]
        for thread in readers:
            thread.start()
        assert getter.entered.wait(timeout=5)
        getter.release.set()
        for thread in readers:
            thread.join(timeout=5)

        assert getter.call_count == 1
        assert results == [CONFIG] * 5


@pytest.mark.unit
class TestAutoPollPolicy:
    """Tests for the auto polling policy."""

    def test_first_poll_makes_value_available(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """Reads wait for the first poll instead of seeing an empty store."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(AutoPollPolicy(poll_interval_seconds=60), getter)

        assert engine.current_entry().document[FEATURE] == CONFIG[FEATURE]
        assert getter.requests[0].headers["User-Agent"].startswith(
            "ConfigCat-Python/a-"
        )

    def test_polls_repeatedly(self, make_engine: EngineFactory) -> None:
        """The poll thread fetches again after each interval."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(AutoPollPolicy(poll_interval_seconds=0.02), getter)

        assert wait_until(lambda: getter.call_count >= 3)
        assert wait_until(lambda: engine.state == FetchState.SCHEDULED)

    def test_failed_first_poll_keeps_seed(self, make_engine: EngineFactory) -> None:
        """A failing server leaves the seeded document readable."""
        getter = StubHttpGetter([status_response(500)])
        engine, _ = make_engine(
            AutoPollPolicy(poll_interval_seconds=60),
            getter,
            initial_config=CONFIG,
        )

        assert engine.current_entry().document == CONFIG
        assert wait_until(lambda: getter.call_count == 1)

    def test_refresh_does_not_disturb_schedule(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """An out-of-band refresh returns the engine to SCHEDULED."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(AutoPollPolicy(poll_interval_seconds=60), getter)
        engine.current_entry()

        assert engine.refresh().is_success
        assert engine.state == FetchState.SCHEDULED
        assert getter.call_count == 2

    def test_stop_cancels_polling(self, make_engine: EngineFactory) -> None:
        """No poll fires after stop."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(AutoPollPolicy(poll_interval_seconds=0.02), getter)
        assert wait_until(lambda: getter.call_count >= 2)

        engine.stop()
        calls = getter.call_count
        time.sleep(0.1)

        assert getter.call_count == calls
        assert engine.state == FetchState.STOPPED

    def test_polling_survives_a_failing_cycle(self, clock: FakeClock) -> None:
        """An exception inside one cycle does not end the poll thread."""
        getter = StubHttpGetter([json_response(CONFIG)])
        fetcher = FailingOnceFetcher(getter)
        engine = FetchPolicyEngine(
            AutoPollPolicy(poll_interval_seconds=0.02),
            fetcher,
            ConfigStore(),
            clock=clock,
        )
        engine.start()
        try:
            assert wait_until(lambda: getter.call_count >= 2)
            assert engine.current_entry().document == CONFIG
        finally:
            engine.stop()

        assert engine.state == FetchState.STOPPED


@pytest.mark.unit
class TestConcurrencyAndShutdown:
    """Tests for serialization of fetch cycles and stopping."""

    def test_concurrent_refreshes_are_serialized(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """Each refresh performs its own fetch, one at a time."""
        getter = GatedGetter(json_response(CONFIG))
        engine, _ = make_engine(ManualPolicy(), getter)
        outcomes: list[bool] = []

        def refresh() -> None:
            outcomes.append(engine.refresh().is_success)

        threads = [threading.Thread(target=refresh) for _ in range(3)]
        for thread in threads:
            thread.start()
        assert getter.entered.wait(timeout=5)
        getter.release.set()
        for thread in threads:
            thread.join(timeout=5)

        assert outcomes == [True, True, True]
        assert getter.call_count == 3
        assert getter.max_in_flight == 1

    def test_refresh_after_stop_does_not_fetch(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """A stopped engine refuses to fetch."""
        getter = StubHttpGetter([json_response(CONFIG)])
        engine, _ = make_engine(ManualPolicy(), getter)
        engine.stop()

        result = engine.refresh()

        assert not result.is_success
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.CLIENT_STOPPED
        assert getter.call_count == 0

    def test_stop_is_idempotent(self, make_engine: EngineFactory) -> None:
        """Stopping twice is harmless."""
        engine, _ = make_engine(ManualPolicy(), StubHttpGetter([json_response({})]))

        engine.stop()
        engine.stop()

        assert engine.state == FetchState.STOPPED

    def test_in_flight_result_discarded_on_stop(
        self,
        make_engine: EngineFactory,
    ) -> None:
        """A fetch completing after stop is not applied."""
        getter = GatedGetter(json_response(CONFIG))
        engine, store = make_engine(ManualPolicy(), getter)
        results = []

        refresher = threading.Thread(target=lambda: results.append(engine.refresh()))
        refresher.start()
        assert getter.entered.wait(timeout=5)

        stopper = threading.Thread(target=engine.stop)
        stopper.start()
        assert wait_until(lambda: engine.is_stopped)
        getter.release.set()
        refresher.join(timeout=5)
        stopper.join(timeout=5)

        assert results[0].error.error_class == FetchErrorClass.CLIENT_STOPPED
        assert store.current().document == {}
        assert engine.state == FetchState.STOPPED
