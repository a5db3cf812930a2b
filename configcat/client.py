"""Public client: value lookups and forced refreshes."""

from threading import Lock
from types import TracebackType
from typing import Any

import structlog

from configcat.cache.store import ConfigStore
from configcat.constants import COMPONENT_CLIENT
from configcat.document import (
    ConfigParser,
    FlagEvaluator,
    RawValueEvaluator,
    parse_config_json,
)
from configcat.errors import MissingSdkKeyError
from configcat.fetch.client import ConfigFetcher
from configcat.fetch.models import RefreshResult
from configcat.fetch.redact import mask_sdk_key
from configcat.fetch.transport import HttpGetter, HttpxGetter
from configcat.options import ClientOptions
from configcat.policy.engine import Clock, FetchPolicyEngine, utc_now
from configcat.policy.models import FetchPolicy
from configcat.settings.app import ConfigCatSettings


logger = structlog.get_logger()


class ConfigCatClient:
    """Feature flag client for one SDK key.

    Construction starts the fetch policy engine; ``close`` stops it.
    Lookups never raise: a missing key, a failed fetch, or an
    unevaluable flag all yield the caller's default value.

    Example:
        with ConfigCatClient("SDK_KEY", fetch_policy=LazyLoadPolicy()) as client:
            enabled = client.get_value("isAwesomeFeatureEnabled", False)
    """

    def __init__(  # noqa: PLR0913
        self,
        sdk_key: str | None,
        *,
        fetch_policy: FetchPolicy | None = None,
        base_url: str | None = None,
        initial_config: dict[str, Any] | None = None,
        request_timeout_seconds: float | None = None,
        http_getter: HttpGetter | None = None,
        parser: ConfigParser = parse_config_json,
        evaluator: FlagEvaluator | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize and start the client.

        Args:
            sdk_key: ConfigCat SDK key.
            fetch_policy: Fetch policy (default: auto polling).
            base_url: CDN base URL override.
            initial_config: Document to seed the cache with.
            request_timeout_seconds: Timeout for the default HTTP getter.
            http_getter: HTTP GET collaborator (default: httpx).
            parser: Config document parser.
            evaluator: Flag evaluator (default: stored value).
            clock: Source of timezone-aware current time.

        Raises:
            MissingSdkKeyError: If no SDK key is given.
        """
        if not sdk_key:
            logger.error(
                "client_start_failed",
                component=COMPONENT_CLIENT,
                reason="missing_sdk_key",
            )
            raise MissingSdkKeyError()

        overrides: dict[str, Any] = {
            "fetch_policy": fetch_policy,
            "base_url": base_url,
            "initial_config": initial_config,
            "request_timeout_seconds": request_timeout_seconds,
        }
        self._options = ClientOptions(
            sdk_key=sdk_key,
            **{name: value for name, value in overrides.items() if value is not None},
        )

        masked_key = mask_sdk_key(sdk_key)
        getter = http_getter or HttpxGetter(self._options.request_timeout_seconds)
        policy = self._options.fetch_policy

        self._evaluator = evaluator or RawValueEvaluator()
        self._store = ConfigStore(self._options.initial_config)
        self._engine = FetchPolicyEngine(
            policy=policy,
            fetcher=ConfigFetcher(
                sdk_key=sdk_key,
                getter=getter,
                mode_code=policy.mode.value,
                base_url=self._options.base_url,
                parser=parser,
            ),
            store=self._store,
            clock=clock,
            log_key=masked_key,
        )
        self._log = logger.bind(component=COMPONENT_CLIENT, sdk_key=masked_key)

        self._engine.start()
        self._log.info(
            "client_started",
            policy=policy.mode.name,
            seeded=self._options.initial_config is not None,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ConfigCatSettings,
        **collaborators: Any,
    ) -> "ConfigCatClient":
        """Build a client from environment settings.

        Args:
            settings: Loaded settings.
            **collaborators: Extra keyword arguments for the constructor
                (``http_getter``, ``evaluator``, ``initial_config``...).

        Returns:
            A started client.
        """
        return cls(
            settings.sdk_key,
            fetch_policy=settings.fetch_policy(),
            base_url=settings.base_url,
            request_timeout_seconds=settings.request_timeout_seconds,
            **collaborators,
        )

    @property
    def options(self) -> ClientOptions:
        """Get the client's construction options."""
        return self._options

    @property
    def engine(self) -> FetchPolicyEngine:
        """Get the fetch policy engine."""
        return self._engine

    def get_value(self, key: str, default_value: Any) -> Any:
        """Look up a flag value.

        Under lazy loading an expired cache is refreshed first, blocking
        for one HTTP round trip.

        Args:
            key: Flag key.
            default_value: Returned unchanged when the flag is unavailable.

        Returns:
            The flag value, or ``default_value``.
        """
        document = self._engine.current_entry().document
        if key not in document:
            return default_value

        try:
            return self._evaluator.evaluate(key, document[key])
        except Exception as e:  # noqa: BLE001
            # Injected evaluators may raise anything, not only FlagEvaluationError
            self._log.warning(
                "flag_evaluation_failed",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return default_value

    def get_all_keys(self) -> list[str]:
        """Get the keys of every flag in the current config.

        Returns:
            Flag keys, in document order.
        """
        return list(self._engine.current_entry().document)

    def force_refresh(self) -> RefreshResult:
        """Fetch the config now, whatever the policy.

        Returns:
            Success, or the transport/server/parse failure as a value.
        """
        result = self._engine.refresh()
        if not result.is_success and result.error is not None:
            self._log.warning(
                "force_refresh_failed",
                error_class=result.error.error_class.value,
                status_code=result.error.status_code,
            )
        return result

    def close(self) -> None:
        """Stop background polling and refuse further fetches."""
        self._engine.stop()
        self._log.info("client_closed")

    def __enter__(self) -> "ConfigCatClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class ClientRegistry:
    """Caller-owned registry keeping one client per SDK key.

    Replaces process-wide named clients: create a registry where the
    application wires its dependencies and pass it (or its clients) along.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._clients: dict[str, ConfigCatClient] = {}
        self._lock = Lock()

    def get_or_create(self, sdk_key: str, **kwargs: Any) -> ConfigCatClient:
        """Get the client for an SDK key, creating it on first use.

        Args:
            sdk_key: ConfigCat SDK key.
            **kwargs: Constructor arguments, used only on creation.

        Returns:
            The client registered for ``sdk_key``.

        Raises:
            MissingSdkKeyError: If no SDK key is given.
        """
        if not sdk_key:
            raise MissingSdkKeyError()

        with self._lock:
            client = self._clients.get(sdk_key)
            if client is None:
                client = ConfigCatClient(sdk_key, **kwargs)
                self._clients[sdk_key] = client
            elif kwargs:
                logger.warning(
                    "client_options_ignored",
                    component=COMPONENT_CLIENT,
                    sdk_key=mask_sdk_key(sdk_key),
                    options=sorted(kwargs),
                )
            return client

    def get(self, sdk_key: str) -> ConfigCatClient | None:
        """Get the client for an SDK key, if one exists."""
        with self._lock:
            return self._clients.get(sdk_key)

    def close_all(self) -> None:
        """Close and forget every registered client."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
