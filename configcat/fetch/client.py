"""Conditional HTTP fetcher for the remote config document."""

import time

import structlog

from configcat.constants import (
    COMPONENT_FETCH,
    CONFIG_FILE_NAME,
    CONFIG_FILES_PATH,
    DEFAULT_BASE_URL,
    SDK_NAME,
    SDK_VERSION,
)
from configcat.document import ConfigParser, parse_config_json
from configcat.errors import ConfigParseError
from configcat.fetch.constants import (
    HEADER_CONFIGCAT_USER_AGENT,
    HEADER_ETAG,
    HEADER_IF_NONE_MATCH,
    HEADER_USER_AGENT,
    HTTP_STATUS_NOT_MODIFIED,
    HTTP_STATUS_OK,
)
from configcat.fetch.metrics import FetchMetrics
from configcat.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    HttpResponse,
)
from configcat.fetch.redact import mask_sdk_key, redact_sdk_key
from configcat.fetch.transport import HttpGetter, HttpTransportError


logger = structlog.get_logger()


def build_config_url(base_url: str, sdk_key: str) -> str:
    """Build the config document URL.

    Args:
        base_url: CDN base URL, with or without a trailing slash.
        sdk_key: SDK key path segment.

    Returns:
        Complete config document URL.
    """
    return f"{base_url.rstrip('/')}/{CONFIG_FILES_PATH}/{sdk_key}/{CONFIG_FILE_NAME}"


def build_user_agent(mode_code: str) -> str:
    """Build the user agent string for a policy mode.

    Args:
        mode_code: Single-letter policy code (m, a, or l).

    Returns:
        User agent string, e.g. ``ConfigCat-Python/m-0.1.0``.
    """
    return f"{SDK_NAME}/{mode_code}-{SDK_VERSION}"


class ConfigFetcher:
    """Stateless conditional fetcher for the config document.

    Builds the request, performs one GET through the injected getter, and
    classifies the response. Never retries and never raises for fetch-time
    failures; they come back as FAILED results.
    """

    def __init__(
        self,
        sdk_key: str,
        getter: HttpGetter,
        mode_code: str,
        base_url: str = DEFAULT_BASE_URL,
        parser: ConfigParser = parse_config_json,
    ) -> None:
        """Initialize the fetcher.

        Args:
            sdk_key: SDK key identifying the config.
            getter: HTTP GET collaborator.
            mode_code: Single-letter policy code for the user agent.
            base_url: CDN base URL.
            parser: Config document parser.
        """
        self._getter = getter
        self._parser = parser
        self._url = build_config_url(base_url, sdk_key)
        self._user_agent = build_user_agent(mode_code)
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(
            component=COMPONENT_FETCH,
            sdk_key=mask_sdk_key(sdk_key),
            url=redact_sdk_key(self._url, sdk_key),
        )

    @property
    def url(self) -> str:
        """Config document URL."""
        return self._url

    @property
    def user_agent(self) -> str:
        """User agent sent with every request."""
        return self._user_agent

    def build_headers(self, validator: str | None) -> dict[str, str]:
        """Build request headers.

        Args:
            validator: ETag of the held document, if any.

        Returns:
            Request headers.
        """
        headers = {
            HEADER_USER_AGENT: self._user_agent,
            HEADER_CONFIGCAT_USER_AGENT: self._user_agent,
        }
        if validator:
            headers[HEADER_IF_NONE_MATCH] = validator
        return headers

    def fetch(self, validator: str | None = None) -> FetchResult:
        """Fetch the config document once.

        Args:
            validator: ETag of the held document, if any.

        Returns:
            FETCHED, NOT_MODIFIED, or FAILED result.
        """
        start_time_ns = time.perf_counter_ns()
        headers = self.build_headers(validator)

        try:
            response = self._getter.get(self._url, headers)
        except HttpTransportError as e:
            result = FetchResult.transport_error(e)
        except Exception as e:  # noqa: BLE001
            # Custom getters may raise their client's own errors
            self._log.debug("unexpected_getter_error", error_type=type(e).__name__)
            result = FetchResult.transport_error(e)
        else:
            self._metrics.record_request(response.status_code)
            result = self._interpret(response)

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_duration(duration_ms)

        if result.error is not None:
            self._metrics.record_failure(result.error.error_class)
            self._log.warning(
                "config_fetch_failed",
                error_class=result.error.error_class.value,
                status_code=result.error.status_code,
                error=result.error.message,
                duration_ms=round(duration_ms, 2),
            )
        else:
            self._log.info(
                "config_fetch_complete",
                outcome=result.outcome.value,
                conditional=validator is not None,
                duration_ms=round(duration_ms, 2),
            )

        return result

    def _interpret(self, response: HttpResponse) -> FetchResult:
        """Classify an HTTP response.

        Args:
            response: Response from the getter.

        Returns:
            Fetch result for the response.
        """
        if response.status_code == HTTP_STATUS_NOT_MODIFIED:
            self._metrics.record_not_modified()
            return FetchResult.not_modified()

        if response.status_code != HTTP_STATUS_OK:
            return FetchResult.server_error(response)

        try:
            document = self._parser(response.body)
        except ConfigParseError as e:
            return self._parse_error(response, str(e), e)
        except Exception as e:  # noqa: BLE001
            # Injected parsers raise their own errors (json.loads: ValueError)
            return self._parse_error(response, f"Config parser failed: {e}", e)

        if not isinstance(document, dict):
            return self._parse_error(
                response,
                "Config document must be a JSON object, "
                f"got {type(document).__name__}",
            )

        return FetchResult.fetched(document, response.header(HEADER_ETAG))

    @staticmethod
    def _parse_error(
        response: HttpResponse,
        message: str,
        cause: Exception | None = None,
    ) -> FetchResult:
        return FetchResult.failed(
            FetchError(
                error_class=FetchErrorClass.PARSE_ERROR,
                message=message,
                status_code=response.status_code,
                response=response,
                cause=cause,
            )
        )
