"""Conditional fetch layer for the remote config document.

This module provides:
- ETag conditional requests (If-None-Match)
- Pluggable HTTP GET transport with an httpx default
- Typed fetch outcomes instead of raised errors
- SDK key masking for logs
- Metrics collection for observability
"""

from configcat.fetch.client import ConfigFetcher, build_config_url, build_user_agent
from configcat.fetch.constants import HTTP_STATUS_NOT_MODIFIED, HTTP_STATUS_OK
from configcat.fetch.metrics import FetchMetrics
from configcat.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    HttpResponse,
    RefreshResult,
)
from configcat.fetch.redact import mask_sdk_key, redact_sdk_key
from configcat.fetch.transport import HttpGetter, HttpTransportError, HttpxGetter


__all__ = [
    # Client
    "ConfigFetcher",
    "build_config_url",
    "build_user_agent",
    # Transport
    "HttpGetter",
    "HttpTransportError",
    "HttpxGetter",
    # Models
    "FetchError",
    "FetchErrorClass",
    "FetchOutcome",
    "FetchResult",
    "HttpResponse",
    "RefreshResult",
    # Constants
    "HTTP_STATUS_OK",
    "HTTP_STATUS_NOT_MODIFIED",
    # Metrics
    "FetchMetrics",
    # Redaction
    "mask_sdk_key",
    "redact_sdk_key",
]
