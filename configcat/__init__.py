"""ConfigCat feature flag client.

Downloads the ConfigCat config document, keeps it fresh according to a
fetch policy, and serves flag values from an in-process cache.
"""

from configcat.cache import ConfigEntry, ConfigStore
from configcat.client import ClientRegistry, ConfigCatClient
from configcat.constants import DEFAULT_BASE_URL, SDK_VERSION
from configcat.document import FlagEvaluator, RawValueEvaluator, parse_config_json
from configcat.errors import (
    ConfigCatError,
    ConfigParseError,
    FlagEvaluationError,
    MissingSdkKeyError,
)
from configcat.fetch import (
    FetchError,
    FetchErrorClass,
    FetchOutcome,
    HttpGetter,
    HttpResponse,
    HttpTransportError,
    HttpxGetter,
    RefreshResult,
)
from configcat.options import ClientOptions
from configcat.policy import (
    AutoPollPolicy,
    FetchPolicy,
    LazyLoadPolicy,
    ManualPolicy,
    PolicyMode,
)


__version__ = SDK_VERSION

__all__ = [
    "__version__",
    # Client
    "ClientOptions",
    "ClientRegistry",
    "ConfigCatClient",
    "DEFAULT_BASE_URL",
    # Policies
    "AutoPollPolicy",
    "FetchPolicy",
    "LazyLoadPolicy",
    "ManualPolicy",
    "PolicyMode",
    # Cache
    "ConfigEntry",
    "ConfigStore",
    # Fetch
    "FetchError",
    "FetchErrorClass",
    "FetchOutcome",
    "HttpGetter",
    "HttpResponse",
    "HttpTransportError",
    "HttpxGetter",
    "RefreshResult",
    # Document
    "FlagEvaluator",
    "RawValueEvaluator",
    "parse_config_json",
    # Errors
    "ConfigCatError",
    "ConfigParseError",
    "FlagEvaluationError",
    "MissingSdkKeyError",
]
