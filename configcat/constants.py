"""Constants shared across the SDK.

Centralizes the CDN location, config file naming, and default timings.
"""

from datetime import UTC, datetime


SDK_NAME = "ConfigCat-Python"
SDK_VERSION = "0.1.0"

# Remote config location
DEFAULT_BASE_URL = "https://cdn.configcat.com"
CONFIG_FILES_PATH = "configuration-files"
CONFIG_FILE_NAME = "config_v4.json"

# Default policy timings
DEFAULT_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_MAX_INIT_WAIT_SECONDS = 5.0
DEFAULT_CACHE_EXPIRY_SECONDS = 60.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Timestamp of an entry that has never been fetched; always expired.
NEVER_FETCHED = datetime.min.replace(tzinfo=UTC)

# Key holding the stored value inside a flag definition
FLAG_VALUE_KEY = "v"

# Logging component names
COMPONENT_FETCH = "fetch"
COMPONENT_CACHE = "cache"
COMPONENT_POLICY = "policy"
COMPONENT_CLIENT = "client"
COMPONENT_CLI = "cli"
