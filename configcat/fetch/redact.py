"""SDK key masking for logging."""

# Number of leading and trailing characters left visible
VISIBLE_CHARS = 4
MASK = "****"


def mask_sdk_key(sdk_key: str) -> str:
    """Mask an SDK key for safe logging.

    Keys too short to partially reveal are masked entirely.

    Args:
        sdk_key: The SDK key.

    Returns:
        Masked SDK key.
    """
    if len(sdk_key) <= VISIBLE_CHARS * 2:
        return MASK
    return f"{sdk_key[:VISIBLE_CHARS]}{MASK}{sdk_key[-VISIBLE_CHARS:]}"


def redact_sdk_key(url: str, sdk_key: str) -> str:
    """Replace an SDK key embedded in a URL with its masked form.

    Args:
        url: URL that may contain the SDK key.
        sdk_key: The SDK key to mask.

    Returns:
        URL with the SDK key masked.
    """
    if not sdk_key:
        return url
    return url.replace(sdk_key, mask_sdk_key(sdk_key))
