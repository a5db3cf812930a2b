"""Exception hierarchy for the SDK.

Only construction-time misconfiguration and collaborator misuse raise.
Fetch-time failures are reported as values (see ``configcat.fetch.models``).
"""


class ConfigCatError(Exception):
    """Base exception for all SDK errors."""


class MissingSdkKeyError(ConfigCatError):
    """Raised when a client is constructed without an SDK key."""

    def __init__(self) -> None:
        """Initialize the error."""
        super().__init__("SDK key is required to start a ConfigCat client")


class ConfigParseError(ConfigCatError):
    """Raised when a downloaded config document cannot be parsed."""


class FlagEvaluationError(ConfigCatError):
    """Raised when a flag definition holds no usable value.

    Attributes:
        key: The flag key being evaluated.
    """

    def __init__(self, key: str, message: str) -> None:
        """Initialize the error.

        Args:
            key: The flag key being evaluated.
            message: Human-readable description.
        """
        self.key = key
        super().__init__(f"Cannot evaluate flag '{key}': {message}")
