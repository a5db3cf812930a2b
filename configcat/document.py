"""Config document collaborators: JSON parsing and raw flag evaluation."""

import json
from collections.abc import Callable
from typing import Any, Protocol

from configcat.constants import FLAG_VALUE_KEY
from configcat.errors import ConfigParseError, FlagEvaluationError


ConfigParser = Callable[[bytes], dict[str, Any]]


def parse_config_json(body: bytes) -> dict[str, Any]:
    """Parse a downloaded config document.

    Args:
        body: Raw response body.

    Returns:
        Mapping of flag key to flag definition.

    Raises:
        ConfigParseError: If the body is not a JSON object.
    """
    try:
        document = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Malformed config JSON: {e}"
        raise ConfigParseError(msg) from e

    if not isinstance(document, dict):
        msg = f"Config document must be a JSON object, got {type(document).__name__}"
        raise ConfigParseError(msg)

    return document


class FlagEvaluator(Protocol):
    """Turns a stored flag definition into the value handed to callers."""

    def evaluate(self, key: str, definition: Any) -> Any:
        """Evaluate a flag definition.

        Args:
            key: Flag key.
            definition: Flag definition from the config document.

        Returns:
            The flag value.
        """
        ...


class RawValueEvaluator:
    """Returns the stored value of a flag without applying targeting rules."""

    def evaluate(self, key: str, definition: Any) -> Any:
        if not isinstance(definition, dict) or FLAG_VALUE_KEY not in definition:
            raise FlagEvaluationError(key, "definition has no stored value")
        return definition[FLAG_VALUE_KEY]
