"""Concurrency-safe holder of the current config entry."""

import copy
from datetime import datetime
from threading import Lock
from typing import Any

import structlog

from configcat.cache.models import ConfigEntry
from configcat.constants import COMPONENT_CACHE, NEVER_FETCHED
from configcat.fetch.models import FetchOutcome, FetchResult


logger = structlog.get_logger()


class ConfigStore:
    """Single-slot store for the current ConfigEntry.

    Written only by the fetch policy engine; read by any number of threads.
    The lock guards the reference swap only, so readers never wait on
    network activity.

    Invariants:
    - A populated document is never replaced by an empty one
    - ``fetched_at`` of committed entries never decreases
    """

    def __init__(self, initial_config: dict[str, Any] | None = None) -> None:
        """Initialize the store.

        Both a seeded and an empty store start out infinitely stale, so the
        first read or poll always triggers a real fetch.

        Args:
            initial_config: Optional document to pre-populate the store with.
        """
        self._entry = ConfigEntry(
            document=copy.deepcopy(initial_config or {}),
            fetched_at=NEVER_FETCHED,
        )
        self._lock = Lock()
        self._log = logger.bind(component=COMPONENT_CACHE)

    def current(self) -> ConfigEntry:
        """Get the latest committed entry.

        Returns:
            The current ConfigEntry.
        """
        with self._lock:
            return self._entry

    def replace(self, entry: ConfigEntry) -> None:
        """Commit a new entry as the current one.

        Args:
            entry: Entry to commit.
        """
        with self._lock:
            previous = self._entry
            self._entry = entry

        if entry is not previous:
            self._log.debug(
                "config_entry_replaced",
                flags=len(entry.document),
                has_validator=entry.validator is not None,
                fetched_at=entry.fetched_at.isoformat(),
            )

    @staticmethod
    def update(
        result: FetchResult,
        previous: ConfigEntry,
        now: datetime,
    ) -> ConfigEntry:
        """Fold a fetch result into the entry that should follow ``previous``.

        - FETCHED: new document, validator, and timestamp
        - NOT_MODIFIED: previous document and validator, new timestamp
        - FAILED: ``previous`` itself, timestamp included

        A FETCHED empty document following a populated one is folded like
        NOT_MODIFIED.

        Args:
            result: Result of one fetch attempt.
            previous: Entry current when the fetch started.
            now: Current time.

        Returns:
            The entry to commit.
        """
        if result.outcome == FetchOutcome.FAILED:
            return previous

        fetched_at = max(now, previous.fetched_at)

        if result.outcome == FetchOutcome.NOT_MODIFIED:
            return previous.model_copy(update={"fetched_at": fetched_at})

        document = result.document or {}
        if not document and previous.has_document:
            logger.warning(
                "empty_config_ignored",
                component=COMPONENT_CACHE,
                retained_flags=len(previous.document),
            )
            return previous.model_copy(update={"fetched_at": fetched_at})

        return ConfigEntry(
            document=document,
            validator=result.validator,
            fetched_at=fetched_at,
        )
