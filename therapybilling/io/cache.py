"""Durable cache of the last monthly income aggregate."""

from __future__ import annotations

from collections.abc import Sequence
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from ..domain.aggregation import MONTH_LABELS, MonthlyBucket

logger = logging.getLogger(__name__)

DEFAULT_CACHE_KEY = "incomeData"

_buckets_adapter = TypeAdapter(list[MonthlyBucket])


class KeyValueStore(Protocol):
    """Minimal string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Key-value store living in memory only."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Key-value store persisted as one JSON object in a file.

    Writes go to a temporary file that replaces the original, so a crash
    never leaves a half-written cache behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed cache file {self.path}.")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class AggregateCache:
    """The last monthly aggregate, kept for display before a refresh."""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_CACHE_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> list[MonthlyBucket] | None:
        """Return the cached buckets, or None when nothing usable is cached."""
        raw = self.store.get(self.key)
        if raw is None:
            logger.debug(f"No cached aggregate under '{self.key}'.")
            return None

        try:
            buckets = _buckets_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cached aggregate: {e}")
            return None

        if [bucket.month for bucket in buckets] != list(MONTH_LABELS):
            logger.warning("Discarding cached aggregate without twelve months.")
            return None

        return buckets

    def save(self, buckets: Sequence[MonthlyBucket]) -> None:
        """Overwrite the cached aggregate."""
        self.store.set(self.key, _buckets_adapter.dump_json(list(buckets)).decode())
        logger.debug(f"Cached aggregate saved under '{self.key}'.")

    def clear(self) -> None:
        self.store.delete(self.key)
