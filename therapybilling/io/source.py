"""Client record sources: a JSON export or the clinic backend."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import httpx

from ..config.model import Config
from ..domain.records import ClientRecord
from ..errors import SourceError

logger = logging.getLogger(__name__)


class ClientRecordSource(Protocol):
    """Where client records come from and where updates go."""

    def fetch(self) -> list[dict[str, Any]]:
        """Return all client records as raw mappings."""
        ...

    def update(self, record: ClientRecord) -> None:
        """Store an updated client record."""
        ...


def _ensure_record_list(payload: Any, origin: str) -> list[dict[str, Any]]:
    """Check that a payload is a list of objects."""
    if not isinstance(payload, list):
        raise SourceError(f"Expected a list of client records from {origin}.")
    records = [item for item in payload if isinstance(item, dict)]
    if len(records) != len(payload):
        logger.warning(
            f"Ignoring {len(payload) - len(records)} non-object entries from {origin}."
        )
    return records


class JsonFileSource:
    """Client records kept in a JSON file holding a list of objects."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch(self) -> list[dict[str, Any]]:
        logger.info(f"Reading client records from {self.path}.")
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError as e:
            logger.error(f"Client record file not found: {self.path}")
            raise SourceError(f"Client record file not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading client records: {e}")
            raise SourceError(f"Cannot read client records from {self.path}.") from e

        return _ensure_record_list(payload, str(self.path))

    def update(self, record: ClientRecord) -> None:
        records = self.fetch()
        for index, existing in enumerate(records):
            if existing.get("id") == record.id:
                records[index] = {**existing, **record.to_wire()}
                break
        else:
            raise SourceError(f"Client {record.id} not found in {self.path}.")

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise SourceError(f"Cannot write client records to {self.path}.") from e
        logger.debug(f"Client {record.id} written to {self.path}.")


class HttpSource:
    """Client records served by the clinic backend's REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )

    def fetch(self) -> list[dict[str, Any]]:
        logger.info(f"Fetching client records from {self.base_url}.")
        try:
            with self._client() as client:
                response = client.get("/api/clients")
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching client records: {e}")
            raise SourceError(f"Cannot fetch client records: {e}") from e
        except ValueError as e:
            logger.error(f"Client records are not valid JSON: {e}")
            raise SourceError("Client records are not valid JSON.") from e

        return _ensure_record_list(payload, self.base_url)

    def update(self, record: ClientRecord) -> None:
        try:
            with self._client() as client:
                response = client.put(f"/api/clients/{record.id}", json=record.to_wire())
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error updating client {record.id}: {e}")
            raise SourceError(f"Cannot update client {record.id}: {e}") from e
        logger.debug(f"Client {record.id} updated on {self.base_url}.")


def source_from_config(config: Config) -> ClientRecordSource:
    """Create the record source described by the configuration."""
    if config.source.url is not None:
        return HttpSource(str(config.source.url), timeout=config.source.timeout)
    if config.source.path is not None:
        return JsonFileSource(config.source.path)
    raise ValueError("The source configuration needs a path or a url.")
