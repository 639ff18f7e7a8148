"""Tests for therapybilling.io.source."""

import json
import logging

import httpx
import pytest

from therapybilling.config.model import Config
from therapybilling.domain.records import ClientRecord
from therapybilling.errors import SourceError
from therapybilling.io.source import HttpSource, JsonFileSource, source_from_config


class TestJsonFileSource:
    """Test suite for the `JsonFileSource` class."""

    def test_fetch(self, records_file, records):
        assert JsonFileSource(records_file).fetch() == records

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="not found"):
            JsonFileSource(tmp_path / "missing.json").fetch()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(SourceError):
            JsonFileSource(path).fetch()

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text('{"id": 1}', encoding="utf-8")

        with pytest.raises(SourceError, match="Expected a list"):
            JsonFileSource(path).fetch()

    def test_non_objects_are_ignored(self, tmp_path, caplog):
        path = tmp_path / "clients.json"
        path.write_text('[{"id": 1}, 2, "x"]', encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="therapybilling.io.source"):
            records = JsonFileSource(path).fetch()

        assert records == [{"id": 1}]
        assert "Ignoring 2 non-object entries" in caplog.text

    def test_update(self, records_file, records):
        """The matching record is replaced, everything else is untouched."""
        source = JsonFileSource(records_file)
        record = ClientRecord.model_validate(records[1]).model_copy(
            update={"receipt_number": "TR-250312-999999"}
        )

        source.update(record)

        stored = json.loads(records_file.read_text(encoding="utf-8"))
        assert stored[1]["receiptNumber"] == "TR-250312-999999"
        assert stored[1]["status"] == "selesai"
        assert stored[1]["therapyType"] == "Pijat"
        assert stored[0] == records[0]
        assert stored[3] == records[3]
        assert list(records_file.parent.glob("*.tmp")) == []

    def test_update_unknown_client(self, records_file):
        record = ClientRecord.model_validate({"id": 99, "name": "Nobody"})

        with pytest.raises(SourceError, match="not found"):
            JsonFileSource(records_file).update(record)


class TestHttpSource:
    """Test suite for the `HttpSource` class."""

    def test_fetch(self, records):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/api/clients"
            return httpx.Response(200, json=records)

        source = HttpSource("http://clinic.test/", transport=httpx.MockTransport(handler))

        assert source.fetch() == json.loads(json.dumps(records))

    def test_update(self, records):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={})

        source = HttpSource("http://clinic.test", transport=httpx.MockTransport(handler))
        record = ClientRecord.model_validate(records[0])

        source.update(record)

        (request,) = requests
        assert request.method == "PUT"
        assert request.url.path == "/api/clients/1"
        body = json.loads(request.content)
        assert body["name"] == "Ani Wijaya"
        assert body["status"] == "selesai"

    def test_server_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        source = HttpSource("http://clinic.test", transport=transport)

        with pytest.raises(SourceError):
            source.fetch()
        with pytest.raises(SourceError):
            source.update(ClientRecord.model_validate({"id": 1}))

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        source = HttpSource("http://clinic.test", transport=httpx.MockTransport(handler))

        with pytest.raises(SourceError, match="Connection refused"):
            source.fetch()

    def test_invalid_json(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"<html>")
        )

        with pytest.raises(SourceError, match="not valid JSON"):
            HttpSource("http://clinic.test", transport=transport).fetch()


class TestSourceFromConfig:
    """Test suite for the `source_from_config` function."""

    def test_path(self, config, records_file):
        source = source_from_config(config)

        assert isinstance(source, JsonFileSource)
        assert source.path == records_file

    def test_no_location(self, config):
        """A source without path or url cannot be built."""
        unset = config.model_copy(
            update={"source": config.source.model_copy(update={"path": None})}
        )

        with pytest.raises(ValueError, match="needs a path or a url"):
            source_from_config(unset)

    def test_url(self, config_data):
        config_data["source"] = {"url": "http://clinic.test", "timeout": 3}

        source = source_from_config(Config.model_validate(config_data))

        assert isinstance(source, HttpSource)
        assert source.base_url == "http://clinic.test"
        assert source.timeout == 3
