"""Shared fixtures for therapybilling tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from therapybilling.config.model import Config


def make_records() -> list[dict[str, Any]]:
    """Client records shaped like the clinic backend's /api/clients payload."""
    return [
        {
            "id": 1,
            "name": "Ani Wijaya",
            "phone": "081234567890",
            "address": "Jl. Melati 1",
            "complaint": "Back pain",
            "status": "selesai",
            "completedDate": "2025-03-03T00:00:00.000000Z",
            "payment": "100000.00",
            "therapyItems": [
                {"type": "Bekam", "quantity": 2, "pricePerSession": 50000, "total": 100000}
            ],
            "therapistName": "Bu Sari",
            "notes": "Drink warm water",
            "receiptNumber": None,
        },
        {
            "id": 2,
            "name": "Budi Santoso",
            "phone": "081200000002",
            "address": "Jl. Mawar 2",
            "complaint": None,
            "status": "selesai",
            "completedDate": "2025-03-12",
            "payment": 150000,
            "therapyItems": None,
            "therapyType": "Pijat",
            "quantity": 3,
            "receiptNumber": "TR-250312-000001",
        },
        {
            "id": 3,
            "name": "Citra Lestari",
            "phone": "081200000003",
            "address": "Jl. Kenanga 3",
            "status": "selesai",
            "completedDate": "2025-03-28",
            "payment": "200000.00",
            "therapyItems": [
                {"type": "Totok", "quantity": 1, "pricePerSession": "120000.00", "total": 1},
                {"type": "Bekam", "quantity": 1, "pricePerSession": "80000.00", "total": 1},
            ],
        },
        {
            "id": 4,
            "name": "Dedi Kurniawan",
            "phone": "081200000004",
            "address": "Jl. Anggrek 4",
            "status": "on progress",
            "completedDate": None,
            "payment": None,
        },
    ]


@pytest.fixture
def records() -> list[dict[str, Any]]:
    return make_records()


@pytest.fixture
def records_file(tmp_path: Path, records: list[dict[str, Any]]) -> Path:
    path = tmp_path / "clients.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


@pytest.fixture
def config_data(tmp_path: Path, records_file: Path) -> dict[str, Any]:
    return {
        "clinic": {
            "name": "Klinik Terapi Sehat",
            "tagline": "Healthy body, calm mind",
            "phone": "(+62)878 1583 6823",
            "email": "clinic@example.com",
        },
        "source": {"path": str(records_file)},
        "cache": {"path": str(tmp_path / "cache.json")},
        "output": {
            "income": {"path": str(tmp_path / "out" / "income.pdf"), "type": "income"}
        },
    }


@pytest.fixture
def config(config_data: dict[str, Any]) -> Config:
    return Config.model_validate(config_data)
