from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from tests.helpers import FRIDAY, PDF_V1, FixedClock, ScriptedFetcher, TUESDAY, build_orchestrator
from zastepstwa.api import create_app
from zastepstwa.config import load_config
from zastepstwa.results import NotYetPublished, Success, UpstreamUnreachable


def _client(tmp_path, fetcher, *, clock=None, maintenance=False, base_url="https://mirror.example"):
    with patch.dict(os.environ, {"ZASTEPSTWA_MAINTENANCE": ""}, clear=False):
        cfg = load_config(
            overrides={"cache.directory": str(tmp_path), "runtime.public_base_url": base_url}
        )
    orchestrator = build_orchestrator(
        tmp_path, fetcher, clock=clock or FixedClock(TUESDAY), maintenance=maintenance
    )
    return TestClient(create_app(cfg, orchestrator=orchestrator)), orchestrator


def test_explicit_date_returns_link_and_file(tmp_path) -> None:
    client, _ = _client(tmp_path, ScriptedFetcher(Success(PDF_V1)))

    response = client.get("/", params={"day": 5, "month": 3, "year": 2024})

    assert response.status_code == 200
    assert response.json() == {"code": 200, "link": "https://mirror.example/files/05.03.2024.pdf"}

    download = client.get("/files/05.03.2024.pdf")
    assert download.status_code == 200
    assert download.content == PDF_V1
    assert download.headers["content-type"] == "application/pdf"


def test_relative_tomorrow_on_friday_is_weekend(tmp_path) -> None:
    fetcher = ScriptedFetcher(Success(PDF_V1))
    client, _ = _client(tmp_path, fetcher, clock=FixedClock(FRIDAY))

    response = client.get("/auto", params={"when": "tomorrow"})

    assert response.status_code == 422
    assert response.json() == {"code": 422, "error": "tomorrow is Saturday, no substitutions"}
    assert fetcher.calls == []


def test_relative_today(tmp_path) -> None:
    client, _ = _client(tmp_path, ScriptedFetcher(Success(PDF_V1)), base_url="")

    response = client.get("/auto", params={"when": "today"})

    assert response.json() == {"code": 200, "link": "/files/05.03.2024.pdf"}


@pytest.mark.parametrize(
    ("outcome", "code"),
    [(NotYetPublished(), 404), (UpstreamUnreachable("refused"), 500)],
)
def test_cold_cache_failures(tmp_path, outcome, code) -> None:
    client, _ = _client(tmp_path, ScriptedFetcher(outcome))

    response = client.get("/", params={"day": 5, "month": 3, "year": 2024})

    assert response.status_code == code
    body = response.json()
    assert body["code"] == code
    assert "error" in body


def test_invalid_and_missing_parameters(tmp_path) -> None:
    client, _ = _client(tmp_path, ScriptedFetcher(Success(PDF_V1)))

    invalid = client.get("/", params={"day": 31, "month": 11, "year": 2024})
    assert invalid.status_code == 422
    assert invalid.json()["code"] == 422

    missing = client.get("/", params={"day": 5})
    assert missing.status_code == 422
    assert missing.json()["code"] == 422
    assert "month" in missing.json()["error"]

    not_a_number = client.get("/", params={"day": "five", "month": 3, "year": 2024})
    assert not_a_number.status_code == 422


def test_file_route_validates_structure(tmp_path) -> None:
    client, _ = _client(tmp_path, ScriptedFetcher(Success(PDF_V1)))
    (tmp_path / "secret.pdf").write_bytes(b"nope")

    assert client.get("/files/31.11.2024.pdf").status_code == 422
    assert client.get("/files/ab.cd.efgh.pdf").status_code == 422
    assert client.get("/files/secret.pdf").status_code == 404
    missing = client.get("/files/06.03.2024.pdf")
    assert missing.status_code == 404
    assert missing.json()["code"] == 404


def test_legacy_route_uses_current_year(tmp_path) -> None:
    fetcher = ScriptedFetcher(Success(PDF_V1))
    client, _ = _client(tmp_path, fetcher)

    response = client.get("/get/5/3")

    assert response.json()["link"].endswith("/files/05.03.2024.pdf")
    assert str(fetcher.calls[0]) == "05.03.2024"


def test_maintenance_mode(tmp_path) -> None:
    fetcher = ScriptedFetcher(Success(PDF_V1))
    client, _ = _client(tmp_path, fetcher, maintenance=True)

    response = client.get("/", params={"day": 5, "month": 3, "year": 2024})

    assert response.status_code == 500
    assert "temporarily unavailable" in response.json()["error"]
    assert client.get("/health").json() == {"status": "ok", "maintenance": True}
    assert fetcher.calls == []


def test_io_failure_is_internal_error(tmp_path) -> None:
    client, orchestrator = _client(tmp_path, ScriptedFetcher(Success(PDF_V1)))

    with patch.object(orchestrator.store, "commit", side_effect=OSError("disk full")):
        response = client.get("/", params={"day": 5, "month": 3, "year": 2024})

    assert response.status_code == 500
    assert response.json() == {"code": 500, "error": "internal error"}
