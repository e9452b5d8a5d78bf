from __future__ import annotations

import json
import os
from unittest.mock import patch

import yaml
from typer.testing import CliRunner

from tests.helpers import PDF_V1, DummyResponse
from zastepstwa import cli
from zastepstwa.config import load_config


def _config(monkeypatch, tmp_path):
    with patch.dict(os.environ, {"ZASTEPSTWA_MAINTENANCE": ""}, clear=False):
        cfg = load_config(overrides={"cache.directory": str(tmp_path / "files")})
    monkeypatch.setattr(cli, "load_config", lambda path=None: cfg)
    return cfg


def test_cli_fetch_downloads_into_cache(monkeypatch, tmp_path) -> None:
    _config(monkeypatch, tmp_path)
    runner = CliRunner()

    with patch("zastepstwa.io.fetcher.requests.get", return_value=DummyResponse(PDF_V1)) as mock_get:
        result = runner.invoke(cli.app, ["fetch", "--day", "5", "--month", "3", "--year", "2024"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["code"] == 200
    assert payload["link"] == "/files/05.03.2024.pdf"
    assert (tmp_path / "files" / "05.03.2024.pdf").read_bytes() == PDF_V1
    mock_get.assert_called_once()


def test_cli_fetch_reports_rejection(monkeypatch, tmp_path) -> None:
    _config(monkeypatch, tmp_path)
    runner = CliRunner()

    with patch("zastepstwa.io.fetcher.requests.get") as mock_get:
        result = runner.invoke(cli.app, ["fetch", "--day", "15", "--month", "6", "--year", "2024"])

    assert result.exit_code == 1
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["code"] == 422
    mock_get.assert_not_called()


def test_cli_fetch_requires_a_date(monkeypatch, tmp_path) -> None:
    _config(monkeypatch, tmp_path)
    result = CliRunner().invoke(cli.app, ["fetch", "--day", "5"])
    assert result.exit_code != 0


def test_cli_dump_config(tmp_path) -> None:
    dest = tmp_path / "out.yaml"
    result = CliRunner().invoke(cli.app, ["dump-config", str(dest)])

    assert result.exit_code == 0, result.output
    assert yaml.safe_load(dest.read_text(encoding="utf-8"))["runtime"]["port"] == 8000

    rejected = CliRunner().invoke(cli.app, ["dump-config", str(tmp_path / "out.toml")])
    assert rejected.exit_code == 2
