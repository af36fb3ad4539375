"""
Tests for the CLI in mock mode.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from slotbooker.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump({
            "availability_mode": "self-created-only",
            "timezone": "America/Santiago",
            "business_name": "Example Shop",
        }),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_data(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps([{
        "summary": "Visit",
        "start": {"dateTime": "2024-06-02T10:00:00", "timeZone": "America/Santiago"},
        "end": {"dateTime": "2024-06-02T10:15:00", "timeZone": "America/Santiago"},
        "extendedProperties": {"shared": {"slot_key": "2024-06-02T10:00", "created_by": "slotbooker"}},
    }]), encoding="utf-8")
    return path


def test_convert(config_path):
    result = runner.invoke(app, ["convert", "2024-06-02", "10:00", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "2024-06-02T14:00:00Z" in result.output


def test_convert_rejects_bad_time(config_path):
    result = runner.invoke(app, ["convert", "2024-06-02", "10h", "--config", str(config_path)])

    assert result.exit_code == 1


def test_availability_mock(config_path, mock_data):
    result = runner.invoke(app, [
        "availability", "2024-06-02",
        "--config", str(config_path),
        "--mock", "--mock-data", str(mock_data),
        "-s", "10:00", "-s", "10:30",
    ])

    assert result.exit_code == 0
    assert "taken" in result.output
    assert "free" in result.output


def test_book_taken_slot_mock(config_path, mock_data):
    result = runner.invoke(app, [
        "book", "2024-06-02", "10:00",
        "--first-name", "Luis", "--last-name", "Soto", "--email", "luis@example.com",
        "--config", str(config_path),
        "--mock", "--mock-data", str(mock_data),
    ])

    assert result.exit_code == 2
    assert "SLOT_TAKEN" in result.output


def test_book_free_slot_mock(config_path):
    result = runner.invoke(app, [
        "book", "2024-06-02", "10:30",
        "--first-name", "Ana", "--last-name", "Rojas", "--email", "ana@example.com",
        "--config", str(config_path),
        "--mock",
    ])

    assert result.exit_code == 0
    assert "2024-06-02T10:30" in result.output


def test_google_client_is_built_once_per_process(monkeypatch, config_path):
    from slotbooker.cli import app as app_module
    from slotbooker.config import AppConfig

    built = []
    monkeypatch.setattr(app_module, "_client_handle", None)
    monkeypatch.setattr(app_module, "build_google_client", lambda config: built.append(config) or object())
    config = AppConfig.load_from_yaml(config_path)

    first = app_module._build_service(config, mock=False, mock_data=None)
    second = app_module._build_service(config, mock=False, mock_data=None)

    assert len(built) == 1
    assert first.resolver._calendar is second.resolver._calendar
