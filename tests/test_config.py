import json
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from nightly_scores.config import PROVIDER_BASE_URL, ResolutionContext
from nightly_scores.config_loader import (
    API_KEY_ENV,
    PUSH_SECRET_ENV,
    SETTINGS_PATH_ENV,
    TIMEZONE_ENV,
    Settings,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in (API_KEY_ENV, PUSH_SECRET_ENV, SETTINGS_PATH_ENV, TIMEZONE_ENV):
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_reads_players_and_skips_invalid_entries(tmp_path: Path):
    path = _write(
        tmp_path / "settings.json",
        {
            "api_key": " key ",
            "recipients": "a@example.test",
            "players": [
                {"label": "Valid", "team_id": 3, "player_id": 77},
                {"label": "Negative", "team_id": -1, "player_id": 2},
                "not a player",
                {"label": "Scrape only", "external_slug": "jackson-jaren", "external_id": "h8oYS0m9"},
            ],
        },
    )

    settings = Settings.load(path)

    assert settings.api_key == "key"
    assert [player.label for player in settings.players] == ["Valid", "Scrape only"]
    assert settings.players[0].has_provider_ids
    assert settings.players[1].has_external_ids
    assert not settings.players[1].has_provider_ids
    assert settings.timezone == "America/New_York"


def test_missing_file_uses_defaults(tmp_path: Path):
    settings = Settings.load(tmp_path / "absent.json")
    assert settings.players == []
    assert settings.path == tmp_path / "absent.json"


def test_non_object_file_is_rejected(tmp_path: Path):
    path = _write(tmp_path / "settings.json", [1, 2, 3])
    with pytest.raises(ValueError):
        Settings.load(path)


def test_environment_overrides_file(tmp_path: Path, monkeypatch):
    path = _write(tmp_path / "settings.json", {"api_key": "from-file", "timezone": "UTC"})
    monkeypatch.setenv(SETTINGS_PATH_ENV, str(path))
    monkeypatch.setenv(API_KEY_ENV, "from-env")
    monkeypatch.setenv(TIMEZONE_ENV, "Europe/Berlin")

    settings = Settings.load()

    assert settings.api_key == "from-env"
    assert settings.timezone == "Europe/Berlin"


def test_recipient_list_trims_and_falls_back_to_test_email():
    assert Settings(recipients=" a@x.test , ,b@x.test").recipient_list() == ["a@x.test", "b@x.test"]
    assert Settings(recipients=" , ", test_email="qa@x.test").recipient_list() == ["qa@x.test"]
    assert Settings().recipient_list() == []


def test_ensure_push_secret_generates_and_persists(tmp_path: Path):
    path = tmp_path / "settings.json"
    settings = Settings(path=path)

    secret = settings.ensure_push_secret()

    assert len(secret) == 40
    assert secret.isalnum()
    assert settings.ensure_push_secret() == secret
    assert json.loads(path.read_text(encoding="utf-8"))["push_secret"] == secret
    assert Settings.load(path).push_secret == secret


def test_save_requires_a_path():
    with pytest.raises(ValueError):
        Settings().save()


def test_context_from_settings_converts_now_to_local_zone():
    settings = Settings(api_key=" key ", timezone="America/New_York")
    utc_now = datetime(2025, 1, 15, 3, 0, tzinfo=ZoneInfo("UTC"))

    context = ResolutionContext.from_settings(settings, now=utc_now)

    assert context.has_credential
    assert context.api_key == "key"
    assert context.base_url == PROVIDER_BASE_URL
    assert context.today().isoformat() == "2025-01-14"
    assert context.lookback_days == 30


def test_context_without_credential():
    context = ResolutionContext.from_settings(Settings(), now=datetime(2025, 1, 15, 12, 0))
    assert not context.has_credential
    assert context.now.tzinfo == ZoneInfo("America/New_York")
