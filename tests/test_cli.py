import json
from pathlib import Path

import pytest

from nightly_scores import cli
from nightly_scores.config_loader import API_KEY_ENV, SETTINGS_PATH_ENV


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in (API_KEY_ENV, SETTINGS_PATH_ENV, cli.PUSH_URL_ENV, "NIGHTLY_SCORES_DB_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_run_without_players_reports_nothing(tmp_path: Path, capsys):
    code = cli.main(["run", "--settings", str(tmp_path / "absent.json"), "--db", str(tmp_path / "db.sqlite")])
    assert code == 0
    assert "Nothing to report" in capsys.readouterr().out


def test_run_without_key_writes_error_report(tmp_path: Path, capsys):
    settings = tmp_path / "settings.json"
    settings.write_text(
        json.dumps({"players": [{"label": "One", "team_id": 1, "player_id": 11}], "recipients": "a@example.test"}),
        encoding="utf-8",
    )
    output = tmp_path / "report.csv"
    outbox = tmp_path / "outbox"

    code = cli.main(
        [
            "run",
            "--settings", str(settings),
            "--db", str(tmp_path / "db.sqlite"),
            "--output", str(output),
            "--outbox", str(outbox),
        ]
    )

    assert code == 0
    assert "Missing API key" in output.read_text(encoding="utf-8")
    assert any(path.suffix == ".csv" for path in outbox.iterdir())
    assert "1 error(s)" in capsys.readouterr().out


def test_scrape_push_requires_url_and_secret(tmp_path: Path, capsys):
    code = cli.main(["scrape-push", "--settings", str(tmp_path / "absent.json")])
    assert code == 1
    assert cli.PUSH_URL_ENV in capsys.readouterr().err
