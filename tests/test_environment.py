import os

import pytest
from pydantic import ValidationError

from footyminutes.config import Settings, load_settings
from footyminutes.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("FOOTYMINUTES_"):
            monkeypatch.delenv(name)


def test_defaults_without_environment():
    settings = load_settings()

    assert settings == Settings()
    assert settings.use_api is False
    assert settings.api_base_url == "http://localhost:8000/api"
    assert settings.actor_roles == ("coach",)
    assert settings.session_secret_configured is False
    assert settings.resolved_session_secret == "dev-session-secret"
    assert settings.problems() == []


def test_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("FOOTYMINUTES_USE_API", "true")
    monkeypatch.setenv("FOOTYMINUTES_API_BASE_URL", "https://fixtures.example/api")
    monkeypatch.setenv("FOOTYMINUTES_TEAM_ID", "team-1")
    monkeypatch.setenv("FOOTYMINUTES_SESSION_SECRET", "s3cret")
    monkeypatch.setenv("FOOTYMINUTES_ACTOR_ROLES", "coach, admin,")
    monkeypatch.setenv("FOOTYMINUTES_DB_PATH", "/tmp/fixtures.sqlite")

    settings = load_settings()

    assert settings.use_api is True
    assert settings.api_base_url == "https://fixtures.example/api"
    assert settings.team_id == "team-1"
    assert settings.session_secret == "s3cret"
    assert settings.session_secret_configured is True
    assert settings.resolved_session_secret == "s3cret"
    assert settings.actor_roles == ("coach", "admin")
    assert settings.db_path == "/tmp/fixtures.sqlite"
    assert settings.problems() == []


@pytest.mark.parametrize("raw", ["1", "yes", "TRUE", "false", ""])
def test_only_literal_true_enables_api(monkeypatch, raw: str):
    monkeypatch.setenv("FOOTYMINUTES_USE_API", raw)

    assert load_settings().use_api is False


def test_empty_team_id_is_absent(monkeypatch):
    monkeypatch.setenv("FOOTYMINUTES_USE_API", "true")
    monkeypatch.setenv("FOOTYMINUTES_TEAM_ID", "")

    settings = load_settings()

    assert settings.team_id is None
    assert len(settings.problems()) == 2


def test_strict_mode_raises_on_problems(monkeypatch):
    monkeypatch.setenv("FOOTYMINUTES_USE_API", "true")

    with pytest.raises(ConfigurationError, match="TEAM_ID"):
        load_settings(strict=True)


def test_settings_are_frozen():
    settings = Settings(team_id="team-1")

    with pytest.raises(ValidationError):
        settings.team_id = "team-2"
