from pathlib import Path

import pytest

from turnloop.config import Settings, load_settings
from turnloop.errors import ApiKeyNotConfiguredError, InvalidModelFormatError, ModelNotConfiguredError


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MODEL", "API_KEY", "API_BASE", "MAX_TURNS", "MAX_TOKENS", "SYSTEM_PROMPT"):
        monkeypatch.delenv(f"TURNLOOP_{name}", raising=False)


def test_load_settings_reads_workspace_env_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "TURNLOOP_MODEL=openai:gpt-4o-mini\nTURNLOOP_API_KEY=sk-test\nTURNLOOP_MAX_TURNS=7\n",
        encoding="utf-8",
    )

    settings = load_settings(tmp_path)

    assert settings.model == "openai:gpt-4o-mini"
    assert settings.api_key == "sk-test"
    assert settings.max_turns == 7
    assert settings.provider == "openai"


def test_environment_overrides_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TURNLOOP_MAX_TOKENS", "1024")

    settings = load_settings(tmp_path)

    assert settings.max_tokens == 1024
    assert settings.max_turns == 50


def test_validate_model_requires_model() -> None:
    with pytest.raises(ModelNotConfiguredError):
        Settings(model=None).validate_model()


def test_validate_model_requires_provider_prefix() -> None:
    with pytest.raises(InvalidModelFormatError):
        Settings(model="gpt-4o", api_key="k").validate_model()


def test_validate_model_requires_api_key_for_hosted_providers() -> None:
    with pytest.raises(ApiKeyNotConfiguredError):
        Settings(model="openai:gpt-4o", api_key=None).validate_model()

    Settings(model="ollama:llama3", api_key=None).validate_model()
