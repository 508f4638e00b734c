"""Tests for settings and YAML configuration."""

import pytest

from litreview.config import (
    GEMINI_KEY_ENV,
    PROXY_KEY_ENV,
    ProviderConfig,
    ResearchProfile,
    SectionTarget,
    Settings,
    load_provider_config,
    load_research_profile,
    save_provider_config,
    save_research_profile,
)
from litreview.errors import ConfigurationError


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.delenv(PROXY_KEY_ENV, raising=False)
    monkeypatch.delenv(GEMINI_KEY_ENV, raising=False)
    Settings.reset()
    yield
    Settings.reset()


def test_settings_is_singleton(tmp_path):
    first = Settings.load(tmp_path)
    assert Settings.load() is first
    assert first.db_path == tmp_path / "papers.db"
    assert Settings.reload(tmp_path) is not first


def test_templates_are_copied_on_first_load(tmp_path):
    settings = Settings.load(tmp_path)

    assert (tmp_path / ".metadata" / "provider.yaml").exists()
    assert (tmp_path / ".metadata" / "profile.yaml").exists()
    assert settings.provider_config().provider == "proxy"
    assert settings.research_profile().citation_goal == 70


def test_update_rejects_unknown_fields(tmp_path):
    settings = Settings.load(tmp_path)
    settings.update(workers=2)
    assert settings.workers == 2
    with pytest.raises(AttributeError):
        settings.update(colour="blue")


def test_provider_config_is_read_fresh(tmp_path):
    settings = Settings.load(tmp_path)
    save_provider_config(settings.provider_path, ProviderConfig(provider="gemini", gemini_api_key="g-key"))

    config = settings.provider_config()
    assert config.provider == "gemini"
    assert config.api_key == "g-key"
    assert config.model == "gemini-3-flash-preview"


def test_provider_key_falls_back_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(PROXY_KEY_ENV, "from-env")
    assert load_provider_config(tmp_path / "missing.yaml").api_key == "from-env"


def test_provider_aliases_and_unknown_names():
    assert ProviderConfig.from_dict({"provider": "Claude"}).provider == "proxy"
    with pytest.raises(ConfigurationError):
        ProviderConfig.from_dict({"provider": "mystery"})


def test_research_profile_round_trip(tmp_path):
    profile = ResearchProfile(
        title="T",
        keywords=["a", "b"],
        sections=[SectionTarget("Intro", 10, "why"), SectionTarget("Study", 5)],
        citation_goal=15,
    )
    path = tmp_path / "profile.yaml"
    save_research_profile(path, profile)

    assert load_research_profile(path) == profile


def test_research_profile_defaults():
    profile = ResearchProfile.from_dict({
        "keywords": "vlm, robots",
        "sections": [{"name": "Intro", "citation_goal": 4}, {"name": "Study", "citation_goal": 6}],
    })
    assert profile.keywords == ["vlm", "robots"]
    assert profile.citation_goal == 10
    assert profile.sections_text() == "1. Intro (4 papers target)\n2. Study (6 papers target)"
