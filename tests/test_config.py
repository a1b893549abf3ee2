"""Tests for environment-driven engine settings."""

import logging
import os

import pytest

from d20_rules.config import (
    EngineSettings,
    build_aggregator,
    build_catalog,
    configure_logging,
    load_settings,
)
from d20_rules.effects import StackingMode
from d20_rules.rulebooks.catalog import RuleCatalogError


ENV_VARS = ("D20_STACKING_MODE", "D20_INCLUDE_SRD", "D20_CATALOG_PATHS", "D20_LOG_LEVEL")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear the engine variables; values loaded from a .env file are undone too."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path / "missing.env"


class TestLoadSettings:
    def test_defaults(self, clean_env):
        settings = load_settings(clean_env)
        assert settings.stacking_mode == StackingMode.TYPED
        assert settings.include_srd is True
        assert settings.catalog_paths == []
        assert settings.log_level == "INFO"

    def test_environment(self, clean_env, monkeypatch, fixtures_dir):
        paths = os.pathsep.join([
            str(fixtures_dir / "house_rules.yaml"),
            str(fixtures_dir / "homebrew_spells.json"),
        ])
        monkeypatch.setenv("D20_STACKING_MODE", "FLAT")
        monkeypatch.setenv("D20_INCLUDE_SRD", "no")
        monkeypatch.setenv("D20_CATALOG_PATHS", paths)
        monkeypatch.setenv("D20_LOG_LEVEL", "debug")
        settings = load_settings(clean_env)
        assert settings.stacking_mode == StackingMode.FLAT
        assert settings.include_srd is False
        assert [p.name for p in settings.catalog_paths] == ["house_rules.yaml", "homebrew_spells.json"]
        assert settings.log_level == "DEBUG"

    def test_blank_values_ignored(self, clean_env, monkeypatch):
        monkeypatch.setenv("D20_STACKING_MODE", "   ")
        assert load_settings(clean_env).stacking_mode == StackingMode.TYPED

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("D20_STACKING_MODE=flat\nD20_LOG_LEVEL=WARNING\n")
        settings = load_settings(env_file)
        assert settings.stacking_mode == StackingMode.FLAT
        assert settings.log_level == "WARNING"

    @pytest.mark.parametrize("name,value", [
        ("D20_STACKING_MODE", "stacked"),
        ("D20_INCLUDE_SRD", "maybe"),
        ("D20_LOG_LEVEL", "LOUD"),
    ])
    def test_invalid_values(self, clean_env, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError):
            load_settings(clean_env)


class TestBuilders:
    def test_default_catalog_is_srd(self):
        catalog = build_catalog()
        assert catalog.source_ids == ["srd"]

    def test_custom_files_layered(self, fixtures_dir):
        settings = EngineSettings(catalog_paths=[fixtures_dir / "house_rules.yaml"])
        catalog = build_catalog(settings)
        assert catalog.source_ids == ["srd", "custom-house-rules"]
        assert catalog.get_feat("shield-wall") is not None

    def test_without_srd(self, fixtures_dir):
        settings = EngineSettings(include_srd=False, catalog_paths=[fixtures_dir / "house_rules.yaml"])
        catalog = build_catalog(settings)
        assert catalog.get_feat("power-attack") is None
        assert catalog.get_feat("toughness") is not None

    def test_missing_file(self, tmp_path):
        settings = EngineSettings(catalog_paths=[tmp_path / "nowhere.yaml"])
        with pytest.raises(RuleCatalogError):
            build_catalog(settings)

    def test_aggregator_mode(self, catalog):
        aggregator = build_aggregator(catalog, EngineSettings(stacking_mode="flat"))
        assert aggregator.stacking_mode == StackingMode.FLAT
        assert build_aggregator(catalog).stacking_mode == StackingMode.TYPED


class TestConfigureLogging:
    def test_package_logger_level(self):
        logger = logging.getLogger("d20-rules")
        previous = logger.level
        try:
            configure_logging(EngineSettings(log_level="warning"))
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous)
