"""
Engine configuration.

Settings come from the environment (optionally via a .env file):

    D20_STACKING_MODE   "typed" (default) or "flat"
    D20_INCLUDE_SRD     load the built-in SRD content (default true)
    D20_CATALOG_PATHS   custom rule files, separated by os.pathsep
    D20_LOG_LEVEL       logging level name (default INFO)
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .effects import EffectAggregator, StackingMode
from .rulebooks.catalog import RuleCatalog
from .rulebooks.sources.base import RuleSourceBase
from .rulebooks.sources.custom import CustomSource
from .rulebooks.sources.srd import SRDSource


logger = logging.getLogger("d20-rules")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class EngineSettings(BaseModel):
    """Settings for building catalogs and aggregators."""
    stacking_mode: StackingMode = Field(
        default=StackingMode.TYPED,
        description="How same-typed bonuses combine: 'typed' (highest wins) or 'flat' (all add)",
    )
    include_srd: bool = Field(default=True, description="Layer the built-in SRD content first")
    catalog_paths: list[Path] = Field(
        default_factory=list,
        description="Custom JSON/YAML rule files, layered in order after the SRD",
    )
    log_level: str = Field(default="INFO", description="Logging level for the 'd20-rules' logger")

    @field_validator("stacking_mode", mode="before")
    @classmethod
    def coerce_stacking_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("include_srd", mode="before")
    @classmethod
    def coerce_bool(cls, v: Any) -> Any:
        if isinstance(v, str):
            text = v.strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"Invalid boolean value: '{v}'")
        return v

    @field_validator("catalog_paths", mode="before")
    @classmethod
    def split_paths(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [p for p in v.split(os.pathsep) if p.strip()]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def check_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            level = v.strip().upper()
            if not isinstance(logging.getLevelName(level), int):
                raise ValueError(f"Unknown log level: '{v}'")
            return level
        return v


def load_settings(env_file: str | Path | None = None) -> EngineSettings:
    """Read settings from the environment, loading ``env_file`` (or .env) first.

    Raises:
        ValueError: If a variable holds an invalid value
    """
    if not load_dotenv(env_file):
        logger.debug("No .env file found; using process environment only")

    values: dict[str, Any] = {}
    for env_name, field_name in (
        ("D20_STACKING_MODE", "stacking_mode"),
        ("D20_INCLUDE_SRD", "include_srd"),
        ("D20_CATALOG_PATHS", "catalog_paths"),
        ("D20_LOG_LEVEL", "log_level"),
    ):
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            values[field_name] = raw

    settings = EngineSettings.model_validate(values)
    logger.debug(f"Engine settings: {settings.model_dump(mode='json')}")
    return settings


def configure_logging(settings: EngineSettings) -> None:
    """Configure root logging and the package logger level."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logging.getLogger("d20-rules").setLevel(settings.log_level)


def build_catalog(settings: EngineSettings | None = None) -> RuleCatalog:
    """Build a catalog from the SRD (if enabled) and the configured rule files.

    Raises:
        RuleCatalogError: If a rule file cannot be loaded
    """
    settings = settings or EngineSettings()
    sources: list[RuleSourceBase] = []
    if settings.include_srd:
        sources.append(SRDSource())
    for path in settings.catalog_paths:
        sources.append(CustomSource(path))
    catalog = RuleCatalog(sources)
    logger.info(f"Catalog ready: {catalog!r}")
    return catalog


def build_aggregator(catalog: RuleCatalog, settings: EngineSettings | None = None) -> EffectAggregator:
    settings = settings or EngineSettings()
    return EffectAggregator(catalog, stacking_mode=settings.stacking_mode)


__all__ = [
    "EngineSettings",
    "StackingMode",
    "build_aggregator",
    "build_catalog",
    "configure_logging",
    "load_settings",
]
