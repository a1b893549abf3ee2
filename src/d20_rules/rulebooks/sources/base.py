"""
Base class for rule sources.

A source owns one set of definitions (feats, spells, items, classes, races).
Sources are loaded once and then only read; RuleCatalog layers several of
them together.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..models import (
    ClassDefinition,
    FeatDefinition,
    ItemDefinition,
    RaceDefinition,
    RuleSourceType,
    SpellDefinition,
)
from ...tables import normalize_index


logger = logging.getLogger("d20-rules.rulebooks")

DefinitionT = TypeVar("DefinitionT", bound=BaseModel)

# Content section → definition model
SECTION_MODELS: dict[str, type[BaseModel]] = {
    "feats": FeatDefinition,
    "spells": SpellDefinition,
    "items": ItemDefinition,
    "classes": ClassDefinition,
    "races": RaceDefinition,
}


@dataclass
class ContentCounts:
    """Number of definitions of each kind in a source."""
    feats: int = 0
    spells: int = 0
    items: int = 0
    classes: int = 0
    races: int = 0

    @property
    def total(self) -> int:
        return self.feats + self.spells + self.items + self.classes + self.races


class RuleSourceBase(ABC):
    """Abstract rule source."""

    def __init__(self, source_id: str, source_type: RuleSourceType, name: str | None = None):
        self.source_id = source_id
        self.source_type = source_type
        self.name = name or source_id
        self.loaded_at: datetime | None = None
        self._loaded = False

        self._feats: dict[str, FeatDefinition] = {}
        self._spells: dict[str, SpellDefinition] = {}
        self._items: dict[str, ItemDefinition] = {}
        self._classes: dict[str, ClassDefinition] = {}
        self._races: dict[str, RaceDefinition] = {}

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @abstractmethod
    def load(self) -> None:
        """Load the source's definitions."""

    # =========================================================================
    # Parsing
    # =========================================================================

    def _parse_content(self, content: dict[str, Any], origin: str) -> None:
        """Validate every section of ``content``, skipping invalid definitions."""
        storage: dict[str, dict[str, Any]] = {
            "feats": self._feats,
            "spells": self._spells,
            "items": self._items,
            "classes": self._classes,
            "races": self._races,
        }
        for section, model in SECTION_MODELS.items():
            for raw in content.get(section, None) or []:
                try:
                    definition = self._parse_definition(model, raw)
                except ValidationError as e:
                    label = raw.get("name", "?") if isinstance(raw, dict) else "?"
                    logger.warning(f"Invalid {section[:-1]} definition '{label}' in {origin}: {e}")
                    continue
                storage[section][definition.index] = definition

    def _parse_definition(self, model: type[DefinitionT], data: Any) -> DefinitionT:
        if isinstance(data, dict):
            data = dict(data)
            if "index" not in data and "name" in data:
                data["index"] = normalize_index(str(data["name"]))
            data["source"] = self.source_id
        return model.model_validate(data)

    def _mark_loaded(self) -> None:
        self._loaded = True
        self.loaded_at = datetime.now()

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_feat(self, index: str) -> FeatDefinition | None:
        return self._feats.get(normalize_index(index))

    def get_spell(self, index: str) -> SpellDefinition | None:
        return self._spells.get(normalize_index(index))

    def get_item(self, index: str) -> ItemDefinition | None:
        return self._items.get(normalize_index(index))

    def get_class(self, index: str) -> ClassDefinition | None:
        return self._classes.get(normalize_index(index))

    def get_race(self, index: str) -> RaceDefinition | None:
        return self._races.get(normalize_index(index))

    def definitions(self) -> dict[str, dict[str, Any]]:
        """All definitions by section, for layering into a catalog."""
        return {
            "feats": dict(self._feats),
            "spells": dict(self._spells),
            "items": dict(self._items),
            "classes": dict(self._classes),
            "races": dict(self._races),
        }

    def content_counts(self) -> ContentCounts:
        return ContentCounts(
            feats=len(self._feats),
            spells=len(self._spells),
            items=len(self._items),
            classes=len(self._classes),
            races=len(self._races),
        )

    def stats_summary(self) -> str:
        counts = self.content_counts()
        return (
            f"{counts.feats} feats, {counts.spells} spells, {counts.items} items, "
            f"{counts.classes} classes, {counts.races} races"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source_id={self.source_id!r}, loaded={self._loaded})"


__all__ = [
    "ContentCounts",
    "RuleSourceBase",
    "SECTION_MODELS",
]
