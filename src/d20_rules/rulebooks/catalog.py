"""
RuleCatalog - layered, read-only view over one or more rule sources.

A catalog is built once from an ordered list of sources. When the same index
exists in several sources the last one wins, so house rules loaded after the
SRD replace the SRD definitions. After construction nothing can be added or
replaced; build a new catalog with ``overlay`` instead.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from .models import (
    ClassDefinition,
    FeatDefinition,
    ItemDefinition,
    RaceDefinition,
    SpellDefinition,
)
from .sources.base import RuleSourceBase
from ..tables import normalize_index


logger = logging.getLogger("d20-rules.rulebooks")


class RuleCatalogError(Exception):
    """Exception raised by RuleCatalog operations."""
    pass


class UnknownCatalogEntryError(RuleCatalogError):
    """A feat, spell, item, class or race index is not in the catalog."""

    def __init__(self, kind: str, index: str):
        self.kind = kind
        self.index = index
        super().__init__(f"Unknown {kind}: '{index}'")


class RuleCatalog:
    """
    Read-only catalog of feats, spells, items, classes and races.

    Sources are layered in the order given (last wins). Sources that have not
    been loaded yet are loaded here.
    """

    def __init__(self, sources: Iterable[RuleSourceBase] = ()):
        self._sources: tuple[RuleSourceBase, ...] = tuple(sources)

        merged: dict[str, dict] = {
            "feats": {}, "spells": {}, "items": {}, "classes": {}, "races": {},
        }
        for source in self._sources:
            if not source.is_loaded:
                try:
                    source.load()
                except Exception as e:
                    raise RuleCatalogError(f"Failed to load source {source.source_id}: {e}") from e
            for section, definitions in source.definitions().items():
                overridden = merged[section].keys() & definitions.keys()
                if overridden:
                    logger.debug(
                        f"Source {source.source_id} overrides {len(overridden)} {section}"
                    )
                merged[section].update(definitions)
            logger.info(f"Loaded source: {source.source_id} ({source.stats_summary()})")

        self._feats: Mapping[str, FeatDefinition] = MappingProxyType(merged["feats"])
        self._spells: Mapping[str, SpellDefinition] = MappingProxyType(merged["spells"])
        self._items: Mapping[str, ItemDefinition] = MappingProxyType(merged["items"])
        self._classes: Mapping[str, ClassDefinition] = MappingProxyType(merged["classes"])
        self._races: Mapping[str, RaceDefinition] = MappingProxyType(merged["races"])

    @classmethod
    def srd(cls) -> "RuleCatalog":
        """Catalog containing only the built-in SRD content."""
        from .sources.srd import SRDSource

        return cls([SRDSource()])

    def overlay(self, *sources: RuleSourceBase) -> "RuleCatalog":
        """New catalog with ``sources`` layered on top of this one."""
        return RuleCatalog([*self._sources, *sources])

    @property
    def source_ids(self) -> list[str]:
        """IDs of the layered sources, first to last (last wins)."""
        return [s.source_id for s in self._sources]

    # =========================================================================
    # Read-only mappings
    # =========================================================================

    @property
    def feats(self) -> Mapping[str, FeatDefinition]:
        return self._feats

    @property
    def spells(self) -> Mapping[str, SpellDefinition]:
        return self._spells

    @property
    def items(self) -> Mapping[str, ItemDefinition]:
        return self._items

    @property
    def classes(self) -> Mapping[str, ClassDefinition]:
        return self._classes

    @property
    def races(self) -> Mapping[str, RaceDefinition]:
        return self._races

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

    def require_feat(self, index: str) -> FeatDefinition:
        """Get a feat definition.

        Raises:
            UnknownCatalogEntryError: If no source defines the feat
        """
        feat = self.get_feat(index)
        if feat is None:
            raise UnknownCatalogEntryError("feat", index)
        return feat

    def require_spell(self, index: str) -> SpellDefinition:
        spell = self.get_spell(index)
        if spell is None:
            raise UnknownCatalogEntryError("spell", index)
        return spell

    def require_item(self, index: str) -> ItemDefinition:
        item = self.get_item(index)
        if item is None:
            raise UnknownCatalogEntryError("item", index)
        return item

    def require_class(self, index: str) -> ClassDefinition:
        class_def = self.get_class(index)
        if class_def is None:
            raise UnknownCatalogEntryError("class", index)
        return class_def

    def require_race(self, index: str) -> RaceDefinition:
        race = self.get_race(index)
        if race is None:
            raise UnknownCatalogEntryError("race", index)
        return race

    def metamagic_feats(self) -> Iterator[FeatDefinition]:
        for feat in self._feats.values():
            if feat.metamagic is not None:
                yield feat

    def spells_for_class(self, class_index: str, level: int | None = None) -> list[SpellDefinition]:
        """Spells on a class list, optionally only those of one spell level."""
        key = normalize_index(class_index)
        return sorted(
            (
                spell for spell in self._spells.values()
                if key in spell.levels and (level is None or spell.levels[key] == level)
            ),
            key=lambda s: (s.levels[key], s.index),
        )

    def __repr__(self) -> str:
        return (
            f"RuleCatalog(sources={self.source_ids}, feats={len(self._feats)}, "
            f"spells={len(self._spells)}, items={len(self._items)})"
        )


__all__ = [
    "RuleCatalog",
    "RuleCatalogError",
    "UnknownCatalogEntryError",
]
