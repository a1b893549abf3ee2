"""
Rule catalogs for d20-rules.

This module provides:
- Data models for feats, spells, items, classes and races
- Built-in SRD content and custom (house rule) files in JSON/YAML
- RuleCatalog for layering several sources into one read-only view
- Prerequisite validation against the catalog
"""

from .models import (
    # Core
    RuleModel,
    RuleSourceType,
    Prerequisites,
    # Feats
    FeatDefinition,
    FeatEffect,
    FixedEffect,
    VariableEffect,
    MetamagicTransform,
    # Spells
    SpellDefinition,
    SPELL_SCHOOLS,
    # Items
    ItemDefinition,
    ItemProperty,
    ITEM_SLOTS,
    SLOT_CAPACITY,
    # Classes and races
    ClassDefinition,
    SpellcastingInfo,
    RaceDefinition,
)
from .catalog import RuleCatalog, RuleCatalogError, UnknownCatalogEntryError
from .validators import (
    PrerequisiteValidator,
    Reason,
    ReasonCode,
    ValidationResult,
)

__all__ = [
    # Catalog
    "RuleCatalog",
    "RuleCatalogError",
    "UnknownCatalogEntryError",
    # Validators
    "PrerequisiteValidator",
    "Reason",
    "ReasonCode",
    "ValidationResult",
    # Core
    "RuleModel",
    "RuleSourceType",
    "Prerequisites",
    # Feats
    "FeatDefinition",
    "FeatEffect",
    "FixedEffect",
    "VariableEffect",
    "MetamagicTransform",
    # Spells
    "SpellDefinition",
    "SPELL_SCHOOLS",
    # Items
    "ItemDefinition",
    "ItemProperty",
    "ITEM_SLOTS",
    "SLOT_CAPACITY",
    # Classes and races
    "ClassDefinition",
    "SpellcastingInfo",
    "RaceDefinition",
]
