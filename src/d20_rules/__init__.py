"""
d20-rules - character rules resolution for d20 (3.5 edition style) games.

Given a character and a proposed rule element (a feat, a spell cast, an item
to equip, a level-up) the engines decide whether the action is legal and
return the resulting character together with freshly derived statistics.
"""

from .character_builder import CharacterBuilder, CharacterBuilderError
from .config import EngineSettings, build_aggregator, build_catalog, configure_logging, load_settings
from .effects import EffectAggregator, StackingMode
from .equipment_engine import EquipmentEngine, EquipResult
from .feat_engine import FeatEngine, FeatResult
from .level_up_engine import LevelUpEngine, LevelUpError, LevelUpSession, LevelUpState
from .models import *
from .rulebooks import PrerequisiteValidator, RuleCatalog, RuleCatalogError
from .spell_engine import SpellEngine, SpellResult

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("d20-rules")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "CharacterBuilder",
    "CharacterBuilderError",
    "EffectAggregator",
    "EngineSettings",
    "EquipResult",
    "EquipmentEngine",
    "FeatEngine",
    "FeatResult",
    "LevelUpEngine",
    "LevelUpError",
    "LevelUpSession",
    "LevelUpState",
    "PrerequisiteValidator",
    "RuleCatalog",
    "RuleCatalogError",
    "SpellEngine",
    "SpellResult",
    "StackingMode",
    "build_aggregator",
    "build_catalog",
    "configure_logging",
    "load_settings",
]
