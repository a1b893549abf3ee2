"""
Data models for the d20 rules engine.

The Character is the only authoritative record; everything in DerivedStats is
recomputed from it (plus the rule catalog) on demand and never stored back.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from shortuuid import random

from .tables import ABILITIES, ability_modifier, normalize_index


# ---------------------------------------------------------------------------
# Modifiers
# ---------------------------------------------------------------------------

class BonusType(str, Enum):
    """Bonus types. Same-typed bonuses to one stat do not stack unless listed
    in STACKING_BONUS_TYPES."""
    UNTYPED = "untyped"
    ARMOR = "armor"
    SHIELD = "shield"
    NATURAL = "natural"
    DEFLECTION = "deflection"
    DODGE = "dodge"
    ENHANCEMENT = "enhancement"
    RESISTANCE = "resistance"
    LUCK = "luck"
    MORALE = "morale"
    INSIGHT = "insight"
    COMPETENCE = "competence"
    SACRED = "sacred"
    CIRCUMSTANCE = "circumstance"
    SIZE = "size"
    RACIAL = "racial"


STACKING_BONUS_TYPES = frozenset({
    BonusType.UNTYPED,
    BonusType.DODGE,
    BonusType.CIRCUMSTANCE,
})


class Modifier(BaseModel):
    """A single stat modifier contributed by a feat, item or spell effect.

    Attributes:
        stat: The stat being modified (e.g., "armor_class", "skill:Listen",
            "attack:longsword", "strength"). Aliases "saves" and "attack" fan
            out to every save / both attack kinds.
        value: The modifier value.
        bonus_type: Stacking category of the bonus.
        operation: "add" (additive) or "cap" (the most restrictive value wins).
    """
    stat: str = Field(description="The stat being modified (e.g., 'armor_class', 'skill:Spot')")
    value: int
    bonus_type: BonusType = BonusType.UNTYPED
    operation: Literal["add", "cap"] = Field(
        default="add",
        description="How the modifier applies: 'add' (additive), 'cap' (minimum across sources)"
    )


# ---------------------------------------------------------------------------
# Character
# ---------------------------------------------------------------------------

class AbilityScore(BaseModel):
    """Ability score with modifier."""
    score: int = Field(ge=1, le=50, description="Raw ability score")

    @property
    def mod(self) -> int:
        """Calculate ability modifier."""
        return ability_modifier(self.score)


class CharacterClass(BaseModel):
    """Levels held in one class."""
    name: str
    level: int = Field(ge=1, le=20)


class SkillRanks(BaseModel):
    ranks: int = Field(default=0, ge=0)
    class_skill: bool = False


class FeatInstance(BaseModel):
    """A feat held by a character.

    ``choice`` carries the runtime selection for variable feats (which skill,
    weapon or school). Two instances are the same feat when both feat_id and
    choice match.
    """
    feat_id: str
    choice: str | None = None
    source: str = "selected"  # selected, level, class, bonus

    @field_validator("feat_id", mode="before")
    @classmethod
    def normalize_feat_id(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_index(v)
        return v

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.feat_id, self.choice)


class ItemInstance(BaseModel):
    """An item carried by a character."""
    id: str = Field(default_factory=lambda: random(length=8))
    item_id: str
    quantity: int = Field(default=1, ge=1)
    equipped: bool = False
    slot: str | None = None


class ActiveSpellEffect(BaseModel):
    """A persistent spell effect currently in force on the character."""
    id: str = Field(default_factory=lambda: random(length=8))
    spell_id: str
    caster_class: str
    caster_level: int = Field(ge=0)
    modifiers: list[Modifier] = Field(default_factory=list)


class Feature(BaseModel):
    """Class feature gained at a level."""
    name: str
    source: str  # e.g., "Rogue 3"
    level_gained: int = 1


def _default_abilities() -> dict[str, AbilityScore]:
    return {name: AbilityScore(score=10) for name in ABILITIES}


class Character(BaseModel):
    """Authoritative character record."""
    id: str = Field(default_factory=lambda: random(length=8))
    name: str
    race: str = "Human"
    size: str = "medium"
    speed: int = 30

    abilities: dict[str, AbilityScore] = Field(default_factory=_default_abilities)
    classes: list[CharacterClass] = Field(min_length=1)
    experience_points: int = Field(default=0, ge=0)

    hit_points_max: int = Field(default=1, ge=1)
    hit_points_current: int = 1

    skills: dict[str, SkillRanks] = Field(default_factory=dict)
    feats: list[FeatInstance] = Field(default_factory=list)
    inventory: list[ItemInstance] = Field(default_factory=list)
    active_spell_effects: list[ActiveSpellEffect] = Field(default_factory=list)

    # class index → spell level → spell ids
    spells_known: dict[str, dict[int, list[str]]] = Field(default_factory=dict)
    spells_prepared: dict[str, dict[int, list[str]]] = Field(default_factory=dict)

    class_features: list[Feature] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _migrate_character_class(cls, data: Any) -> Any:
        """Accept a single ``character_class`` in place of ``classes``."""
        if isinstance(data, dict):
            if "character_class" in data and "classes" not in data:
                cc = data.pop("character_class")
                data["classes"] = [cc]
        return data

    @model_validator(mode="after")
    def _fill_missing_abilities(self) -> "Character":
        for name in ABILITIES:
            self.abilities.setdefault(name, AbilityScore(score=10))
        return self

    @property
    def total_level(self) -> int:
        """Total character level across all classes."""
        return sum(c.level for c in self.classes)

    @property
    def is_multiclass(self) -> bool:
        return len(self.classes) > 1

    def class_level(self, class_name: str) -> int:
        """Levels held in ``class_name`` (case-insensitive), 0 if none."""
        wanted = class_name.strip().lower()
        return sum(c.level for c in self.classes if c.name.lower() == wanted)

    def has_feat(self, feat_id: str, choice: str | None = None) -> bool:
        """Whether the character holds ``feat_id`` (with ``choice``, if given)."""
        feat_id = normalize_index(feat_id)
        return any(
            f.feat_id == feat_id and (choice is None or f.choice == choice)
            for f in self.feats
        )

    def get_item(self, instance_id: str) -> ItemInstance | None:
        for item in self.inventory:
            if item.id == instance_id:
                return item
        return None

    def class_string(self) -> str:
        """Human-readable class string, e.g. 'Fighter 5 / Wizard 3'."""
        return " / ".join(f"{c.name} {c.level}" for c in self.classes)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class FailureCode(str, Enum):
    """Failure taxonomy. Every failure is returned as a value."""
    PREREQUISITE_NOT_MET = "prerequisite_not_met"
    ILLEGAL_SLOT_ASSIGNMENT = "illegal_slot_assignment"
    UNKNOWN_CATALOG_ENTRY = "unknown_catalog_entry"
    INCOMPLETE_VARIABLE_SELECTION = "incomplete_variable_selection"
    INVALID_TRANSITION = "invalid_transition"


class Failure(BaseModel):
    """A tagged failure. ``reason`` is a symbolic code, not display text."""
    code: FailureCode
    reason: str
    details: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Derived stats
# ---------------------------------------------------------------------------

class ArmorClass(BaseModel):
    """Armor class breakdown."""
    base: int = 10
    armor: int = 0
    shield: int = 0
    dexterity: int = 0
    natural: int = 0
    deflection: int = 0
    dodge: int = 0
    misc: int = 0
    max_dex_bonus: int | None = None
    total: int = 10
    touch: int = 10
    flat_footed: int = 10


class WeaponBonus(BaseModel):
    """Weapon-specific bonuses (Weapon Focus, Weapon Specialization, ...)."""
    attack: int = 0
    damage: int = 0


class WeaponStats(BaseModel):
    """Attack and damage for one equipped weapon."""
    instance_id: str
    item_id: str
    slot: str
    damage_dice: str | None = None
    attack_bonus: int
    damage_bonus: int


class Encumbrance(BaseModel):
    total_weight: float = 0.0
    tier: Literal["light", "medium", "heavy", "overloaded"] = "light"
    light_max: float
    medium_max: float
    heavy_max: float


class DerivedStats(BaseModel):
    """Snapshot of every derived value for a character.

    Always recomputable from the Character and the catalog; never authoritative.
    """
    ability_scores: dict[str, int]
    ability_modifiers: dict[str, int]
    base_attack_bonus: int
    caster_levels: dict[str, int] = Field(default_factory=dict)
    armor_class: ArmorClass
    saves: dict[str, int]
    skills: dict[str, int] = Field(default_factory=dict)
    melee_attack: int
    ranged_attack: int
    damage_bonus: int = 0
    weapon_bonuses: dict[str, WeaponBonus] = Field(default_factory=dict)
    weapons: list[WeaponStats] = Field(default_factory=list)
    initiative: int
    speed: int
    hit_points_max: int
    armor_check_penalty: int = 0
    arcane_spell_failure: int = 0
    encumbrance: Encumbrance
    spells_per_day: dict[str, dict[int, int]] = Field(default_factory=dict)
    spell_focus: dict[str, int] = Field(default_factory=dict)
    capabilities: list[str] = Field(default_factory=list)
    incomplete_feats: list[str] = Field(default_factory=list)
    unknown_entries: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """False while any variable feat lacks its choice."""
        return not self.incomplete_feats


__all__ = [
    "AbilityScore",
    "ActiveSpellEffect",
    "ArmorClass",
    "BonusType",
    "Character",
    "CharacterClass",
    "DerivedStats",
    "Encumbrance",
    "Failure",
    "FailureCode",
    "FeatInstance",
    "Feature",
    "ItemInstance",
    "Modifier",
    "STACKING_BONUS_TYPES",
    "SkillRanks",
    "WeaponBonus",
    "WeaponStats",
]
