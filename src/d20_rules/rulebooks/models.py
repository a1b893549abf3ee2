"""
Rule definition models.

Every definition is a frozen pydantic model: once a catalog is built its
contents can be shared freely between characters and callers.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import Modifier
from ..tables import ABILITY_ABBREV, normalize_index


class RuleSourceType(str, Enum):
    """Type of rule source."""
    SRD = "srd"
    CUSTOM = "custom"


class RuleModel(BaseModel):
    """Common base for catalog entries."""
    model_config = ConfigDict(frozen=True)

    index: str = Field(description="Unique identifier (e.g., 'power-attack')")
    name: str
    desc: str | None = None
    source: str = "srd"

    @field_validator("index", mode="before")
    @classmethod
    def normalize_index_field(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_index(v)
        return v


def _normalize_ability(name: str) -> str:
    return ABILITY_ABBREV.get(name.upper(), name.lower())


# =============================================================================
# Feats
# =============================================================================

class Prerequisites(BaseModel):
    """Requirements a character must meet to take a feat.

    ``classes`` is any-of: holding at least the listed level in one of the
    classes is enough.
    """
    model_config = ConfigDict(frozen=True)

    abilities: dict[str, int] = Field(default_factory=dict, description="Ability → minimum score")
    base_attack_bonus: int = 0
    caster_level: int = 0
    skills: dict[str, int] = Field(default_factory=dict, description="Skill → minimum ranks")
    feats: tuple[str, ...] = ()
    race: str | None = None
    classes: dict[str, int] = Field(default_factory=dict, description="Class → minimum level (any-of)")
    level: int = 0

    @field_validator("abilities", mode="before")
    @classmethod
    def normalize_abilities(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {_normalize_ability(k): score for k, score in v.items()}
        return v

    @field_validator("feats", mode="before")
    @classmethod
    def normalize_feats(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(normalize_index(f) for f in v)
        return v

    @field_validator("classes", mode="before")
    @classmethod
    def classes_from_list(cls, v: Any) -> Any:
        """Accept a bare list of class names (any level)."""
        if isinstance(v, (list, tuple)):
            return {normalize_index(c): 1 for c in v}
        if isinstance(v, dict):
            return {normalize_index(c): lvl for c, lvl in v.items()}
        return v

    @property
    def is_empty(self) -> bool:
        return not (
            self.abilities or self.base_attack_bonus or self.caster_level
            or self.skills or self.feats or self.race or self.classes or self.level
        )


class FixedEffect(BaseModel):
    """Feat effect that is the same for every character."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["fixed"] = "fixed"
    modifiers: tuple[Modifier, ...] = ()
    capabilities: tuple[str, ...] = ()


class VariableEffect(BaseModel):
    """Feat effect parameterised by a choice made when the feat is taken.

    Modifier stats and capabilities are templates; ``{choice}`` is replaced by
    the selected skill, weapon or school.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["variable"] = "variable"
    choice_kind: Literal["skill", "weapon", "school"]
    modifiers: tuple[Modifier, ...] = ()
    capabilities: tuple[str, ...] = ()

    def resolve(self, choice: str) -> FixedEffect:
        return FixedEffect(
            modifiers=tuple(
                m.model_copy(update={"stat": m.stat.format(choice=choice)})
                for m in self.modifiers
            ),
            capabilities=tuple(c.format(choice=choice) for c in self.capabilities),
        )


FeatEffect = Annotated[Union[FixedEffect, VariableEffect], Field(discriminator="kind")]


class MetamagicTransform(BaseModel):
    """How a metamagic feat alters a spell and its effective level."""
    model_config = ConfigDict(frozen=True)

    operation: Literal[
        "empower", "maximize", "enlarge", "extend",
        "widen", "quicken", "silent", "still",
    ]
    level_increase: int = Field(ge=0)


class FeatDefinition(RuleModel):
    """Feat definition."""
    feat_type: Literal[
        "general", "combat", "metamagic", "skill",
        "racial", "item_creation", "divine",
    ] = "general"
    prerequisites: Prerequisites = Field(default_factory=Prerequisites)
    effect: FeatEffect = Field(default_factory=FixedEffect)
    metamagic: MetamagicTransform | None = None

    @field_validator("effect", mode="before")
    @classmethod
    def default_effect_kind(cls, v: Any) -> Any:
        """Effects without a ``kind`` tag are fixed."""
        if isinstance(v, dict) and "kind" not in v:
            return {**v, "kind": "fixed"}
        return v

    @model_validator(mode="after")
    def check_metamagic(self) -> "FeatDefinition":
        if self.metamagic is not None and self.feat_type != "metamagic":
            raise ValueError("only metamagic feats may carry a metamagic transform")
        return self

    @property
    def variable(self) -> bool:
        return self.effect.kind == "variable"

    @property
    def choice_kind(self) -> str | None:
        return self.effect.choice_kind if isinstance(self.effect, VariableEffect) else None


# =============================================================================
# Spells
# =============================================================================

SPELL_SCHOOLS = (
    "abjuration", "conjuration", "divination", "enchantment",
    "evocation", "illusion", "necromancy", "transmutation", "universal",
)


class SpellDefinition(RuleModel):
    """Spell definition.

    ``damage`` and ``healing`` are parametric formulas such as
    ``"1d6/level (max 10d6)"`` resolved at the caster's level.
    """
    school: str
    levels: dict[str, int] = Field(description="Class index → spell level for that class")
    components: tuple[str, ...] = ("V", "S")
    casting_time: str = "1 standard action"
    range: str = "close"
    duration: str = "instantaneous"
    area: str | None = None
    target: str | None = None
    damage: str | None = None
    healing: str | None = None
    saving_throw: str | None = None
    spell_resistance: bool = False
    modifiers: tuple[Modifier, ...] = Field(
        default=(), description="Bonuses in force while the spell effect persists"
    )

    @field_validator("school", mode="before")
    @classmethod
    def normalize_school(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in SPELL_SCHOOLS:
                raise ValueError(f"unknown spell school '{v}'")
        return v

    @field_validator("levels", mode="before")
    @classmethod
    def normalize_levels(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {normalize_index(k): lvl for k, lvl in v.items()}
        return v

    @field_validator("components", mode="before")
    @classmethod
    def split_components(cls, v: Any) -> Any:
        """Accept "V, S, M" as well as a list."""
        if isinstance(v, str):
            return tuple(c.strip().upper() for c in v.split(",") if c.strip())
        return v

    @property
    def allows_save(self) -> bool:
        return bool(self.saving_throw) and self.saving_throw.lower() not in ("none", "no")

    def level_for(self, class_index: str) -> int | None:
        return self.levels.get(normalize_index(class_index))


# =============================================================================
# Items
# =============================================================================

ITEM_SLOTS = (
    "main_hand", "off_hand", "armor", "head", "neck", "shoulders",
    "hands", "feet", "waist", "wrists", "ring",
)

# Slot → how many items it can hold at once
SLOT_CAPACITY = {slot: 1 for slot in ITEM_SLOTS} | {"ring": 2}


class ItemProperty(BaseModel):
    """A named magical or special property of an item."""
    model_config = ConfigDict(frozen=True)

    name: str
    modifiers: tuple[Modifier, ...] = ()
    capabilities: tuple[str, ...] = ()


class ItemDefinition(RuleModel):
    """Item definition: weapons, armor, shields, wearables and gear."""
    category: Literal["weapon", "armor", "shield", "wearable", "gear"]
    slots: tuple[str, ...] = ()
    weight: float = Field(default=0.0, ge=0)
    cost_gp: float = 0.0

    # Armor and shields
    armor_bonus: int = 0
    armor_category: Literal["light", "medium", "heavy"] | None = None
    max_dex_bonus: int | None = None
    armor_check_penalty: int = Field(default=0, le=0)
    arcane_spell_failure: int = Field(default=0, ge=0, le=100)

    # Weapons
    damage: str | None = None
    critical: str | None = None
    two_handed: bool = False
    light: bool = False
    ranged: bool = False
    base_item: str | None = Field(
        default=None, description="Mundane item this one is a version of (e.g., 'longsword')"
    )
    attack_bonus: int = 0
    damage_bonus: int = 0

    enhancement: int = 0
    properties: tuple[ItemProperty, ...] = ()

    @field_validator("slots", mode="before")
    @classmethod
    def check_slots(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = (v,)
        for slot in v:
            if slot not in ITEM_SLOTS:
                raise ValueError(f"unknown slot '{slot}'")
        return tuple(v)

    @model_validator(mode="before")
    @classmethod
    def default_slots(cls, data: Any) -> Any:
        """Weapons, armor and shields get their natural slots when none are listed."""
        if isinstance(data, dict) and not data.get("slots"):
            category = data.get("category")
            if category == "weapon":
                data["slots"] = ["main_hand"] if data.get("two_handed") else ["main_hand", "off_hand"]
            elif category == "armor":
                data["slots"] = ["armor"]
            elif category == "shield":
                data["slots"] = ["off_hand"]
        return data

    @property
    def weapon_key(self) -> str:
        """Identifier weapon-specific feats refer to."""
        return self.base_item or self.index

    @property
    def equippable(self) -> bool:
        return bool(self.slots)


# =============================================================================
# Classes and races
# =============================================================================

class SpellcastingInfo(BaseModel):
    """Spellcasting details for a class."""
    model_config = ConfigDict(frozen=True)

    ability: Literal["intelligence", "wisdom", "charisma"]
    caster_type: Literal["full", "bard", "limited"] = "full"
    tradition: Literal["arcane", "divine"] = "arcane"
    prepared: bool = True
    spells_per_day: dict[int, tuple[int, ...]] = Field(
        default_factory=dict,
        description="Class level → base spells per day, indexed by spell level",
    )

    @field_validator("ability", mode="before")
    @classmethod
    def normalize_ability_field(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _normalize_ability(v)
        return v


class ClassDefinition(RuleModel):
    """Character class definition."""
    hit_die: int = Field(ge=4, le=12)
    skill_points: int = Field(ge=0, description="Skill points per level before Int modifier")
    base_attack: Literal["good", "average", "poor"]
    saves: dict[str, Literal["good", "poor"]]
    class_skills: tuple[str, ...] = ()
    spellcasting: SpellcastingInfo | None = None
    features: dict[int, tuple[str, ...]] = Field(
        default_factory=dict, description="Class level → features gained"
    )

    @field_validator("base_attack", mode="before")
    @classmethod
    def normalize_progression(cls, v: Any) -> Any:
        if v == "medium":
            return "average"
        return v

    @property
    def is_spellcaster(self) -> bool:
        return self.spellcasting is not None

    def features_at(self, level: int) -> tuple[str, ...]:
        return self.features.get(level, ())


class RaceDefinition(RuleModel):
    """Race definition."""
    size: Literal["small", "medium", "large"] = "medium"
    speed: int = 30
    ability_adjustments: dict[str, int] = Field(default_factory=dict)
    favored_class: str | None = None
    bonus_feat: bool = False

    @field_validator("ability_adjustments", mode="before")
    @classmethod
    def normalize_adjustments(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {_normalize_ability(k): n for k, n in v.items()}
        return v
