"""
Effect aggregation for d20 characters.

This module provides:
- ModifierPool: every modifier currently affecting a character, indexed by stat.
- EffectAggregator: walks feats, equipped items, active spell effects and the
  encumbrance load and folds them into a DerivedStats snapshot.

The aggregator is stateless between calls: it takes a Character and returns
computed values. No caching, no mutable internal state, no randomness.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from .models import (
    ArmorClass,
    BonusType,
    DerivedStats,
    Encumbrance,
    Modifier,
    STACKING_BONUS_TYPES,
    WeaponBonus,
    WeaponStats,
)
from .rulebooks.models import ItemDefinition, VariableEffect
from .rulebooks.validators import character_base_attack_bonus
from .tables import (
    ABILITIES,
    ARMOR_CHECK_SKILLS,
    LOAD_PENALTIES,
    SAVE_ABILITIES,
    SAVES,
    SIZE_MODIFIER,
    ability_modifier,
    base_save_bonus,
    bonus_spells,
    caster_level_for,
    load_thresholds,
    load_tier,
    normalize_index,
    reduced_speed,
    skill_key_ability,
)

if TYPE_CHECKING:
    from .models import Character
    from .rulebooks.catalog import RuleCatalog


class StackingMode(str, Enum):
    """How bonuses to the same stat combine."""
    TYPED = "typed"  # same-typed bonuses keep only the highest
    FLAT = "flat"    # everything adds


# Alias stat → stats it expands to
STAT_ALIASES: dict[str, tuple[str, ...]] = {
    "saves": tuple(f"{save}_save" for save in SAVES),
    "attack": ("melee_attack", "ranged_attack"),
}

# Armor class buckets reported separately; everything else lands in "misc"
AC_BUCKETS = {
    BonusType.ARMOR: "armor",
    BonusType.SHIELD: "shield",
    BonusType.NATURAL: "natural",
    BonusType.DEFLECTION: "deflection",
    BonusType.DODGE: "dodge",
}


def stack_modifiers(modifiers: Iterable[Modifier], mode: StackingMode = StackingMode.TYPED) -> int:
    """Combine additive modifiers to one stat.

    Typed stacking: penalties always stack; positive bonuses of the same type
    keep only the largest, except untyped, dodge and circumstance bonuses
    which add up.
    """
    modifiers = [m for m in modifiers if m.operation == "add"]
    if mode == StackingMode.FLAT:
        return sum(m.value for m in modifiers)

    total = 0
    best: dict[BonusType, int] = {}
    for mod in modifiers:
        if mod.value < 0 or mod.bonus_type in STACKING_BONUS_TYPES:
            total += mod.value
        else:
            best[mod.bonus_type] = max(best.get(mod.bonus_type, 0), mod.value)
    return total + sum(best.values())


class ModifierPool:
    """All modifiers and capabilities currently affecting a character."""

    def __init__(self, stacking_mode: StackingMode = StackingMode.TYPED):
        self.stacking_mode = stacking_mode
        self._by_stat: dict[str, list[Modifier]] = defaultdict(list)
        self.sources: list[tuple[str, Modifier]] = []
        self.capabilities: set[str] = set()

    def add(self, source: str, modifier: Modifier) -> None:
        """Add a modifier, fanning alias stats out to their targets."""
        for stat in STAT_ALIASES.get(modifier.stat, (modifier.stat,)):
            expanded = modifier if stat == modifier.stat else modifier.model_copy(update={"stat": stat})
            self._by_stat[stat].append(expanded)
            self.sources.append((source, expanded))

    def extend(self, source: str, modifiers: Iterable[Modifier]) -> None:
        for modifier in modifiers:
            self.add(source, modifier)

    def modifiers_for(self, stat: str) -> list[Modifier]:
        return list(self._by_stat.get(stat, ()))

    def total(self, stat: str, bonus_types: Iterable[BonusType] | None = None) -> int:
        """Stacked additive total for ``stat``, optionally limited to some types."""
        modifiers = self._by_stat.get(stat, ())
        if bonus_types is not None:
            wanted = set(bonus_types)
            modifiers = [m for m in modifiers if m.bonus_type in wanted]
        return stack_modifiers(modifiers, self.stacking_mode)

    def cap(self, stat: str) -> int | None:
        """Most restrictive cap for ``stat``, or None if nothing caps it."""
        caps = [m.value for m in self._by_stat.get(stat, ()) if m.operation == "cap"]
        return min(caps) if caps else None

    def stats_with_prefix(self, prefix: str) -> list[str]:
        return sorted(s for s in self._by_stat if s.startswith(prefix))


def item_modifiers(item: ItemDefinition) -> list[Modifier]:
    """Modifiers an item contributes while equipped."""
    modifiers: list[Modifier] = []

    if item.category in ("armor", "shield"):
        bonus_type = BonusType.ARMOR if item.category == "armor" else BonusType.SHIELD
        ac_bonus = item.armor_bonus + item.enhancement
        if ac_bonus:
            modifiers.append(Modifier(stat="armor_class", value=ac_bonus, bonus_type=bonus_type))
        if item.max_dex_bonus is not None:
            modifiers.append(Modifier(stat="max_dex_bonus", value=item.max_dex_bonus, operation="cap"))
        if item.armor_check_penalty:
            modifiers.append(Modifier(stat="armor_check_penalty", value=item.armor_check_penalty))
        if item.arcane_spell_failure:
            modifiers.append(Modifier(stat="arcane_spell_failure", value=item.arcane_spell_failure))

    elif item.category == "weapon":
        key = item.weapon_key
        # Masterwork and enhancement attack bonuses do not stack
        if item.attack_bonus:
            modifiers.append(Modifier(
                stat=f"attack:{key}", value=item.attack_bonus, bonus_type=BonusType.ENHANCEMENT,
            ))
        if item.enhancement:
            modifiers.append(Modifier(
                stat=f"attack:{key}", value=item.enhancement, bonus_type=BonusType.ENHANCEMENT,
            ))
            modifiers.append(Modifier(
                stat=f"damage:{key}", value=item.enhancement, bonus_type=BonusType.ENHANCEMENT,
            ))
        if item.damage_bonus:
            modifiers.append(Modifier(stat=f"damage:{key}", value=item.damage_bonus))

    for prop in item.properties:
        modifiers.extend(prop.modifiers)
    return modifiers


class EffectAggregator:
    """Computes derived statistics for a character.

    The Character holds the raw data; the aggregator provides the computed
    view. Every derived number in the system passes through ``aggregate``.
    """

    def __init__(self, catalog: RuleCatalog, stacking_mode: StackingMode = StackingMode.TYPED):
        self.catalog = catalog
        self.stacking_mode = stacking_mode

    # -----------------------------------------------------------------
    # Modifier collection
    # -----------------------------------------------------------------

    def collect(self, character: Character) -> tuple[ModifierPool, list[str], list[str]]:
        """Gather every modifier affecting ``character``.

        Returns:
            The pool, the indexes of variable feats missing their choice, and
            any catalog references that could not be resolved.
        """
        pool = ModifierPool(self.stacking_mode)
        incomplete: list[str] = []
        unknown: list[str] = []

        for instance in character.feats:
            feat = self.catalog.get_feat(instance.feat_id)
            if feat is None:
                unknown.append(f"feat:{instance.feat_id}")
                continue
            effect = feat.effect
            if isinstance(effect, VariableEffect):
                if instance.choice is None:
                    incomplete.append(feat.index)
                    continue
                effect = effect.resolve(instance.choice)
            pool.extend(f"feat:{feat.index}", effect.modifiers)
            pool.capabilities.update(effect.capabilities)

        for instance in character.inventory:
            if not instance.equipped:
                continue
            item = self.catalog.get_item(instance.item_id)
            if item is None:
                unknown.append(f"item:{instance.item_id}")
                continue
            pool.extend(f"item:{instance.id}", item_modifiers(item))
            for prop in item.properties:
                pool.capabilities.update(prop.capabilities)

        for spell_effect in character.active_spell_effects:
            pool.extend(f"spell:{spell_effect.spell_id}", spell_effect.modifiers)

        for char_class in character.classes:
            if self.catalog.get_class(char_class.name) is None:
                unknown.append(f"class:{normalize_index(char_class.name)}")

        return pool, incomplete, unknown

    # -----------------------------------------------------------------
    # Aggregation
    # -----------------------------------------------------------------

    def aggregate(self, character: Character) -> DerivedStats:
        """Compute the full DerivedStats snapshot for ``character``."""
        pool, incomplete, unknown = self.collect(character)

        scores = {
            name: character.abilities[name].score + pool.total(name)
            for name in ABILITIES
        }
        mods = {name: ability_modifier(score) for name, score in scores.items()}

        encumbrance = self._encumbrance(character, scores["strength"], unknown)
        load_cap, load_penalty = LOAD_PENALTIES.get(encumbrance.tier, (None, 0))
        if load_cap is not None:
            pool.add("encumbrance", Modifier(stat="max_dex_bonus", value=load_cap, operation="cap"))

        armor_check_penalty = min(pool.total("armor_check_penalty"), load_penalty)
        size_mod = SIZE_MODIFIER.get(character.size.lower(), 0)
        bab = character_base_attack_bonus(character, self.catalog)

        armor_class = self._armor_class(pool, mods["dexterity"], size_mod)
        melee = bab + mods["strength"] + size_mod + pool.total("melee_attack")
        ranged = bab + mods["dexterity"] + size_mod + pool.total("ranged_attack")
        damage = pool.total("damage")

        weapon_bonuses = {}
        for weapon in sorted({s.split(":", 1)[1] for s in pool.stats_with_prefix("attack:")}
                             | {s.split(":", 1)[1] for s in pool.stats_with_prefix("damage:")}):
            weapon_bonuses[weapon] = WeaponBonus(
                attack=pool.total(f"attack:{weapon}"),
                damage=pool.total(f"damage:{weapon}"),
            )

        con_delta = mods["constitution"] - character.abilities["constitution"].mod
        hit_points = max(
            1,
            character.hit_points_max + con_delta * character.total_level + pool.total("hit_points"),
        )

        return DerivedStats(
            ability_scores=scores,
            ability_modifiers=mods,
            base_attack_bonus=bab,
            caster_levels=self._caster_levels(character),
            armor_class=armor_class,
            saves=self._saves(character, pool, mods),
            skills=self._skills(character, pool, mods, armor_check_penalty),
            melee_attack=melee,
            ranged_attack=ranged,
            damage_bonus=damage,
            weapon_bonuses=weapon_bonuses,
            weapons=self._weapons(character, pool, mods, melee, ranged, damage),
            initiative=mods["dexterity"] + pool.total("initiative"),
            speed=self._speed(character, pool, encumbrance.tier),
            hit_points_max=hit_points,
            armor_check_penalty=armor_check_penalty,
            arcane_spell_failure=pool.total("arcane_spell_failure"),
            encumbrance=encumbrance,
            spells_per_day=self._spells_per_day(character, scores),
            spell_focus={
                stat.split(":", 1)[1]: pool.total(stat)
                for stat in pool.stats_with_prefix("spell_dc:")
            },
            capabilities=sorted(pool.capabilities),
            incomplete_feats=sorted(set(incomplete)),
            unknown_entries=sorted(set(unknown)),
        )

    def _armor_class(self, pool: ModifierPool, dex_mod: int, size_mod: int) -> ArmorClass:
        buckets = {
            name: pool.total("armor_class", [bonus_type])
            for bonus_type, name in AC_BUCKETS.items()
        }
        misc_types = [t for t in BonusType if t not in AC_BUCKETS]
        misc = pool.total("armor_class", misc_types) + size_mod

        max_dex = pool.cap("max_dex_bonus")
        dexterity = dex_mod if max_dex is None else min(dex_mod, max_dex)

        total = 10 + dexterity + misc + sum(buckets.values())
        return ArmorClass(
            dexterity=dexterity,
            misc=misc,
            max_dex_bonus=max_dex,
            total=total,
            touch=total - buckets["armor"] - buckets["shield"] - buckets["natural"],
            flat_footed=total - max(0, dexterity) - max(0, buckets["dodge"]),
            **buckets,
        )

    def _saves(self, character: Character, pool: ModifierPool, mods: dict[str, int]) -> dict[str, int]:
        saves = {}
        for save in SAVES:
            base = 0
            for char_class in character.classes:
                class_def = self.catalog.get_class(char_class.name)
                if class_def is not None and save in class_def.saves:
                    base += base_save_bonus(class_def.saves[save], char_class.level)
            saves[save] = base + mods[SAVE_ABILITIES[save]] + pool.total(f"{save}_save")
        return saves

    def _skills(
        self,
        character: Character,
        pool: ModifierPool,
        mods: dict[str, int],
        armor_check_penalty: int,
    ) -> dict[str, int]:
        names = set(character.skills) | {
            s.split(":", 1)[1] for s in pool.stats_with_prefix("skill:")
        }
        totals = {}
        for name in sorted(names):
            ranks = character.skills[name].ranks if name in character.skills else 0
            ability = skill_key_ability(name)
            total = ranks + (mods[ability] if ability else 0) + pool.total(f"skill:{name}")
            if name.split("(", 1)[0].strip() in ARMOR_CHECK_SKILLS:
                total += armor_check_penalty
            totals[name] = total
        return totals

    def _weapons(
        self,
        character: Character,
        pool: ModifierPool,
        mods: dict[str, int],
        melee: int,
        ranged: int,
        damage: int,
    ) -> list[WeaponStats]:
        weapons = []
        finesse = "weapon_finesse" in pool.capabilities
        for instance in character.inventory:
            if not instance.equipped or instance.slot not in ("main_hand", "off_hand"):
                continue
            item = self.catalog.get_item(instance.item_id)
            if item is None or item.category != "weapon":
                continue
            key = item.weapon_key

            if item.ranged:
                attack = ranged
                str_damage = min(0, mods["strength"])
            else:
                attack = melee
                if finesse and (item.light or key == "rapier") and mods["dexterity"] > mods["strength"]:
                    attack += mods["dexterity"] - mods["strength"]
                str_damage = mods["strength"]
                if str_damage > 0 and item.two_handed:
                    str_damage = str_damage * 3 // 2
                elif str_damage > 0 and instance.slot == "off_hand":
                    str_damage = str_damage // 2

            weapons.append(WeaponStats(
                instance_id=instance.id,
                item_id=item.index,
                slot=instance.slot,
                damage_dice=item.damage,
                attack_bonus=attack + pool.total(f"attack:{key}"),
                damage_bonus=damage + str_damage + pool.total(f"damage:{key}"),
            ))
        return weapons

    def _speed(self, character: Character, pool: ModifierPool, tier: str) -> int:
        slowed = tier in ("medium", "heavy")
        for instance in character.inventory:
            if instance.equipped and instance.slot == "armor":
                item = self.catalog.get_item(instance.item_id)
                if item is not None and item.armor_category in ("medium", "heavy"):
                    slowed = True
        if tier == "overloaded":
            base = 5
        elif slowed:
            base = reduced_speed(character.speed)
        else:
            base = character.speed
        return max(0, base + pool.total("speed"))

    def _encumbrance(self, character: Character, strength: int, unknown: list[str]) -> Encumbrance:
        total_weight = 0.0
        for instance in character.inventory:
            item = self.catalog.get_item(instance.item_id)
            if item is None:
                unknown.append(f"item:{instance.item_id}")
                continue
            total_weight += item.weight * instance.quantity
        thresholds = load_thresholds(strength, character.size)
        return Encumbrance(
            total_weight=total_weight,
            tier=load_tier(total_weight, strength, character.size),
            light_max=thresholds["light"],
            medium_max=thresholds["medium"],
            heavy_max=thresholds["heavy"],
        )

    def _caster_levels(self, character: Character) -> dict[str, int]:
        levels = {}
        for char_class in sorted(character.classes, key=lambda c: normalize_index(c.name)):
            class_def = self.catalog.get_class(char_class.name)
            if class_def is not None and class_def.spellcasting is not None:
                levels[class_def.index] = caster_level_for(
                    class_def.spellcasting.caster_type, char_class.level,
                )
        return levels

    def _spells_per_day(self, character: Character, scores: dict[str, int]) -> dict[str, dict[int, int]]:
        """Base slots from the class table plus bonus spells for a high casting ability.

        A caster whose casting ability is below 10 + spell level cannot cast
        spells of that level at all.
        """
        per_day: dict[str, dict[int, int]] = {}
        for char_class in sorted(character.classes, key=lambda c: normalize_index(c.name)):
            class_def = self.catalog.get_class(char_class.name)
            if class_def is None or class_def.spellcasting is None:
                continue
            casting = class_def.spellcasting
            row = casting.spells_per_day.get(char_class.level, ())
            score = scores[casting.ability]
            slots = {}
            for spell_level, base in enumerate(row):
                if score < 10 + spell_level:
                    slots[spell_level] = 0
                else:
                    slots[spell_level] = base + bonus_spells(ability_modifier(score), spell_level)
            per_day[class_def.index] = slots
        return per_day


__all__ = [
    "EffectAggregator",
    "ModifierPool",
    "StackingMode",
    "item_modifiers",
    "stack_modifiers",
]
