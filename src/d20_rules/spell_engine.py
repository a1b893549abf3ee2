"""
Spell resolution: caster level, castable spell levels, metamagic and save DCs.

``resolve_cast`` is a pure query. ``cast_spell``, ``end_spell_effect``,
``learn_spell`` and ``prepare_spell`` return a new Character and never modify
the one passed in.
"""

from typing import Iterable

from pydantic import BaseModel, Field

from .effects import EffectAggregator
from .formulas import (
    NumericEffect,
    is_enlargeable,
    range_in_feet,
    resolve_dice,
    resolve_duration,
    widen_area,
)
from .models import ActiveSpellEffect, Character, DerivedStats, Failure, FailureCode
from .rulebooks.catalog import RuleCatalog
from .rulebooks.models import ClassDefinition, FeatDefinition, SpellDefinition
from .tables import caster_level_for, max_spell_level_for, normalize_index


class ResolvedRoll(BaseModel):
    """A damage or healing roll after caster level scaling and metamagic."""
    formula: str = Field(description="Dice at this caster level, e.g. '10d6'")
    expression: str = Field(description="Formula with numeric metamagic applied in order")
    transforms: list[str] = Field(default_factory=list)
    average: float
    maximum: float

    @classmethod
    def from_effect(cls, effect: NumericEffect) -> "ResolvedRoll":
        return cls(
            formula=effect.base.render(),
            expression=effect.expression,
            transforms=list(effect.transforms),
            average=effect.average,
            maximum=effect.maximum,
        )


class ResolvedSpell(BaseModel):
    """A spell instance ready to be cast."""
    spell_id: str
    name: str
    school: str
    caster_class: str
    caster_level: int
    base_level: int
    effective_level: int
    metamagic: list[str] = Field(default_factory=list, description="Metamagic feats in applied order")
    components: list[str]
    casting_time: str
    range: str
    range_feet: int | None = None
    duration: str
    area: str | None = None
    damage: ResolvedRoll | None = None
    healing: ResolvedRoll | None = None
    save_dc: int | None = None
    saving_throw: str | None = None
    spell_resistance: bool = False


class CastResolution(BaseModel):
    """Outcome of ``resolve_cast``."""
    legal: bool
    failure: Failure | None = None
    resolved_spell: ResolvedSpell | None = None


class SpellResult(BaseModel):
    """Outcome of an entry point that changes the character."""
    legal: bool
    failure: Failure | None = None
    character: Character
    resolved_spell: ResolvedSpell | None = None
    effect_id: str | None = None
    derived: DerivedStats | None = None


def _failure(code: FailureCode, reason: str, **details) -> Failure:
    return Failure(code=code, reason=reason, details=details)


class SpellEngine:
    """Resolves spells cast by a character."""

    def __init__(self, catalog: RuleCatalog, aggregator: EffectAggregator | None = None):
        self.catalog = catalog
        self.aggregator = aggregator or EffectAggregator(catalog)

    # -----------------------------------------------------------------
    # Progressions
    # -----------------------------------------------------------------

    def caster_level(self, character: Character, caster_class: str) -> int:
        """Caster level in one class; 0 for non-casters and classes not held."""
        class_def = self.catalog.get_class(caster_class)
        if class_def is None or class_def.spellcasting is None:
            return 0
        return caster_level_for(class_def.spellcasting.caster_type, character.class_level(class_def.name))

    def max_spell_level(self, character: Character, caster_class: str) -> int:
        class_def = self.catalog.get_class(caster_class)
        if class_def is None or class_def.spellcasting is None:
            return 0
        return max_spell_level_for(class_def.spellcasting.caster_type, character.class_level(class_def.name))

    # -----------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------

    def resolve_cast(
        self,
        character: Character,
        spell_id: str,
        caster_class: str,
        metamagic_feat_ids: Iterable[str] = (),
    ) -> CastResolution:
        """
        Check that a cast is legal and resolve the spell instance.

        Metamagic feats are applied in the order given; that order shows in
        the resolved damage/healing expression.
        """
        access = self._check_access(character, spell_id, caster_class)
        if isinstance(access, Failure):
            return CastResolution(legal=False, failure=access)
        spell, class_def, base_level = access

        metamagic = self._check_metamagic(character, list(metamagic_feat_ids))
        if isinstance(metamagic, Failure):
            return CastResolution(legal=False, failure=metamagic)

        derived = self.aggregator.aggregate(character)
        return CastResolution(
            legal=True,
            resolved_spell=self._resolve(character, spell, class_def, base_level, metamagic, derived),
        )

    def _check_access(
        self, character: Character, spell_id: str, caster_class: str,
    ) -> tuple[SpellDefinition, ClassDefinition, int] | Failure:
        spell = self.catalog.get_spell(spell_id)
        if spell is None:
            return _failure(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_spell", spell_id=spell_id)
        class_def = self.catalog.get_class(caster_class)
        if class_def is None:
            return _failure(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_class", class_name=caster_class)

        class_level = character.class_level(class_def.name)
        if class_level < 1:
            return _failure(FailureCode.PREREQUISITE_NOT_MET, "no_levels_in_class", class_name=class_def.index)
        if class_def.spellcasting is None:
            return _failure(FailureCode.PREREQUISITE_NOT_MET, "class_cannot_cast", class_name=class_def.index)

        base_level = spell.level_for(class_def.index)
        if base_level is None:
            return _failure(
                FailureCode.PREREQUISITE_NOT_MET, "spell_not_on_class_list",
                spell_id=spell.index, class_name=class_def.index,
            )

        max_level = max_spell_level_for(class_def.spellcasting.caster_type, class_level)
        caster_level = caster_level_for(class_def.spellcasting.caster_type, class_level)
        if base_level > max_level or caster_level < 1:
            return _failure(
                FailureCode.PREREQUISITE_NOT_MET, "spell_level_too_high",
                spell_id=spell.index, spell_level=base_level, max_spell_level=max_level,
            )
        return spell, class_def, base_level

    def _check_metamagic(self, character: Character, feat_ids: list[str]) -> list[FeatDefinition] | Failure:
        feats: list[FeatDefinition] = []
        seen: set[str] = set()
        for feat_id in feat_ids:
            feat = self.catalog.get_feat(feat_id)
            if feat is None:
                return _failure(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_feat", feat_id=feat_id)
            if feat.metamagic is None:
                return _failure(FailureCode.PREREQUISITE_NOT_MET, "not_metamagic", feat_id=feat.index)
            if feat.index in seen:
                return _failure(FailureCode.PREREQUISITE_NOT_MET, "duplicate_metamagic", feat_id=feat.index)
            if not character.has_feat(feat.index):
                return _failure(FailureCode.PREREQUISITE_NOT_MET, "metamagic_feat_not_held", feat_id=feat.index)
            seen.add(feat.index)
            feats.append(feat)
        return feats

    def _resolve(
        self,
        character: Character,
        spell: SpellDefinition,
        class_def: ClassDefinition,
        base_level: int,
        metamagic: list[FeatDefinition],
        derived: DerivedStats,
    ) -> ResolvedSpell:
        casting = class_def.spellcasting
        caster_level = caster_level_for(casting.caster_type, character.class_level(class_def.name))

        components = list(spell.components)
        casting_time = spell.casting_time
        range_feet = range_in_feet(spell.range, caster_level)
        duration = resolve_duration(spell.duration, caster_level)
        area = spell.area
        damage = NumericEffect.of(resolve_dice(spell.damage, caster_level)) if spell.damage else None
        healing = NumericEffect.of(resolve_dice(spell.healing, caster_level)) if spell.healing else None
        effective_level = base_level

        for feat in metamagic:
            transform = feat.metamagic
            effective_level += transform.level_increase
            op = transform.operation
            if op == "empower":
                damage = damage.empowered() if damage else None
                healing = healing.empowered() if healing else None
            elif op == "maximize":
                damage = damage.maximized() if damage else None
                healing = healing.maximized() if healing else None
            elif op == "enlarge":
                if range_feet is not None and is_enlargeable(spell.range):
                    range_feet *= 2
            elif op == "extend":
                duration = duration.doubled()
            elif op == "widen":
                area = widen_area(area) if area else None
            elif op == "quicken":
                casting_time = "free action"
            elif op == "silent":
                components = [c for c in components if c != "V"]
            elif op == "still":
                components = [c for c in components if c != "S"]

        save_dc = None
        if spell.allows_save:
            save_dc = (
                10 + effective_level
                + derived.ability_modifiers[casting.ability]
                + derived.spell_focus.get(spell.school, 0)
            )

        return ResolvedSpell(
            spell_id=spell.index,
            name=spell.name,
            school=spell.school,
            caster_class=class_def.index,
            caster_level=caster_level,
            base_level=base_level,
            effective_level=effective_level,
            metamagic=[f.index for f in metamagic],
            components=components,
            casting_time=casting_time,
            range=f"{range_feet} ft." if range_feet is not None else spell.range,
            range_feet=range_feet,
            duration=duration.render(),
            area=area,
            damage=ResolvedRoll.from_effect(damage) if damage else None,
            healing=ResolvedRoll.from_effect(healing) if healing else None,
            save_dc=save_dc,
            saving_throw=spell.saving_throw,
            spell_resistance=spell.spell_resistance,
        )

    # -----------------------------------------------------------------
    # Character-changing entry points
    # -----------------------------------------------------------------

    def cast_spell(
        self,
        character: Character,
        spell_id: str,
        caster_class: str,
        metamagic_feat_ids: Iterable[str] = (),
    ) -> SpellResult:
        """Resolve a cast and record any lasting effect on the caster.

        Spells with persistent modifiers become an ActiveSpellEffect. Casting
        the same spell again replaces the earlier effect instead of stacking.
        """
        resolution = self.resolve_cast(character, spell_id, caster_class, metamagic_feat_ids)
        if not resolution.legal:
            return SpellResult(legal=False, failure=resolution.failure, character=character)

        resolved = resolution.resolved_spell
        spell = self.catalog.require_spell(resolved.spell_id)
        updated = character.model_copy(deep=True)
        effect_id = None
        if spell.modifiers:
            effect = ActiveSpellEffect(
                spell_id=spell.index,
                caster_class=resolved.caster_class,
                caster_level=resolved.caster_level,
                modifiers=[m.model_copy() for m in spell.modifiers],
            )
            updated.active_spell_effects = [
                e for e in updated.active_spell_effects if e.spell_id != spell.index
            ] + [effect]
            effect_id = effect.id

        return SpellResult(
            legal=True,
            character=updated,
            resolved_spell=resolved,
            effect_id=effect_id,
            derived=self.aggregator.aggregate(updated),
        )

    def end_spell_effect(self, character: Character, effect_or_spell_id: str) -> SpellResult:
        """End an active spell effect by effect id or spell index.

        Ending an effect that is not active changes nothing.
        """
        key = normalize_index(effect_or_spell_id)
        updated = character.model_copy(deep=True)
        updated.active_spell_effects = [
            e for e in updated.active_spell_effects
            if e.id != effect_or_spell_id and e.spell_id != key
        ]
        return SpellResult(legal=True, character=updated, derived=self.aggregator.aggregate(updated))

    def learn_spell(self, character: Character, spell_id: str, caster_class: str) -> SpellResult:
        """Add a spell to the class's known spells. Learning it again changes nothing."""
        access = self._check_access(character, spell_id, caster_class)
        if isinstance(access, Failure):
            return SpellResult(legal=False, failure=access, character=character)
        spell, class_def, base_level = access

        updated = character.model_copy(deep=True)
        known = updated.spells_known.setdefault(class_def.index, {}).setdefault(base_level, [])
        if spell.index not in known:
            known.append(spell.index)
            known.sort()
        return SpellResult(legal=True, character=updated)

    def prepare_spell(self, character: Character, spell_id: str, caster_class: str) -> SpellResult:
        """Prepare a spell in a free slot of its level.

        Arcane preparers may only prepare spells they know; divine preparers
        draw on their whole class list. Spontaneous casters do not prepare.
        """
        access = self._check_access(character, spell_id, caster_class)
        if isinstance(access, Failure):
            return SpellResult(legal=False, failure=access, character=character)
        spell, class_def, base_level = access
        casting = class_def.spellcasting

        if not casting.prepared:
            return SpellResult(
                legal=False,
                failure=_failure(
                    FailureCode.PREREQUISITE_NOT_MET, "class_does_not_prepare", class_name=class_def.index,
                ),
                character=character,
            )

        if casting.tradition == "arcane":
            known = character.spells_known.get(class_def.index, {}).get(base_level, [])
            if spell.index not in known:
                return SpellResult(
                    legal=False,
                    failure=_failure(FailureCode.PREREQUISITE_NOT_MET, "spell_not_known", spell_id=spell.index),
                    character=character,
                )

        derived = self.aggregator.aggregate(character)
        slots = derived.spells_per_day.get(class_def.index, {}).get(base_level, 0)
        prepared = character.spells_prepared.get(class_def.index, {}).get(base_level, [])
        if len(prepared) >= slots:
            return SpellResult(
                legal=False,
                failure=_failure(
                    FailureCode.PREREQUISITE_NOT_MET, "no_free_slot",
                    spell_level=base_level, slots=slots,
                ),
                character=character,
            )

        updated = character.model_copy(deep=True)
        updated.spells_prepared.setdefault(class_def.index, {}).setdefault(base_level, []).append(spell.index)
        return SpellResult(legal=True, character=updated)


__all__ = [
    "CastResolution",
    "ResolvedRoll",
    "ResolvedSpell",
    "SpellEngine",
    "SpellResult",
]
