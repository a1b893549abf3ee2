"""Tests for SpellEngine: progressions, metamagic, save DCs and spell bookkeeping."""

import pytest

from d20_rules.models import AbilityScore, Character, FailureCode, FeatInstance
from d20_rules.spell_engine import SpellEngine


def make_caster(
    class_name: str = "Wizard",
    level: int = 5,
    feats: list[str | tuple[str, str]] | None = None,
    **scores: int,
) -> Character:
    feat_instances = []
    for feat in feats or []:
        if isinstance(feat, tuple):
            feat_instances.append(FeatInstance(feat_id=feat[0], choice=feat[1]))
        else:
            feat_instances.append(FeatInstance(feat_id=feat))
    return Character(
        name="Ela",
        classes=[{"name": class_name, "level": level}],
        abilities={name: AbilityScore(score=score) for name, score in scores.items()},
        feats=feat_instances,
    )


@pytest.fixture
def engine(catalog):
    return SpellEngine(catalog)


# ─── Test: progressions ───────────────────────────────────────────────


class TestProgressions:
    def test_wizard_eleven(self, engine):
        wizard = make_caster(level=11)
        assert engine.caster_level(wizard, "wizard") == 11
        assert engine.max_spell_level(wizard, "wizard") == 6

    def test_bard(self, engine):
        bard = make_caster("Bard", level=7)
        assert engine.max_spell_level(bard, "bard") == 3

    def test_paladin_below_four(self, engine):
        paladin = make_caster("Paladin", level=3)
        assert engine.caster_level(paladin, "paladin") == 0
        assert engine.max_spell_level(paladin, "paladin") == 0

    def test_paladin_eight(self, engine):
        paladin = make_caster("Paladin", level=8)
        assert engine.caster_level(paladin, "paladin") == 4
        assert engine.max_spell_level(paladin, "paladin") == 2

    def test_non_caster_and_unheld_class(self, engine):
        fighter = make_caster("Fighter", level=10)
        assert engine.caster_level(fighter, "fighter") == 0
        assert engine.caster_level(fighter, "wizard") == 0
        assert engine.max_spell_level(fighter, "unknown-class") == 0


# ─── Test: resolve_cast ───────────────────────────────────────────────


class TestResolveCast:
    def test_fireball_caps_at_ten_dice(self, engine):
        wizard = make_caster(level=13, intelligence=16)
        result = engine.resolve_cast(wizard, "fireball", "wizard")
        assert result.legal
        spell = result.resolved_spell
        assert spell.caster_level == 13
        assert spell.damage.formula == "10d6"
        assert spell.damage.expression == "10d6"
        assert spell.damage.average == 35
        assert spell.range_feet == 920
        assert spell.range == "920 ft."
        assert spell.save_dc == 10 + 3 + 3

    def test_fireball_scales_below_cap(self, engine):
        spell = engine.resolve_cast(make_caster(level=6), "fireball", "wizard").resolved_spell
        assert spell.damage.formula == "6d6"

    def test_spell_focus_raises_dc(self, engine):
        wizard = make_caster(level=5, feats=[("spell-focus", "evocation")], intelligence=16)
        spell = engine.resolve_cast(wizard, "fireball", "wizard").resolved_spell
        assert spell.save_dc == 17

    def test_sorcerer_uses_charisma(self, engine):
        sorcerer = make_caster("Sorcerer", level=6, intelligence=8, charisma=18)
        spell = engine.resolve_cast(sorcerer, "fireball", "sorcerer").resolved_spell
        assert spell.save_dc == 10 + 3 + 4

    def test_no_save_no_dc(self, engine):
        spell = engine.resolve_cast(make_caster(level=5), "magic-missile", "wizard").resolved_spell
        assert spell.save_dc is None
        assert spell.damage.formula == "3d4+3"

    def test_healing(self, engine):
        cleric = make_caster("Cleric", level=3)
        spell = engine.resolve_cast(cleric, "cure-light-wounds", "cleric").resolved_spell
        assert spell.healing.formula == "1d8+3"
        assert spell.damage is None

    def test_resolve_is_pure(self, engine):
        wizard = make_caster(level=5)
        before = wizard.model_dump()
        engine.resolve_cast(wizard, "fireball", "wizard")
        assert wizard.model_dump() == before


class TestMetamagic:
    @pytest.fixture
    def wizard(self):
        return make_caster(
            level=13,
            feats=["empower-spell", "maximize-spell", "enlarge-spell", "extend-spell",
                   "widen-spell", "quicken-spell", "silent-spell", "still-spell"],
            intelligence=16,
        )

    def test_empower_then_maximize(self, engine, wizard):
        spell = engine.resolve_cast(
            wizard, "fireball", "wizard", ["empower-spell", "maximize-spell"],
        ).resolved_spell
        assert spell.damage.expression == "max(1.5*(10d6))"
        assert spell.damage.transforms == ["empower", "maximize"]
        assert spell.damage.average == 77.5
        assert spell.metamagic == ["empower-spell", "maximize-spell"]
        assert spell.base_level == 3
        assert spell.effective_level == 8
        assert spell.save_dc == 10 + 8 + 3

    def test_maximize_then_empower(self, engine, wizard):
        spell = engine.resolve_cast(
            wizard, "fireball", "wizard", ["maximize-spell", "empower-spell"],
        ).resolved_spell
        assert spell.damage.expression == "1.5*(max(10d6))"
        assert spell.damage.maximum == 90
        assert spell.damage.average == 77.5

    def test_empower_average(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "fireball", "wizard", ["empower-spell"]).resolved_spell
        assert spell.damage.average == 52.5
        assert spell.effective_level == 5

    def test_enlarge_doubles_long_range(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "fireball", "wizard", ["enlarge-spell"]).resolved_spell
        assert spell.range_feet == 1840

    def test_enlarge_ignores_fixed_range(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "lightning-bolt", "wizard", ["enlarge-spell"]).resolved_spell
        assert spell.range_feet == 120
        assert spell.effective_level == 4

    def test_extend_doubles_duration(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "mage-armor", "wizard", ["extend-spell"]).resolved_spell
        assert spell.duration == "26 hours"

    def test_widen_doubles_area(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "fireball", "wizard", ["widen-spell"]).resolved_spell
        assert spell.area == "40-ft.-radius spread"

    def test_quicken(self, engine, wizard):
        spell = engine.resolve_cast(wizard, "magic-missile", "wizard", ["quicken-spell"]).resolved_spell
        assert spell.casting_time == "free action"
        assert spell.effective_level == 5

    def test_silent_and_still(self, engine, wizard):
        spell = engine.resolve_cast(
            wizard, "fireball", "wizard", ["silent-spell", "still-spell"],
        ).resolved_spell
        assert spell.components == ["M"]

    def test_effective_level_above_max_allowed(self, engine):
        wizard = make_caster(level=5, feats=["maximize-spell"])
        result = engine.resolve_cast(wizard, "fireball", "wizard", ["maximize-spell"])
        assert result.legal
        assert result.resolved_spell.effective_level == 6


class TestCastFailures:
    @pytest.mark.parametrize("spell_id,caster_class,level,reason,code", [
        ("wish", "wizard", 5, "unknown_spell", FailureCode.UNKNOWN_CATALOG_ENTRY),
        ("fireball", "psion", 5, "unknown_class", FailureCode.UNKNOWN_CATALOG_ENTRY),
        ("fireball", "sorcerer", 5, "no_levels_in_class", FailureCode.PREREQUISITE_NOT_MET),
        ("cure-light-wounds", "wizard", 5, "spell_not_on_class_list", FailureCode.PREREQUISITE_NOT_MET),
        ("fireball", "wizard", 4, "spell_level_too_high", FailureCode.PREREQUISITE_NOT_MET),
    ])
    def test_access_failures(self, engine, spell_id, caster_class, level, reason, code):
        result = engine.resolve_cast(make_caster(level=level), spell_id, caster_class)
        assert not result.legal
        assert result.resolved_spell is None
        assert result.failure.code == code
        assert result.failure.reason == reason

    def test_class_cannot_cast(self, engine):
        result = engine.resolve_cast(make_caster("Fighter", level=5), "fireball", "fighter")
        assert result.failure.reason == "class_cannot_cast"

    def test_paladin_without_caster_level(self, engine):
        result = engine.resolve_cast(make_caster("Paladin", level=3), "bless", "paladin")
        assert result.failure.reason == "spell_level_too_high"

    def test_metamagic_feat_not_held(self, engine):
        result = engine.resolve_cast(make_caster(level=7), "fireball", "wizard", ["empower-spell"])
        assert result.failure.reason == "metamagic_feat_not_held"
        assert result.failure.details == {"feat_id": "empower-spell"}

    def test_not_metamagic(self, engine):
        wizard = make_caster(level=7, feats=["toughness"])
        result = engine.resolve_cast(wizard, "fireball", "wizard", ["toughness"])
        assert result.failure.reason == "not_metamagic"

    def test_duplicate_metamagic(self, engine):
        wizard = make_caster(level=7, feats=["empower-spell"])
        result = engine.resolve_cast(wizard, "fireball", "wizard", ["empower-spell", "Empower Spell"])
        assert result.failure.reason == "duplicate_metamagic"

    def test_unknown_metamagic_feat(self, engine):
        result = engine.resolve_cast(make_caster(level=7), "fireball", "wizard", ["twin-spell"])
        assert result.failure.code == FailureCode.UNKNOWN_CATALOG_ENTRY
        assert result.failure.reason == "unknown_feat"


# ─── Test: cast_spell / end_spell_effect ──────────────────────────────


class TestCastSpell:
    def test_buff_becomes_active_effect(self, engine):
        wizard = make_caster(level=3, strength=10)
        result = engine.cast_spell(wizard, "bulls-strength", "wizard")
        assert result.legal
        assert result.effect_id is not None
        assert [e.spell_id for e in result.character.active_spell_effects] == ["bulls-strength"]
        assert result.derived.ability_scores["strength"] == 14
        assert wizard.active_spell_effects == []

    def test_recast_refreshes(self, engine):
        wizard = make_caster(level=3)
        first = engine.cast_spell(wizard, "bulls-strength", "wizard")
        second = engine.cast_spell(first.character, "bulls-strength", "wizard")
        effects = second.character.active_spell_effects
        assert len(effects) == 1
        assert effects[0].id == second.effect_id
        assert second.effect_id != first.effect_id
        assert second.derived.ability_scores["strength"] == 14

    def test_instant_spell_leaves_no_effect(self, engine):
        result = engine.cast_spell(make_caster(level=5), "fireball", "wizard")
        assert result.legal
        assert result.effect_id is None
        assert result.character.active_spell_effects == []
        assert result.resolved_spell.damage.formula == "5d6"

    def test_illegal_cast_returns_input(self, engine):
        wizard = make_caster(level=1)
        result = engine.cast_spell(wizard, "fireball", "wizard")
        assert not result.legal
        assert result.character is wizard

    def test_end_by_spell_id(self, engine):
        cast = engine.cast_spell(make_caster(level=3), "mage-armor", "wizard")
        assert cast.derived.armor_class.armor == 4
        ended = engine.end_spell_effect(cast.character, "Mage Armor")
        assert ended.character.active_spell_effects == []
        assert ended.derived.armor_class.armor == 0

    def test_end_by_effect_id(self, engine):
        cast = engine.cast_spell(make_caster(level=3), "shield", "wizard")
        ended = engine.end_spell_effect(cast.character, cast.effect_id)
        assert ended.character.active_spell_effects == []

    def test_end_missing_effect_is_noop(self, engine):
        wizard = make_caster(level=3)
        result = engine.end_spell_effect(wizard, "haste")
        assert result.legal
        assert result.character.active_spell_effects == []


# ─── Test: learn_spell / prepare_spell ────────────────────────────────


class TestSpellbook:
    def test_learn(self, engine):
        result = engine.learn_spell(make_caster(level=1), "magic-missile", "wizard")
        assert result.legal
        assert result.character.spells_known == {"wizard": {1: ["magic-missile"]}}

    def test_learn_twice(self, engine):
        once = engine.learn_spell(make_caster(level=1), "magic-missile", "wizard").character
        twice = engine.learn_spell(once, "magic-missile", "wizard").character
        assert twice.spells_known == {"wizard": {1: ["magic-missile"]}}

    def test_learn_too_high(self, engine):
        result = engine.learn_spell(make_caster(level=1), "fireball", "wizard")
        assert result.failure.reason == "spell_level_too_high"

    def test_prepare_requires_known_for_arcane(self, engine):
        result = engine.prepare_spell(make_caster(level=1, intelligence=16), "magic-missile", "wizard")
        assert not result.legal
        assert result.failure.reason == "spell_not_known"

    def test_prepare_until_slots_run_out(self, engine):
        wizard = make_caster(level=1, intelligence=16)
        wizard = engine.learn_spell(wizard, "magic-missile", "wizard").character
        first = engine.prepare_spell(wizard, "magic-missile", "wizard")
        second = engine.prepare_spell(first.character, "magic-missile", "wizard")
        assert second.legal
        assert second.character.spells_prepared == {"wizard": {1: ["magic-missile", "magic-missile"]}}
        third = engine.prepare_spell(second.character, "magic-missile", "wizard")
        assert not third.legal
        assert third.failure.reason == "no_free_slot"
        assert third.failure.details == {"spell_level": 1, "slots": 2}

    def test_low_ability_has_no_slots(self, engine):
        wizard = make_caster(level=1, intelligence=10)
        wizard = engine.learn_spell(wizard, "magic-missile", "wizard").character
        result = engine.prepare_spell(wizard, "magic-missile", "wizard")
        assert result.failure.reason == "no_free_slot"

    def test_divine_prepares_from_class_list(self, engine):
        cleric = make_caster("Cleric", level=1, wisdom=12)
        result = engine.prepare_spell(cleric, "bless", "cleric")
        assert result.legal
        assert result.character.spells_prepared == {"cleric": {1: ["bless"]}}

    def test_spontaneous_caster_does_not_prepare(self, engine):
        sorcerer = make_caster("Sorcerer", level=1, charisma=16)
        result = engine.prepare_spell(sorcerer, "magic-missile", "sorcerer")
        assert result.failure.reason == "class_does_not_prepare"
