"""Tests for the EffectAggregator and stacking rules."""

import pytest

from d20_rules.effects import (
    EffectAggregator,
    ModifierPool,
    StackingMode,
    item_modifiers,
    stack_modifiers,
)
from d20_rules.models import (
    AbilityScore,
    ActiveSpellEffect,
    BonusType,
    Character,
    FeatInstance,
    ItemInstance,
    Modifier,
    SkillRanks,
)


# ─── Helpers ───────────────────────────────────────────────────────────


def make_character(
    classes: list[tuple[str, int]] | None = None,
    items: list[tuple[str, str | None]] | None = None,
    feats: list[tuple[str, str | None]] | None = None,
    hp: int = 12,
    **scores: int,
) -> Character:
    """Character with equipped items given as (item_id, slot) pairs; slot None = carried."""
    return Character(
        name="Testchar",
        classes=[{"name": n, "level": lvl} for n, lvl in (classes or [("Fighter", 1)])],
        abilities={name: AbilityScore(score=score) for name, score in scores.items()},
        inventory=[
            ItemInstance(item_id=item_id, equipped=slot is not None, slot=slot)
            for item_id, slot in (items or [])
        ],
        feats=[FeatInstance(feat_id=f, choice=c) for f, c in (feats or [])],
        hit_points_max=hp,
        hit_points_current=hp,
    )


def spell_effect(catalog, spell_id: str) -> ActiveSpellEffect:
    spell = catalog.get_spell(spell_id)
    return ActiveSpellEffect(
        spell_id=spell.index, caster_class="wizard", caster_level=5, modifiers=list(spell.modifiers),
    )


# ─── Stacking ──────────────────────────────────────────────────────────


class TestStacking:
    def test_same_type_keeps_highest(self):
        mods = [
            Modifier(stat="strength", value=2, bonus_type=BonusType.ENHANCEMENT),
            Modifier(stat="strength", value=4, bonus_type=BonusType.ENHANCEMENT),
        ]
        assert stack_modifiers(mods) == 4
        assert stack_modifiers(mods, StackingMode.FLAT) == 6

    def test_different_types_add(self):
        mods = [
            Modifier(stat="armor_class", value=2, bonus_type=BonusType.DEFLECTION),
            Modifier(stat="armor_class", value=1, bonus_type=BonusType.NATURAL),
        ]
        assert stack_modifiers(mods) == 3

    def test_dodge_untyped_and_circumstance_stack(self):
        mods = [
            Modifier(stat="armor_class", value=1, bonus_type=BonusType.DODGE),
            Modifier(stat="armor_class", value=1, bonus_type=BonusType.DODGE),
            Modifier(stat="initiative", value=2),
            Modifier(stat="initiative", value=2),
            Modifier(stat="x", value=1, bonus_type=BonusType.CIRCUMSTANCE),
            Modifier(stat="x", value=1, bonus_type=BonusType.CIRCUMSTANCE),
        ]
        assert stack_modifiers(mods) == 6

    def test_penalties_always_stack(self):
        mods = [
            Modifier(stat="armor_check_penalty", value=-5, bonus_type=BonusType.ARMOR),
            Modifier(stat="armor_check_penalty", value=-2, bonus_type=BonusType.ARMOR),
        ]
        assert stack_modifiers(mods) == -7

    def test_caps_ignored_by_sum(self):
        mods = [Modifier(stat="max_dex_bonus", value=2, operation="cap")]
        assert stack_modifiers(mods) == 0


class TestModifierPool:
    def test_alias_fans_out(self):
        pool = ModifierPool()
        pool.add("item:cloak", Modifier(stat="saves", value=1, bonus_type=BonusType.RESISTANCE))
        assert pool.total("fortitude_save") == 1
        assert pool.total("reflex_save") == 1
        assert pool.total("will_save") == 1
        assert pool.total("saves") == 0

    def test_attack_alias(self):
        pool = ModifierPool()
        pool.add("spell:bless", Modifier(stat="attack", value=1, bonus_type=BonusType.MORALE))
        assert pool.total("melee_attack") == 1
        assert pool.total("ranged_attack") == 1

    def test_cap_takes_minimum(self):
        pool = ModifierPool()
        pool.add("a", Modifier(stat="max_dex_bonus", value=3, operation="cap"))
        pool.add("b", Modifier(stat="max_dex_bonus", value=1, operation="cap"))
        assert pool.cap("max_dex_bonus") == 1
        assert pool.cap("speed") is None

    def test_sources_recorded(self):
        pool = ModifierPool()
        pool.add("feat:toughness", Modifier(stat="hit_points", value=3))
        assert pool.sources == [("feat:toughness", Modifier(stat="hit_points", value=3))]


class TestItemModifiers:
    def test_armor(self, catalog):
        mods = item_modifiers(catalog.get_item("chainmail"))
        assert Modifier(stat="armor_class", value=5, bonus_type=BonusType.ARMOR) in mods
        assert Modifier(stat="max_dex_bonus", value=2, operation="cap") in mods
        assert Modifier(stat="armor_check_penalty", value=-5) in mods
        assert Modifier(stat="arcane_spell_failure", value=30) in mods

    def test_enhanced_armor(self, catalog):
        mods = item_modifiers(catalog.get_item("chain-shirt-1"))
        assert Modifier(stat="armor_class", value=5, bonus_type=BonusType.ARMOR) in mods

    def test_weapon_keyed_by_base_item(self, catalog):
        mods = item_modifiers(catalog.get_item("longsword-1"))
        assert {m.stat for m in mods} == {"attack:longsword", "damage:longsword"}


# ─── Aggregation ───────────────────────────────────────────────────────


class TestAbilitiesAndAttacks:
    def test_baseline_fighter(self, aggregator):
        char = make_character(strength=16, dexterity=12, constitution=14)
        derived = aggregator.aggregate(char)
        assert derived.ability_modifiers["strength"] == 3
        assert derived.base_attack_bonus == 1
        assert derived.melee_attack == 4
        assert derived.ranged_attack == 2
        assert derived.initiative == 1
        assert derived.saves == {"fortitude": 4, "reflex": 1, "will": 0}
        assert derived.speed == 30

    def test_enhancements_do_not_stack(self, catalog, aggregator):
        char = make_character(items=[("belt-of-giant-strength-4", "waist")], strength=10)
        char.active_spell_effects.append(spell_effect(catalog, "bulls-strength"))
        derived = aggregator.aggregate(char)
        assert derived.ability_scores["strength"] == 14
        assert derived.melee_attack == 1 + 2

    def test_flat_mode_stacks_everything(self, catalog):
        char = make_character(items=[("belt-of-giant-strength-4", "waist")], strength=10)
        char.active_spell_effects.append(spell_effect(catalog, "bulls-strength"))
        derived = EffectAggregator(catalog, StackingMode.FLAT).aggregate(char)
        assert derived.ability_scores["strength"] == 18

    def test_small_size(self, aggregator):
        char = make_character()
        char.size = "small"
        derived = aggregator.aggregate(char)
        assert derived.armor_class.misc == 1
        assert derived.armor_class.total == 11
        assert derived.melee_attack == 2

    def test_bless_and_divine_favor(self, catalog, aggregator):
        char = make_character()
        char.active_spell_effects.append(spell_effect(catalog, "bless"))
        char.active_spell_effects.append(spell_effect(catalog, "divine-favor"))
        derived = aggregator.aggregate(char)
        # morale +1 and luck +1 are different types
        assert derived.melee_attack == 1 + 2
        assert derived.damage_bonus == 1


class TestArmorClass:
    @pytest.fixture
    def armored(self):
        return make_character(
            items=[
                ("chainmail", "armor"),
                ("heavy-steel-shield", "off_hand"),
                ("ring-of-protection-1", "ring"),
            ],
            feats=[("dodge", None)],
            dexterity=14,
        )

    def test_breakdown(self, aggregator, armored):
        ac = aggregator.aggregate(armored).armor_class
        assert ac.armor == 5
        assert ac.shield == 2
        assert ac.dexterity == 2
        assert ac.dodge == 1
        assert ac.deflection == 1
        assert ac.max_dex_bonus == 2
        assert ac.total == 21

    def test_touch_and_flat_footed(self, aggregator, armored):
        ac = aggregator.aggregate(armored).armor_class
        assert ac.touch == 14
        assert ac.flat_footed == 18

    def test_max_dex_caps_dexterity(self, aggregator):
        char = make_character(items=[("chainmail", "armor")], dexterity=18)
        ac = aggregator.aggregate(char).armor_class
        assert ac.dexterity == 2
        assert ac.total == 17

    def test_dex_penalty_kept_when_flat_footed(self, aggregator):
        ac = aggregator.aggregate(make_character(dexterity=8)).armor_class
        assert ac.total == 9
        assert ac.flat_footed == 9

    def test_same_type_armor_bonuses(self, catalog, aggregator):
        char = make_character(items=[("chainmail", "armor")])
        char.active_spell_effects.append(spell_effect(catalog, "mage-armor"))
        assert aggregator.aggregate(char).armor_class.armor == 5
        flat = EffectAggregator(catalog, StackingMode.FLAT)
        assert flat.aggregate(char).armor_class.armor == 9

    def test_armor_penalties(self, aggregator, armored):
        derived = aggregator.aggregate(armored)
        assert derived.armor_check_penalty == -7
        assert derived.arcane_spell_failure == 45
        assert derived.speed == 20

    def test_armor_check_skills(self, aggregator):
        char = make_character(items=[("chainmail", "armor")])
        char.skills = {"Climb": SkillRanks(ranks=4), "Listen": SkillRanks(ranks=4)}
        skills = aggregator.aggregate(char).skills
        assert skills["Climb"] == -1
        assert skills["Listen"] == 4

    def test_unequipped_items_ignored(self, aggregator):
        char = make_character(items=[("chainmail", None)])
        assert aggregator.aggregate(char).armor_class.total == 10


class TestWeapons:
    def test_two_handed_strength(self, aggregator):
        char = make_character(items=[("greatsword", "main_hand")], strength=16)
        weapon = aggregator.aggregate(char).weapons[0]
        assert weapon.attack_bonus == 4
        assert weapon.damage_bonus == 4
        assert weapon.damage_dice == "2d6"

    def test_off_hand_half_strength(self, aggregator):
        char = make_character(items=[("longsword", "main_hand"), ("dagger", "off_hand")], strength=16)
        by_slot = {w.slot: w for w in aggregator.aggregate(char).weapons}
        assert by_slot["main_hand"].damage_bonus == 3
        assert by_slot["off_hand"].damage_bonus == 1

    def test_weapon_focus_and_enhancement(self, aggregator):
        char = make_character(
            items=[("longsword-1", "main_hand")],
            feats=[("weapon-focus", "longsword")],
            strength=16,
        )
        derived = aggregator.aggregate(char)
        assert derived.weapon_bonuses["longsword"].attack == 2
        assert derived.weapon_bonuses["longsword"].damage == 1
        assert derived.weapons[0].attack_bonus == 6
        assert derived.weapons[0].damage_bonus == 4

    def test_masterwork_does_not_stack_with_enhancement(self):
        mods = [
            Modifier(stat="attack:longsword", value=1, bonus_type=BonusType.ENHANCEMENT),
            Modifier(stat="attack:longsword", value=1, bonus_type=BonusType.ENHANCEMENT),
        ]
        assert stack_modifiers(mods) == 1

    def test_ranged_uses_dexterity(self, aggregator):
        char = make_character(items=[("longbow", "main_hand")], strength=8, dexterity=16)
        weapon = aggregator.aggregate(char).weapons[0]
        assert weapon.attack_bonus == 1 + 3
        assert weapon.damage_bonus == -1

    def test_weapon_finesse(self, aggregator):
        char = make_character(
            items=[("rapier", "main_hand")], feats=[("weapon-finesse", None)],
            strength=10, dexterity=16,
        )
        assert aggregator.aggregate(char).weapons[0].attack_bonus == 1 + 3


class TestFeatEffects:
    def test_variable_feat_without_choice(self, aggregator):
        char = make_character(feats=[("skill-focus", None)])
        derived = aggregator.aggregate(char)
        assert derived.incomplete_feats == ["skill-focus"]
        assert not derived.is_complete
        assert "Spot" not in derived.skills

    def test_variable_feat_with_choice(self, aggregator):
        char = make_character(feats=[("skill-focus", "Spot")], wisdom=12)
        derived = aggregator.aggregate(char)
        assert derived.is_complete
        assert derived.skills["Spot"] == 4

    def test_fixed_feats(self, aggregator):
        char = make_character(
            feats=[("improved-initiative", None), ("iron-will", None), ("alertness", None)],
        )
        derived = aggregator.aggregate(char)
        assert derived.initiative == 4
        assert derived.saves["will"] == 2
        assert derived.skills["Listen"] == 2

    def test_capabilities_sorted(self, aggregator):
        char = make_character(feats=[("power-attack", None), ("cleave", None)], strength=13)
        assert aggregator.aggregate(char).capabilities == ["cleave", "power_attack"]

    def test_unknown_entries_reported(self, aggregator):
        char = make_character(feats=[("made-up-feat", None)], items=[("mystery-box", None)])
        derived = aggregator.aggregate(char)
        assert derived.unknown_entries == ["feat:made-up-feat", "item:mystery-box"]

    def test_spell_focus(self, aggregator):
        char = make_character(classes=[("Wizard", 1)], feats=[("spell-focus", "evocation")])
        assert aggregator.aggregate(char).spell_focus == {"evocation": 1}


class TestHitPointsAndSpells:
    def test_constitution_boost_adds_hit_points(self, catalog, aggregator):
        char = make_character(classes=[("Fighter", 2)], constitution=12, hp=20)
        char.active_spell_effects.append(spell_effect(catalog, "bears-endurance"))
        assert aggregator.aggregate(char).hit_points_max == 20 + 2 * 2

    def test_toughness(self, aggregator):
        char = make_character(feats=[("toughness", None)], hp=10)
        assert aggregator.aggregate(char).hit_points_max == 13

    def test_spells_per_day_with_bonus(self, aggregator):
        char = make_character(classes=[("Wizard", 1)], intelligence=16)
        derived = aggregator.aggregate(char)
        assert derived.caster_levels == {"wizard": 1}
        assert derived.spells_per_day == {"wizard": {0: 3, 1: 2}}

    def test_low_ability_blocks_spell_level(self, aggregator):
        char = make_character(classes=[("Wizard", 1)], intelligence=10)
        assert aggregator.aggregate(char).spells_per_day == {"wizard": {0: 3, 1: 0}}

    def test_non_caster(self, aggregator):
        derived = aggregator.aggregate(make_character())
        assert derived.caster_levels == {}
        assert derived.spells_per_day == {}


class TestDeterminism:
    def test_same_input_same_output(self, aggregator):
        char = make_character(
            items=[("chainmail", "armor"), ("longsword", "main_hand")],
            feats=[("dodge", None), ("weapon-focus", "longsword")],
            strength=15, dexterity=13,
        )
        first = aggregator.aggregate(char)
        second = aggregator.aggregate(char)
        assert first.model_dump_json() == second.model_dump_json()

    def test_character_not_modified(self, aggregator):
        char = make_character(items=[("chainmail", "armor")])
        before = char.model_dump()
        aggregator.aggregate(char)
        assert char.model_dump() == before
