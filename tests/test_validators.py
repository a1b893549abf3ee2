"""Tests for PrerequisiteValidator."""

import pytest

from d20_rules.models import AbilityScore, Character, ItemInstance, SkillRanks
from d20_rules.rulebooks.validators import (
    PrerequisiteValidator,
    Reason,
    ReasonCode,
    character_base_attack_bonus,
    spellcasting_levels,
)


def make_character(
    classes: list[tuple[str, int]] | None = None,
    race: str = "Human",
    feats: list[dict] | None = None,
    skills: dict[str, int] | None = None,
    **scores: int,
) -> Character:
    abilities = {name: AbilityScore(score=score) for name, score in scores.items()}
    return Character(
        name="Testchar",
        race=race,
        classes=[{"name": n, "level": lvl} for n, lvl in (classes or [("Fighter", 1)])],
        abilities=abilities,
        feats=feats or [],
        skills={s: SkillRanks(ranks=r) for s, r in (skills or {}).items()},
    )


@pytest.fixture
def validator(catalog):
    return PrerequisiteValidator(catalog)


class TestAbilityRequirements:
    def test_power_attack_strength_12_fails(self, validator):
        """Str 12 is one short of Power Attack's 13."""
        char = make_character(strength=12)
        result = validator.validate("power-attack", char)
        assert not result.eligible
        assert result.failed_reasons == [
            Reason(ReasonCode.ABILITY_MINIMUM, "strength", required=13, actual=12),
        ]
        assert result.failed_reasons[0].shortfall == 1

    def test_power_attack_strength_13_passes(self, validator):
        char = make_character(strength=13)
        result = validator.validate("power-attack", char)
        assert result.eligible
        assert result.failed_reasons == []

    def test_base_scores_only(self, validator):
        """An item-boosted Strength does not satisfy a prerequisite."""
        char = make_character(strength=12)
        char.inventory.append(ItemInstance(item_id="belt-of-giant-strength-4", equipped=True, slot="waist"))
        assert not validator.validate("power-attack", char).eligible


class TestOrdering:
    def test_reasons_in_fixed_order(self, validator):
        """Great Cleave: Str, then BAB, then the two required feats."""
        char = make_character(strength=10)
        result = validator.validate("great-cleave", char)
        assert result.codes == [
            ReasonCode.ABILITY_MINIMUM,
            ReasonCode.BASE_ATTACK_BONUS,
            ReasonCode.REQUIRED_FEAT,
            ReasonCode.REQUIRED_FEAT,
        ]
        assert [r.subject for r in result.failed_reasons[2:]] == ["power-attack", "cleave"]

    def test_deterministic(self, validator):
        char = make_character(strength=8, dexterity=8)
        first = validator.validate("spring-attack", char)
        second = validator.validate("spring-attack", char)
        assert first == second


class TestOtherRequirements:
    def test_base_attack_bonus(self, validator):
        wizard = make_character(classes=[("Wizard", 1)])
        result = validator.validate("weapon-finesse", wizard)
        assert result.failed_reasons == [
            Reason(ReasonCode.BASE_ATTACK_BONUS, "base_attack_bonus", 1, 0),
        ]
        assert validator.validate("weapon-finesse", make_character()).eligible

    def test_caster_level(self, validator):
        wizard = make_character(classes=[("Wizard", 2)])
        result = validator.validate("brew-potion", wizard)
        assert result.codes == [ReasonCode.CASTER_LEVEL]
        assert result.failed_reasons[0].shortfall == 1
        assert validator.validate("scribe-scroll", wizard).eligible

    def test_skill_ranks(self, validator):
        char = make_character()
        assert validator.validate("mounted-combat", char).codes == [ReasonCode.SKILL_RANKS]
        trained = make_character(skills={"Ride": 1})
        assert validator.validate("mounted-combat", trained).eligible

    def test_class_any_of(self, validator):
        assert validator.validate("extra-turning", make_character(classes=[("Paladin", 1)])).eligible
        assert validator.validate("extra-turning", make_character(classes=[("Cleric", 1)])).eligible
        result = validator.validate("extra-turning", make_character(classes=[("Rogue", 3)]))
        assert result.codes == [ReasonCode.CLASS_MEMBERSHIP]

    def test_class_minimum_level(self, validator):
        char = make_character(
            classes=[("Fighter", 3)],
            feats=[{"feat_id": "weapon-focus", "choice": "longsword"}],
        )
        result = validator.validate("weapon-specialization", char, choice="longsword")
        assert result.failed_reasons == [Reason(ReasonCode.CLASS_MEMBERSHIP, "fighter", 4, 3)]

    def test_variable_required_feat_must_match_choice(self, validator):
        char = make_character(
            classes=[("Fighter", 4)],
            feats=[{"feat_id": "weapon-focus", "choice": "longsword"}],
        )
        assert validator.validate("weapon-specialization", char, choice="longsword").eligible
        result = validator.validate("weapon-specialization", char, choice="greatsword")
        assert result.failed_reasons == [
            Reason(ReasonCode.REQUIRED_FEAT, "weapon-focus", required="greatsword"),
        ]

    def test_no_prerequisites(self, validator):
        assert validator.validate("improved-initiative", make_character(classes=[("Wizard", 1)])).eligible

    def test_unknown_feat(self, validator):
        result = validator.validate("lightning-mastery", make_character())
        assert not result.eligible
        assert result.codes == [ReasonCode.UNKNOWN_CATALOG_ENTRY]

    def test_does_not_mutate(self, validator):
        char = make_character(strength=12)
        before = char.model_dump()
        validator.validate("power-attack", char)
        assert char.model_dump() == before


class TestCharacterQueries:
    def test_multiclass_bab(self, catalog):
        char = make_character(classes=[("Fighter", 4), ("Wizard", 3)])
        assert character_base_attack_bonus(char, catalog) == 5

    def test_spellcasting_levels(self, catalog):
        char = make_character(classes=[("Fighter", 4), ("Wizard", 3), ("Cleric", 2)])
        assert spellcasting_levels(char, catalog) == 5


class TestFeatTree:
    def test_available_feats(self, validator):
        char = make_character(strength=14, feats=[{"feat_id": "power-attack"}])
        available = {f.index for f in validator.available_feats(char, feat_type="combat")}
        assert "cleave" in available
        assert "power-attack" not in available
        assert "great-cleave" not in available

    def test_variable_feat_stays_available(self, validator):
        char = make_character(feats=[{"feat_id": "skill-focus", "choice": "Spot"}])
        assert "skill-focus" in {f.index for f in validator.available_feats(char)}

    def test_dependents(self, validator):
        assert validator.dependents("Power Attack") == ["cleave", "great-cleave"]
