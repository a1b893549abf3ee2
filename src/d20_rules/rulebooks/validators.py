"""
Prerequisite validation against the rule catalog.

The validator answers one question: may this character take this feat? The
answer carries every unmet requirement as a structured Reason so callers can
explain the failure, not just report it. Validation never mutates anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..tables import ABILITIES, base_attack_bonus, normalize_index

if TYPE_CHECKING:
    from ..models import Character
    from .catalog import RuleCatalog
    from .models import FeatDefinition


# =============================================================================
# Validation Models
# =============================================================================

class ReasonCode:
    """Symbolic reason codes, in the order requirements are checked."""
    ABILITY_MINIMUM = "ability_minimum"
    BASE_ATTACK_BONUS = "base_attack_bonus"
    CASTER_LEVEL = "caster_level"
    SKILL_RANKS = "skill_ranks"
    REQUIRED_FEAT = "required_feat"
    RACE = "race"
    CLASS_MEMBERSHIP = "class_membership"
    CHARACTER_LEVEL = "character_level"
    UNKNOWN_CATALOG_ENTRY = "unknown_catalog_entry"


@dataclass(frozen=True)
class Reason:
    """A single unmet requirement.

    ``required`` and ``actual`` are numbers for threshold checks (ability
    scores, ranks, levels) and identifiers for membership checks.
    """
    code: str
    subject: str
    required: int | str | None = None
    actual: int | str | None = None

    @property
    def shortfall(self) -> int | None:
        """How far below a numeric threshold the character is."""
        if isinstance(self.required, int) and isinstance(self.actual, int):
            return self.required - self.actual
        return None


@dataclass
class ValidationResult:
    """Outcome of a prerequisite check."""
    rule_element_id: str
    eligible: bool
    failed_reasons: list[Reason] = field(default_factory=list)

    @property
    def codes(self) -> list[str]:
        return [r.code for r in self.failed_reasons]


# =============================================================================
# Character queries
# =============================================================================

def character_base_attack_bonus(character: Character, catalog: RuleCatalog) -> int:
    """Base attack bonus summed per class. Unknown classes contribute nothing."""
    total = 0
    for char_class in character.classes:
        class_def = catalog.get_class(char_class.name)
        if class_def is not None:
            total += base_attack_bonus(class_def.base_attack, char_class.level)
    return total


def spellcasting_levels(character: Character, catalog: RuleCatalog) -> int:
    """Total levels held in classes that cast spells."""
    total = 0
    for char_class in character.classes:
        class_def = catalog.get_class(char_class.name)
        if class_def is not None and class_def.is_spellcaster:
            total += char_class.level
    return total


# =============================================================================
# Prerequisite Validator
# =============================================================================

class PrerequisiteValidator:
    """
    Checks feat prerequisites against a character.

    Requirements are checked in a fixed order so the reasons list is stable:
    ability minimums (strength through charisma), base attack bonus, caster
    level, skill ranks, required feats, race, class membership, total level.
    """

    def __init__(self, catalog: RuleCatalog):
        self.catalog = catalog

    def validate(
        self,
        rule_element_id: str,
        character: Character,
        choice: str | None = None,
    ) -> ValidationResult:
        """
        Check whether ``character`` meets the prerequisites of a feat.

        Args:
            rule_element_id: Feat index
            character: Character to check (not modified)
            choice: Sub-choice for a variable feat. Required feats that are
                themselves variable must be held with the same choice.

        Returns:
            ValidationResult listing every unmet requirement
        """
        feat = self.catalog.get_feat(rule_element_id)
        if feat is None:
            return ValidationResult(
                rule_element_id=rule_element_id,
                eligible=False,
                failed_reasons=[Reason(ReasonCode.UNKNOWN_CATALOG_ENTRY, rule_element_id)],
            )

        reasons = self._check(feat, character, choice)
        return ValidationResult(
            rule_element_id=feat.index,
            eligible=not reasons,
            failed_reasons=reasons,
        )

    def _check(self, feat: FeatDefinition, character: Character, choice: str | None) -> list[Reason]:
        prereq = feat.prerequisites
        reasons: list[Reason] = []
        if prereq.is_empty:
            return reasons

        for ability in ABILITIES:
            required = prereq.abilities.get(ability)
            if required is None:
                continue
            actual = character.abilities[ability].score
            if actual < required:
                reasons.append(Reason(ReasonCode.ABILITY_MINIMUM, ability, required, actual))

        if prereq.base_attack_bonus:
            bab = character_base_attack_bonus(character, self.catalog)
            if bab < prereq.base_attack_bonus:
                reasons.append(Reason(
                    ReasonCode.BASE_ATTACK_BONUS, "base_attack_bonus",
                    prereq.base_attack_bonus, bab,
                ))

        if prereq.caster_level:
            caster_level = spellcasting_levels(character, self.catalog)
            if caster_level < prereq.caster_level:
                reasons.append(Reason(
                    ReasonCode.CASTER_LEVEL, "caster_level", prereq.caster_level, caster_level,
                ))

        for skill, required in prereq.skills.items():
            ranks = character.skills[skill].ranks if skill in character.skills else 0
            if ranks < required:
                reasons.append(Reason(ReasonCode.SKILL_RANKS, skill, required, ranks))

        for required_feat in prereq.feats:
            if not self._holds_required_feat(character, required_feat, choice):
                required_def = self.catalog.get_feat(required_feat)
                wanted_choice = choice if required_def is not None and required_def.variable else None
                reasons.append(Reason(ReasonCode.REQUIRED_FEAT, required_feat, wanted_choice))

        if prereq.race and normalize_index(character.race) != normalize_index(prereq.race):
            reasons.append(Reason(ReasonCode.RACE, "race", prereq.race, character.race))

        if prereq.classes:
            reason = self._check_classes(prereq.classes, character)
            if reason is not None:
                reasons.append(reason)

        if prereq.level and character.total_level < prereq.level:
            reasons.append(Reason(
                ReasonCode.CHARACTER_LEVEL, "level", prereq.level, character.total_level,
            ))

        return reasons

    def _holds_required_feat(self, character: Character, feat_id: str, choice: str | None) -> bool:
        required_def = self.catalog.get_feat(feat_id)
        if required_def is not None and required_def.variable and choice is not None:
            return character.has_feat(feat_id, choice)
        return character.has_feat(feat_id)

    @staticmethod
    def _check_classes(classes: dict[str, int], character: Character) -> Reason | None:
        """Any-of: one listed class at its minimum level is enough."""
        held = {c: character.class_level(c) for c in classes}
        if any(held[c] >= minimum for c, minimum in classes.items()):
            return None
        subject = "/".join(classes)
        if len(classes) == 1:
            (only, minimum), = classes.items()
            return Reason(ReasonCode.CLASS_MEMBERSHIP, subject, minimum, held[only])
        return Reason(
            ReasonCode.CLASS_MEMBERSHIP, subject, min(classes.values()), max(held.values()),
        )

    # =========================================================================
    # Feat tree navigation
    # =========================================================================

    def available_feats(self, character: Character, feat_type: str | None = None) -> list[FeatDefinition]:
        """Feats the character could take right now.

        Fixed feats already held are excluded; variable feats stay available
        since they can be taken again with a different choice.
        """
        available = []
        for index in sorted(self.catalog.feats):
            feat = self.catalog.feats[index]
            if feat_type and feat.feat_type != feat_type:
                continue
            if not feat.variable and character.has_feat(feat.index):
                continue
            if not self._check(feat, character, None):
                available.append(feat)
        return available

    def dependents(self, feat_id: str) -> list[str]:
        """Feats that list ``feat_id`` as a prerequisite."""
        key = normalize_index(feat_id)
        return sorted(
            index for index, feat in self.catalog.feats.items()
            if key in feat.prerequisites.feats
        )


__all__ = [
    "PrerequisiteValidator",
    "Reason",
    "ReasonCode",
    "ValidationResult",
    "character_base_attack_bonus",
    "spellcasting_levels",
]
