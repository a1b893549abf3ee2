"""Level-Up Engine - drive a character through one level of progression.

A level-up is a transaction. ``LevelUpEngine.begin`` opens a LevelUpSession
holding a draft of every choice; the session walks a fixed sequence of states
and only ``finalize`` applies the draft to a new Character, all at once.

    HIT_POINTS → SKILL_POINTS → [ATTRIBUTES] → [FEATS] → [CLASS_FEATURES] → REVIEW → FINALIZED

ATTRIBUTES appears when the new character level is divisible by 4, FEATS
when it is 1 more than a multiple of 3 (never at level 1), and CLASS_FEATURES
when the class gains named features at its new level.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .effects import EffectAggregator
from .models import (
    AbilityScore,
    Character,
    CharacterClass,
    DerivedStats,
    Failure,
    FailureCode,
    Feature,
    FeatInstance,
    SkillRanks,
)
from .rulebooks.catalog import RuleCatalog
from .rulebooks.models import ClassDefinition
from .rulebooks.validators import PrerequisiteValidator
from .tables import (
    ABILITIES,
    ABILITY_ABBREV,
    MAX_LEVEL,
    ability_modifier,
    experience_for_level,
    max_skill_ranks,
    normalize_index,
    skill_key_ability,
)


HP_METHODS = ("average", "max", "roll")


class LevelUpError(Exception):
    """Raised when a level-up call is malformed (not when a rule blocks it)."""


class LevelUpState(str, Enum):
    HIT_POINTS = "hit_points"
    SKILL_POINTS = "skill_points"
    ATTRIBUTES = "attributes"
    FEATS = "feats"
    CLASS_FEATURES = "class_features"
    REVIEW = "review"
    FINALIZED = "finalized"


@dataclass
class StepResult:
    """Outcome of a command issued to a LevelUpSession."""
    legal: bool
    state: LevelUpState
    failure: Failure | None = None


@dataclass
class BeginResult:
    legal: bool
    failure: Failure | None = None
    session: LevelUpSession | None = None


@dataclass
class FinalizeResult:
    """The committed character and what the level brought."""
    legal: bool
    failure: Failure | None = None
    character: Character | None = None
    derived: DerivedStats | None = None
    hp_gained: int = 0
    features_added: list[str] = field(default_factory=list)


def _invalid(reason: str, **details: Any) -> Failure:
    return Failure(code=FailureCode.INVALID_TRANSITION, reason=reason, details=details)


class LevelUpEngine:
    """Opens level-up sessions for characters."""

    def __init__(
        self,
        catalog: RuleCatalog,
        aggregator: EffectAggregator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.catalog = catalog
        self.aggregator = aggregator or EffectAggregator(catalog)
        self.validator = PrerequisiteValidator(catalog)
        self.rng = rng or random.Random()

    def can_level_up(self, character: Character) -> bool:
        return (
            character.total_level < MAX_LEVEL
            and character.experience_points >= experience_for_level(character.total_level + 1)
        )

    def begin(self, character: Character, class_name: str | None = None) -> BeginResult:
        """Open a level-up session.

        Args:
            character: The character to level (not modified)
            class_name: Class gaining the level; defaults to the first class.
                Naming a class the character lacks multiclasses into it.
        """
        if character.total_level >= MAX_LEVEL:
            return BeginResult(
                legal=False, failure=_invalid("max_level_reached", level=character.total_level),
            )
        required = experience_for_level(character.total_level + 1)
        if character.experience_points < required:
            return BeginResult(
                legal=False,
                failure=_invalid(
                    "insufficient_experience",
                    experience_points=character.experience_points,
                    required=required,
                ),
            )

        class_def = self.catalog.get_class(class_name or character.classes[0].name)
        if class_def is None:
            return BeginResult(
                legal=False,
                failure=Failure(
                    code=FailureCode.UNKNOWN_CATALOG_ENTRY,
                    reason="unknown_class",
                    details={"class_name": class_name or character.classes[0].name},
                ),
            )
        return BeginResult(legal=True, session=LevelUpSession(self, character, class_def))

    # ------------------------------------------------------------------
    # HP Calculation
    # ------------------------------------------------------------------

    def hit_points_for(self, hit_die: int, con_mod: int, method: str) -> int:
        """HP gained for one level, minimum 1.

        average: hit_die // 2 + 1; max: hit_die; roll: 1..hit_die from the
        engine's random source. The Constitution modifier is added to each.
        """
        if method == "average":
            roll = hit_die // 2 + 1
        elif method == "max":
            roll = hit_die
        elif method == "roll":
            roll = self.rng.randint(1, hit_die)
        else:
            raise LevelUpError(f"Unknown hp method: '{method}'. Use one of {', '.join(HP_METHODS)}.")
        return max(roll + con_mod, 1)


class LevelUpSession:
    """One in-progress level-up. Nothing reaches the character until finalize."""

    def __init__(self, engine: LevelUpEngine, character: Character, class_def: ClassDefinition):
        self.engine = engine
        self.class_def = class_def
        self._original = character.model_copy(deep=True)

        self.new_class_level = character.class_level(class_def.name) + 1
        self.new_total_level = character.total_level + 1

        self.hp_gained: int | None = None
        self.skill_allocation: dict[str, int] = {}
        self.ability_increase: str | None = None
        self.feat: FeatInstance | None = None
        self.class_features: list[str] = list(class_def.features_at(self.new_class_level))

        self.path = self._build_path()
        self.state = self.path[0]

    def _build_path(self) -> list[LevelUpState]:
        path = [LevelUpState.HIT_POINTS, LevelUpState.SKILL_POINTS]
        if self.new_total_level % 4 == 0:
            path.append(LevelUpState.ATTRIBUTES)
        if self.new_total_level > 1 and self.new_total_level % 3 == 1:
            path.append(LevelUpState.FEATS)
        if self.class_features:
            path.append(LevelUpState.CLASS_FEATURES)
        path.extend([LevelUpState.REVIEW, LevelUpState.FINALIZED])
        return path

    @property
    def is_finalized(self) -> bool:
        return self.state == LevelUpState.FINALIZED

    # ------------------------------------------------------------------
    # Skill points
    # ------------------------------------------------------------------

    @property
    def skill_points_available(self) -> int:
        """Class skill points plus the (unmodified) Intelligence modifier, minimum 1."""
        int_mod = self._original.abilities["intelligence"].mod
        return max(1, self.class_def.skill_points + int_mod)

    @property
    def skill_points_spent(self) -> int:
        return sum(self.skill_allocation.values())

    def is_class_skill(self, skill: str) -> bool:
        base = skill.split("(", 1)[0].strip()
        if skill in self.class_def.class_skills or base in self.class_def.class_skills:
            return True
        current = self._original.skills.get(skill)
        return current is not None and current.class_skill

    def max_ranks(self, skill: str) -> int:
        return max_skill_ranks(self.new_total_level, self.is_class_skill(skill))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def choose_hit_points(self, method: str = "average") -> StepResult:
        if (wrong := self._require(LevelUpState.HIT_POINTS)) is not None:
            return wrong
        con_mod = self._original.abilities["constitution"].mod
        self.hp_gained = self.engine.hit_points_for(self.class_def.hit_die, con_mod, method)
        return self._ok()

    def allocate_skill_points(self, skill: str, ranks: int) -> StepResult:
        """Put ``ranks`` more points into ``skill`` (one point buys one rank)."""
        if (wrong := self._require(LevelUpState.SKILL_POINTS)) is not None:
            return wrong
        if ranks < 1:
            raise LevelUpError(f"ranks must be positive, got {ranks}")
        if skill_key_ability(skill) is None:
            return self._fail(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_skill", skill=skill)

        remaining = self.skill_points_available - self.skill_points_spent
        if ranks > remaining:
            return self._fail(
                FailureCode.INVALID_TRANSITION, "not_enough_skill_points",
                skill=skill, requested=ranks, remaining=remaining,
            )

        current = self._original.skills[skill].ranks if skill in self._original.skills else 0
        new_total = current + self.skill_allocation.get(skill, 0) + ranks
        limit = self.max_ranks(skill)
        if new_total > limit:
            return self._fail(
                FailureCode.INVALID_TRANSITION, "max_ranks_exceeded",
                skill=skill, ranks=new_total, max_ranks=limit,
            )

        self.skill_allocation[skill] = self.skill_allocation.get(skill, 0) + ranks
        return self._ok()

    def reset_skill_points(self) -> StepResult:
        if (wrong := self._require(LevelUpState.SKILL_POINTS)) is not None:
            return wrong
        self.skill_allocation = {}
        return self._ok()

    def choose_ability_increase(self, ability: str) -> StepResult:
        if (wrong := self._require(LevelUpState.ATTRIBUTES)) is not None:
            return wrong
        name = ABILITY_ABBREV.get(ability.upper(), ability.lower())
        if name not in ABILITIES:
            raise LevelUpError(f"Unknown ability: '{ability}'. Valid: {', '.join(ABILITIES)}")
        self.ability_increase = name
        return self._ok()

    def choose_feat(self, feat_id: str, choice: str | None = None) -> StepResult:
        """Pick the level's feat; prerequisites are checked against the prospective character."""
        if (wrong := self._require(LevelUpState.FEATS)) is not None:
            return wrong
        feat = self.engine.catalog.get_feat(feat_id)
        if feat is None:
            return self._fail(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_feat", feat_id=feat_id)
        if not feat.variable:
            choice = None

        prospective = self._build(include_feat=False)
        if any(f.key == (feat.index, choice) for f in prospective.feats):
            return self._fail(FailureCode.PREREQUISITE_NOT_MET, "feat_already_held", feat_id=feat.index)

        result = self.engine.validator.validate(feat.index, prospective, choice)
        if not result.eligible:
            return self._fail(
                FailureCode.PREREQUISITE_NOT_MET, "prerequisites_not_met",
                feat_id=feat.index, reasons=result.codes,
            )
        self.feat = FeatInstance(feat_id=feat.index, choice=choice, source="level")
        return self._ok()

    def advance(self) -> StepResult:
        """Leave the current state if its guard is satisfied."""
        if self.state in (LevelUpState.REVIEW, LevelUpState.FINALIZED):
            return StepResult(
                legal=False, state=self.state,
                failure=_invalid("advance_not_allowed", state=self.state.value),
            )
        unmet = self._unmet_guard()
        if unmet is not None:
            return StepResult(legal=False, state=self.state, failure=unmet)
        self.state = self.path[self.path.index(self.state) + 1]
        return self._ok()

    def back(self) -> StepResult:
        """Return to the previous state. Choices already made are kept."""
        position = self.path.index(self.state)
        if self.state == LevelUpState.FINALIZED or position == 0:
            return StepResult(
                legal=False, state=self.state, failure=_invalid("back_not_allowed", state=self.state.value),
            )
        self.state = self.path[position - 1]
        return self._ok()

    def preview(self) -> Character:
        """The character as it would be if finalized now."""
        if self.is_finalized:
            raise LevelUpError("session already finalized")
        return self._build()

    def finalize(self) -> FinalizeResult:
        """Commit the level in one step. Only allowed from REVIEW."""
        if self.state != LevelUpState.REVIEW:
            return FinalizeResult(
                legal=False,
                failure=_invalid("not_in_review", state=self.state.value),
            )

        unmet = self._feat_failure()
        if unmet is not None:
            return FinalizeResult(legal=False, failure=unmet)

        character = self._build()
        derived = self.engine.aggregator.aggregate(character)
        if not derived.is_complete:
            return FinalizeResult(
                legal=False,
                failure=Failure(
                    code=FailureCode.INCOMPLETE_VARIABLE_SELECTION,
                    reason="variable_feat_without_choice",
                    details={"feats": derived.incomplete_feats},
                ),
            )

        result = FinalizeResult(
            legal=True,
            character=character,
            derived=derived,
            hp_gained=self.hp_gained or 0,
            features_added=list(self.class_features),
        )
        self._clear()
        self.state = LevelUpState.FINALIZED
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _unmet_guard(self) -> Failure | None:
        if self.state == LevelUpState.HIT_POINTS and self.hp_gained is None:
            return _invalid("hit_points_not_chosen")
        if self.state == LevelUpState.SKILL_POINTS and self.skill_points_spent != self.skill_points_available:
            return _invalid(
                "skill_points_unspent",
                spent=self.skill_points_spent,
                available=self.skill_points_available,
            )
        if self.state == LevelUpState.ATTRIBUTES and self.ability_increase is None:
            return _invalid("attribute_not_chosen")
        if self.state == LevelUpState.FEATS:
            if self.feat is None:
                return _invalid("feat_not_chosen")
            return self._feat_failure()
        return None

    def _feat_failure(self) -> Failure | None:
        """Re-check the chosen feat against the current draft."""
        if self.feat is None:
            return None
        result = self.engine.validator.validate(
            self.feat.feat_id, self._build(include_feat=False), self.feat.choice,
        )
        if result.eligible:
            return None
        return Failure(
            code=FailureCode.PREREQUISITE_NOT_MET,
            reason="prerequisites_not_met",
            details={"feat_id": self.feat.feat_id, "reasons": result.codes},
        )

    def _build(self, include_feat: bool = True) -> Character:
        character = self._original.model_copy(deep=True)

        for char_class in character.classes:
            if normalize_index(char_class.name) == self.class_def.index:
                char_class.level += 1
                break
        else:
            character.classes.append(CharacterClass(name=self.class_def.name, level=1))

        hp = self.hp_gained or 0
        if self.ability_increase is not None:
            old_mod = character.abilities[self.ability_increase].mod
            new_score = character.abilities[self.ability_increase].score + 1
            character.abilities[self.ability_increase] = AbilityScore(score=new_score)
            if self.ability_increase == "constitution":
                # A higher Constitution modifier applies to every level retroactively
                hp += (ability_modifier(new_score) - old_mod) * self.new_total_level
        character.hit_points_max += hp
        character.hit_points_current += hp

        for skill, ranks in self.skill_allocation.items():
            entry = character.skills.setdefault(skill, SkillRanks())
            entry.ranks += ranks
            if self.is_class_skill(skill):
                entry.class_skill = True

        if include_feat and self.feat is not None:
            character.feats.append(self.feat.model_copy())

        for name in self.class_features:
            character.class_features.append(Feature(
                name=name,
                source=f"{self.class_def.name} {self.new_class_level}",
                level_gained=self.new_class_level,
            ))
        return character

    def _clear(self) -> None:
        self.hp_gained = None
        self.skill_allocation = {}
        self.ability_increase = None
        self.feat = None

    def _require(self, expected: LevelUpState) -> StepResult | None:
        if self.state != expected:
            return StepResult(
                legal=False,
                state=self.state,
                failure=_invalid("wrong_state", expected=expected.value, actual=self.state.value),
            )
        return None

    def _ok(self) -> StepResult:
        return StepResult(legal=True, state=self.state)

    def _fail(self, code: FailureCode, reason: str, **details: Any) -> StepResult:
        return StepResult(legal=False, state=self.state, failure=Failure(code=code, reason=reason, details=details))


__all__ = [
    "BeginResult",
    "FinalizeResult",
    "HP_METHODS",
    "LevelUpEngine",
    "LevelUpError",
    "LevelUpSession",
    "LevelUpState",
    "StepResult",
]
