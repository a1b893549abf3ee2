"""
Feat grant and revocation.

Entry points are value-in/value-out: they never touch the character passed
in and return a new Character alongside its recomputed DerivedStats.
"""

from pydantic import BaseModel, Field

from .effects import EffectAggregator
from .models import Character, DerivedStats, Failure, FailureCode, FeatInstance
from .rulebooks.catalog import RuleCatalog
from .rulebooks.models import SPELL_SCHOOLS, FeatDefinition
from .rulebooks.validators import PrerequisiteValidator
from .tables import normalize_index, skill_key_ability


class FeatResult(BaseModel):
    """Outcome of a feat grant, choice resolution or revocation."""
    legal: bool
    failure: Failure | None = None
    character: Character
    derived: DerivedStats | None = None
    orphaned: list[str] = Field(
        default_factory=list,
        description="Held feats whose prerequisites are no longer met after a revocation",
    )


class FeatEngine:
    """Grants, resolves and revokes feats."""

    def __init__(self, catalog: RuleCatalog, aggregator: EffectAggregator | None = None):
        self.catalog = catalog
        self.validator = PrerequisiteValidator(catalog)
        self.aggregator = aggregator or EffectAggregator(catalog)

    def grant_feat(self, character: Character, feat_id: str, choice: str | None = None) -> FeatResult:
        """Add a feat if the character qualifies.

        Granting a feat the character already holds (same choice) succeeds and
        changes nothing. A variable feat may be granted without a choice; it
        then contributes nothing until ``resolve_choice`` supplies one.
        """
        feat = self.catalog.get_feat(feat_id)
        if feat is None:
            return self._fail(character, FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_feat", feat_id=feat_id)

        if not feat.variable:
            choice = None
        elif choice is not None:
            failure = self._check_choice(feat, choice)
            if failure is not None:
                return FeatResult(legal=False, failure=failure, character=character)
            choice = self._canonical_choice(feat, choice)

        if any(f.key == (feat.index, choice) for f in character.feats):
            return self._ok(character.model_copy(deep=True))

        result = self.validator.validate(feat.index, character, choice)
        if not result.eligible:
            return self._fail(
                character,
                FailureCode.PREREQUISITE_NOT_MET,
                "prerequisites_not_met",
                feat_id=feat.index,
                reasons=[
                    {"code": r.code, "subject": r.subject, "required": r.required, "actual": r.actual}
                    for r in result.failed_reasons
                ],
            )

        updated = character.model_copy(deep=True)
        updated.feats.append(FeatInstance(feat_id=feat.index, choice=choice))
        return self._ok(updated)

    def resolve_choice(self, character: Character, feat_id: str, choice: str) -> FeatResult:
        """Record the sub-choice for a variable feat taken without one."""
        feat = self.catalog.get_feat(feat_id)
        if feat is None:
            return self._fail(character, FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_feat", feat_id=feat_id)
        if not feat.variable:
            return self._fail(
                character, FailureCode.INCOMPLETE_VARIABLE_SELECTION, "feat_not_variable", feat_id=feat.index,
            )

        failure = self._check_choice(feat, choice)
        if failure is not None:
            return FeatResult(legal=False, failure=failure, character=character)
        choice = self._canonical_choice(feat, choice)

        if any(f.key == (feat.index, choice) for f in character.feats):
            # Already resolved this way; drop any leftover unresolved copy
            updated = character.model_copy(deep=True)
            updated.feats = [f for f in updated.feats if f.key != (feat.index, None)]
            return self._ok(updated)

        pending = [i for i, f in enumerate(character.feats) if f.key == (feat.index, None)]
        if not pending:
            return self._fail(
                character, FailureCode.INCOMPLETE_VARIABLE_SELECTION, "no_unresolved_instance",
                feat_id=feat.index,
            )

        result = self.validator.validate(feat.index, character, choice)
        if not result.eligible:
            return self._fail(
                character,
                FailureCode.PREREQUISITE_NOT_MET,
                "prerequisites_not_met",
                feat_id=feat.index,
                choice=choice,
                reasons=[{"code": r.code, "subject": r.subject} for r in result.failed_reasons],
            )

        updated = character.model_copy(deep=True)
        updated.feats[pending[0]].choice = choice
        return self._ok(updated)

    def revoke_feat(self, character: Character, feat_id: str, choice: str | None = None) -> FeatResult:
        """Remove a feat. Revoking a feat the character lacks changes nothing.

        With ``choice`` only that instance of a variable feat is removed;
        without it every instance goes.
        """
        feat = self.catalog.get_feat(feat_id)
        key = feat.index if feat is not None else normalize_index(feat_id)
        if feat is not None and choice is not None:
            choice = self._canonical_choice(feat, choice)

        updated = character.model_copy(deep=True)
        updated.feats = [
            f for f in updated.feats
            if not (f.feat_id == key and (choice is None or f.choice == choice))
        ]

        orphaned = []
        for held in updated.feats:
            if not self.validator.validate(held.feat_id, updated, held.choice).eligible:
                orphaned.append(held.feat_id)

        result = self._ok(updated)
        result.orphaned = sorted(set(orphaned))
        return result

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _check_choice(self, feat: FeatDefinition, choice: str) -> Failure | None:
        kind = feat.choice_kind
        valid = True
        if kind == "skill":
            valid = skill_key_ability(choice) is not None
        elif kind == "weapon":
            valid = normalize_index(choice) in self._weapon_keys()
        elif kind == "school":
            valid = choice.strip().lower() in SPELL_SCHOOLS
        if valid:
            return None
        return Failure(
            code=FailureCode.INCOMPLETE_VARIABLE_SELECTION,
            reason="invalid_choice",
            details={"feat_id": feat.index, "choice": choice, "choice_kind": kind},
        )

    @staticmethod
    def _canonical_choice(feat: FeatDefinition, choice: str) -> str:
        if feat.choice_kind == "weapon":
            return normalize_index(choice)
        if feat.choice_kind == "school":
            return choice.strip().lower()
        return choice.strip()

    def _weapon_keys(self) -> set[str]:
        return {item.weapon_key for item in self.catalog.items.values() if item.category == "weapon"}

    def _ok(self, character: Character) -> FeatResult:
        return FeatResult(legal=True, character=character, derived=self.aggregator.aggregate(character))

    @staticmethod
    def _fail(character: Character, code: FailureCode, reason: str, **details) -> FeatResult:
        return FeatResult(
            legal=False,
            failure=Failure(code=code, reason=reason, details=details),
            character=character,
        )


__all__ = [
    "FeatEngine",
    "FeatResult",
]
