"""Character Builder - create level-1 characters from catalog data.

Given a race and a class, the builder produces a Character with final
ability scores (racial adjustments applied), size and speed from the race,
level-1 hit points (maximum hit die + Constitution modifier) and the class
features of level 1. Feats, equipment and spells start empty; the feat,
equipment and spell engines add them afterwards.
"""

from __future__ import annotations

from .models import AbilityScore, Character, CharacterClass, Feature
from .rulebooks.catalog import RuleCatalog
from .rulebooks.models import ClassDefinition, RaceDefinition
from .tables import ABILITIES, ABILITY_ABBREV, normalize_index


# Elite array (DMG)
ELITE_ARRAY = [15, 14, 13, 12, 10, 8]

# Point buy costs (DMG, 25-point standard campaign)
POINT_BUY_COSTS = {8: 0, 9: 1, 10: 2, 11: 3, 12: 4, 13: 5, 14: 6, 15: 8, 16: 10, 17: 13, 18: 16}
POINT_BUY_BUDGET = 25

ABILITY_METHODS = ("manual", "elite_array", "point_buy")


class CharacterBuilderError(Exception):
    """Raised when the builder cannot create a character."""


class CharacterBuilder:
    """Build a level-1 Character from catalog definitions."""

    def __init__(self, catalog: RuleCatalog) -> None:
        self.catalog = catalog

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        name: str,
        class_name: str,
        race_name: str = "Human",
        *,
        ability_method: str = "manual",
        ability_assignments: dict[str, int] | None = None,
        experience_points: int = 0,
        # Raw ability scores for manual mode
        strength: int = 10,
        dexterity: int = 10,
        constitution: int = 10,
        intelligence: int = 10,
        wisdom: int = 10,
        charisma: int = 10,
    ) -> Character:
        """Build a level-1 Character.

        Args:
            name: Character name.
            class_name: Class name (e.g., "Fighter", "Wizard").
            race_name: Race name (e.g., "Dwarf", "Half-Orc").
            ability_method: "manual", "elite_array" or "point_buy".
            ability_assignments: For elite_array/point_buy: {"strength": 15, ...}.
            experience_points: Starting experience.
            strength..charisma: Raw scores for manual mode.

        Returns:
            The new Character.

        Raises:
            CharacterBuilderError: If catalog data is missing or input is invalid.
        """
        if not name or not name.strip():
            raise CharacterBuilderError("Character name must not be empty.")
        if experience_points < 0:
            raise CharacterBuilderError(f"experience_points must be >= 0 (got {experience_points})")

        class_def = self._get_class(class_name)
        race_def = self._get_race(race_name)

        abilities = self._resolve_abilities(
            ability_method,
            ability_assignments,
            strength=strength,
            dexterity=dexterity,
            constitution=constitution,
            intelligence=intelligence,
            wisdom=wisdom,
            charisma=charisma,
        )
        abilities = self._apply_racial_adjustments(abilities, race_def)

        hp = self.starting_hit_points(class_def, abilities["constitution"].mod)

        return Character(
            name=name.strip(),
            race=race_def.name,
            size=race_def.size,
            speed=race_def.speed,
            abilities=abilities,
            classes=[CharacterClass(name=class_def.name, level=1)],
            experience_points=experience_points,
            hit_points_max=hp,
            hit_points_current=hp,
            class_features=[
                Feature(name=feature, source=f"{class_def.name} 1", level_gained=1)
                for feature in class_def.features_at(1)
            ],
        )

    @staticmethod
    def starting_hit_points(class_def: ClassDefinition, con_mod: int) -> int:
        """Level 1 HP: maximum hit die + CON modifier, minimum 1."""
        return max(class_def.hit_die + con_mod, 1)

    @staticmethod
    def starting_skill_points(class_def: ClassDefinition, int_mod: int) -> int:
        """Skill points at level 1: four times the per-level amount."""
        return max(1, class_def.skill_points + int_mod) * 4

    # ------------------------------------------------------------------
    # Ability Score Methods
    # ------------------------------------------------------------------

    def _resolve_abilities(
        self,
        method: str,
        assignments: dict[str, int] | None,
        **manual_scores: int,
    ) -> dict[str, AbilityScore]:
        if method == "manual":
            for ability, score in manual_scores.items():
                if score < 3 or score > 18:
                    raise CharacterBuilderError(f"Manual scores must be 3-18 (got {ability}={score})")
            return {name: AbilityScore(score=manual_scores.get(name, 10)) for name in ABILITIES}
        elif method == "elite_array":
            return self._elite_array(assignments)
        elif method == "point_buy":
            return self._point_buy(assignments)
        else:
            raise CharacterBuilderError(
                f"Unknown ability method: '{method}'. Use {', '.join(repr(m) for m in ABILITY_METHODS)}."
            )

    def _elite_array(self, assignments: dict[str, int] | None) -> dict[str, AbilityScore]:
        """Assign the elite array [15, 14, 13, 12, 10, 8] to abilities."""
        assignments = self._check_assignments("elite_array", assignments)
        if sorted(assignments.values(), reverse=True) != ELITE_ARRAY:
            raise CharacterBuilderError(
                f"Elite array values must be exactly {ELITE_ARRAY} (got {list(assignments.values())})"
            )
        return {name: AbilityScore(score=assignments[name]) for name in ABILITIES}

    def _point_buy(self, assignments: dict[str, int] | None) -> dict[str, AbilityScore]:
        """Validate point-buy scores (25 points). Unspent points are allowed."""
        assignments = self._check_assignments("point_buy", assignments)
        total_cost = 0
        for ability, score in assignments.items():
            if score not in POINT_BUY_COSTS:
                raise CharacterBuilderError(f"Point buy scores must be 8-18 (got {ability}={score})")
            total_cost += POINT_BUY_COSTS[score]

        if total_cost > POINT_BUY_BUDGET:
            raise CharacterBuilderError(
                f"Point buy budget exceeded: {total_cost}/{POINT_BUY_BUDGET} points"
            )
        return {name: AbilityScore(score=assignments[name]) for name in ABILITIES}

    @staticmethod
    def _check_assignments(method: str, assignments: dict[str, int] | None) -> dict[str, int]:
        if not assignments:
            raise CharacterBuilderError(
                f"{method} requires ability_assignments: " '{"strength": 15, "dexterity": 14, ...}'
            )
        normalized = {ABILITY_ABBREV.get(k.upper(), k.lower()): v for k, v in assignments.items()}
        if set(normalized) != set(ABILITIES):
            missing = sorted(set(ABILITIES) - set(normalized))
            raise CharacterBuilderError(f"Must assign all 6 abilities. Missing: {missing}")
        return normalized

    # ------------------------------------------------------------------
    # Racial Adjustments
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_racial_adjustments(
        abilities: dict[str, AbilityScore],
        race_def: RaceDefinition,
    ) -> dict[str, AbilityScore]:
        for ability, adjustment in race_def.ability_adjustments.items():
            if ability in abilities:
                abilities[ability] = AbilityScore(score=max(abilities[ability].score + adjustment, 1))
        return abilities

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_class(self, name: str) -> ClassDefinition:
        class_def = self.catalog.get_class(normalize_index(name))
        if class_def is None:
            raise CharacterBuilderError(f"Class '{name}' not found in the rule catalog.")
        return class_def

    def _get_race(self, name: str) -> RaceDefinition:
        race_def = self.catalog.get_race(normalize_index(name))
        if race_def is None:
            raise CharacterBuilderError(f"Race '{name}' not found in the rule catalog.")
        return race_def


__all__ = [
    "ABILITY_METHODS",
    "CharacterBuilder",
    "CharacterBuilderError",
    "ELITE_ARRAY",
    "POINT_BUY_BUDGET",
    "POINT_BUY_COSTS",
]
