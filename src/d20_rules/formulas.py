"""
Parametric spell formulas.

Spell damage, healing, duration, range and area are stored as short text
templates ("1d6/level (max 10d6)", "1 round/level", "20-ft.-radius spread").
This module resolves them at a caster level and renders the results back
to text, and folds the numeric metamagic transforms over a resolved roll.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


class FormulaError(ValueError):
    """A formula template could not be parsed."""
    pass


# =============================================================================
# Dice
# =============================================================================

_FIXED_DICE = re.compile(r"^(?P<count>\d+)d(?P<sides>\d+)(?:\s*\+\s*(?P<bonus>\d+))?$")
_FLAT = re.compile(r"^(?P<bonus>\d+)$")

# "1d8+1/level (max +5)": fixed dice plus a flat bonus that scales
_SCALING_BONUS = re.compile(
    r"^(?P<count>\d+)d(?P<sides>\d+)\s*\+\s*(?P<bonus>\d+)\s*/\s*level"
    r"(?:\s*\(max\s*\+\s*(?P<max_bonus>\d+)\))?$"
)

# "1d6/level (max 10d6)", "1d4+1 per 2 levels (max 5d4+5)": whole term scales
_SCALING_DICE = re.compile(
    r"^(?P<count>\d+)d(?P<sides>\d+)(?:\s*\+\s*(?P<bonus>\d+))?\s*"
    r"(?:/\s*|per\s+)(?:(?P<step>\d+)\s+)?levels?"
    r"(?:\s*\(max\s+(?P<max_count>\d+)d\d+(?:\s*\+\s*\d+)?\))?$"
)


@dataclass(frozen=True)
class DiceRoll:
    """A concrete roll: ``count``d``sides`` + ``bonus``."""
    count: int
    sides: int
    bonus: int = 0

    @property
    def average(self) -> float:
        return self.count * (self.sides + 1) / 2 + self.bonus

    @property
    def maximum(self) -> int:
        return self.count * self.sides + self.bonus

    def render(self) -> str:
        if self.count == 0:
            return str(self.bonus)
        text = f"{self.count}d{self.sides}"
        if self.bonus:
            text += f"+{self.bonus}"
        return text


def resolve_dice(template: str, caster_level: int) -> DiceRoll:
    """Resolve a damage/healing template at ``caster_level``, clamped to its max.

    Examples:
        >>> resolve_dice("1d6/level (max 10d6)", 13).render()
        '10d6'
        >>> resolve_dice("1d8+1/level (max +5)", 3).render()
        '1d8+3'
        >>> resolve_dice("1d4+1 per 2 levels (max 5d4+5)", 5).render()
        '3d4+3'
    """
    text = " ".join(template.strip().lower().split())
    level = max(1, caster_level)

    m = _FIXED_DICE.match(text)
    if m:
        return DiceRoll(int(m["count"]), int(m["sides"]), int(m["bonus"] or 0))

    m = _FLAT.match(text)
    if m:
        return DiceRoll(0, 0, int(m["bonus"]))

    m = _SCALING_BONUS.match(text)
    if m:
        bonus = int(m["bonus"]) * level
        if m["max_bonus"]:
            bonus = min(bonus, int(m["max_bonus"]))
        return DiceRoll(int(m["count"]), int(m["sides"]), bonus)

    m = _SCALING_DICE.match(text)
    if m:
        step = int(m["step"] or 1)
        multiples = 1 + (level - 1) // step
        if m["max_count"]:
            per = int(m["count"])
            multiples = min(multiples, int(m["max_count"]) // per)
        return DiceRoll(
            int(m["count"]) * multiples,
            int(m["sides"]),
            int(m["bonus"] or 0) * multiples,
        )

    raise FormulaError(f"Unrecognized dice formula: '{template}'")


@dataclass(frozen=True)
class NumericEffect:
    """A resolved roll with numeric metamagic applied.

    ``expression`` shows every transform wrapped around the base roll in the
    order it was applied, e.g. ``max(1.5*(10d6))`` for Empower then Maximize.
    """
    base: DiceRoll
    transforms: tuple[str, ...] = ()
    expression: str = ""
    average: float = 0.0
    maximum: float = 0.0

    @classmethod
    def of(cls, roll: DiceRoll) -> "NumericEffect":
        return cls(
            base=roll,
            expression=roll.render(),
            average=roll.average,
            maximum=float(roll.maximum),
        )

    def empowered(self) -> "NumericEffect":
        return self._with("empower", f"1.5*({self.expression})")

    def maximized(self) -> "NumericEffect":
        return self._with("maximize", f"max({self.expression})")

    def _with(self, transform: str, expression: str) -> "NumericEffect":
        # Empower adds half the normal roll; with Maximize that is max + half the roll in either order
        transforms = self.transforms + (transform,)
        rolled = self.base.average
        top = float(self.base.maximum)
        bonus = 0.5 if "empower" in transforms else 0.0
        if "maximize" in transforms:
            average = top + bonus * rolled
        else:
            average = rolled * (1 + bonus)
        return NumericEffect(
            base=self.base,
            transforms=transforms,
            expression=expression,
            average=average,
            maximum=top * (1 + bonus),
        )


# =============================================================================
# Range
# =============================================================================

_FEET = re.compile(r"^(?P<feet>\d+)\s*(?:ft\.?|feet)$")


def range_in_feet(range_text: str, caster_level: int) -> int | None:
    """Distance for a range keyword or "N ft."; None for touch/personal/unlimited."""
    text = range_text.strip().lower()
    if text == "close":
        return 25 + 5 * (caster_level // 2)
    if text == "medium":
        return 100 + 10 * caster_level
    if text == "long":
        return 400 + 40 * caster_level
    m = _FEET.match(text)
    if m:
        return int(m["feet"])
    return None


def is_enlargeable(range_text: str) -> bool:
    return range_text.strip().lower() in ("close", "medium", "long")


# =============================================================================
# Duration
# =============================================================================

_UNITS = {
    "round": "round",
    "rounds": "round",
    "min": "minute",
    "min.": "minute",
    "minute": "minute",
    "minutes": "minute",
    "hour": "hour",
    "hours": "hour",
    "hr": "hour",
    "day": "day",
    "days": "day",
}

_DURATION = re.compile(
    r"^(?P<amount>\d+)\s*(?P<unit>[a-z.]+?)\s*(?P<per_level>/\s*level)?$"
)


@dataclass(frozen=True)
class Duration:
    """A resolved duration; ``amount`` is None for non-numeric durations."""
    amount: int | None
    unit: str | None = None
    text: str = ""

    def render(self) -> str:
        if self.amount is None:
            return self.text
        plural = "" if self.amount == 1 else "s"
        return f"{self.amount} {self.unit}{plural}"

    def doubled(self) -> "Duration":
        if self.amount is None:
            return self
        return Duration(self.amount * 2, self.unit)


def resolve_duration(template: str, caster_level: int) -> Duration:
    """Resolve ``"1 round/level"`` style durations at ``caster_level``.

    Non-numeric durations ("instantaneous", "permanent", "concentration")
    come back unchanged and cannot be extended.
    """
    text = " ".join(template.strip().lower().split())
    m = _DURATION.match(text)
    if not m or m["unit"] not in _UNITS:
        return Duration(None, text=template.strip())
    amount = int(m["amount"])
    if m["per_level"]:
        amount *= max(1, caster_level)
    return Duration(amount, _UNITS[m["unit"]])


# =============================================================================
# Area
# =============================================================================

_AREA_SIZE = re.compile(r"(\d+)")


def widen_area(area: str) -> str:
    """Double the leading size in an area description."""
    return _AREA_SIZE.sub(lambda m: str(int(m.group(1)) * 2), area, count=1)


__all__ = [
    "DiceRoll",
    "Duration",
    "FormulaError",
    "NumericEffect",
    "is_enlargeable",
    "range_in_feet",
    "resolve_dice",
    "resolve_duration",
    "widen_area",
]
