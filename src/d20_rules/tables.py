"""Progression tables and formulas shared across the engine.

Everything here is a pure function of its arguments: base attack and save
progressions, caster progressions, experience thresholds, skill rank limits,
carrying capacity and the related load penalties.
"""

from __future__ import annotations

import re


# Canonical ability order; prerequisite reasons are reported in this order.
ABILITIES = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)

# Ability abbreviation → full name
ABILITY_ABBREV = {
    "STR": "strength",
    "DEX": "dexterity",
    "CON": "constitution",
    "INT": "intelligence",
    "WIS": "wisdom",
    "CHA": "charisma",
}

SAVES = ("fortitude", "reflex", "will")

SAVE_ABILITIES = {
    "fortitude": "constitution",
    "reflex": "dexterity",
    "will": "wisdom",
}

MAX_LEVEL = 20

# Experience required to reach each character level
EXPERIENCE_TABLE = {
    1: 0, 2: 1000, 3: 3000, 4: 6000, 5: 10000,
    6: 15000, 7: 21000, 8: 28000, 9: 36000, 10: 45000,
    11: 55000, 12: 66000, 13: 78000, 14: 91000, 15: 105000,
    16: 120000, 17: 136000, 18: 153000, 19: 171000, 20: 190000,
}

# Skill → key ability. Parenthesised specialities ("Knowledge (arcana)")
# resolve through their base name.
SKILL_ABILITIES = {
    "Appraise": "intelligence",
    "Balance": "dexterity",
    "Bluff": "charisma",
    "Climb": "strength",
    "Concentration": "constitution",
    "Craft": "intelligence",
    "Decipher Script": "intelligence",
    "Diplomacy": "charisma",
    "Disable Device": "intelligence",
    "Disguise": "charisma",
    "Escape Artist": "dexterity",
    "Forgery": "intelligence",
    "Gather Information": "charisma",
    "Handle Animal": "charisma",
    "Heal": "wisdom",
    "Hide": "dexterity",
    "Intimidate": "charisma",
    "Jump": "strength",
    "Knowledge": "intelligence",
    "Listen": "wisdom",
    "Move Silently": "dexterity",
    "Open Lock": "dexterity",
    "Perform": "charisma",
    "Profession": "wisdom",
    "Ride": "dexterity",
    "Search": "intelligence",
    "Sense Motive": "wisdom",
    "Sleight of Hand": "dexterity",
    "Speak Language": "intelligence",
    "Spellcraft": "intelligence",
    "Spot": "wisdom",
    "Survival": "wisdom",
    "Swim": "strength",
    "Tumble": "dexterity",
    "Use Magic Device": "charisma",
    "Use Rope": "dexterity",
}

ARMOR_CHECK_SKILLS = {
    "Balance", "Climb", "Escape Artist", "Hide", "Jump",
    "Move Silently", "Sleight of Hand", "Swim", "Tumble",
}

# Carrying capacity multiplier by size category
SIZE_CAPACITY_MULTIPLIER = {
    "fine": 0.125,
    "diminutive": 0.25,
    "tiny": 0.5,
    "small": 0.75,
    "medium": 1.0,
    "large": 2.0,
    "huge": 4.0,
}

# Size modifier to armor class and attack rolls
SIZE_MODIFIER = {
    "fine": 8,
    "diminutive": 4,
    "tiny": 2,
    "small": 1,
    "medium": 0,
    "large": -1,
    "huge": -2,
}

LOAD_TIERS = ("light", "medium", "heavy", "overloaded")

# Base speed → speed in medium/heavy armor or under a medium/heavy load
REDUCED_SPEED = {20: 15, 30: 20, 40: 30, 50: 35, 60: 40}

# Load tier → (max dex bonus cap, check penalty); light load imposes nothing
LOAD_PENALTIES: dict[str, tuple[int, int]] = {
    "medium": (3, -3),
    "heavy": (1, -6),
    "overloaded": (0, -6),
}


def normalize_index(name: str) -> str:
    """Convert a display name to catalog index format (lowercase, hyphenated)."""
    return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


def ability_modifier(score: int) -> int:
    return (score - 10) // 2


# ---------------------------------------------------------------------------
# Combat progressions
# ---------------------------------------------------------------------------

def base_attack_bonus(progression: str, level: int) -> int:
    """Base attack bonus for ``level`` levels of a single class.

    good = level, average = floor(level * 0.75), poor = floor(level * 0.5).
    """
    if progression == "good":
        return level
    if progression in ("average", "medium"):
        return (level * 3) // 4
    if progression == "poor":
        return level // 2
    raise ValueError(f"Unknown base attack progression: '{progression}'")


def base_save_bonus(progression: str, level: int) -> int:
    """good = 2 + level // 2, poor = level // 3."""
    if progression == "good":
        return 2 + level // 2
    if progression == "poor":
        return level // 3
    raise ValueError(f"Unknown save progression: '{progression}'")


# ---------------------------------------------------------------------------
# Spellcasting progressions
# ---------------------------------------------------------------------------

def caster_level_for(caster_type: str, class_level: int) -> int:
    """Caster level granted by ``class_level`` levels of a casting class.

    Full casters and bards use their class level. Limited casters (paladin,
    ranger) have no caster level until class level 4, then half their level.
    """
    if class_level <= 0:
        return 0
    if caster_type in ("full", "bard"):
        return class_level
    if caster_type == "limited":
        return class_level // 2 if class_level >= 4 else 0
    return 0


def max_spell_level_for(caster_type: str, class_level: int) -> int:
    """Highest spell level castable at ``class_level``.

    full: min(9, (L + 1) // 2); bard: min(6, L // 2);
    limited: min(4, (L - 1) // 3) from level 4 onward, else 0.
    """
    if class_level <= 0:
        return 0
    if caster_type == "full":
        return min(9, (class_level + 1) // 2)
    if caster_type == "bard":
        return min(6, class_level // 2)
    if caster_type == "limited":
        if class_level < 4:
            return 0
        return min(4, (class_level - 1) // 3)
    return 0


def bonus_spells(ability_mod: int, spell_level: int) -> int:
    """Bonus spells per day from a high casting ability (none for cantrips)."""
    if spell_level < 1 or ability_mod < spell_level:
        return 0
    return (ability_mod - spell_level) // 4 + 1


# ---------------------------------------------------------------------------
# Experience & skills
# ---------------------------------------------------------------------------

def experience_for_level(level: int) -> int:
    return EXPERIENCE_TABLE.get(level, EXPERIENCE_TABLE[MAX_LEVEL])


def skill_key_ability(skill: str) -> str | None:
    """Key ability for a skill name, or None for unknown skills."""
    if skill in SKILL_ABILITIES:
        return SKILL_ABILITIES[skill]
    base = skill.split("(", 1)[0].strip()
    return SKILL_ABILITIES.get(base)


def max_skill_ranks(character_level: int, class_skill: bool) -> int:
    """class skill: level + 3; cross-class: (level + 3) // 2."""
    if class_skill:
        return character_level + 3
    return (character_level + 3) // 2


# ---------------------------------------------------------------------------
# Encumbrance
# ---------------------------------------------------------------------------

def load_thresholds(strength: int, size: str = "medium") -> dict[str, float]:
    """Upper weight bound of the light, medium and heavy tiers."""
    multiplier = SIZE_CAPACITY_MULTIPLIER.get(size.lower(), 1.0)
    return {
        "light": strength * 10 * multiplier,
        "medium": strength * 20 * multiplier,
        "heavy": strength * 30 * multiplier,
    }


def load_tier(total_weight: float, strength: int, size: str = "medium") -> str:
    """Lowest tier whose threshold the weight does not exceed."""
    thresholds = load_thresholds(strength, size)
    for tier in ("light", "medium", "heavy"):
        if total_weight <= thresholds[tier]:
            return tier
    return "overloaded"


def reduced_speed(base_speed: int) -> int:
    """Speed while in medium/heavy armor or carrying a medium/heavy load."""
    if base_speed in REDUCED_SPEED:
        return REDUCED_SPEED[base_speed]
    return max(5, (base_speed * 2 // 3) // 5 * 5)
