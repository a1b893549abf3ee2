"""
Built-in SRD rule source.

An illustrative subset of the 3.5 System Reference Document: the eleven core
classes, the core races, a selection of feats (including every metamagic feat
the spell engine understands), spells and equipment. House rules are layered
on top with CustomSource.
"""

import logging

from ..models import RuleSourceType
from .base import RuleSourceBase


logger = logging.getLogger("d20-rules.rulebooks")


def _per_day(*rows: str) -> dict[int, list[int]]:
    """Spells-per-day table from whitespace separated rows, one per class level.

    Rows start at class level 1; an empty row means no spells at that level.
    """
    return {
        level: [int(n) for n in row.split()]
        for level, row in enumerate(rows, start=1)
        if row.strip()
    }


WIZARD_SPELLS_PER_DAY = _per_day(
    "3 1", "4 2", "4 2 1", "4 3 2", "4 3 2 1",
    "4 3 3 2", "4 4 3 2 1", "4 4 3 3 2", "4 4 4 3 2 1", "4 4 4 3 3 2",
    "4 4 4 4 3 2 1", "4 4 4 4 3 3 2", "4 4 4 4 4 3 2 1", "4 4 4 4 4 3 3 2",
    "4 4 4 4 4 4 3 2 1", "4 4 4 4 4 4 3 3 2", "4 4 4 4 4 4 4 3 2 1",
    "4 4 4 4 4 4 4 3 3 2", "4 4 4 4 4 4 4 4 3 3", "4 4 4 4 4 4 4 4 4 4",
)

DIVINE_SPELLS_PER_DAY = _per_day(
    "3 1", "4 2", "4 2 1", "5 3 2", "5 3 2 1",
    "5 3 3 2", "6 4 3 2 1", "6 4 3 3 2", "6 4 4 3 2 1", "6 4 4 3 3 2",
    "6 5 4 4 3 2 1", "6 5 4 4 3 3 2", "6 5 5 4 4 3 2 1", "6 5 5 4 4 3 3 2",
    "6 5 5 5 4 4 3 2 1", "6 5 5 5 4 4 3 3 2", "6 5 5 5 5 4 4 3 2 1",
    "6 5 5 5 5 4 4 3 3 2", "6 5 5 5 5 5 4 4 3 3", "6 5 5 5 5 5 4 4 4 4",
)

SORCERER_SPELLS_PER_DAY = _per_day(
    "5 3", "6 4", "6 5", "6 6 3", "6 6 4",
    "6 6 5 3", "6 6 6 4", "6 6 6 5 3", "6 6 6 6 4", "6 6 6 6 5 3",
    "6 6 6 6 6 4", "6 6 6 6 6 5 3", "6 6 6 6 6 6 4", "6 6 6 6 6 6 5 3",
    "6 6 6 6 6 6 6 4", "6 6 6 6 6 6 6 5 3", "6 6 6 6 6 6 6 6 4",
    "6 6 6 6 6 6 6 6 5 3", "6 6 6 6 6 6 6 6 6 4", "6 6 6 6 6 6 6 6 6 6",
)

BARD_SPELLS_PER_DAY = _per_day(
    "2", "3 0", "3 1", "3 2 0", "3 3 1",
    "3 3 2", "3 3 2 0", "3 3 3 1", "3 3 3 2", "3 3 3 2 0",
    "3 3 3 3 1", "3 3 3 3 2", "3 3 3 3 2 0", "4 3 3 3 3 1",
    "4 4 3 3 3 2", "4 4 4 3 3 2 0", "4 4 4 4 3 3 1", "4 4 4 4 4 3 2",
    "4 4 4 4 4 4 3", "4 4 4 4 4 4 4",
)

# Paladins and rangers have no cantrips; a 0 entry grants bonus spells only
HALF_CASTER_SPELLS_PER_DAY = _per_day(
    "", "", "", "0 0", "0 0",
    "0 1", "0 1", "0 1 0", "0 1 0", "0 1 1",
    "0 1 1 0", "0 1 1 1", "0 1 1 1", "0 2 1 1 0",
    "0 2 1 1 1", "0 2 2 1 1", "0 2 2 2 1", "0 3 2 2 1",
    "0 3 3 3 2", "0 3 3 3 3",
)


# =============================================================================
# Classes
# =============================================================================

CLASSES: list[dict] = [
    {
        "name": "Barbarian", "hit_die": 12, "skill_points": 4, "base_attack": "good",
        "saves": {"fortitude": "good", "reflex": "poor", "will": "poor"},
        "class_skills": ["Climb", "Craft", "Handle Animal", "Intimidate", "Jump",
                         "Listen", "Ride", "Survival", "Swim"],
        "features": {
            1: ["Fast movement", "Illiteracy", "Rage 1/day"],
            2: ["Uncanny dodge"],
            3: ["Trap sense +1"],
            4: ["Rage 2/day"],
            5: ["Improved uncanny dodge"],
            6: ["Trap sense +2"],
            7: ["Damage reduction 1/-"],
            8: ["Rage 3/day"],
        },
    },
    {
        "name": "Bard", "hit_die": 6, "skill_points": 6, "base_attack": "average",
        "saves": {"fortitude": "poor", "reflex": "good", "will": "good"},
        "class_skills": ["Appraise", "Balance", "Bluff", "Climb", "Concentration", "Craft",
                         "Decipher Script", "Diplomacy", "Disguise", "Escape Artist",
                         "Gather Information", "Hide", "Jump", "Knowledge", "Listen",
                         "Move Silently", "Perform", "Profession", "Sense Motive",
                         "Sleight of Hand", "Speak Language", "Spellcraft", "Swim",
                         "Tumble", "Use Magic Device"],
        "spellcasting": {
            "ability": "charisma", "caster_type": "bard", "tradition": "arcane",
            "prepared": False, "spells_per_day": BARD_SPELLS_PER_DAY,
        },
        "features": {
            1: ["Bardic music", "Bardic knowledge", "Countersong", "Fascinate",
                "Inspire courage +1"],
            3: ["Inspire competence"],
            6: ["Suggestion"],
            8: ["Inspire courage +2"],
        },
    },
    {
        "name": "Cleric", "hit_die": 8, "skill_points": 2, "base_attack": "average",
        "saves": {"fortitude": "good", "reflex": "poor", "will": "good"},
        "class_skills": ["Concentration", "Craft", "Diplomacy", "Heal", "Knowledge",
                         "Profession", "Spellcraft"],
        "spellcasting": {
            "ability": "wisdom", "caster_type": "full", "tradition": "divine",
            "spells_per_day": DIVINE_SPELLS_PER_DAY,
        },
        "features": {1: ["Aura", "Domains", "Spontaneous casting", "Turn or rebuke undead"]},
    },
    {
        "name": "Druid", "hit_die": 8, "skill_points": 4, "base_attack": "average",
        "saves": {"fortitude": "good", "reflex": "poor", "will": "good"},
        "class_skills": ["Concentration", "Craft", "Diplomacy", "Handle Animal", "Heal",
                         "Knowledge", "Listen", "Profession", "Ride", "Spellcraft",
                         "Spot", "Survival", "Swim"],
        "spellcasting": {
            "ability": "wisdom", "caster_type": "full", "tradition": "divine",
            "spells_per_day": DIVINE_SPELLS_PER_DAY,
        },
        "features": {
            1: ["Animal companion", "Nature sense", "Wild empathy"],
            2: ["Woodland stride"],
            3: ["Trackless step"],
            4: ["Resist nature's lure"],
            5: ["Wild shape 1/day"],
        },
    },
    {
        "name": "Fighter", "hit_die": 10, "skill_points": 2, "base_attack": "good",
        "saves": {"fortitude": "good", "reflex": "poor", "will": "poor"},
        "class_skills": ["Climb", "Craft", "Handle Animal", "Intimidate", "Jump",
                         "Ride", "Swim"],
        "features": {
            level: ["Bonus feat"]
            for level in (1, 2, 4, 6, 8, 10, 12, 14, 16, 18, 20)
        },
    },
    {
        "name": "Monk", "hit_die": 8, "skill_points": 4, "base_attack": "average",
        "saves": {"fortitude": "good", "reflex": "good", "will": "good"},
        "class_skills": ["Balance", "Climb", "Concentration", "Craft", "Diplomacy",
                         "Escape Artist", "Hide", "Jump", "Knowledge", "Listen",
                         "Move Silently", "Perform", "Profession", "Sense Motive",
                         "Spot", "Swim", "Tumble"],
        "features": {
            1: ["Flurry of blows", "Unarmed strike", "Bonus feat"],
            2: ["Bonus feat", "Evasion"],
            3: ["Fast movement", "Still mind"],
            4: ["Ki strike (magic)", "Slow fall 20 ft."],
            5: ["Purity of body"],
        },
    },
    {
        "name": "Paladin", "hit_die": 10, "skill_points": 2, "base_attack": "good",
        "saves": {"fortitude": "good", "reflex": "poor", "will": "poor"},
        "class_skills": ["Concentration", "Craft", "Diplomacy", "Handle Animal", "Heal",
                         "Knowledge", "Profession", "Ride", "Sense Motive"],
        "spellcasting": {
            "ability": "wisdom", "caster_type": "limited", "tradition": "divine",
            "spells_per_day": HALF_CASTER_SPELLS_PER_DAY,
        },
        "features": {
            1: ["Aura of good", "Detect evil", "Smite evil 1/day"],
            2: ["Divine grace", "Lay on hands"],
            3: ["Aura of courage", "Divine health"],
            4: ["Turn undead"],
            5: ["Smite evil 2/day", "Special mount"],
            6: ["Remove disease 1/week"],
        },
    },
    {
        "name": "Ranger", "hit_die": 8, "skill_points": 6, "base_attack": "good",
        "saves": {"fortitude": "good", "reflex": "good", "will": "poor"},
        "class_skills": ["Climb", "Concentration", "Craft", "Handle Animal", "Heal", "Hide",
                         "Jump", "Knowledge", "Listen", "Move Silently", "Profession",
                         "Ride", "Search", "Spot", "Survival", "Swim", "Use Rope"],
        "spellcasting": {
            "ability": "wisdom", "caster_type": "limited", "tradition": "divine",
            "spells_per_day": HALF_CASTER_SPELLS_PER_DAY,
        },
        "features": {
            1: ["1st favored enemy", "Track", "Wild empathy"],
            2: ["Combat style"],
            3: ["Endurance"],
            4: ["Animal companion"],
            5: ["2nd favored enemy"],
            6: ["Improved combat style"],
            7: ["Woodland stride"],
        },
    },
    {
        "name": "Rogue", "hit_die": 6, "skill_points": 8, "base_attack": "average",
        "saves": {"fortitude": "poor", "reflex": "good", "will": "poor"},
        "class_skills": ["Appraise", "Balance", "Bluff", "Climb", "Craft", "Decipher Script",
                         "Diplomacy", "Disable Device", "Disguise", "Escape Artist",
                         "Forgery", "Gather Information", "Hide", "Intimidate", "Jump",
                         "Knowledge", "Listen", "Move Silently", "Open Lock", "Perform",
                         "Profession", "Search", "Sense Motive", "Sleight of Hand", "Spot",
                         "Swim", "Tumble", "Use Magic Device", "Use Rope"],
        "features": {
            1: ["Sneak attack +1d6", "Trapfinding"],
            2: ["Evasion"],
            3: ["Sneak attack +2d6", "Trap sense +1"],
            4: ["Uncanny dodge"],
            5: ["Sneak attack +3d6"],
            6: ["Trap sense +2"],
            7: ["Sneak attack +4d6"],
            8: ["Improved uncanny dodge"],
        },
    },
    {
        "name": "Sorcerer", "hit_die": 4, "skill_points": 2, "base_attack": "poor",
        "saves": {"fortitude": "poor", "reflex": "poor", "will": "good"},
        "class_skills": ["Bluff", "Concentration", "Craft", "Knowledge", "Profession",
                         "Spellcraft"],
        "spellcasting": {
            "ability": "charisma", "caster_type": "full", "tradition": "arcane",
            "prepared": False, "spells_per_day": SORCERER_SPELLS_PER_DAY,
        },
        "features": {1: ["Summon familiar"]},
    },
    {
        "name": "Wizard", "hit_die": 4, "skill_points": 2, "base_attack": "poor",
        "saves": {"fortitude": "poor", "reflex": "poor", "will": "good"},
        "class_skills": ["Concentration", "Craft", "Decipher Script", "Knowledge",
                         "Profession", "Spellcraft"],
        "spellcasting": {
            "ability": "intelligence", "caster_type": "full", "tradition": "arcane",
            "spells_per_day": WIZARD_SPELLS_PER_DAY,
        },
        "features": {
            1: ["Scribe scroll", "Summon familiar"],
            5: ["Bonus feat"],
            10: ["Bonus feat"],
            15: ["Bonus feat"],
            20: ["Bonus feat"],
        },
    },
]


# =============================================================================
# Races
# =============================================================================

RACES: list[dict] = [
    {"name": "Human", "bonus_feat": True},
    {"name": "Dwarf", "speed": 20, "favored_class": "fighter",
     "ability_adjustments": {"CON": 2, "CHA": -2}},
    {"name": "Elf", "favored_class": "wizard",
     "ability_adjustments": {"DEX": 2, "CON": -2}},
    {"name": "Gnome", "size": "small", "speed": 20, "favored_class": "bard",
     "ability_adjustments": {"CON": 2, "STR": -2}},
    {"name": "Half-Elf"},
    {"name": "Half-Orc", "favored_class": "barbarian",
     "ability_adjustments": {"STR": 2, "INT": -2, "CHA": -2}},
    {"name": "Halfling", "size": "small", "speed": 20, "favored_class": "rogue",
     "ability_adjustments": {"DEX": 2, "STR": -2}},
]


# =============================================================================
# Feats
# =============================================================================

def _skill_feat(name: str, *skills: str) -> dict:
    return {
        "name": name,
        "effect": {"modifiers": [{"stat": f"skill:{s}", "value": 2} for s in skills]},
    }


def _save_feat(name: str, save: str) -> dict:
    return {
        "name": name,
        "effect": {"modifiers": [{"stat": f"{save}_save", "value": 2}]},
    }


def _metamagic(name: str, operation: str, level_increase: int) -> dict:
    return {
        "name": name,
        "feat_type": "metamagic",
        "metamagic": {"operation": operation, "level_increase": level_increase},
    }


FEATS: list[dict] = [
    # General
    _skill_feat("Acrobatic", "Jump", "Tumble"),
    _skill_feat("Agile", "Balance", "Escape Artist"),
    _skill_feat("Alertness", "Listen", "Spot"),
    _skill_feat("Athletic", "Climb", "Swim"),
    _skill_feat("Deceitful", "Disguise", "Forgery"),
    _skill_feat("Investigator", "Gather Information", "Search"),
    _skill_feat("Negotiator", "Diplomacy", "Sense Motive"),
    _skill_feat("Stealthy", "Hide", "Move Silently"),
    _save_feat("Great Fortitude", "fortitude"),
    _save_feat("Iron Will", "will"),
    _save_feat("Lightning Reflexes", "reflex"),
    {"name": "Toughness", "effect": {"modifiers": [{"stat": "hit_points", "value": 3}]}},
    {"name": "Endurance", "effect": {"capabilities": ["endurance"]}},
    {"name": "Diehard", "prerequisites": {"feats": ["Endurance"]},
     "effect": {"capabilities": ["diehard"]}},
    {"name": "Run", "effect": {"capabilities": ["run"]}},
    {"name": "Track", "effect": {"capabilities": ["track"]}},
    {"name": "Combat Casting", "effect": {"capabilities": ["combat_casting"]}},
    {"name": "Skill Focus", "feat_type": "skill",
     "effect": {"kind": "variable", "choice_kind": "skill",
                "modifiers": [{"stat": "skill:{choice}", "value": 3}]}},
    {"name": "Spell Focus",
     "effect": {"kind": "variable", "choice_kind": "school",
                "modifiers": [{"stat": "spell_dc:{choice}", "value": 1}]}},
    {"name": "Greater Spell Focus", "prerequisites": {"feats": ["Spell Focus"]},
     "effect": {"kind": "variable", "choice_kind": "school",
                "modifiers": [{"stat": "spell_dc:{choice}", "value": 1}]}},
    {"name": "Spell Penetration", "effect": {"capabilities": ["spell_penetration"]}},
    {"name": "Mounted Combat", "prerequisites": {"skills": {"Ride": 1}},
     "effect": {"capabilities": ["mounted_combat"]}},
    {"name": "Ride-By Attack", "prerequisites": {"skills": {"Ride": 1}, "feats": ["Mounted Combat"]},
     "effect": {"capabilities": ["ride_by_attack"]}},

    # Combat
    {"name": "Power Attack", "feat_type": "combat",
     "prerequisites": {"abilities": {"STR": 13}},
     "effect": {"capabilities": ["power_attack"]}},
    {"name": "Cleave", "feat_type": "combat",
     "prerequisites": {"abilities": {"STR": 13}, "feats": ["Power Attack"]},
     "effect": {"capabilities": ["cleave"]}},
    {"name": "Great Cleave", "feat_type": "combat",
     "prerequisites": {"abilities": {"STR": 13}, "feats": ["Power Attack", "Cleave"],
                       "base_attack_bonus": 4},
     "effect": {"capabilities": ["great_cleave"]}},
    {"name": "Dodge", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 13}},
     "effect": {"modifiers": [{"stat": "armor_class", "value": 1, "bonus_type": "dodge"}]}},
    {"name": "Mobility", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 13}, "feats": ["Dodge"]},
     "effect": {"capabilities": ["mobility"]}},
    {"name": "Spring Attack", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 13}, "feats": ["Dodge", "Mobility"],
                       "base_attack_bonus": 4},
     "effect": {"capabilities": ["spring_attack"]}},
    {"name": "Combat Expertise", "feat_type": "combat",
     "prerequisites": {"abilities": {"INT": 13}},
     "effect": {"capabilities": ["combat_expertise"]}},
    {"name": "Improved Trip", "feat_type": "combat",
     "prerequisites": {"abilities": {"INT": 13}, "feats": ["Combat Expertise"]},
     "effect": {"capabilities": ["improved_trip"]}},
    {"name": "Improved Initiative", "feat_type": "combat",
     "effect": {"modifiers": [{"stat": "initiative", "value": 4}]}},
    {"name": "Improved Unarmed Strike", "feat_type": "combat",
     "effect": {"capabilities": ["improved_unarmed_strike"]}},
    {"name": "Weapon Finesse", "feat_type": "combat",
     "prerequisites": {"base_attack_bonus": 1},
     "effect": {"capabilities": ["weapon_finesse"]}},
    {"name": "Weapon Focus", "feat_type": "combat",
     "prerequisites": {"base_attack_bonus": 1},
     "effect": {"kind": "variable", "choice_kind": "weapon",
                "modifiers": [{"stat": "attack:{choice}", "value": 1}]}},
    {"name": "Weapon Specialization", "feat_type": "combat",
     "prerequisites": {"feats": ["Weapon Focus"], "classes": {"fighter": 4}},
     "effect": {"kind": "variable", "choice_kind": "weapon",
                "modifiers": [{"stat": "damage:{choice}", "value": 2}]}},
    {"name": "Greater Weapon Focus", "feat_type": "combat",
     "prerequisites": {"feats": ["Weapon Focus"], "classes": {"fighter": 8}},
     "effect": {"kind": "variable", "choice_kind": "weapon",
                "modifiers": [{"stat": "attack:{choice}", "value": 1}]}},
    {"name": "Point Blank Shot", "feat_type": "combat",
     "effect": {"capabilities": ["point_blank_shot"]}},
    {"name": "Precise Shot", "feat_type": "combat",
     "prerequisites": {"feats": ["Point Blank Shot"]},
     "effect": {"capabilities": ["precise_shot"]}},
    {"name": "Rapid Shot", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 13}, "feats": ["Point Blank Shot"]},
     "effect": {"capabilities": ["rapid_shot"]}},
    {"name": "Two-Weapon Fighting", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 15}},
     "effect": {"capabilities": ["two_weapon_fighting"]}},
    {"name": "Improved Two-Weapon Fighting", "feat_type": "combat",
     "prerequisites": {"abilities": {"DEX": 17}, "feats": ["Two-Weapon Fighting"],
                       "base_attack_bonus": 6},
     "effect": {"capabilities": ["improved_two_weapon_fighting"]}},

    # Item creation
    {"name": "Scribe Scroll", "feat_type": "item_creation",
     "prerequisites": {"caster_level": 1},
     "effect": {"capabilities": ["scribe_scroll"]}},
    {"name": "Brew Potion", "feat_type": "item_creation",
     "prerequisites": {"caster_level": 3},
     "effect": {"capabilities": ["brew_potion"]}},
    {"name": "Craft Wondrous Item", "feat_type": "item_creation",
     "prerequisites": {"caster_level": 3},
     "effect": {"capabilities": ["craft_wondrous_item"]}},
    {"name": "Craft Magic Arms and Armor", "feat_type": "item_creation",
     "prerequisites": {"caster_level": 5},
     "effect": {"capabilities": ["craft_magic_arms_and_armor"]}},

    # Divine
    {"name": "Extra Turning", "feat_type": "divine",
     "prerequisites": {"classes": ["cleric", "paladin"]},
     "effect": {"capabilities": ["extra_turning"]}},

    # Metamagic
    _metamagic("Empower Spell", "empower", 2),
    _metamagic("Enlarge Spell", "enlarge", 1),
    _metamagic("Extend Spell", "extend", 1),
    _metamagic("Maximize Spell", "maximize", 3),
    _metamagic("Quicken Spell", "quicken", 4),
    _metamagic("Silent Spell", "silent", 1),
    _metamagic("Still Spell", "still", 1),
    _metamagic("Widen Spell", "widen", 3),
]


# =============================================================================
# Spells
# =============================================================================

SPELLS: list[dict] = [
    # Cantrips and orisons
    {"name": "Acid Splash", "school": "conjuration", "levels": {"sorcerer": 0, "wizard": 0},
     "components": "V, S", "range": "close", "damage": "1d3"},
    {"name": "Ray of Frost", "school": "evocation", "levels": {"sorcerer": 0, "wizard": 0},
     "components": "V, S", "range": "close", "damage": "1d3", "spell_resistance": True},
    {"name": "Detect Magic", "school": "divination",
     "levels": {"bard": 0, "cleric": 0, "druid": 0, "sorcerer": 0, "wizard": 0},
     "components": "V, S", "range": "60 ft.", "area": "60-ft. cone-shaped emanation",
     "duration": "1 min./level"},
    {"name": "Resistance", "school": "abjuration",
     "levels": {"bard": 0, "cleric": 0, "druid": 0, "paladin": 1, "sorcerer": 0, "wizard": 0},
     "components": "V, S, M", "range": "touch", "duration": "1 minute",
     "saving_throw": "Will negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "saves", "value": 1, "bonus_type": "resistance"}]},

    # 1st level
    {"name": "Magic Missile", "school": "evocation", "levels": {"sorcerer": 1, "wizard": 1},
     "components": "V, S", "range": "medium", "damage": "1d4+1 per 2 levels (max 5d4+5)",
     "spell_resistance": True},
    {"name": "Burning Hands", "school": "evocation", "levels": {"sorcerer": 1, "wizard": 1},
     "components": "V, S", "range": "15 ft.", "area": "15-ft. cone-shaped burst",
     "damage": "1d4/level (max 5d4)", "saving_throw": "Reflex half", "spell_resistance": True},
    {"name": "Mage Armor", "school": "conjuration", "levels": {"sorcerer": 1, "wizard": 1},
     "components": "V, S, F", "range": "touch", "duration": "1 hour/level",
     "saving_throw": "Will negates (harmless)",
     "modifiers": [{"stat": "armor_class", "value": 4, "bonus_type": "armor"}]},
    {"name": "Shield", "school": "abjuration", "levels": {"sorcerer": 1, "wizard": 1},
     "components": "V, S", "range": "personal", "duration": "1 min./level",
     "modifiers": [{"stat": "armor_class", "value": 4, "bonus_type": "shield"}]},
    {"name": "Sleep", "school": "enchantment", "levels": {"bard": 1, "sorcerer": 1, "wizard": 1},
     "components": "V, S, M", "casting_time": "1 round", "range": "medium",
     "area": "10-ft.-radius burst", "duration": "1 min./level",
     "saving_throw": "Will negates", "spell_resistance": True},
    {"name": "Cure Light Wounds", "school": "conjuration",
     "levels": {"bard": 1, "cleric": 1, "druid": 1, "paladin": 1, "ranger": 2},
     "components": "V, S", "range": "touch", "healing": "1d8+1/level (max +5)",
     "saving_throw": "Will half (harmless)", "spell_resistance": True},
    {"name": "Bless", "school": "enchantment", "levels": {"cleric": 1, "paladin": 1},
     "components": "V, S, DF", "range": "50 ft.", "area": "50-ft. burst",
     "duration": "1 min./level",
     "modifiers": [{"stat": "attack", "value": 1, "bonus_type": "morale"}]},
    {"name": "Divine Favor", "school": "evocation", "levels": {"cleric": 1, "paladin": 1},
     "components": "V, S, DF", "range": "personal", "duration": "1 minute",
     "modifiers": [{"stat": "attack", "value": 1, "bonus_type": "luck"},
                   {"stat": "damage", "value": 1, "bonus_type": "luck"}]},
    {"name": "Shield of Faith", "school": "abjuration", "levels": {"cleric": 1},
     "components": "V, S, M", "range": "touch", "duration": "1 min./level",
     "saving_throw": "Will negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "armor_class", "value": 2, "bonus_type": "deflection"}]},

    # 2nd level
    {"name": "Bull's Strength", "school": "transmutation",
     "levels": {"cleric": 2, "druid": 2, "paladin": 2, "sorcerer": 2, "wizard": 2},
     "components": "V, S, M", "range": "touch", "duration": "1 min./level",
     "saving_throw": "Will negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "strength", "value": 4, "bonus_type": "enhancement"}]},
    {"name": "Cat's Grace", "school": "transmutation",
     "levels": {"bard": 2, "druid": 2, "ranger": 2, "sorcerer": 2, "wizard": 2},
     "components": "V, S, M", "range": "touch", "duration": "1 min./level",
     "saving_throw": "Will negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "dexterity", "value": 4, "bonus_type": "enhancement"}]},
    {"name": "Bear's Endurance", "school": "transmutation",
     "levels": {"cleric": 2, "druid": 2, "ranger": 2, "sorcerer": 2, "wizard": 2},
     "components": "V, S, DF", "range": "touch", "duration": "1 min./level",
     "saving_throw": "Will negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "constitution", "value": 4, "bonus_type": "enhancement"}]},
    {"name": "Barkskin", "school": "transmutation", "levels": {"druid": 2, "ranger": 2},
     "components": "V, S, DF", "range": "touch", "duration": "10 min./level",
     "modifiers": [{"stat": "armor_class", "value": 2, "bonus_type": "natural"}]},
    {"name": "Scorching Ray", "school": "evocation", "levels": {"sorcerer": 2, "wizard": 2},
     "components": "V, S", "range": "close", "damage": "4d6", "spell_resistance": True},
    {"name": "Cure Moderate Wounds", "school": "conjuration",
     "levels": {"bard": 2, "cleric": 2, "druid": 3, "paladin": 3, "ranger": 3},
     "components": "V, S", "range": "touch", "healing": "2d8+1/level (max +10)",
     "saving_throw": "Will half (harmless)", "spell_resistance": True},

    # 3rd level and up
    {"name": "Fireball", "school": "evocation", "levels": {"sorcerer": 3, "wizard": 3},
     "components": "V, S, M", "range": "long", "area": "20-ft.-radius spread",
     "damage": "1d6/level (max 10d6)", "saving_throw": "Reflex half", "spell_resistance": True},
    {"name": "Lightning Bolt", "school": "evocation", "levels": {"sorcerer": 3, "wizard": 3},
     "components": "V, S, M", "range": "120 ft.", "area": "120-ft. line",
     "damage": "1d6/level (max 10d6)", "saving_throw": "Reflex half", "spell_resistance": True},
    {"name": "Haste", "school": "transmutation", "levels": {"bard": 3, "sorcerer": 3, "wizard": 3},
     "components": "V, S, M", "range": "close", "duration": "1 round/level",
     "saving_throw": "Fortitude negates (harmless)", "spell_resistance": True,
     "modifiers": [{"stat": "attack", "value": 1},
                   {"stat": "armor_class", "value": 1, "bonus_type": "dodge"},
                   {"stat": "reflex_save", "value": 1, "bonus_type": "dodge"},
                   {"stat": "speed", "value": 30, "bonus_type": "enhancement"}]},
    {"name": "Cure Serious Wounds", "school": "conjuration",
     "levels": {"bard": 3, "cleric": 3, "druid": 4, "paladin": 4, "ranger": 4},
     "components": "V, S", "range": "touch", "healing": "3d8+1/level (max +15)",
     "saving_throw": "Will half (harmless)", "spell_resistance": True},
    {"name": "Flame Strike", "school": "evocation", "levels": {"cleric": 5, "druid": 4},
     "components": "V, S, DF", "range": "medium",
     "area": "10-ft.-radius, 40-ft.-high cylinder",
     "damage": "1d6/level (max 15d6)", "saving_throw": "Reflex half", "spell_resistance": True},
    {"name": "Cone of Cold", "school": "evocation", "levels": {"sorcerer": 5, "wizard": 5},
     "components": "V, S, M", "range": "60 ft.", "area": "60-ft. cone-shaped burst",
     "damage": "1d6/level (max 15d6)", "saving_throw": "Reflex half", "spell_resistance": True},
]


# =============================================================================
# Items
# =============================================================================

def _weapon(name: str, damage: str, weight: float, cost: float, critical: str = "x2",
            **extra) -> dict:
    return {"name": name, "category": "weapon", "damage": damage, "weight": weight,
            "cost_gp": cost, "critical": critical, **extra}


def _armor(name: str, category: str, bonus: int, max_dex: int, penalty: int,
           failure: int, weight: float, cost: float) -> dict:
    return {"name": name, "category": "armor", "armor_category": category,
            "armor_bonus": bonus, "max_dex_bonus": max_dex, "armor_check_penalty": penalty,
            "arcane_spell_failure": failure, "weight": weight, "cost_gp": cost}


def _shield(name: str, bonus: int, penalty: int, failure: int, weight: float, cost: float,
            max_dex: int | None = None) -> dict:
    return {"name": name, "category": "shield", "armor_bonus": bonus,
            "armor_check_penalty": penalty, "arcane_spell_failure": failure,
            "max_dex_bonus": max_dex, "weight": weight, "cost_gp": cost}


ITEMS: list[dict] = [
    # Weapons
    _weapon("Dagger", "1d4", 1, 2, "19-20/x2", light=True),
    _weapon("Shortsword", "1d6", 2, 10, "19-20/x2", light=True),
    _weapon("Handaxe", "1d6", 3, 6, "x3", light=True),
    _weapon("Longsword", "1d8", 4, 15, "19-20/x2"),
    _weapon("Rapier", "1d6", 2, 20, "18-20/x2"),
    _weapon("Battleaxe", "1d8", 6, 10, "x3"),
    _weapon("Warhammer", "1d8", 5, 12, "x3"),
    _weapon("Heavy Mace", "1d8", 8, 12),
    _weapon("Quarterstaff", "1d6", 4, 0, two_handed=True),
    _weapon("Greatsword", "2d6", 8, 50, "19-20/x2", two_handed=True),
    _weapon("Greataxe", "1d12", 12, 20, "x3", two_handed=True),
    _weapon("Longbow", "1d8", 3, 75, "x3", two_handed=True, ranged=True),
    _weapon("Light Crossbow", "1d8", 4, 35, "19-20/x2", two_handed=True, ranged=True),
    _weapon("Masterwork Longsword", "1d8", 4, 315, "19-20/x2",
            base_item="longsword", attack_bonus=1),
    _weapon("Longsword +1", "1d8", 4, 2315, "19-20/x2", base_item="longsword", enhancement=1),
    _weapon("Flaming Longsword", "1d8", 4, 8315, "19-20/x2", base_item="longsword",
            enhancement=1, properties=[{"name": "Flaming", "capabilities": ["fire_damage_1d6"]}]),

    # Armor
    _armor("Padded", "light", 1, 8, 0, 5, 10, 5),
    _armor("Leather", "light", 2, 6, 0, 10, 15, 10),
    _armor("Studded Leather", "light", 3, 5, -1, 15, 20, 25),
    _armor("Chain Shirt", "light", 4, 4, -2, 20, 25, 100),
    _armor("Hide", "medium", 3, 4, -3, 20, 25, 15),
    _armor("Scale Mail", "medium", 4, 3, -4, 25, 30, 50),
    _armor("Chainmail", "medium", 5, 2, -5, 30, 40, 150),
    _armor("Breastplate", "medium", 5, 3, -4, 25, 30, 200),
    _armor("Banded Mail", "heavy", 6, 1, -6, 35, 35, 250),
    _armor("Half-Plate", "heavy", 7, 0, -7, 40, 50, 600),
    _armor("Full Plate", "heavy", 8, 1, -6, 35, 50, 1500),
    {**_armor("Chain Shirt +1", "light", 4, 4, -2, 20, 25, 1250), "enhancement": 1,
     "base_item": "chain-shirt"},

    # Shields
    _shield("Buckler", 1, -1, 5, 5, 15),
    _shield("Light Wooden Shield", 1, -1, 5, 5, 3),
    _shield("Light Steel Shield", 1, -1, 5, 6, 9),
    _shield("Heavy Wooden Shield", 2, -2, 15, 10, 7),
    _shield("Heavy Steel Shield", 2, -2, 15, 15, 20),
    _shield("Tower Shield", 4, -10, 50, 45, 30, max_dex=2),

    # Wearables
    {"name": "Ring of Protection +1", "category": "wearable", "slots": ["ring"], "cost_gp": 2000,
     "properties": [{"name": "Deflection",
                     "modifiers": [{"stat": "armor_class", "value": 1, "bonus_type": "deflection"}]}]},
    {"name": "Ring of Protection +2", "category": "wearable", "slots": ["ring"], "cost_gp": 8000,
     "properties": [{"name": "Deflection",
                     "modifiers": [{"stat": "armor_class", "value": 2, "bonus_type": "deflection"}]}]},
    {"name": "Ring of Feather Falling", "category": "wearable", "slots": ["ring"], "cost_gp": 2200,
     "properties": [{"name": "Feather fall", "capabilities": ["feather_fall"]}]},
    {"name": "Amulet of Natural Armor +1", "category": "wearable", "slots": ["neck"],
     "cost_gp": 2000,
     "properties": [{"name": "Natural armor",
                     "modifiers": [{"stat": "armor_class", "value": 1, "bonus_type": "natural"}]}]},
    {"name": "Cloak of Resistance +1", "category": "wearable", "slots": ["shoulders"],
     "weight": 1, "cost_gp": 1000,
     "properties": [{"name": "Resistance",
                     "modifiers": [{"stat": "saves", "value": 1, "bonus_type": "resistance"}]}]},
    {"name": "Belt of Giant Strength +4", "category": "wearable", "slots": ["waist"],
     "weight": 1, "cost_gp": 16000,
     "properties": [{"name": "Giant strength",
                     "modifiers": [{"stat": "strength", "value": 4, "bonus_type": "enhancement"}]}]},
    {"name": "Gloves of Dexterity +2", "category": "wearable", "slots": ["hands"],
     "cost_gp": 4000,
     "properties": [{"name": "Dexterity",
                     "modifiers": [{"stat": "dexterity", "value": 2, "bonus_type": "enhancement"}]}]},
    {"name": "Headband of Intellect +2", "category": "wearable", "slots": ["head"],
     "cost_gp": 4000,
     "properties": [{"name": "Intellect",
                     "modifiers": [{"stat": "intelligence", "value": 2, "bonus_type": "enhancement"}]}]},
    {"name": "Boots of Elvenkind", "category": "wearable", "slots": ["feet"], "weight": 1,
     "cost_gp": 2500,
     "properties": [{"name": "Elvenkind",
                     "modifiers": [{"stat": "skill:Move Silently", "value": 5,
                                    "bonus_type": "competence"}]}]},
    {"name": "Bracers of Armor +2", "category": "wearable", "slots": ["wrists"], "weight": 1,
     "cost_gp": 4000,
     "properties": [{"name": "Armor",
                     "modifiers": [{"stat": "armor_class", "value": 2, "bonus_type": "armor"}]}]},

    # Gear
    {"name": "Backpack", "category": "gear", "weight": 2, "cost_gp": 2},
    {"name": "Bedroll", "category": "gear", "weight": 5, "cost_gp": 0.1},
    {"name": "Rope, Hemp (50 ft.)", "category": "gear", "weight": 10, "cost_gp": 1},
    {"name": "Trail Rations (per day)", "category": "gear", "weight": 1, "cost_gp": 0.5},
    {"name": "Waterskin", "category": "gear", "weight": 4, "cost_gp": 1},
    {"name": "Torch", "category": "gear", "weight": 1, "cost_gp": 0.01},
    {"name": "Spellbook", "category": "gear", "weight": 3, "cost_gp": 15},
]


SRD_CONTENT: dict[str, list[dict]] = {
    "classes": CLASSES,
    "races": RACES,
    "feats": FEATS,
    "spells": SPELLS,
    "items": ITEMS,
}


class SRDSource(RuleSourceBase):
    """Rule source backed by the built-in SRD subset."""

    def __init__(self, source_id: str = "srd"):
        super().__init__(source_id=source_id, source_type=RuleSourceType.SRD, name="3.5 SRD")

    def load(self) -> None:
        self._parse_content(SRD_CONTENT, origin="built-in SRD")
        self._mark_loaded()
        logger.debug(f"Loaded built-in SRD: {self.stats_summary()}")


__all__ = [
    "SRDSource",
    "SRD_CONTENT",
]
