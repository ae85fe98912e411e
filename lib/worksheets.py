# =============================================================================
# lib/worksheets.py - Worksheet Generators
# =============================================================================
# Generates printable practice worksheets:
# - Piano note reading (name the note / draw the note) for treble, bass and
#   grand staff at four difficulty levels, optionally with accidentals
# - Math facts (+, -, x, /) scaled by grade
#
# Randomness comes from an injected random.Random so a worksheet can be
# reproduced from a seed.
#
# Usage:
#   from lib.worksheets import generate_worksheet
#   sheet = generate_worksheet("piano_naming", {"clef": "bass"}, random.Random(42))
# =============================================================================

from __future__ import annotations

import logging
import random
from typing import Any

from pydantic import ValidationError

from core.models.worksheet import (
    MathWorksheetConfig,
    PianoWorksheetConfig,
    Worksheet,
    WorksheetProblem,
    WorksheetType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Piano Note Tables
# =============================================================================
# (note name, staff position) where position 0 is the middle line.

TREBLE_NOTES: dict[str, list[tuple[str, int]]] = {
    "beginner": [
        ("C", -6), ("D", -5), ("E", -4), ("F", -3), ("G", -2), ("A", -1), ("B", 0),
    ],
    "elementary": [
        ("C", -6), ("D", -5), ("E", -4), ("F", -3), ("G", -2), ("A", -1), ("B", 0),
        ("C", 1), ("D", 2), ("E", 3), ("F", 4),
    ],
    "intermediate": [
        ("B", -7), ("C", -6), ("D", -5), ("E", -4), ("F", -3), ("G", -2), ("A", -1),
        ("B", 0), ("C", 1), ("D", 2), ("E", 3), ("F", 4), ("G", 5), ("A", 6),
    ],
    "advanced": [
        ("A", -8), ("B", -7), ("C", -6), ("D", -5), ("E", -4), ("F", -3), ("G", -2),
        ("A", -1), ("B", 0), ("C", 1), ("D", 2), ("E", 3), ("F", 4), ("G", 5),
        ("A", 6), ("B", 7), ("C", 8),
    ],
}

BASS_NOTES: dict[str, list[tuple[str, int]]] = {
    "beginner": [
        ("E", -6), ("F", -5), ("G", -4), ("A", -3), ("B", -2), ("C", -1), ("D", 0),
    ],
    "elementary": [
        ("E", -6), ("F", -5), ("G", -4), ("A", -3), ("B", -2), ("C", -1), ("D", 0),
        ("E", 1), ("F", 2), ("G", 3), ("A", 4),
    ],
    "intermediate": [
        ("D", -7), ("E", -6), ("F", -5), ("G", -4), ("A", -3), ("B", -2), ("C", -1),
        ("D", 0), ("E", 1), ("F", 2), ("G", 3), ("A", 4), ("B", 5), ("C", 6),
    ],
    "advanced": [
        ("C", -8), ("D", -7), ("E", -6), ("F", -5), ("G", -4), ("A", -3), ("B", -2),
        ("C", -1), ("D", 0), ("E", 1), ("F", 2), ("G", 3), ("A", 4), ("B", 5),
        ("C", 6), ("D", 7), ("E", 8),
    ],
}

NO_SHARP = ("B", "E")
NO_FLAT = ("C", "F")

SHARP_SIGN = "♯"
FLAT_SIGN = "♭"


def note_pool(clef: str, difficulty: str) -> list[dict[str, Any]]:
    """All candidate notes for a clef/difficulty; grand = treble + bass."""
    pool: list[dict[str, Any]] = []
    if clef in ("treble", "grand"):
        pool += [
            {"name": n, "position": p, "clef": "treble", "accidental": None}
            for n, p in TREBLE_NOTES.get(difficulty, TREBLE_NOTES["beginner"])
        ]
    if clef in ("bass", "grand"):
        pool += [
            {"name": n, "position": p, "clef": "bass", "accidental": None}
            for n, p in BASS_NOTES.get(difficulty, BASS_NOTES["beginner"])
        ]
    return pool


def apply_accidentals(
    notes: list[dict[str, Any]],
    accidentals: str,
    rng: random.Random,
) -> list[dict[str, Any]]:
    """
    Randomly sharpen/flatten notes.

    B and E never get a sharp; C and F never get a flat.
    """
    if accidentals == "none":
        return notes

    result = []
    for note in notes:
        can_sharp = note["name"] not in NO_SHARP
        can_flat = note["name"] not in NO_FLAT
        accidental = None

        if accidentals == "sharps" and can_sharp and rng.random() > 0.6:
            accidental = "sharp"
        elif accidentals == "flats" and can_flat and rng.random() > 0.6:
            accidental = "flat"
        elif accidentals == "mixed":
            if can_sharp and rng.random() > 0.7:
                accidental = "sharp"
            elif can_flat and rng.random() > 0.7:
                accidental = "flat"

        result.append({**note, "accidental": accidental})
    return result


def note_label(note: dict[str, Any]) -> str:
    """'C', 'F♯' or 'B♭'."""
    if note["accidental"] == "sharp":
        return note["name"] + SHARP_SIGN
    if note["accidental"] == "flat":
        return note["name"] + FLAT_SIGN
    return note["name"]


def generate_piano_problems(
    config: PianoWorksheetConfig,
    rng: random.Random,
) -> list[WorksheetProblem]:
    """Pick `problem_count` random notes from the configured pool."""
    pool = apply_accidentals(note_pool(config.clef, config.difficulty), config.accidentals, rng)

    problems = []
    for number in range(1, config.problem_count + 1):
        note = dict(rng.choice(pool))
        label = note_label(note)
        if config.type == "note_naming":
            prompt = f"Name the note ({note['clef']} clef)"
            answer = label
        else:
            prompt = f"Draw {label} on the {note['clef']} staff"
            answer = f"{note['clef']} position {note['position']}"
        problems.append(WorksheetProblem(number=number, prompt=prompt, answer=answer, data=note))
    return problems


# =============================================================================
# Math Facts
# =============================================================================

# Largest operand per grade for addition/subtraction
ADDITION_LIMITS = {0: 5, 1: 10, 2: 20, 3: 100, 4: 1000, 5: 1000, 6: 10000}

# Largest factor per grade for multiplication/division
FACTOR_LIMITS = {0: 2, 1: 3, 2: 5, 3: 10, 4: 12, 5: 12, 6: 15}

WORD_PROBLEM_TEMPLATES = {
    "addition": "Sam has {a} apples and picks {b} more. How many apples does Sam have now?",
    "subtraction": "There are {a} birds on a fence. {b} fly away. How many birds are left?",
    "multiplication": "There are {a} bags with {b} marbles in each bag. How many marbles are there?",
    "division": "{a} cookies are shared equally among {b} friends. How many cookies does each friend get?",
}

OPERATOR_SIGNS = {"addition": "+", "subtraction": "-", "multiplication": "×", "division": "÷"}


def _math_operands(topic: str, grade: int, rng: random.Random) -> tuple[int, int, int]:
    """(a, b, answer) for one problem."""
    if topic in ("addition", "subtraction"):
        limit = ADDITION_LIMITS[grade]
        a, b = rng.randint(0, limit), rng.randint(0, limit)
        if topic == "addition":
            return a, b, a + b
        high, low = max(a, b), min(a, b)
        return high, low, high - low

    limit = FACTOR_LIMITS[grade]
    x, y = rng.randint(0, limit), rng.randint(1, limit)
    if topic == "multiplication":
        return x, y, x * y
    # Division is built from a product so it is always exact
    return x * y, y, x


def generate_math_problems(
    config: MathWorksheetConfig,
    rng: random.Random,
) -> list[WorksheetProblem]:
    """Arithmetic problems; every third one is a word problem when enabled."""
    sign = OPERATOR_SIGNS[config.topic]

    problems = []
    for number in range(1, config.problem_count + 1):
        a, b, answer = _math_operands(config.topic, config.grade, rng)
        if config.include_word_problems and number % 3 == 0:
            prompt = WORD_PROBLEM_TEMPLATES[config.topic].format(a=a, b=b)
        else:
            prompt = f"{a} {sign} {b} ="
        problems.append(WorksheetProblem(
            number=number,
            prompt=prompt,
            answer=str(answer),
            data={"a": a, "b": b, "operation": config.topic},
        ))
    return problems


# =============================================================================
# Entry Points
# =============================================================================

def parse_config(
    worksheet_type: WorksheetType | str,
    config: dict[str, Any] | None,
) -> PianoWorksheetConfig | MathWorksheetConfig:
    """
    Validate stored config JSON for a worksheet type.

    Raises:
        pydantic.ValidationError: If the config is invalid
    """
    worksheet_type = WorksheetType(worksheet_type)
    config = dict(config or {})

    if worksheet_type == WorksheetType.MATH:
        return MathWorksheetConfig.model_validate(config)

    config.setdefault(
        "type", "note_naming" if worksheet_type == WorksheetType.PIANO_NAMING else "note_drawing"
    )
    return PianoWorksheetConfig.model_validate(config)


def generate_worksheet(
    worksheet_type: WorksheetType | str,
    config: dict[str, Any] | PianoWorksheetConfig | MathWorksheetConfig | None,
    rng: random.Random | None = None,
) -> Worksheet:
    """
    Generate a worksheet with its answer key.

    Raises:
        pydantic.ValidationError: If the config is invalid
    """
    worksheet_type = WorksheetType(worksheet_type)
    rng = rng or random.Random()

    if isinstance(config, (PianoWorksheetConfig, MathWorksheetConfig)):
        parsed = config
    else:
        parsed = parse_config(worksheet_type, config)

    if isinstance(parsed, MathWorksheetConfig):
        grade = "K" if parsed.grade == 0 else f"Grade {parsed.grade}"
        title = f"{parsed.topic.capitalize()} Practice ({grade})"
        problems = generate_math_problems(parsed, rng)
    else:
        action = "Name" if parsed.type == "note_naming" else "Draw"
        title = f"{action} the Notes: {parsed.clef.capitalize()} Clef ({parsed.difficulty})"
        problems = generate_piano_problems(parsed, rng)

    return Worksheet(worksheet_type=worksheet_type, title=title, problems=problems)


def regenerate_from_config(
    worksheet_type: WorksheetType | str,
    config: dict[str, Any] | None,
    seed: int | None = None,
) -> Worksheet | None:
    """
    Rebuild a worksheet from a stored assignment config.

    Returns:
        Worksheet, or None if the stored config is no longer valid
    """
    try:
        return generate_worksheet(worksheet_type, config, random.Random(seed))
    except (ValidationError, ValueError) as e:
        logger.warning(f"Invalid stored worksheet config for {worksheet_type}: {e}")
        return None
