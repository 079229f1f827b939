from __future__ import annotations

import re
from dataclasses import dataclass

_NUMS_TO_LETTERS = str.maketrans({"1": "l", "0": "o", "5": "s", "2": "z"})
_LETTERS_TO_NUMS = str.maketrans(
    {"S": "5", "s": "5", "O": "0", "o": "0", "B": "8", "l": "1", "I": "1", "i": "1", "Z": "2"}
)
_NON_DIGITS = re.compile(r"[^0-9]")

# A floating button hides the last digit of some evolution costs.
EVOLUTION_COST_FIXES: dict[int, int] = {1: 100, 10: 100, 4: 400, 40: 400, 5: 50, 2: 25}
FULLY_EVOLVED = -1

CANDY_WORD_FIRST_LANGUAGES = frozenset({"fr", "es", "it"})


def fix_nums_to_letters(text: str) -> str:
    """Correct OCR errors where only letters are expected."""
    return text.translate(_NUMS_TO_LETTERS)


def fix_letters_to_nums(text: str) -> str:
    """Correct OCR errors where only digits are expected, then drop everything else."""
    return _NON_DIGITS.sub("", text.translate(_LETTERS_TO_NUMS))


def parse_int(text: str) -> int | None:
    try:
        return int(fix_letters_to_nums(text))
    except ValueError:
        return None


def is_candy_word_first(language: str) -> bool:
    """Whether ``language`` writes the candy word before the species name."""
    return language.strip().lower()[:2] in CANDY_WORD_FIRST_LANGUAGES


def remove_first_or_last_word(text: str, remove_first: bool) -> str:
    if remove_first:
        space = text.find(" ")
        if space != -1:
            return text[space + 1 :]
    else:
        space = text.rfind(" ")
        if space != -1:
            return text[:space]
    return text


def clean_name(text: str) -> str:
    return fix_nums_to_letters(text.replace(" ", ""))


def clean_candy_name(text: str, candy_word_first: bool) -> str:
    """Strip the localized "candy" word from the candy label.

    ``candy_word_first`` is true for languages such as French ("Bonbon Weedle").
    """
    normalized = text.strip().replace("-", " ")
    return fix_nums_to_letters(remove_first_or_last_word(normalized, candy_word_first))


@dataclass(frozen=True)
class HpReading:
    value: int | None
    low_confidence: bool = False


def parse_hp(text: str) -> HpReading:
    """Parse the max HP out of a "current/max HP" label.

    The segment after ``/`` is used when present. When the slash was lost the whole
    text is used instead, which reads the current and max HP run together; such
    readings are flagged low confidence.
    """
    parts = text.split("/")
    while parts and not parts[-1]:
        parts.pop()
    if not parts:
        return HpReading(None)

    low_confidence = len(parts) < 2
    segment = parts[0] if low_confidence else parts[1]
    if len(segment) < 2:
        return HpReading(None, low_confidence)
    # Drop the unit suffix, e.g. "HP" or "PS".
    return HpReading(parse_int(segment[:-2]), low_confidence)


def parse_cp(text: str) -> int | None:
    # The "CP" label is always read as two characters, sometimes digits.
    if len(text) >= 2:
        text = text[2:]
    return parse_int(text)


def parse_candy_amount(text: str) -> int | None:
    if not text:
        return None
    return parse_int(text)


def parse_evolution_cost(text: str) -> int | None:
    value = parse_int(text)
    if value is None:
        return None
    return EVOLUTION_COST_FIXES.get(value, value)
