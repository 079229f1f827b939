from __future__ import annotations

import pytest

from pokescan.services.text_fixes import (  # type: ignore[import-not-found]
    FULLY_EVOLVED,
    clean_candy_name,
    clean_name,
    fix_letters_to_nums,
    fix_nums_to_letters,
    is_candy_word_first,
    parse_candy_amount,
    parse_cp,
    parse_evolution_cost,
    parse_hp,
    remove_first_or_last_word,
)


def test_fix_nums_to_letters() -> None:
    assert fix_nums_to_letters("Wee d1e") == "Wee dle"
    assert fix_nums_to_letters("P0ke5t2p") == "Pokestzp"


def test_fix_letters_to_nums_drops_everything_else() -> None:
    assert fix_letters_to_nums("l2O") == "120"
    assert fix_letters_to_nums("SB Z") == "582"
    assert fix_letters_to_nums("x9 -") == "9"


def test_clean_name_removes_spaces() -> None:
    assert clean_name("Wee d1e") == "Weedle"


@pytest.mark.parametrize(
    "text, first, expected",
    [
        ("WEEDLE CANDY", False, "WEEDLE"),
        ("BONBON WEEDLE", True, "WEEDLE"),
        ("Candy Weedle", True, "Weedle"),
        ("Bonbon Weedle", False, "Bonbon"),
        ("WEEDLE", False, "WEEDLE"),
        ("Mr-Mime CANDY", False, "Mr Mime"),
    ],
)
def test_clean_candy_name(text: str, first: bool, expected: str) -> None:
    assert clean_candy_name(text, first) == expected


def test_remove_first_or_last_word_without_space() -> None:
    assert remove_first_or_last_word("Pikachu", True) == "Pikachu"
    assert remove_first_or_last_word("Pikachu", False) == "Pikachu"


def test_candy_word_order_by_language() -> None:
    assert is_candy_word_first("fr")
    assert is_candy_word_first("es-ES")
    assert is_candy_word_first("it")
    assert not is_candy_word_first("en")
    assert not is_candy_word_first("de")


def test_parse_hp_reads_max_after_slash() -> None:
    reading = parse_hp("30/55HP")
    assert reading.value == 55
    assert not reading.low_confidence


def test_parse_hp_ignores_trailing_slash() -> None:
    assert parse_hp("55HP/").value == 55


def test_parse_hp_without_slash_is_low_confidence() -> None:
    reading = parse_hp("3055hp")
    assert reading.value == 3055
    assert reading.low_confidence


@pytest.mark.parametrize("text", ["", "/", "HP", "/H"])
def test_parse_hp_unreadable(text: str) -> None:
    assert parse_hp(text).value is None


def test_parse_cp_drops_label() -> None:
    assert parse_cp("CP1O5") == 105
    assert parse_cp("CP") is None
    assert parse_cp("") is None


def test_parse_candy_amount() -> None:
    assert parse_candy_amount("1l2") == 112
    assert parse_candy_amount("") is None
    assert parse_candy_amount("--") is None


@pytest.mark.parametrize(
    "text, expected",
    [("1", 100), ("10", 100), ("4", 400), ("40", 400), ("5", 50), ("2", 25), ("12", 12), ("x", None)],
)
def test_parse_evolution_cost_restores_hidden_digit(text: str, expected: int | None) -> None:
    assert parse_evolution_cost(text) == expected


def test_fully_evolved_marker() -> None:
    assert FULLY_EVOLVED == -1
