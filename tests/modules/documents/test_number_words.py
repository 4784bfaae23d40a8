# tests/modules/documents/test_number_words.py
import pytest

from agencyos.modules.documents.number_words import number_to_words, number_to_words_short, plural_form


@pytest.mark.parametrize("n, expected", [(1, "тысяча"), (3, "тысячи"), (5, "тысяч"), (11, "тысяч"), (21, "тысяча"), (114, "тысяч")])
def test_plural_form(n, expected):
    assert plural_form(n, "тысяча", "тысячи", "тысяч") == expected


def test_amount_with_tiyn():
    assert number_to_words(1500.5) == "Одна тысяча пятьсот тенге 50 тиын"


def test_feminine_thousands_and_masculine_millions():
    assert number_to_words(2_021_000) == "Два миллиона двадцать одна тысяча тенге 00 тиын"


def test_billions():
    assert number_to_words_short(3_000_000_000) == "Три миллиарда"


def test_rounding_half_up():
    assert number_to_words(10.005) == "Десять тенге 01 тиын"


def test_zero_and_negative():
    assert number_to_words(0) == "ноль тенге 00 тиын"
    assert number_to_words_short(-12) == "Минус двенадцать"
