# agencyos/modules/documents/number_words.py
"""Russian spelling of tenge amounts for contracts and invoices."""
from decimal import ROUND_HALF_UP, Decimal
from typing import List

UNITS = ["", "один", "два", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]
UNITS_FEMININE = ["", "одна", "две", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]
TEENS = [
    "десять", "одиннадцать", "двенадцать", "тринадцать", "четырнадцать",
    "пятнадцать", "шестнадцать", "семнадцать", "восемнадцать", "девятнадцать",
]
TENS = ["", "", "двадцать", "тридцать", "сорок", "пятьдесят", "шестьдесят", "семьдесят", "восемьдесят", "девяносто"]
HUNDREDS = ["", "сто", "двести", "триста", "четыреста", "пятьсот", "шестьсот", "семьсот", "восемьсот", "девятьсот"]


def plural_form(n: int, one: str, few: str, many: str) -> str:
    """Picks the noun form for `n`: 1 тысяча, 2 тысячи, 5 тысяч, 11 тысяч."""
    if 11 <= n % 100 <= 19:
        return many
    last_digit = n % 10
    if last_digit == 1:
        return one
    if 2 <= last_digit <= 4:
        return few
    return many


def _below_thousand(n: int, feminine: bool = False) -> List[str]:
    words = []
    if n >= 100:
        words.append(HUNDREDS[n // 100])
        n %= 100
    if n >= 20:
        words.append(TENS[n // 10])
        n %= 10
    elif n >= 10:
        words.append(TEENS[n - 10])
        n = 0
    if n > 0:
        words.append(UNITS_FEMININE[n] if feminine else UNITS[n])
    return words


def _integer_words(n: int) -> List[str]:
    if n == 0:
        return ["ноль"]
    billions, rest = divmod(n, 1_000_000_000)
    millions, rest = divmod(rest, 1_000_000)
    thousands, remainder = divmod(rest, 1000)

    words: List[str] = []
    if billions:
        words += _integer_words(billions) if billions >= 1000 else _below_thousand(billions)
        words.append(plural_form(billions, "миллиард", "миллиарда", "миллиардов"))
    if millions:
        words += _below_thousand(millions)
        words.append(plural_form(millions, "миллион", "миллиона", "миллионов"))
    if thousands:
        words += _below_thousand(thousands, feminine=True)
        words.append(plural_form(thousands, "тысяча", "тысячи", "тысяч"))
    if remainder:
        words += _below_thousand(remainder)
    return words


def _split(amount: float) -> tuple[bool, int, int]:
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    negative = value < 0
    value = abs(value)
    whole = int(value)
    fraction = int((value - whole) * 100)
    return negative, whole, fraction


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def number_to_words(amount: float) -> str:
    """`1500.5` -> "Одна тысяча пятьсот тенге 50 тиын"."""
    negative, whole, fraction = _split(amount)
    if not negative and whole == 0 and fraction == 0:
        return "ноль тенге 00 тиын"

    words = ["минус"] if negative else []
    words += _integer_words(whole)
    words.append("тенге")
    words.append(f"{fraction:02d}")
    words.append(plural_form(fraction, "тиын", "тиына", "тиын"))
    return _capitalize(" ".join(words))


def number_to_words_short(amount: float) -> str:
    """Whole part only, without currency: `1500` -> "Одна тысяча пятьсот"."""
    negative, whole, _ = _split(amount)
    if not negative and whole == 0:
        return "Ноль"
    words = ["минус"] if negative else []
    words += _integer_words(whole)
    return _capitalize(" ".join(words))
