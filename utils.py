from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from tax_calc import money

_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
         "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
         "Seventeen", "Eighteen", "Nineteen"]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# Indian grouping, largest first
_SCALE = [(10000000, "Crore"), (100000, "Lakh"), (1000, "Thousand"), (100, "Hundred")]


def _below_hundred(n: int) -> str:
    if n < 20:
        return _ONES[n]
    word = _TENS[n // 10]
    if n % 10:
        word += "-" + _ONES[n % 10]
    return word


def _in_words(n: int) -> List[str]:
    words: List[str] = []
    for value, name in _SCALE:
        if n >= value:
            words += _in_words(n // value) + [name]
            n %= value
    if n > 0:
        if words:
            words.append("and")
        words.append(_below_hundred(n))
    return words


def to_words(amount) -> str:
    """
    Amount in words using lakh/crore grouping, e.g.
    1500.50 -> "Rupees One Thousand Five Hundred and Fifty Paise Only".
    Only non-negative amounts are supported.
    """
    d = Decimal(str(amount))
    if d == 0:
        return "Zero Rupees Only"
    rupees = int(d)
    paise = int(((d - rupees) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if paise == 100:
        rupees, paise = rupees + 1, 0

    words = ["Rupees"] + (_in_words(rupees) or ["Zero"])
    if paise > 0:
        words += ["and", _below_hundred(paise), "Paise"]
    return " ".join(words + ["Only"])


def fmt_money(val) -> str:
    text = f"{money(val):.2f}"
    return "0.00" if text == "-0.00" else text


def fmt_qty(val) -> str:
    return str(int(val or 0))


def fmt_discount(val) -> str:
    return f"{float(val or 0):.1f}"


def fmt_rate(val) -> str:
    return f"{float(val or 0):.0f}%"


def fmt_date(value) -> str:
    """'2024-03-05' or an ISO timestamp -> '05 Mar 2024'."""
    if isinstance(value, (date, datetime)):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return str(value)
    return parsed.strftime("%d %b %Y")


def license_line(numbers: Iterable[str]) -> str:
    numbers = [n.strip() for n in numbers if n and n.strip()]
    if not numbers:
        return ""
    return "D.L. No: " + ", ".join(numbers)


def phone_list(phone: str) -> List[str]:
    return [p.strip() for p in (phone or "").split(",") if p.strip()]
