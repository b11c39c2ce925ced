"""Amounts in words using the Indian numbering system (thousand, lakh, crore)."""
from __future__ import annotations

import math

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _below_thousand(n: int) -> str:
    parts: list[str] = []
    if n >= 100:
        parts.append(f"{ONES[n // 100]} Hundred")
        n %= 100
    if n >= 20:
        parts.append(TENS[n // 10] + (f" {ONES[n % 10]}" if n % 10 else ""))
    elif n:
        parts.append(ONES[n])
    return " ".join(parts)


def number_to_words(num: int) -> str:
    n = int(num)
    if n == 0:
        return "Zero"
    if n < 0:
        return "Minus " + number_to_words(-n)
    parts: list[str] = []
    if n >= 10_000_000:
        parts.append(f"{number_to_words(n // 10_000_000)} Crore")
        n %= 10_000_000
    if n >= 100_000:
        parts.append(f"{_below_thousand(n // 100_000)} Lakh")
        n %= 100_000
    if n >= 1000:
        parts.append(f"{_below_thousand(n // 1000)} Thousand")
        n %= 1000
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def amount_in_words(amount: float, currency_label: str = "Rupees") -> str:
    """Whole units only: 1200.75 -> 'One Thousand Two Hundred Rupees Only'."""
    return f"{number_to_words(math.floor(amount or 0))} {currency_label} Only"
