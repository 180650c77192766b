"""Heuristic total extraction from recognized receipt text."""

from __future__ import annotations

import re
from collections.abc import Sequence
from decimal import Decimal

from .errors import ExtractionFailed

DEFAULT_KEYWORDS: tuple[str, ...] = ("total", "totaal")

# Two decimal places, dot separator only
_AMOUNT_RE = re.compile(r"\d+\.\d{2}")


def _first_amount(line: str) -> Decimal | None:
    match = _AMOUNT_RE.search(line)
    if match is None:
        return None
    return Decimal(match.group(0))


def _find_keyword_amount(
    lines: list[str], keywords: Sequence[str], whole_word: bool
) -> Decimal | None:
    for keyword in keywords:
        escaped = re.escape(keyword)
        # Digits count as a boundary so OCR-glued "TOTAL12.34" still matches
        pattern = rf"(?<![a-z]){escaped}(?![a-z])" if whole_word else escaped
        keyword_re = re.compile(pattern, re.IGNORECASE)
        for line in lines:
            if not keyword_re.search(line):
                continue
            amount = _first_amount(line)
            if amount is not None:
                return amount
    return None


def extract_total(
    text: str, keywords: Sequence[str] = DEFAULT_KEYWORDS
) -> Decimal:
    """Locate the receipt total in OCR text.

    Search order:
      1. a line with a keyword as a whole word ("Total 12.34"),
      2. a line with a keyword inside a longer word ("Subtotal 10.00"),
      3. the last non-blank line.

    The first ``\\d+.\\d{2}`` substring of the chosen line is returned.
    No currency symbols, thousands separators or decimal commas are handled;
    treat the result as a best guess.

    Raises:
        ExtractionFailed: If no step yields an amount.
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    amount = _find_keyword_amount(lines, keywords, whole_word=True)
    if amount is None:
        amount = _find_keyword_amount(lines, keywords, whole_word=False)
    if amount is None and lines:
        amount = _first_amount(lines[-1])
    if amount is None:
        raise ExtractionFailed("No total amount found in receipt text")
    return amount
