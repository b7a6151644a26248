"""Barcode normalisation for catalog lookups.

Scanners and spreadsheets disagree about the same code: UPC-A arrives as 12
digits or as a 13 digit EAN with a leading zero, sometimes with spaces or
dashes in between. Products store the canonical form and lookups try every
equivalent spelling.
"""

from __future__ import annotations

import re

__all__ = ["normalize_barcode", "barcode_aliases"]


_ALPHA_RE = re.compile(r"[A-Za-z]")
_NON_DIGIT_RE = re.compile(r"\D")
_WHITESPACE_RE = re.compile(r"\s+")


def _strip_and_collapse(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value.strip())


def normalize_barcode(raw: str | None) -> str | None:
    """Return the canonical representation of a barcode.

    * Numeric codes lose punctuation/spacing; 12 digit UPC-A codes become
      13 digit EAN-13 by prefixing a zero.
    * Alphanumeric codes are upper-cased with internal whitespace collapsed.
    """

    if raw is None:
        return None

    cleaned = _strip_and_collapse(raw)
    if not cleaned:
        return None

    if not _ALPHA_RE.search(cleaned):
        digits = _NON_DIGIT_RE.sub("", cleaned)
        if digits:
            if len(digits) == 12:
                digits = "0" + digits
            return digits

    return cleaned.upper()


def barcode_aliases(raw: str | None) -> list[str]:
    """Every stored spelling that should match ``raw``, canonical form first."""

    if raw is None:
        return []

    cleaned = _strip_and_collapse(raw)
    if not cleaned:
        return []

    aliases: list[str] = []

    def add(candidate: str | None) -> None:
        if candidate and candidate not in aliases:
            aliases.append(candidate)

    add(normalize_barcode(cleaned))

    if not _ALPHA_RE.search(cleaned):
        digits = _NON_DIGIT_RE.sub("", cleaned)
        add(digits)
        if len(digits) == 13 and digits.startswith("0"):
            add(digits[1:])

    add(cleaned.upper())
    return aliases
