"""Natural-key normalization and small value coercions shared by the dialects.

Tags:
    factspine, parsing, normalization
"""

from __future__ import annotations

import math
import re

from factspine.core.errors import AmbiguityError

_WHITESPACE = re.compile(r"\s")
_YEAR_TOKEN = re.compile(r"(?<![0-9])([0-9]{4})(?![0-9])")
_ASCII_DIGITS = re.compile(r"[0-9]+")
_PLAIN_NUMBER = re.compile(r"-?[0-9]+(?:\.[0-9]+)?")
_GROUPED = {
    ".": re.compile(r"[0-9]{1,3}(?:\.[0-9]{3})+"),
    ",": re.compile(r"[0-9]{1,3}(?:,[0-9]{3})+"),
}

MIN_YEAR = 1900
MAX_YEAR = 2100


def natural_key(raw: str) -> str:
    """Deterministic identity key for an entity or metric name.

    Trims, lowercases, turns each whitespace character into ``_`` and drops
    everything that is not alphanumeric or ``_``. Accented letters count as
    alphanumeric and are kept.

    >>> natural_key("  Ministerio de Salud  ")
    'ministerio_de_salud'
    >>> natural_key("Subsecretaría de Educación")
    'subsecretaría_de_educación'
    """
    lowered = _WHITESPACE.sub("_", raw.strip().lower())
    return "".join(c for c in lowered if c.isalnum() or c == "_")


def decode_text(data: bytes) -> str:
    """Decode a delimited document as UTF-8, dropping a leading byte-order mark.

    Raises:
        AmbiguityError: If the bytes are not valid UTF-8 (the encoding is
            never guessed)
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise AmbiguityError(
            f"Document is not valid UTF-8 (byte {e.start})", requirement="encoding"
        ) from e


def display_name(raw: str) -> str:
    """Display form of a raw name: surrounding whitespace removed."""
    return raw.strip()


def year_from_source_id(source_id: str) -> int | None:
    """First 4-digit token of *source_id* inside the plausible year range."""
    for match in _YEAR_TOKEN.finditer(source_id):
        year = int(match.group(1))
        if MIN_YEAR <= year <= MAX_YEAR:
            return year
    return None


def parse_year(value: object) -> int | None:
    """Coerce a cell or field to a plausible calendar year."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        year = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        year = int(value)
    else:
        text = str(value).strip()
        if text.endswith(".0"):
            text = text[:-2]
        if not _ASCII_DIGITS.fullmatch(text):
            return None
        year = int(text)
    if MIN_YEAR <= year <= MAX_YEAR:
        return year
    return None


def parse_plain_number(text: str | None) -> float | None:
    """Strict ``[-]digits[.digits]`` reading, ASCII only. No separators, no exponent."""
    if text is None or not _PLAIN_NUMBER.fullmatch(text):
        return None
    return float(text)


def _separator_roles(text: str) -> tuple[str | None, str | None]:
    """Return ``(thousands_mark, decimal_mark)`` for a separator-bearing number."""
    if "," in text and "." in text:
        # Whichever comes last is the decimal mark
        return (".", ",") if text.rfind(",") > text.rfind(".") else (",", ".")
    for mark in (",", "."):
        count = text.count(mark)
        if count > 1:
            return mark, None
        if count == 1:
            head, _, tail = text.partition(mark)
            # One to three leading digits and a 3-digit group: 1.234 / 12,500
            if len(tail) == 3 and 1 <= len(head) <= 3 and not head.startswith("0"):
                return mark, None
            return None, mark
    return None, None


def parse_amount(value: object) -> float | None:
    """Coerce a numeric cell or numeric-looking string to ``float``.

    Strings may carry thousands separators (``1,234,567``, ``1.234.567`` or a
    single group such as ``1.234``), a decimal mark, a currency sign and
    surrounding spaces. A lone separator followed by exactly three digits is a
    thousands mark; any other lone separator is the decimal mark. Thousands
    groups must be well formed. Anything else is ``None``.

    >>> parse_amount("1.234")
    1234.0
    >>> parse_amount("12,5")
    12.5
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
        return amount if math.isfinite(amount) else None

    text = str(value).strip().replace("$", "").replace(" ", "")
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    if not text:
        return None

    thousands, decimal = _separator_roles(text)
    whole, _, fraction = text.partition(decimal) if decimal else (text, "", "")
    if thousands:
        if not _GROUPED[thousands].fullmatch(whole):
            return None
        whole = whole.replace(thousands, "")
    if not _ASCII_DIGITS.fullmatch(whole):
        return None
    if decimal and not _ASCII_DIGITS.fullmatch(fraction):
        return None

    amount = float(f"{whole}.{fraction}" if decimal else whole)
    return -amount if negative else amount


__all__ = [
    "MAX_YEAR",
    "MIN_YEAR",
    "decode_text",
    "display_name",
    "natural_key",
    "parse_amount",
    "parse_plain_number",
    "parse_year",
    "year_from_source_id",
]
