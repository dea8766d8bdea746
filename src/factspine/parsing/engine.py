"""Parsing engine: dispatch a document to its dialect parser.

``parse`` is pure. It reads no clock, draws no randomness and touches no
storage; identical bytes, source id and format always yield an identical,
identically ordered :class:`ParseResult`.

Example::

    fmt = detect_format(mime_type="text/csv", source_id="presupuesto_2024")
    result = parse(data, "presupuesto_2024", fmt)
    for candidate in result.candidates:
        print(candidate.location, candidate.value)

Tags:
    factspine, parsing, engine, dispatch
"""

from __future__ import annotations

from collections.abc import Callable

from factspine.core.errors import AmbiguityError, NoFactsParsedError
from factspine.parsing.detector import detect_format
from factspine.parsing.fiscal_law import DIALECT as FISCAL_LAW_DIALECT
from factspine.parsing.fiscal_law import parse_fiscal_law
from factspine.parsing.generic_csv import parse_generic_csv
from factspine.parsing.spreadsheet import parse_spreadsheet
from factspine.parsing.types import DocumentFormat, FormatKind, ParseResult

DialectParser = Callable[[bytes, str], ParseResult]

_FORMAT_PARSERS: dict[FormatKind, DialectParser] = {
    FormatKind.GENERIC_CSV: parse_generic_csv,
    FormatKind.SPREADSHEET: parse_spreadsheet,
}
_NAMED_PARSERS: dict[str, DialectParser] = {
    FISCAL_LAW_DIALECT: parse_fiscal_law,
}


def parser_for(fmt: DocumentFormat) -> DialectParser:
    """Return the pure parse function for *fmt*."""
    if fmt.kind is FormatKind.NAMED_DIALECT:
        parser = _NAMED_PARSERS.get(fmt.dialect or "")
        if parser is None:
            raise AmbiguityError(f"Unknown named dialect {fmt.dialect!r}", requirement="dialect")
        return parser
    return _FORMAT_PARSERS[fmt.kind]


def parse(data: bytes, source_id: str, fmt: DocumentFormat | None = None) -> ParseResult:
    """Parse *data* into ordered fact candidates.

    Without *fmt* the format is detected from *source_id* alone.

    Raises:
        AmbiguityError: The dialect could not interpret the document
        NoFactsParsedError: Every row was skipped
    """
    if fmt is None:
        fmt = detect_format(mime_type=None, source_id=source_id)

    result = parser_for(fmt)(data, source_id)
    if not result.candidates:
        raise NoFactsParsedError(
            f"No facts parsed from artifact ({result.rows_skipped} rows skipped)"
        ).with_context(source_id=source_id, format=fmt.name, rows_skipped=result.rows_skipped)
    return result


__all__ = ["DialectParser", "parse", "parser_for"]
