"""
Generic comma-delimited budget CSV.

One data row becomes one fact. Columns are found by header name, each
semantic column accepting a few spellings:

    entity    entidad | entity | organismo      (required)
    category  categoria | category | item       (optional, goes to dims)
    year      anio | year | periodo             (required)
    amount    monto | amount | valor            (required)

Header names are compared after trimming and lowercasing. A header that
lacks a required column, or names one twice through different aliases, halts
the parse. A single row that cannot be read is skipped and recorded as a
reject.

Example input::

    entidad,categoria,anio,monto
    Ministerio de Salud,Personal,2024,1500000
    Ministerio de Educación,Bienes,2024,980000.5

produces facts located at ``csv:line=2`` and ``csv:line=3``.

Tags:
    factspine, parsing, csv, dialect
"""

from __future__ import annotations

import csv
import io

from factspine.core.errors import AmbiguityError, RowSkipped
from factspine.core.rejects import RejectCollector
from factspine.parsing.normalize import (
    decode_text,
    display_name,
    natural_key,
    parse_plain_number,
    parse_year,
)
from factspine.parsing.types import FactCandidate, ParseResult, calendar_year, metric_for_source

STAGE = "generic_csv"
METHOD = "generic_csv/v1"

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "entity": ("entidad", "entity", "organismo"),
    "category": ("categoria", "category", "item"),
    "year": ("anio", "year", "periodo"),
    "amount": ("monto", "amount", "valor"),
}
REQUIRED_COLUMNS = ("entity", "year", "amount")


def _location(line: int) -> str:
    return f"csv:line={line}"


def _map_header(header: list[str]) -> dict[str, int]:
    normalized = [h.strip().lower() for h in header]
    columns: dict[str, int] = {}
    for semantic, aliases in HEADER_ALIASES.items():
        matches = [i for i, h in enumerate(normalized) if h in aliases]
        if len(matches) > 1:
            names = ", ".join(header[i].strip() for i in matches)
            raise AmbiguityError(
                f"Columns {names} all map to {semantic!r}", requirement=f"{semantic} column"
            )
        if matches:
            columns[semantic] = matches[0]

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise AmbiguityError(
            f"Header has no {', '.join(missing)} column "
            f"(accepted: {'; '.join('/'.join(HEADER_ALIASES[m]) for m in missing)})",
            requirement=f"{missing[0]} column",
        )
    return columns


def _field(row: list[str], index: int | None) -> str | None:
    if index is None or index >= len(row):
        return None
    return row[index].strip()


def _read_row(
    row: list[str], columns: dict[str, int], line: int, source_id: str
) -> FactCandidate:
    location = _location(line)

    entity = _field(row, columns["entity"])
    if not entity:
        raise RowSkipped("Missing entity", reason_code="MISSING_ENTITY").with_context(
            location=location
        )

    year_text = _field(row, columns["year"])
    year = parse_year(year_text) if year_text and year_text.isdigit() else None
    if year is None:
        raise RowSkipped(f"Invalid year {year_text!r}", reason_code="BAD_YEAR").with_context(
            location=location
        )

    amount_text = _field(row, columns["amount"])
    amount = parse_plain_number(amount_text)
    if amount is None:
        raise RowSkipped(
            f"Invalid amount {amount_text!r}", reason_code="BAD_AMOUNT"
        ).with_context(location=location)

    category = _field(row, columns.get("category"))
    metric = metric_for_source(source_id)
    period_start, period_end = calendar_year(year)

    return FactCandidate(
        entity_key=natural_key(entity),
        entity_name=display_name(entity),
        metric_key=metric.key,
        metric_name=metric.name,
        unit=metric.unit,
        period_start=period_start,
        period_end=period_end,
        value=amount,
        location=location,
        dims={"category": category} if category else {},
    )


def parse_generic_csv(data: bytes, source_id: str) -> ParseResult:
    """Parse a generic budget CSV into fact candidates, in file order.

    Raises:
        AmbiguityError: Undecodable bytes, empty document, or a header that
            does not name the required columns exactly once
    """
    reader = csv.reader(io.StringIO(decode_text(data), newline=""))
    header = next(reader, None)
    if not header:
        raise AmbiguityError("Document has no header line", requirement="header")
    columns = _map_header(header)

    rejects = RejectCollector(STAGE)
    candidates: list[FactCandidate] = []
    while True:
        # First physical line of the record, header is line 1
        line = reader.line_num + 1
        row = next(reader, None)
        if row is None:
            break
        if not any(cell.strip() for cell in row):
            continue
        try:
            candidates.append(_read_row(row, columns, line, source_id))
        except RowSkipped as e:
            rejects.skip(e, line_number=line, raw_data=row)

    return ParseResult(candidates=candidates, rejects=rejects.rejects, method=METHOD)


__all__ = ["HEADER_ALIASES", "METHOD", "parse_generic_csv"]
