"""
Spreadsheet workbook dialect (first sheet, header on row 0).

Columns are located by case-insensitive substring match against fixed
candidate lists, tried in list order:

    entity    entidad, organismo, institucion, institución, servicio, entity   (required)
    amount    monto, amount, valor, importe                                    (required)
    year      año, anio, year, periodo, ejercicio                              (optional)
    category  categoria, categoría, category, subtitulo, subtítulo, item       (optional)

When no year column exists the year comes from a 4-digit token in the
source id. If neither yields a year, or the entity/amount column is absent,
the parse halts with :class:`AmbiguityError`.

Rows are numbered from the header (row 0); the first data row is row 1.
A row without an entity, or with a zero or unreadable amount, is skipped.

Workbooks are read with openpyxl, so only the Office Open XML formats
(``.xlsx``/``.xlsm``) can be opened; a legacy ``.xls`` file halts the parse.

Tags:
    factspine, parsing, spreadsheet, openpyxl, dialect
"""

from __future__ import annotations

import io
import zipfile
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from factspine.core.errors import AmbiguityError, RowSkipped
from factspine.core.rejects import RejectCollector
from factspine.parsing.normalize import (
    display_name,
    natural_key,
    parse_amount,
    parse_year,
    year_from_source_id,
)
from factspine.parsing.types import FactCandidate, ParseResult, calendar_year, metric_for_source

STAGE = "spreadsheet"
METHOD = "spreadsheet/v1"

ENTITY_CANDIDATES = ("entidad", "organismo", "institucion", "institución", "servicio", "entity")
AMOUNT_CANDIDATES = ("monto", "amount", "valor", "importe")
YEAR_CANDIDATES = ("año", "anio", "year", "periodo", "ejercicio")
CATEGORY_CANDIDATES = ("categoria", "categoría", "category", "subtitulo", "subtítulo", "item")


def _location(sheet: str, row: int) -> str:
    return f"xls:sheet='{sheet}':row={row}"


def _find_column(
    headers: list[str], candidates: tuple[str, ...], taken: set[int]
) -> int | None:
    for candidate in candidates:
        for index, header in enumerate(headers):
            if index not in taken and candidate in header:
                return index
    return None


def _cell(row: tuple[Any, ...], index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _open_first_sheet(data: bytes):
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise AmbiguityError(
            f"Cannot open workbook (only .xlsx/.xlsm are readable): {e}",
            requirement="workbook",
        ) from e
    if not workbook.worksheets:
        workbook.close()
        raise AmbiguityError("Workbook has no sheets", requirement="sheet")
    return workbook, workbook.worksheets[0]


def parse_spreadsheet(data: bytes, source_id: str) -> ParseResult:
    """Parse the first sheet of a workbook into fact candidates, in row order.

    Raises:
        AmbiguityError: Unreadable workbook, or entity/amount/year cannot be
            located by the fixed rules
    """
    workbook, sheet = _open_first_sheet(data)
    try:
        sheet_name = sheet.title
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            raise AmbiguityError(f"Sheet {sheet_name!r} is empty", requirement="header")
        headers = [_text(h).lower() for h in header_row]

        taken: set[int] = set()
        entity_col = _find_column(headers, ENTITY_CANDIDATES, taken)
        if entity_col is None:
            raise AmbiguityError(
                f"No entity column in sheet {sheet_name!r} "
                f"(looked for: {', '.join(ENTITY_CANDIDATES)})",
                requirement="entity column",
            )
        taken.add(entity_col)

        amount_col = _find_column(headers, AMOUNT_CANDIDATES, taken)
        if amount_col is None:
            raise AmbiguityError(
                f"No amount column in sheet {sheet_name!r} "
                f"(looked for: {', '.join(AMOUNT_CANDIDATES)})",
                requirement="amount column",
            )
        taken.add(amount_col)

        year_col = _find_column(headers, YEAR_CANDIDATES, taken)
        if year_col is not None:
            taken.add(year_col)
        category_col = _find_column(headers, CATEGORY_CANDIDATES, taken)

        source_year = None
        if year_col is None:
            source_year = year_from_source_id(source_id)
            if source_year is None:
                raise AmbiguityError(
                    f"No year column in sheet {sheet_name!r} and no year in source id "
                    f"{source_id!r}",
                    requirement="year",
                )

        metric = metric_for_source(source_id)
        rejects = RejectCollector(STAGE)
        candidates: list[FactCandidate] = []

        for row_number, row in enumerate(rows, start=1):
            if all(cell is None or _text(cell) == "" for cell in row):
                continue
            location = _location(sheet_name, row_number)
            try:
                entity = _text(_cell(row, entity_col))
                if not entity:
                    raise RowSkipped("Missing entity", reason_code="MISSING_ENTITY")

                amount = parse_amount(_cell(row, amount_col))
                if amount is None:
                    raise RowSkipped(
                        f"Unreadable amount {_cell(row, amount_col)!r}", reason_code="BAD_AMOUNT"
                    )
                if amount == 0:
                    raise RowSkipped("Zero amount", reason_code="ZERO_AMOUNT")

                year = source_year
                if year_col is not None:
                    year = parse_year(_cell(row, year_col))
                    if year is None:
                        raise RowSkipped(
                            f"Invalid year {_cell(row, year_col)!r}", reason_code="BAD_YEAR"
                        )
            except RowSkipped as e:
                e.with_context(location=location)
                rejects.skip(e, line_number=row_number, raw_data=list(row))
                continue

            category = _text(_cell(row, category_col))
            period_start, period_end = calendar_year(year)
            candidates.append(
                FactCandidate(
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
            )
    finally:
        workbook.close()

    return ParseResult(candidates=candidates, rejects=rejects.rejects, method=METHOD)


__all__ = ["METHOD", "parse_spreadsheet"]
