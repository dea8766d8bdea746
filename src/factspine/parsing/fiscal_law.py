"""
Named dialect ``dipres_ley``: the budget-law (Ley de Presupuestos) CSV export.

Manifesto:
    This export has a fixed published layout, so it is read by exact rule
    and nothing else:
    - **Exact header:** the 9 header fields must equal ``HEADER`` in order
      and spelling, otherwise the parse halts
    - **Integer amounts:** ``Monto Pesos`` is an integer in thousands of
      pesos; ``Monto Dolar`` likewise, blank meaning zero
    - **Aggregated:** one fact per ``Partida`` (ministry-level code), the sum
      of every row carrying that code
    - **Order-independent:** output is sorted by entity key then code, so
      shuffling the input rows changes nothing but the line ranges

Architecture:
    ::

        bytes ─▶ decode (BOM stripped) ─▶ csv(;) ─▶ header == HEADER ?
                                                     │ no ─▶ AmbiguityError
                                                     ▼
              rows ─▶ field count == 9 ? ─ no ─▶ RowSkipped (reject)
                       │
                       ▼
              group by Partida (first Denominacion wins)
                       │
                       ▼
              FactCandidate per code, value = 1000 * Σ Monto Pesos
              location = dipres_ley:partida=<code>:lines=<first>-<last>:rows=<n>

Tags:
    factspine, parsing, csv, dialect, aggregation, fiscal-law
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass

from factspine.core.errors import AmbiguityError, RowSkipped
from factspine.core.rejects import RejectCollector
from factspine.parsing.normalize import (
    decode_text,
    display_name,
    natural_key,
    year_from_source_id,
)
from factspine.parsing.types import (
    FactCandidate,
    MetricSpec,
    ParseResult,
    calendar_year,
)

DIALECT = "dipres_ley"
METHOD = "dipres_ley/v1"

HEADER = (
    "Partida",
    "Capitulo",
    "Programa",
    "Subtitulo",
    "Item",
    "Asignacion",
    "Denominacion",
    "Monto Pesos",
    "Monto Dolar",
)
CODE_FIELD = HEADER.index("Partida")
NAME_FIELD = HEADER.index("Denominacion")
PESOS_FIELD = HEADER.index("Monto Pesos")
DOLAR_FIELD = HEADER.index("Monto Dolar")

_INTEGER = re.compile(r"-?[0-9]+")

# Source amounts are in thousands
AMOUNT_MULTIPLIER = 1000

METRIC = MetricSpec("presupuesto_ley", "Presupuesto Ley")


@dataclass
class _PartidaGroup:
    code: str
    name: str
    first_line: int
    last_line: int
    rows: int = 0
    pesos: int = 0
    dolar: int = 0

    def add(self, line: int, pesos: int, dolar: int) -> None:
        self.first_line = min(self.first_line, line)
        self.last_line = max(self.last_line, line)
        self.rows += 1
        self.pesos += pesos
        self.dolar += dolar


def _parse_int(text: str, field_name: str, *, blank_is_zero: bool = False) -> int:
    value = text.strip()
    if not value and blank_is_zero:
        return 0
    # ASCII digits only, no "_" grouping
    if not _INTEGER.fullmatch(value):
        raise RowSkipped(f"{field_name} is not an integer: {text!r}", reason_code="BAD_AMOUNT")
    return int(value)


def parse_fiscal_law(data: bytes, source_id: str) -> ParseResult:
    """Parse a budget-law export into one aggregated fact per ``Partida``.

    Raises:
        AmbiguityError: Undecodable bytes, header not exactly ``HEADER``, or
            no year in *source_id*
    """
    reader = csv.reader(io.StringIO(decode_text(data), newline=""), delimiter=";")
    header = next(reader, None)
    if header is None or tuple(header) != HEADER:
        raise AmbiguityError(
            f"Header mismatch for {DIALECT}: expected {';'.join(HEADER)!r}, "
            f"got {';'.join(header or [])!r}",
            requirement="header",
        )

    year = year_from_source_id(source_id)
    if year is None:
        raise AmbiguityError(
            f"No year in source id {source_id!r} for {DIALECT}", requirement="year"
        ).with_context(source_id=source_id)

    rejects = RejectCollector(DIALECT)
    groups: dict[str, _PartidaGroup] = {}

    while True:
        # First physical line of the record
        line = reader.line_num + 1
        row = next(reader, None)
        if row is None:
            break
        if not any(cell.strip() for cell in row):
            continue
        try:
            if len(row) != len(HEADER):
                raise RowSkipped(
                    f"Expected {len(HEADER)} fields, found {len(row)}",
                    reason_code="FIELD_COUNT",
                )
            code = row[CODE_FIELD].strip()
            if not code:
                raise RowSkipped("Missing Partida code", reason_code="MISSING_CODE")
            if not row[NAME_FIELD].strip():
                raise RowSkipped("Missing Denominacion", reason_code="MISSING_ENTITY")
            pesos = _parse_int(row[PESOS_FIELD], "Monto Pesos")
            dolar = _parse_int(row[DOLAR_FIELD], "Monto Dolar", blank_is_zero=True)
        except RowSkipped as e:
            e.with_context(location=f"{DIALECT}:line={line}")
            rejects.skip(e, line_number=line, raw_data=row)
            continue

        group = groups.get(code)
        if group is None:
            group = groups[code] = _PartidaGroup(
                code=code,
                name=display_name(row[NAME_FIELD]),
                first_line=line,
                last_line=line,
            )
        group.add(line, pesos, dolar)

    period_start, period_end = calendar_year(year)
    ordered = sorted(groups.values(), key=lambda g: (natural_key(g.name), g.code))
    candidates = [
        FactCandidate(
            entity_key=natural_key(group.name),
            entity_name=group.name,
            metric_key=METRIC.key,
            metric_name=METRIC.name,
            unit=METRIC.unit,
            period_start=period_start,
            period_end=period_end,
            value=float(group.pesos * AMOUNT_MULTIPLIER),
            location=(
                f"{DIALECT}:partida={group.code}:lines={group.first_line}-{group.last_line}"
                f":rows={group.rows}"
            ),
            dims={"partida": group.code, "monto_dolar": group.dolar * AMOUNT_MULTIPLIER},
        )
        for group in ordered
    ]
    return ParseResult(candidates=candidates, rejects=rejects.rejects, method=METHOD)


__all__ = ["DIALECT", "HEADER", "METHOD", "parse_fiscal_law"]
