"""
Value types shared by the format detector, the dialect parsers and the writer.

Manifesto:
    A parser's output is plain data. ``FactCandidate`` carries everything the
    writer needs to resolve identities and insert a Fact + Provenance pair,
    and nothing that would require I/O to compute. ``DocumentFormat`` is the
    tagged variant chosen once per artifact; the dialect set is fixed, so it
    is a closed enum rather than a registry.

Architecture:
    ::

        DocumentFormat(kind, dialect)
          ├── GENERIC_CSV   "generic_csv"
          ├── SPREADSHEET   "spreadsheet"
          └── NAMED_DIALECT "dipres_ley", ...

        ParseResult
          ├── candidates: [FactCandidate, ...]   (ordered)
          ├── rejects:    [Reject, ...]          (RowSkipped records)
          └── method:     "generic_csv/v1"

Tags:
    factspine, parsing, types, dataclass

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from factspine.core.rejects import Reject

ENTITY_TYPE_ORGANISMO = "organismo"
UNIT_CLP = "CLP"


class FormatKind(str, Enum):
    """The closed set of document formats."""

    GENERIC_CSV = "generic_csv"
    SPREADSHEET = "spreadsheet"
    NAMED_DIALECT = "named_dialect"


@dataclass(frozen=True)
class DocumentFormat:
    """Format chosen for one artifact.

    ``dialect`` is only set for :attr:`FormatKind.NAMED_DIALECT`.
    """

    kind: FormatKind
    dialect: str | None = None

    @property
    def name(self) -> str:
        """Short tag used in provenance ``method`` and JobRun detail."""
        if self.kind is FormatKind.NAMED_DIALECT and self.dialect:
            return self.dialect
        return self.kind.value

    @classmethod
    def generic_csv(cls) -> DocumentFormat:
        return cls(FormatKind.GENERIC_CSV)

    @classmethod
    def spreadsheet(cls) -> DocumentFormat:
        return cls(FormatKind.SPREADSHEET)

    @classmethod
    def named(cls, dialect: str) -> DocumentFormat:
        return cls(FormatKind.NAMED_DIALECT, dialect)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FactCandidate:
    """
    One canonical numeric observation, before identity resolution.

    Attributes:
        entity_key: Normalized natural key of the entity
        entity_name: Display name as first seen in the document
        metric_key: Natural key of the metric
        metric_name: Metric display name
        unit: Unit of ``value`` (``CLP``)
        period_start: First day of the period
        period_end: Last day of the period
        value: Numeric value in ``unit``
        location: Evidence locator inside the artifact
        dims: Secondary dimensions (e.g. ``{"category": "..."}``)
        entity_type: Entity classification
    """

    entity_key: str
    entity_name: str
    metric_key: str
    metric_name: str
    unit: str
    period_start: datetime.date
    period_end: datetime.date
    value: float
    location: str
    dims: dict[str, Any] = field(default_factory=dict)
    entity_type: str = ENTITY_TYPE_ORGANISMO


@dataclass
class ParseResult:
    """Ordered output of one dialect parse."""

    candidates: list[FactCandidate]
    rejects: list[Reject] = field(default_factory=list)
    method: str = ""

    @property
    def facts_count(self) -> int:
        return len(self.candidates)

    @property
    def rows_skipped(self) -> int:
        return len(self.rejects)


@dataclass(frozen=True)
class MetricSpec:
    """Metric identity a dialect assigns to the values it reads."""

    key: str
    name: str
    unit: str = UNIT_CLP


# Substring of source_id -> metric, checked in order
SOURCE_METRICS: tuple[tuple[str, MetricSpec], ...] = (
    ("presupuesto", MetricSpec("presupuesto_ejecutado", "Presupuesto Ejecutado")),
    ("gasto", MetricSpec("gasto_total", "Gasto Total")),
    ("dotacion", MetricSpec("dotacion", "Dotación de Personal")),
)
FALLBACK_METRIC = MetricSpec("monto", "Monto")


def metric_for_source(source_id: str) -> MetricSpec:
    """Pick the metric from a fixed vocabulary by substring match on *source_id*."""
    lowered = source_id.lower()
    for token, metric in SOURCE_METRICS:
        if token in lowered:
            return metric
    return FALLBACK_METRIC


def calendar_year(year: int) -> tuple[datetime.date, datetime.date]:
    """Period covering the whole calendar *year* (Jan 1 to Dec 31)."""
    return datetime.date(year, 1, 1), datetime.date(year, 12, 31)


__all__ = [
    "DocumentFormat",
    "ENTITY_TYPE_ORGANISMO",
    "FALLBACK_METRIC",
    "FactCandidate",
    "FormatKind",
    "MetricSpec",
    "ParseResult",
    "SOURCE_METRICS",
    "UNIT_CLP",
    "calendar_year",
    "metric_for_source",
]
