"""
Rejected-row records produced while parsing.

Parsers are pure, so they do not log or write: a malformed row becomes a
:class:`Reject` in a :class:`RejectCollector`, and the parse invocation logs
and summarizes the collected rejects after the fact.

Manifesto:
    Every reject should answer:
    - **Where?** stage + location (``csv:line=7``)
    - **Why?** reason_code + reason_detail
    - **What?** raw_data for reproduction

    The reason_code enables aggregation ("how many BAD_AMOUNT?") while
    reason_detail carries the specific explanation.

Architecture:
    ::

        Dialect parser ──RowSkipped──▶ RejectCollector.skip() ──▶ [Reject, ...]
                                                                     │
        parser_service ◀──────────── ParseResult.rejects ◀───────────┘
            └─ logs "row_skipped" warnings, records count on the JobRun

Tags:
    reject, validation, data-quality, factspine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from factspine.core.errors import RowSkipped


@dataclass(frozen=True)
class Reject:
    """
    A rejected row with classification and debugging info.

    Attributes:
        stage: Dialect that rejected the row (``generic_csv``, ``spreadsheet``...)
        reason_code: Machine-readable code (``MALFORMED_ROW``, ``BAD_AMOUNT``)
        reason_detail: Human-readable explanation
        location: Evidence locator of the rejected row
        line_number: 1-indexed line or 0-indexed sheet row
        raw_data: Original cells, for reproduction
    """

    stage: str
    reason_code: str
    reason_detail: str
    location: str | None = None
    line_number: int | None = None
    raw_data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "stage": self.stage,
            "reason_code": self.reason_code,
            "reason_detail": self.reason_detail,
        }
        if self.location is not None:
            result["location"] = self.location
        if self.line_number is not None:
            result["line_number"] = self.line_number
        return result


@dataclass
class RejectCollector:
    """Accumulates rejects for one parse, in input order."""

    stage: str
    rejects: list[Reject] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of rejects collected."""
        return len(self.rejects)

    def skip(
        self,
        error: RowSkipped,
        *,
        line_number: int | None = None,
        raw_data: Any = None,
    ) -> Reject:
        """Record a skipped row from the ``RowSkipped`` raised while reading it."""
        reject = Reject(
            stage=self.stage,
            reason_code=error.reason_code,
            reason_detail=error.message,
            location=error.context.location,
            line_number=line_number,
            raw_data=raw_data,
        )
        self.rejects.append(reject)
        return reject


__all__ = ["Reject", "RejectCollector"]
