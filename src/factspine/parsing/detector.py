"""Format detection for registered artifacts.

Pure classification from metadata only: mime type, file suffix (of the
storage location and of the source URL) and source identifier. The bytes are
never sniffed, so the same artifact row always maps to the same parser.

Rules, first match wins:

1. Spreadsheet mime type or ``.xlsx``/``.xlsm``/``.xls`` suffix -> ``spreadsheet``
2. ``source_id`` starts with a named dialect prefix -> that dialect
3. Anything else -> ``generic_csv``

Tags:
    factspine, parsing, detection
"""

from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import urlparse

from factspine.parsing.types import DocumentFormat

SPREADSHEET_MIME_TYPES = frozenset(
    {
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel.sheet.macroenabled.12",
        "application/vnd.ms-excel",
    }
)
SPREADSHEET_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})

# Named dialects keyed by source-identifier prefix
NAMED_DIALECT_PREFIXES: dict[str, str] = {
    "dipres_ley": "dipres_ley",
}


def _base_mime(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def _suffix(path_or_url: str | None) -> str:
    if not path_or_url:
        return ""
    path = urlparse(path_or_url).path if "://" in path_or_url else path_or_url
    return PurePosixPath(path.replace("\\", "/")).suffix.lower()


def detect_format(
    *,
    mime_type: str | None,
    source_id: str,
    storage_location: str | None = None,
    url: str | None = None,
) -> DocumentFormat:
    """Classify an artifact into the format whose parser will read it."""
    suffixes = {_suffix(storage_location), _suffix(url)}
    if _base_mime(mime_type) in SPREADSHEET_MIME_TYPES or suffixes & SPREADSHEET_SUFFIXES:
        return DocumentFormat.spreadsheet()

    for prefix, dialect in NAMED_DIALECT_PREFIXES.items():
        if source_id.startswith(prefix):
            return DocumentFormat.named(dialect)

    return DocumentFormat.generic_csv()


__all__ = [
    "NAMED_DIALECT_PREFIXES",
    "SPREADSHEET_MIME_TYPES",
    "SPREADSHEET_SUFFIXES",
    "detect_format",
]
