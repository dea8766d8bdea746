"""Deterministic document parsing: format detection and dialect parsers."""

from factspine.parsing.detector import detect_format
from factspine.parsing.engine import parse, parser_for
from factspine.parsing.normalize import natural_key
from factspine.parsing.types import (
    DocumentFormat,
    FactCandidate,
    FormatKind,
    MetricSpec,
    ParseResult,
)

__all__ = [
    "DocumentFormat",
    "FactCandidate",
    "FormatKind",
    "MetricSpec",
    "ParseResult",
    "detect_format",
    "natural_key",
    "parse",
    "parser_for",
]
