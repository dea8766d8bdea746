"""Identity resolution, fact writing and the parse invocation."""

from factspine.ingest.identity import IdentityResolver
from factspine.ingest.parser_service import ParseOutcome, ParserService
from factspine.ingest.writer import FactWriter, WriteSummary

__all__ = [
    "FactWriter",
    "IdentityResolver",
    "ParseOutcome",
    "ParserService",
    "WriteSummary",
]
