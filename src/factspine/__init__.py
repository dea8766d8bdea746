"""
factspine: evidence-preserving ingestion of public budget disclosures.

Raw documents are captured as content-addressed artifacts, parsed by
deterministic dialect parsers into canonical facts, and every fact keeps a
provenance link back to the exact artifact and row it came from.

Packages
--------
core         errors, hashing, logging, settings, ORM store, repositories
storage      write-once blob area
acquisition  rate-limited fetcher, batch manifest, acquisition controller
parsing      format detector and the dialect parsers
ingest       identity resolution, fact writer, parse invocation
cli          ``factspine`` command line
"""

__version__ = "0.3.0"
