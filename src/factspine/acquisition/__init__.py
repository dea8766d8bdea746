"""Artifact acquisition: fetch, deduplicate, store, register."""

from factspine.acquisition.controller import (
    AcquisitionController,
    AcquisitionOutcome,
    BatchReport,
    SourceBatchResult,
    UrlResult,
)
from factspine.acquisition.fetcher import FetchedDocument, HttpFetcher
from factspine.acquisition.manifest import ManifestSource, ManifestUrl, SourceManifest
from factspine.acquisition.rate_limit import FixedDelayRateLimiter

__all__ = [
    "AcquisitionController",
    "AcquisitionOutcome",
    "BatchReport",
    "FetchedDocument",
    "FixedDelayRateLimiter",
    "HttpFetcher",
    "ManifestSource",
    "ManifestUrl",
    "SourceBatchResult",
    "SourceManifest",
    "UrlResult",
]
