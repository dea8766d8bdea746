"""
Deterministic content digests for artifact deduplication and evidence checks.

Manifesto:
    An artifact is identified, for deduplication purposes, by the digest of
    its exact bytes:
    - **Byte-exact:** No normalization, no decoding, no trimming
    - **Deterministic:** Same bytes always produce the same digest
    - **Self-describing:** The algorithm is part of the value (``sha256:``)

    The same function is used at acquisition time (dedup key) and at audit
    time (re-hash the stored blob and compare), so a mismatch can only mean
    the stored bytes changed.

Examples:
    >>> content_digest(b"entidad,anio,monto\\n")
    'sha256:...'
    >>> content_digest(b"a") == content_digest(b"a")
    True

Tags:
    hashing, deduplication, evidence, factspine
"""

from __future__ import annotations

import hashlib

DIGEST_ALGORITHM = "sha256"


def content_digest(data: bytes) -> str:
    """
    Compute the content digest of a full byte blob.

    Args:
        data: Raw document bytes exactly as received

    Returns:
        ``"sha256:<64 hex chars>"``
    """
    return f"{DIGEST_ALGORITHM}:{hashlib.sha256(data).hexdigest()}"


def digests_match(data: bytes, expected: str) -> bool:
    """Return True when *data* hashes to *expected*."""
    return content_digest(data) == expected


__all__ = ["DIGEST_ALGORITHM", "content_digest", "digests_match"]
