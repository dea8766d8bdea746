"""
Tests for factspine.core.hashing module.

Tests cover:
- Digest format
- Byte-exact determinism
- Evidence comparison
"""

import hashlib

from factspine.core.hashing import content_digest, digests_match


class TestContentDigest:
    def test_format(self):
        digest = content_digest(b"entidad,anio,monto\n")
        algorithm, _, hexdigest = digest.partition(":")
        assert algorithm == "sha256"
        assert len(hexdigest) == 64

    def test_matches_sha256(self):
        data = b"Ministerio de Salud;2024;100"
        assert content_digest(data) == "sha256:" + hashlib.sha256(data).hexdigest()

    def test_deterministic(self):
        assert content_digest(b"abc") == content_digest(b"abc")

    def test_byte_exact(self):
        """No normalization: a trailing newline or BOM changes the digest."""
        assert content_digest(b"abc") != content_digest(b"abc\n")
        assert content_digest(b"abc") != content_digest(b"\xef\xbb\xbfabc")

    def test_empty(self):
        assert content_digest(b"") == "sha256:" + hashlib.sha256(b"").hexdigest()


def test_digests_match():
    digest = content_digest(b"evidence")
    assert digests_match(b"evidence", digest)
    assert not digests_match(b"evidenc3", digest)
