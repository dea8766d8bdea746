"""Tests for the write-once filesystem blob store."""

from __future__ import annotations

import pytest

from factspine.core.errors import ConfigError, StorageError
from factspine.storage.blob import BlobStore, FilesystemBlobStore, create_blob_store


class TestFilesystemBlobStore:
    def test_put_get_roundtrip(self, tmp_path):
        store = FilesystemBlobStore(tmp_path / "raw")
        location = store.put("abc", b"entidad,anio,monto\n")

        assert location == str(tmp_path / "raw" / "abc.raw")
        assert store.get(location) == b"entidad,anio,monto\n"
        assert store.exists("abc")
        assert not list((tmp_path / "raw").glob(".*.tmp"))

    def test_write_once(self, tmp_path):
        store = FilesystemBlobStore(tmp_path)
        store.put("abc", b"first")
        with pytest.raises(StorageError, match="already exists"):
            store.put("abc", b"second")
        assert store.get(str(tmp_path / "abc.raw")) == b"first"

    def test_missing_blob(self, tmp_path):
        store = FilesystemBlobStore(tmp_path)
        with pytest.raises(StorageError) as exc_info:
            store.get(str(tmp_path / "missing.raw"))
        assert exc_info.value.cause is not None

    @pytest.mark.parametrize("bad_id", ["", "..", "a/b", "a\\b"])
    def test_rejects_path_like_ids(self, tmp_path, bad_id):
        with pytest.raises(StorageError):
            FilesystemBlobStore(tmp_path).put(bad_id, b"x")

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(FilesystemBlobStore(tmp_path), BlobStore)


class TestFactory:
    def test_fs(self, tmp_path):
        store = create_blob_store("fs", tmp_path)
        assert store.kind == "fs"

    def test_unsupported(self, tmp_path):
        with pytest.raises(ConfigError):
            create_blob_store("s3", tmp_path)
