"""
Write-once blob area for raw artifact bytes.

Manifesto:
    The blob area holds the byte-identical evidence every Fact points back
    to. It is addressed by artifact id and never rewritten:
    - **Write-once:** ``put`` refuses to overwrite an existing object
    - **Id-addressed:** the location is derived from the artifact id only
    - **Opaque location:** callers store the returned location verbatim and
      hand it back to ``get``

    Writes go to a temporary sibling first and are renamed into place, so a
    crash never leaves a truncated blob under a final name.

Architecture:
    ::

        BlobStore (Protocol)
          └── FilesystemBlobStore   <root>/<artifact_id>.raw

Tags:
    factspine, storage, blob, filesystem, protocol

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from factspine.core.errors import ConfigError, StorageError
from factspine.core.logging import get_logger

logger = get_logger(__name__)

BLOB_SUFFIX = ".raw"


@runtime_checkable
class BlobStore(Protocol):
    """Durable write-once object store addressed by artifact id."""

    kind: str

    def put(self, artifact_id: str, data: bytes) -> str:
        """Persist *data* for *artifact_id* and return its storage location."""
        ...

    def get(self, location: str) -> bytes:
        """Read back the exact bytes stored at *location*."""
        ...


class FilesystemBlobStore:
    """Blob area on the local filesystem.

    Objects are stored as ``<root>/<artifact_id>.raw``; the location handed
    back to callers is that path as a string.
    """

    kind = "fs"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, artifact_id: str) -> Path:
        # Ids are generated, but a path separator would escape the root
        if not artifact_id or artifact_id in (".", "..") or any(c in artifact_id for c in "/\\"):
            raise StorageError(f"Invalid artifact id for blob path: {artifact_id!r}")
        return self.root / f"{artifact_id}{BLOB_SUFFIX}"

    def put(self, artifact_id: str, data: bytes) -> str:
        path = self.path_for(artifact_id)
        if path.exists():
            raise StorageError(f"Blob already exists: {path}").with_context(
                artifact_id=artifact_id, path=str(path)
            )

        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write blob {path}: {e}", cause=e).with_context(
                artifact_id=artifact_id, path=str(path)
            ) from e

        logger.debug("blob_written", artifact_id=artifact_id, path=str(path), size_bytes=len(data))
        return str(path)

    def get(self, location: str) -> bytes:
        try:
            return Path(location).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read blob {location}: {e}", cause=e).with_context(
                path=location
            ) from e

    def exists(self, artifact_id: str) -> bool:
        return self.path_for(artifact_id).exists()


def create_blob_store(kind: str, fs_dir: str | Path) -> BlobStore:
    """Build the blob store named by the ``raw_store`` setting."""
    if kind == FilesystemBlobStore.kind:
        return FilesystemBlobStore(fs_dir)
    raise ConfigError(f"Unsupported raw store: {kind!r}").with_context(raw_store=kind)


__all__ = ["BLOB_SUFFIX", "BlobStore", "FilesystemBlobStore", "create_blob_store"]
