"""Raw evidence storage and the artifact registry."""

from factspine.storage.blob import BlobStore, FilesystemBlobStore, create_blob_store
from factspine.storage.registry import ArtifactRegistry, IntegrityReport

__all__ = [
    "ArtifactRegistry",
    "BlobStore",
    "FilesystemBlobStore",
    "IntegrityReport",
    "create_blob_store",
]
