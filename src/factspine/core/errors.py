"""
Structured error types for factspine.

A closed hierarchy of typed errors carrying enough context for the caller to
branch on *kind* rather than substring-matching messages, and for the
invocation boundary to persist a faithful failure record (Artifact
``parse_error``, JobRun ``error``).

Manifesto:
    - **Closed kinds:** Every failure is one of NETWORK, STORAGE, AMBIGUITY
      or ROW_SKIPPED. Nothing else crosses a component boundary.
    - **Halt over guess:** ``AmbiguityError`` is raised whenever a fixed rule
      cannot decide an interpretation. It is never silently defaulted.
    - **Rich context:** Errors carry source id, URL, artifact id and
      location for operator review.
    - **Error chaining:** The original exception is preserved as ``cause``.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       FactSpineError                          │
        │          (category, kind, context, cause)                     │
        ├──────────────────────────────────────────────────────────────┤
        │  NetworkError     StorageError        AmbiguityError          │
        │  (NETWORK)        (STORAGE)           (PARSE)                 │
        │                        │                   │                  │
        │                   ArtifactNotFound    NoFactsParsedError      │
        │                                                               │
        │  RowSkipped       ConfigError                                 │
        │  (PARSE, local)   (CONFIG)                                    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = AmbiguityError("header mismatch", requirement="header")
    >>> err.kind
    <ErrorKind.AMBIGUITY: 'AMBIGUITY'>
    >>> err.with_context(source_id="dipres_ley_2024").context.source_id
    'dipres_ley_2024'

Tags:
    error-handling, exception-hierarchy, error-context, factspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"           # Connection, timeout, HTTP status
    STORAGE = "STORAGE"           # Blob area, relational store
    PARSE = "PARSE"               # Format, column, year interpretation
    CONFIG = "CONFIG"             # Settings, manifest
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


class ErrorKind(str, Enum):
    """The closed set of failure kinds callers branch on."""

    NETWORK = "NETWORK"
    STORAGE = "STORAGE"
    AMBIGUITY = "AMBIGUITY"
    ROW_SKIPPED = "ROW_SKIPPED"
    CONFIG = "CONFIG"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set are serialized by ``to_dict()``; anything
    that has no dedicated field goes to ``metadata``.

    Attributes:
        source_id: Source identifier of the document being processed
        url: URL that was being fetched
        http_status: HTTP status code if applicable
        artifact_id: Artifact being acquired or parsed
        job_run_id: JobRun the failure belongs to
        location: Evidence locator (``csv:line=5``) for row-level issues
        metadata: Additional key-value pairs
    """

    source_id: str | None = None
    url: str | None = None
    http_status: int | None = None
    artifact_id: str | None = None
    job_run_id: str | None = None
    location: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["source_id", "url", "http_status", "artifact_id",
                    "job_run_id", "location"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FactSpineError(Exception):
    """
    Base exception for all factspine errors.

    Subclasses set ``default_category`` and ``kind`` so that a bare
    ``raise StorageError("...")`` is already fully classified.

    Examples:
        >>> err = FactSpineError("unexpected")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.to_dict()["error_type"]
        'FactSpineError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    kind: ErrorKind | None = None

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FactSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("write failed").with_context(
                artifact_id=artifact_id,
                path=str(path),
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.kind is not None:
            result["kind"] = self.kind.value
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# NETWORK
# =============================================================================


class NetworkError(FactSpineError):
    """Fetch failure, timeout or non-success HTTP status.

    Fatal to the acquisition attempt: the JobRun is marked ``failed`` and no
    Artifact is written.
    """

    default_category = ErrorCategory.NETWORK
    kind = ErrorKind.NETWORK

    def __init__(self, message: str, *, http_status: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if http_status is not None:
            self.context.http_status = http_status

    @property
    def http_status(self) -> int | None:
        return self.context.http_status


# =============================================================================
# STORAGE
# =============================================================================


class StorageError(FactSpineError):
    """Blob or relational I/O failure. Always surfaced to the caller."""

    default_category = ErrorCategory.STORAGE
    kind = ErrorKind.STORAGE


class ArtifactNotFoundError(StorageError):
    """No Artifact row exists for the requested id."""

    def __init__(self, artifact_id: str):
        super().__init__(f"Artifact not found: {artifact_id}")
        self.context.artifact_id = artifact_id


# =============================================================================
# PARSING
# =============================================================================


class AmbiguityError(FactSpineError):
    """
    Raised when a format, column or period cannot be determined by a fixed rule.

    ``requirement`` names the missing or mismatched piece (``"header"``,
    ``"year"``, ``"entity column"``...) so operators can see what the file
    lacked without reading the parser.
    """

    default_category = ErrorCategory.PARSE
    kind = ErrorKind.AMBIGUITY

    def __init__(self, message: str, *, requirement: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.requirement = requirement

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.requirement is not None:
            result["requirement"] = self.requirement
        return result


class NoFactsParsedError(AmbiguityError):
    """Every row was skipped, so the document yields no facts at all."""

    def __init__(self, message: str = "No facts parsed from artifact", **kwargs: Any):
        kwargs.setdefault("requirement", "facts")
        super().__init__(message, **kwargs)


class RowSkipped(FactSpineError):
    """
    A single malformed row or line.

    Never escapes a parser: dialects catch it and turn it into a
    :class:`~factspine.core.rejects.Reject` with the row's location.
    """

    default_category = ErrorCategory.PARSE
    kind = ErrorKind.ROW_SKIPPED

    def __init__(self, message: str, *, reason_code: str = "MALFORMED_ROW", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.reason_code = reason_code


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigError(FactSpineError):
    """Invalid settings or batch manifest."""

    default_category = ErrorCategory.CONFIG
    kind = ErrorKind.CONFIG


def error_kind(error: BaseException) -> ErrorKind | None:
    """Return the closed kind of *error*, or ``None`` for foreign exceptions."""
    if isinstance(error, FactSpineError):
        return error.kind
    return None


__all__ = [
    "AmbiguityError",
    "ArtifactNotFoundError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorKind",
    "FactSpineError",
    "NetworkError",
    "NoFactsParsedError",
    "RowSkipped",
    "StorageError",
    "error_kind",
]
