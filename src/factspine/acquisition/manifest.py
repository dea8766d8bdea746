"""Declarative batch manifest for the collector.

A manifest lists public sources and the URLs published for each period.
It can be written as JSON or YAML.

Example YAML::

    version: 1
    sources:
      - id: dipres_ley_2024
        name: Ley de Presupuestos 2024
        provider: DIPRES
        format: csv
        enabled: true
        requires_api_key: false
        urls:
          - year: 2024
            url: https://www.dipres.gob.cl/.../ley_2024.csv
            description: Ley inicial

Selection rules:

* ``requires_api_key: true`` sources are never attempted, even when targeted.
* ``enabled: false`` sources are excluded unless targeted by id.

Tags:
    factspine, acquisition, manifest, pydantic, yaml, declarative
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from factspine.core.errors import ConfigError


class ManifestUrl(BaseModel):
    """One published document, tagged with the period it covers."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(..., min_length=1)
    year: int | None = Field(default=None, ge=1900, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)
    quarter: int | None = Field(default=None, ge=1, le=4)
    description: str = ""

    @property
    def temporal_tag(self) -> str | None:
        """``2024``, ``2024-03`` or ``2024-Q1``; ``None`` when untagged."""
        if self.year is None:
            return None
        if self.month is not None:
            return f"{self.year}-{self.month:02d}"
        if self.quarter is not None:
            return f"{self.year}-Q{self.quarter}"
        return str(self.year)


class ManifestSource(BaseModel):
    """A public source and its documents."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    provider: str = ""
    format: str = ""
    urls: list[ManifestUrl] = Field(default_factory=list)
    requires_api_key: bool = False
    enabled: bool = True


class SourceManifest(BaseModel):
    """Root of a batch manifest."""

    model_config = ConfigDict(extra="ignore")

    version: int | str = 1
    sources: list[ManifestSource] = Field(default_factory=list)

    @classmethod
    def from_data(cls, data: Any) -> SourceManifest:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid source manifest: {e}", cause=e) from e

    @classmethod
    def from_file(cls, path: str | Path) -> SourceManifest:
        """Load a manifest; ``.json`` files are read as JSON, anything else as YAML."""
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read manifest {path}: {e}", cause=e).with_context(
                path=str(path)
            ) from e

        try:
            if path.suffix.lower() == ".json":
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Malformed manifest {path}: {e}", cause=e).with_context(
                path=str(path)
            ) from e

        return cls.from_data(data)

    def select(self, targets: list[str] | None = None) -> list[ManifestSource]:
        """Sources to attempt, in manifest order.

        With *targets*, only those ids are returned (disabled ones included).
        Without, every enabled source. API-key sources are always dropped.

        Raises:
            ConfigError: If a targeted id is not in the manifest.
        """
        if targets:
            known = {s.id for s in self.sources}
            missing = [t for t in targets if t not in known]
            if missing:
                raise ConfigError(
                    f"Unknown source id(s) in manifest: {', '.join(missing)}"
                ).with_context(source_ids=missing)
            wanted = set(targets)
            chosen = [s for s in self.sources if s.id in wanted]
        else:
            chosen = [s for s in self.sources if s.enabled]
        return [s for s in chosen if not s.requires_api_key]

    def skipped_for_api_key(self, targets: list[str] | None = None) -> list[str]:
        """Ids that would have been attempted but need an API key."""
        wanted = set(targets or [])
        return [
            s.id
            for s in self.sources
            if s.requires_api_key and (s.id in wanted if wanted else s.enabled)
        ]


__all__ = ["ManifestSource", "ManifestUrl", "SourceManifest"]
