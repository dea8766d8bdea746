"""Repositories over the canonical tables.

Tags:
    factspine, repository
"""

from factspine.core.repositories._base import BaseRepository, new_id
from factspine.core.repositories.artifacts import ArtifactRepository
from factspine.core.repositories.facts import FactRepository
from factspine.core.repositories.identities import IdentityRepository
from factspine.core.repositories.job_runs import JobRunRepository

__all__ = [
    "ArtifactRepository",
    "BaseRepository",
    "FactRepository",
    "IdentityRepository",
    "JobRunRepository",
    "new_id",
]
