"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from reasonet.db.repositories.analysis import AnalysisRepository
from reasonet.db.repositories.analysis_result import AnalysisResultRepository
from reasonet.db.repositories.base import BaseRepository
from reasonet.db.repositories.installation import InstallationRepository
from reasonet.db.repositories.repository import CodeRepositoryRepository

__all__ = [
    "AnalysisRepository",
    "AnalysisResultRepository",
    "BaseRepository",
    "CodeRepositoryRepository",
    "InstallationRepository",
]
