"""
Analysis result repository.
"""

import uuid
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from reasonet.db.repositories.base import BaseRepository
from reasonet.models.db import AnalysisResult


class AnalysisResultRepository(BaseRepository[AnalysisResult]):
    """Repository for AnalysisResult model."""

    def __init__(self, session: Session):
        super().__init__(AnalysisResult, session)

    def get_by_analysis(self, analysis_id: uuid.UUID) -> List[AnalysisResult]:
        """Get all findings of an analysis."""
        return (
            self.session.query(AnalysisResult)
            .filter(AnalysisResult.analysis_id == analysis_id)
            .all()
        )

    def count_by_severity(self, analysis_id: uuid.UUID) -> dict[str, int]:
        """
        Count findings of an analysis grouped by severity.

        Args:
            analysis_id: Analysis UUID

        Returns:
            Mapping of severity value to count
        """
        rows = (
            self.session.query(AnalysisResult.severity, func.count(AnalysisResult.id))
            .filter(AnalysisResult.analysis_id == analysis_id)
            .group_by(AnalysisResult.severity)
            .all()
        )
        return {getattr(severity, "value", severity): count for severity, count in rows}
