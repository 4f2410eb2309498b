"""
Analysis repository.

Owns the Analysis status state machine:

    PENDING -> PROCESSING -> COMPLETED
                          -> FAILED

Every transition is appended to ``options["status_history"]``.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from reasonet.db.repositories.base import BaseRepository
from reasonet.exceptions import InvalidStatusTransition
from reasonet.models.db import Analysis, AnalysisStatus, AnalysisType

ALLOWED_TRANSITIONS: dict[AnalysisStatus, set[AnalysisStatus]] = {
    AnalysisStatus.PENDING: {AnalysisStatus.PROCESSING},
    AnalysisStatus.PROCESSING: {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED},
    AnalysisStatus.COMPLETED: set(),
    AnalysisStatus.FAILED: set(),
}

TERMINAL_STATUSES = {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisRepository(BaseRepository[Analysis]):
    """Repository for Analysis model."""

    def __init__(self, session: Session):
        super().__init__(Analysis, session)

    def create_pending(
        self,
        repository_id: uuid.UUID,
        name: str,
        pr_number: Optional[int] = None,
        branch: Optional[str] = None,
        commit: Optional[str] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Analysis:
        """
        Create a pull request analysis in PENDING state.

        Args:
            repository_id: Owning repository UUID
            name: Display name (e.g. "PR #7: Fix login")
            pr_number: Pull request number
            branch: Head branch
            commit: Head commit SHA
            options: Initial options blob

        Returns:
            The new Analysis
        """
        initial = dict(options or {})
        initial["status_history"] = [
            {"status": AnalysisStatus.PENDING.value, "at": _now().isoformat()}
        ]
        return self.create(
            repository_id=repository_id,
            name=name,
            status=AnalysisStatus.PENDING.value,
            type=AnalysisType.PULL_REQUEST.value,
            pr_number=pr_number,
            branch=branch,
            commit=commit,
            options=initial,
        )

    def transition(
        self, analysis: Analysis, target: AnalysisStatus, **entries: Any
    ) -> Analysis:
        """
        Move an analysis to a new status.

        Args:
            analysis: Analysis to update
            target: Status to move to
            **entries: Options entries recorded alongside the transition

        Returns:
            The updated analysis

        Raises:
            InvalidStatusTransition: If the lifecycle forbids the move
        """
        current = AnalysisStatus(analysis.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(current.value, target.value)

        options = dict(analysis.options or {})
        history = list(options.get("status_history", []))
        history.append({"status": target.value, "at": _now().isoformat()})
        options.update(entries)
        options["status_history"] = history

        analysis.status = target.value
        analysis.options = options
        if target in TERMINAL_STATUSES:
            analysis.completed_at = _now()
        self.session.flush()
        return analysis

    def get_with_results(self, id: uuid.UUID) -> Optional[Analysis]:
        """Get an analysis with its results eagerly loaded."""
        return (
            self.session.query(Analysis)
            .options(selectinload(Analysis.results))
            .filter(Analysis.id == id)
            .first()
        )

    def get_by_repository(
        self, repository_id: uuid.UUID, limit: Optional[int] = None, offset: int = 0
    ) -> List[Analysis]:
        """
        Get analyses for a repository, newest first.

        Args:
            repository_id: Repository UUID
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            List of analyses
        """
        query = (
            self.session.query(Analysis)
            .filter(Analysis.repository_id == repository_id)
            .order_by(desc(Analysis.created_at))
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_stale(self, older_than: datetime) -> List[Analysis]:
        """
        Get analyses stuck in a non-terminal status.

        Args:
            older_than: Only analyses last updated before this instant

        Returns:
            PENDING/PROCESSING analyses awaiting reconciliation
        """
        return (
            self.session.query(Analysis)
            .filter(
                Analysis.status.in_(
                    [AnalysisStatus.PENDING.value, AnalysisStatus.PROCESSING.value]
                ),
                Analysis.updated_at < older_than,
            )
            .order_by(Analysis.updated_at)
            .all()
        )

    def count_by_repository(self, repository_id: uuid.UUID) -> int:
        """Count analyses for a repository."""
        return (
            self.session.query(Analysis)
            .filter(Analysis.repository_id == repository_id)
            .count()
        )
