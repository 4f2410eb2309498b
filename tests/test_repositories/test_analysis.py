"""Tests for AnalysisRepository and its status lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from reasonet.db.repositories import AnalysisRepository, AnalysisResultRepository
from reasonet.exceptions import InvalidStatusTransition
from reasonet.models.db import AnalysisStatus, Repository


def _history(analysis) -> list[str]:
    return [entry["status"] for entry in analysis.options["status_history"]]


@pytest.fixture
def pending(db_session: Session, sample_repository: Repository):
    repo = AnalysisRepository(db_session)
    analysis = repo.create_pending(
        repository_id=sample_repository.id,
        name="PR #7: Fix login",
        pr_number=7,
        branch="feature/login",
        commit="abc123",
        options={"pr": {"number": 7}},
    )
    db_session.commit()
    return analysis


class TestAnalysisLifecycle:
    """PENDING -> PROCESSING -> COMPLETED | FAILED."""

    def test_create_pending(self, pending):
        assert AnalysisStatus(pending.status) == AnalysisStatus.PENDING
        assert pending.options["pr"] == {"number": 7}
        assert _history(pending) == ["PENDING"]
        assert pending.completed_at is None

    def test_happy_path(self, db_session: Session, pending):
        repo = AnalysisRepository(db_session)
        repo.transition(pending, AnalysisStatus.PROCESSING)
        repo.transition(pending, AnalysisStatus.COMPLETED, results_count=3)

        assert AnalysisStatus(pending.status) == AnalysisStatus.COMPLETED
        assert pending.options["results_count"] == 3
        assert pending.options["pr"] == {"number": 7}
        assert _history(pending) == ["PENDING", "PROCESSING", "COMPLETED"]
        assert pending.completed_at is not None

    def test_failed_records_error(self, db_session: Session, pending):
        repo = AnalysisRepository(db_session)
        repo.transition(pending, AnalysisStatus.PROCESSING)
        repo.transition(pending, AnalysisStatus.FAILED, error="diff fetch timed out")

        assert pending.options["error"] == "diff fetch timed out"
        assert _history(pending) == ["PENDING", "PROCESSING", "FAILED"]

    @pytest.mark.parametrize(
        "target", [AnalysisStatus.COMPLETED, AnalysisStatus.FAILED, AnalysisStatus.PENDING]
    )
    def test_pending_cannot_skip_processing(self, db_session: Session, pending, target):
        repo = AnalysisRepository(db_session)

        with pytest.raises(InvalidStatusTransition):
            repo.transition(pending, target)

    def test_terminal_status_is_final(self, db_session: Session, pending):
        repo = AnalysisRepository(db_session)
        repo.transition(pending, AnalysisStatus.PROCESSING)
        repo.transition(pending, AnalysisStatus.COMPLETED)

        with pytest.raises(InvalidStatusTransition) as exc_info:
            repo.transition(pending, AnalysisStatus.FAILED)

        assert exc_info.value.current == "COMPLETED"
        assert AnalysisStatus(pending.status) == AnalysisStatus.COMPLETED


class TestAnalysisQueries:
    """Lookups used by the API and the reconciliation command."""

    def test_count_by_repository(
        self, db_session: Session, sample_repository: Repository, pending
    ):
        repo = AnalysisRepository(db_session)
        repo.create_pending(repository_id=sample_repository.id, name="PR #8", pr_number=8)

        assert repo.count_by_repository(sample_repository.id) == 2

    def test_get_stale(self, db_session: Session, pending):
        repo = AnalysisRepository(db_session)
        future = datetime.now(timezone.utc) + timedelta(minutes=5)
        past = datetime.now(timezone.utc) - timedelta(days=1)

        assert [a.id for a in repo.get_stale(future)] == [pending.id]
        assert repo.get_stale(past) == []

    def test_get_with_results_and_severity_counts(self, db_session: Session, pending):
        results = AnalysisResultRepository(db_session)
        results.bulk_create(
            [
                {
                    "analysis_id": pending.id,
                    "type": "SECURITY",
                    "severity": "HIGH",
                    "title": "t1",
                    "description": "",
                    "status": "OPEN",
                },
                {
                    "analysis_id": pending.id,
                    "type": "CODE_QUALITY",
                    "severity": "HIGH",
                    "title": "t2",
                    "description": "",
                    "status": "OPEN",
                },
                {
                    "analysis_id": pending.id,
                    "type": "CODE_QUALITY",
                    "severity": "LOW",
                    "title": "t3",
                    "description": "",
                    "status": "OPEN",
                },
            ]
        )
        db_session.expire_all()

        loaded = AnalysisRepository(db_session).get_with_results(pending.id)

        assert len(loaded.results) == 3
        assert results.count_by_severity(pending.id) == {"HIGH": 2, "LOW": 1}
