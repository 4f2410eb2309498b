"""
Code repository (GitHub repository) data access.
"""

from typing import Any, List, Optional

from sqlalchemy.orm import Session

from reasonet.db.repositories.base import BaseRepository
from reasonet.models.db import Analysis, AnalysisResult, Repository


class CodeRepositoryRepository(BaseRepository[Repository]):
    """Repository for the Repository model."""

    def __init__(self, session: Session):
        super().__init__(Repository, session)

    def get_by_github_id(self, github_id: str) -> Optional[Repository]:
        """
        Get a repository by GitHub's repository id.

        Args:
            github_id: External repository id (string form)

        Returns:
            Repository instance or None
        """
        return (
            self.session.query(Repository)
            .filter(Repository.github_id == github_id)
            .first()
        )

    def get_by_installation(self, installation_id: str) -> List[Repository]:
        """Get all repositories linked to an installation."""
        return (
            self.session.query(Repository)
            .filter(Repository.github_installation_id == installation_id)
            .all()
        )

    def upsert(self, github_id: str, **fields: Any) -> Repository:
        """
        Create or update a repository keyed on its external id.

        Args:
            github_id: External repository id
            **fields: Repository fields

        Returns:
            The stored repository
        """
        repository = self.get_by_github_id(github_id)
        if repository is None:
            return self.create(github_id=github_id, **fields)

        for key, value in fields.items():
            setattr(repository, key, value)
        self.session.flush()
        self.session.refresh(repository)
        return repository

    def delete_by_github_id(self, github_id: str) -> bool:
        """
        Delete a repository by its external id.

        Returns:
            True if deleted, False if not found
        """
        repository = self.get_by_github_id(github_id)
        if repository is None:
            return False
        self._delete_with_analyses(repository)
        return True

    def delete_by_installation(self, installation_id: str) -> int:
        """
        Delete every repository linked to an installation.

        Returns:
            Number of repositories deleted
        """
        repositories = self.get_by_installation(installation_id)
        for repository in repositories:
            self._delete_with_analyses(repository)
        return len(repositories)

    def _delete_with_analyses(self, repository: Repository) -> None:
        """
        Delete a repository after its analyses and their results.

        Dependents are removed first so nothing is left pointing at the
        repository, whether or not the database enforces foreign keys.
        """
        analysis_ids = [
            analysis_id
            for (analysis_id,) in self.session.query(Analysis.id).filter(
                Analysis.repository_id == repository.id
            )
        ]
        if analysis_ids:
            self.session.query(AnalysisResult).filter(
                AnalysisResult.analysis_id.in_(analysis_ids)
            ).delete(synchronize_session="fetch")
            self.session.query(Analysis).filter(
                Analysis.id.in_(analysis_ids)
            ).delete(synchronize_session="fetch")
        self.session.expire(repository, ["analyses"])
        self.session.delete(repository)
        self.session.flush()
