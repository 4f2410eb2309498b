"""
GitHub installation repository.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from reasonet.db.repositories.base import BaseRepository
from reasonet.models.db import GitHubInstallation


class InstallationRepository(BaseRepository[GitHubInstallation]):
    """Repository for GitHubInstallation model."""

    def __init__(self, session: Session):
        super().__init__(GitHubInstallation, session)

    def get_by_installation_id(self, installation_id: str) -> Optional[GitHubInstallation]:
        """
        Get an installation by GitHub's installation id.

        Args:
            installation_id: External installation id (string form)

        Returns:
            GitHubInstallation instance or None
        """
        return (
            self.session.query(GitHubInstallation)
            .filter(GitHubInstallation.installation_id == installation_id)
            .first()
        )

    def upsert(self, installation_id: str, **fields: Any) -> GitHubInstallation:
        """
        Create or update an installation keyed on its external id.

        Args:
            installation_id: External installation id
            **fields: Mutable installation fields

        Returns:
            The stored installation
        """
        installation = self.get_by_installation_id(installation_id)
        if installation is None:
            return self.create(installation_id=installation_id, **fields)

        for key, value in fields.items():
            setattr(installation, key, value)
        self.session.flush()
        self.session.refresh(installation)
        return installation

    def delete_by_installation_id(self, installation_id: str) -> bool:
        """
        Delete an installation by its external id.

        Returns:
            True if deleted, False if not found
        """
        installation = self.get_by_installation_id(installation_id)
        if installation is None:
            return False
        self.session.delete(installation)
        self.session.flush()
        return True
