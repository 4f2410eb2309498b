"""
Installation and repository registry.

Mirrors the GitHub App's installations and the repositories they grant
access to. Every write is keyed on GitHub's external ids, so replaying a
delivery leaves the store unchanged.

A repository is only stored when its installation is linked to an
organization. Installations are linked during onboarding, outside the
webhook flow; until then their repositories are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from reasonet.db.connection import transaction
from reasonet.db.repositories import CodeRepositoryRepository, InstallationRepository
from reasonet.models.db import GitHubInstallation, Repository

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp ("2024-01-01T00:00:00Z")."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def installation_fields(installation: dict[str, Any]) -> dict[str, Any]:
    """Map an ``installation`` payload object to GitHubInstallation fields."""
    account = installation.get("account") or {}
    return {
        "account_id": str(account.get("id", "")),
        "account_login": account.get("login") or "",
        "account_type": account.get("type") or "",
        "target_type": installation.get("target_type"),
        "permissions": installation.get("permissions") or {},
        "events": installation.get("events") or [],
        "suspended_at": _parse_timestamp(installation.get("suspended_at")),
    }


def repository_fields(repo: dict[str, Any]) -> dict[str, Any]:
    """
    Map a repository payload object to Repository fields.

    Handles both the full repository object and the abbreviated form sent
    in installation events (which has no URLs, counts or timestamps).
    """
    fields = {
        "name": repo.get("name") or repo.get("full_name", "").split("/")[-1],
        "full_name": repo.get("full_name") or "",
        "description": repo.get("description"),
        "is_private": bool(repo.get("private", False)),
        "language": repo.get("language"),
        "url": repo.get("html_url"),
        "clone_url": repo.get("clone_url"),
        "ssh_url": repo.get("ssh_url"),
        "star_count": repo.get("stargazers_count") or 0,
        "fork_count": repo.get("forks_count") or 0,
        "default_branch": repo.get("default_branch") or "main",
    }
    updated_at = _parse_timestamp(repo.get("updated_at"))
    if updated_at is not None:
        fields["updated_at"] = updated_at
    return fields


@dataclass
class RegistryChange:
    """Summary of what one installation event changed."""

    installation_id: str
    action: str
    repositories_stored: int = 0
    repositories_skipped: int = 0
    repositories_deleted: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "installation_id": self.installation_id,
            "action": self.action,
            "repositories_stored": self.repositories_stored,
            "repositories_skipped": self.repositories_skipped,
            "repositories_deleted": self.repositories_deleted,
        }


class InstallationRegistry:
    """
    Keeps installations and repositories in sync with GitHub events.

    Methods flush but do not commit; the ``handle_*`` entry points wrap their
    writes in a single transaction.
    """

    def __init__(self, session: Session):
        self.session = session
        self.installations = InstallationRepository(session)
        self.repositories = CodeRepositoryRepository(session)

    # ===== Installations =====

    def upsert_installation(self, installation: dict[str, Any]) -> GitHubInstallation:
        """
        Create or update an installation from its payload object.

        The organization link is never touched here.
        """
        installation_id = str(installation["id"])
        record = self.installations.upsert(
            installation_id, **installation_fields(installation)
        )
        logger.info(
            f"Stored installation {installation_id} for {record.account_login}"
        )
        return record

    def delete_installation(self, installation_id: str) -> int:
        """
        Delete an installation and every repository linked to it.

        Repositories go first so no repository is left pointing at a
        missing installation.

        Returns:
            Number of repositories deleted
        """
        deleted = self.repositories.delete_by_installation(installation_id)
        if not self.installations.delete_by_installation_id(installation_id):
            logger.warning(f"Installation {installation_id} was not registered")
        logger.info(
            f"Deleted installation {installation_id} and {deleted} repositories"
        )
        return deleted

    def set_suspended(
        self, installation: dict[str, Any], suspended: bool
    ) -> GitHubInstallation:
        """Record a suspend/unsuspend action."""
        fields = installation_fields(installation)
        if suspended:
            fields["suspended_at"] = fields["suspended_at"] or datetime.now(timezone.utc)
        else:
            fields["suspended_at"] = None
        return self.installations.upsert(str(installation["id"]), **fields)

    # ===== Repositories =====

    def upsert_repository(
        self, repo: dict[str, Any], installation_id: str
    ) -> Optional[Repository]:
        """
        Create or update a repository granted through an installation.

        Args:
            repo: Repository payload object
            installation_id: External installation id

        Returns:
            The stored repository, or None when the installation has no
            linked organization (the repository is skipped)
        """
        installation = self.installations.get_by_installation_id(installation_id)
        if installation is None or installation.organization_id is None:
            logger.warning(
                f"No organization linked to installation {installation_id}, "
                f"skipping repository {repo.get('full_name')}"
            )
            return None

        fields = repository_fields(repo)
        fields["github_installation_id"] = installation_id
        existing = self.repositories.get_by_github_id(str(repo["id"]))
        if existing is None:
            fields["organization_id"] = installation.organization_id

        stored = self.repositories.upsert(str(repo["id"]), **fields)
        logger.info(f"Stored repository {stored.full_name} ({stored.github_id})")
        return stored

    def delete_repository(self, github_id: str) -> bool:
        """Delete a repository by its external id; unknown ids are a no-op."""
        deleted = self.repositories.delete_by_github_id(github_id)
        if not deleted:
            logger.info(f"Repository {github_id} was not registered, nothing to remove")
        return deleted

    def find_repository(
        self, repo: dict[str, Any], installation_id: Optional[str] = None
    ) -> Optional[Repository]:
        """
        Look up the repository an event refers to.

        When it is not registered yet but the event names an installation,
        the repository is registered on demand (subject to the orphan rule).
        """
        repository = self.repositories.get_by_github_id(str(repo["id"]))
        if repository is not None or not installation_id:
            return repository
        return self.upsert_repository(repo, installation_id)

    # ===== Event handlers =====

    def handle_installation(self, payload: dict[str, Any]) -> RegistryChange:
        """Apply an ``installation`` event."""
        action = payload.get("action", "")
        installation = payload["installation"]
        installation_id = str(installation["id"])
        change = RegistryChange(installation_id=installation_id, action=action)

        with transaction(self.session):
            if action == "created":
                self.upsert_installation(installation)
                repos = payload.get("repositories") or installation.get("repositories")
                for repo in repos or []:
                    self._store(repo, installation_id, change)
            elif action == "deleted":
                change.repositories_deleted = self.delete_installation(installation_id)
            elif action == "suspend":
                self.set_suspended(installation, True)
            elif action == "unsuspend":
                self.set_suspended(installation, False)
            elif action == "new_permissions_accepted":
                self.upsert_installation(installation)
            else:
                logger.info(f"Ignoring installation action: {action}")

        return change

    def handle_installation_repositories(
        self, payload: dict[str, Any]
    ) -> RegistryChange:
        """Apply an ``installation_repositories`` event."""
        action = payload.get("action", "")
        installation_id = str(payload["installation"]["id"])
        change = RegistryChange(installation_id=installation_id, action=action)

        with transaction(self.session):
            if action == "added":
                for repo in payload.get("repositories_added") or []:
                    self._store(repo, installation_id, change)
            elif action == "removed":
                for repo in payload.get("repositories_removed") or []:
                    if self.delete_repository(str(repo["id"])):
                        change.repositories_deleted += 1
            else:
                logger.info(f"Ignoring installation_repositories action: {action}")

        return change

    def _store(
        self, repo: dict[str, Any], installation_id: str, change: RegistryChange
    ) -> None:
        if self.upsert_repository(repo, installation_id) is None:
            change.repositories_skipped += 1
        else:
            change.repositories_stored += 1
