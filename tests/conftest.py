"""
Pytest configuration and fixtures for Reasonet tests.

This module provides shared fixtures for testing database models, repositories,
the review pipeline and the webhook API.
"""

import os

# Must be set before reasonet.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

import uuid
from typing import Any, Callable, Generator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from reasonet.analyzers.loader import AnalyzerSet
from reasonet.config import Settings
from reasonet.github.auth import GitHubAuthConfig
from reasonet.github.signature import compute_signature
from reasonet.models.db import Base, GitHubInstallation, Organization, Repository
from reasonet.models.findings import CodeQualityIssue, PRGist, SecurityIssue
from reasonet.pipeline.review import PullRequestReviewer

WEBHOOK_SECRET = "test-webhook-secret"

SAMPLE_DIFF = """diff --git a/app/login.py b/app/login.py
index 1111111..2222222 100644
--- a/app/login.py
+++ b/app/login.py
@@ -1,3 +1,4 @@
 def login(user, password):
-    return check(user, password)
+    query = f"SELECT * FROM users WHERE name = '{user}'"
+    return run(query)
"""


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    # Replace JSONB with JSON for SQLite
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session with a transaction that is rolled back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# ===== Configuration =====


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a known webhook secret and short timeouts."""
    return Settings(
        database_url_override="sqlite:///:memory:",
        github_webhook_secret=WEBHOOK_SECRET,
        github_token="test-token",
        diff_fetch_timeout=5.0,
        analyzer_timeout=5.0,
        log_file_enabled=False,
    )


@pytest.fixture
def auth_config() -> GitHubAuthConfig:
    return GitHubAuthConfig(token="test-token")


# ===== GitHub =====


class FakeGitHubClient:
    """
    In-memory stand-in for GitHubClient.

    ``failures`` maps a method name to the exception it should raise.
    """

    def __init__(self, diff: str = SAMPLE_DIFF):
        self.diff = diff
        self.pull_requests: list[dict] = []
        self.failures: dict[str, BaseException] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.comments: list[dict] = []
        self.gists: list[dict] = []
        self.updates: list[dict] = []
        self.closed = 0

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    async def get_pull_request_diff(self, owner: str, repo: str, number: int) -> str:
        self._record("get_pull_request_diff", owner, repo, number)
        return self.diff

    async def list_pull_requests(
        self, owner: str, repo: str, state: str = "open", head: Optional[str] = None
    ) -> list[dict]:
        self._record("list_pull_requests", owner, repo, state, head)
        return self.pull_requests

    async def create_gist(
        self, description: str, files: dict[str, str], public: bool = False
    ) -> dict:
        self._record("create_gist", description)
        gist = {"html_url": f"https://gist.github.com/reasonet/{len(self.gists) + 1}"}
        self.gists.append({"description": description, "files": files, **gist})
        return gist

    async def create_issue_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> dict:
        self._record("create_issue_comment", owner, repo, number)
        self.comments.append({"repo": f"{owner}/{repo}", "number": number, "body": body})
        return {"html_url": f"https://github.com/{owner}/{repo}/pull/{number}#c1"}

    async def update_pull_request(
        self, owner: str, repo: str, number: int, **fields: Any
    ) -> dict:
        self._record("update_pull_request", owner, repo, number)
        self.updates.append({"number": number, **fields})
        return {"number": number, **fields}

    async def aclose(self) -> None:
        self.closed += 1


@pytest.fixture
def fake_github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def client_resolver(fake_github: FakeGitHubClient) -> Callable:
    """Resolver that always hands out the fake client."""

    async def resolve(installation_id, config):
        return fake_github

    return resolve


def signed_headers(body: bytes, event: str, delivery: str = "delivery-1") -> dict:
    """Headers GitHub sends with a delivery, signed with the test secret."""
    return {
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": delivery,
        "X-Hub-Signature-256": compute_signature(body, WEBHOOK_SECRET),
        "Content-Type": "application/json",
    }


# ===== Analyzers =====


class StaticQualityAnalyzer:
    def __init__(self, issues: Optional[list[CodeQualityIssue]] = None):
        self.issues = issues if issues is not None else [
            CodeQualityIssue(
                severity="MEDIUM",
                message="Function mixes query building and execution",
                file="app/login.py",
                line_number=2,
                suggestion="Extract the query into a helper",
            )
        ]

    async def analyze(self, payload, diff):
        return self.issues


class StaticSecurityAnalyzer:
    def __init__(self, issues: Optional[list[SecurityIssue]] = None):
        self.issues = issues if issues is not None else [
            SecurityIssue(
                severity="CRITICAL",
                message="SQL injection via string interpolation",
                file="app/login.py",
                line_number=2,
                remediation="Use parameterized queries",
                code="query = f\"SELECT * FROM users WHERE name = '{user}'\"",
            )
        ]

    async def scan(self, payload, diff):
        return self.issues


class StaticGistGenerator:
    async def generate(self, payload, diff):
        return PRGist(
            summary="Rewrites login to build SQL by hand",
            complexity="LOW",
            impact="Authentication path",
            key_changes=["app/login.py"],
            recommendations=["Use the ORM"],
        )


class FailingAnalyzer:
    """Quality analyzer that raises."""

    def __init__(self, error: Exception):
        self.error = error

    async def analyze(self, payload, diff):
        raise self.error


@pytest.fixture
def analyzers() -> AnalyzerSet:
    return AnalyzerSet(
        quality=StaticQualityAnalyzer(),
        security=StaticSecurityAnalyzer(),
        gist=StaticGistGenerator(),
    )


# ===== Registry fixtures =====


@pytest.fixture
def sample_organization(db_session: Session) -> Organization:
    """Create a sample organization for testing."""
    organization = Organization(
        id=uuid.uuid4(),
        name="Acme Corp",
        slug="acme",
        is_active=True,
    )
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


@pytest.fixture
def sample_installation(
    db_session: Session, sample_organization: Organization
) -> GitHubInstallation:
    """Create an installation linked to the sample organization."""
    installation = GitHubInstallation(
        id=uuid.uuid4(),
        installation_id="42",
        organization_id=sample_organization.id,
        account_id="9001",
        account_login="acme",
        account_type="Organization",
        target_type="Organization",
        permissions={"pull_requests": "write"},
        events=["pull_request"],
    )
    db_session.add(installation)
    db_session.commit()
    db_session.refresh(installation)
    return installation


@pytest.fixture
def sample_repository(
    db_session: Session,
    sample_organization: Organization,
    sample_installation: GitHubInstallation,
) -> Repository:
    """Create a repository registered through the sample installation."""
    repository = Repository(
        id=uuid.uuid4(),
        github_id="1001",
        organization_id=sample_organization.id,
        github_installation_id=sample_installation.installation_id,
        name="widgets",
        full_name="acme/widgets",
        is_private=False,
        default_branch="main",
    )
    db_session.add(repository)
    db_session.commit()
    db_session.refresh(repository)
    return repository


# ===== Payload builders =====


@pytest.fixture
def make_pr_payload() -> Callable[..., dict]:
    """Build a pull_request webhook payload."""

    def build(
        action: str = "opened",
        number: int = 7,
        title: str = "Fix login",
        body: str = "Reworks the login query.",
        branch: str = "feature/login",
        repo_id: int = 1001,
        full_name: str = "acme/widgets",
        installation_id: Optional[int] = 42,
    ) -> dict:
        payload: dict[str, Any] = {
            "action": action,
            "number": number,
            "pull_request": {
                "number": number,
                "title": title,
                "body": body,
                "html_url": f"https://github.com/{full_name}/pull/{number}",
                "head": {"ref": branch, "sha": "abc123"},
                "base": {"ref": "main"},
                "user": {"login": "octocat", "id": 583231},
            },
            "repository": {
                "id": repo_id,
                "name": full_name.split("/")[-1],
                "full_name": full_name,
                "private": False,
            },
        }
        if installation_id is not None:
            payload["installation"] = {"id": installation_id}
        return payload

    return build


@pytest.fixture
def reviewer(
    db_session: Session,
    analyzers: AnalyzerSet,
    auth_config: GitHubAuthConfig,
    test_settings: Settings,
    client_resolver: Callable,
) -> PullRequestReviewer:
    return PullRequestReviewer(
        db_session,
        analyzers,
        auth_config,
        config=test_settings,
        client_resolver=client_resolver,
    )


# ===== API =====


@pytest.fixture
def api_client(
    db_session: Session,
    analyzers: AnalyzerSet,
    test_settings: Settings,
    client_resolver: Callable,
):
    """Create a test client for FastAPI with database dependency override."""
    from unittest.mock import patch

    from fastapi.testclient import TestClient

    from reasonet.api.app import app
    from reasonet.api.dependencies import (
        get_analyzers,
        get_client_resolver,
        get_settings,
    )
    from reasonet.db.connection import get_db

    # Override the get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_analyzers] = lambda: analyzers
    app.dependency_overrides[get_client_resolver] = lambda: client_resolver

    # Disable lifespan startup checks for testing
    with patch("reasonet.api.app.run_all_startup_checks"):
        with TestClient(app) as client:
            yield client

    app.dependency_overrides.clear()
