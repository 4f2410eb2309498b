"""
Pull request review orchestrator.

Drives one ``pull_request`` event through the pipeline:

    registry lookup -> Analysis PENDING -> PROCESSING -> auth -> diff
    -> fan-out -> persist findings -> reporting -> COMPLETED

Authentication, diff and fan-out failures end the analysis as FAILED with
the error recorded in its options. Reporting failures are logged and the
analysis is still COMPLETED. An unregistered repository is dropped before
any row is written.

Status changes are committed as they happen so a crashed or cancelled run
leaves the row in PENDING/PROCESSING for reconciliation.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from reasonet.analyzers.loader import AnalyzerSet
from reasonet.config import Settings, settings as default_settings
from reasonet.db.repositories import AnalysisRepository
from reasonet.github.auth import GitHubAuthConfig, resolve_client
from reasonet.github.client import GitHubClient
from reasonet.models.db import Analysis, AnalysisStatus, Repository
from reasonet.pipeline.diff import fetch_diff
from reasonet.pipeline.fanout import FanoutResult, run_fanout
from reasonet.pipeline.outcomes import Err, Ok, StageOutcome, fatal
from reasonet.pipeline.reporting import ReportTarget, run_reporting
from reasonet.pipeline.results import persist_results
from reasonet.services.registry import InstallationRegistry

logger = logging.getLogger(__name__)

REVIEWED_ACTIONS = ("opened", "synchronize")

ClientResolver = Callable[[Optional[str], GitHubAuthConfig], Awaitable[GitHubClient]]


@dataclass
class ReviewOutcome:
    """What happened to one pull request event."""

    status: str  # completed, failed, dropped
    analysis_id: Optional[uuid.UUID] = None
    results_count: int = 0
    gist_url: str = ""
    error: Optional[str] = None
    degraded: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "analysis_id": str(self.analysis_id) if self.analysis_id else None,
            "results_count": self.results_count,
            "gist_url": self.gist_url,
            "error": self.error,
            "degraded": self.degraded,
        }


def pr_context(payload: dict[str, Any]) -> dict[str, Any]:
    """Pull request metadata recorded on the analysis."""
    pr = payload["pull_request"]
    repository = payload["repository"]
    user = pr.get("user") or {}
    return {
        "number": pr["number"],
        "title": pr.get("title") or "",
        "body": pr.get("body") or "",
        "branch": (pr.get("head") or {}).get("ref"),
        "base_branch": (pr.get("base") or {}).get("ref"),
        "head_sha": (pr.get("head") or {}).get("sha"),
        "repo_name": repository.get("name"),
        "repo_full_name": repository.get("full_name"),
        "author_username": user.get("login"),
        "author_id": str(user["id"]) if user.get("id") is not None else None,
        "github_url": pr.get("html_url"),
    }


class PullRequestReviewer:
    """
    Runs the review pipeline for pull request events.

    Args:
        session: Database session; status transitions are committed on it
        analyzers: Quality, security and gist collaborators
        auth_config: Credentials for building GitHub clients
        config: Timeouts and reporting switches
        client_resolver: Chooses the GitHub client for a repository
    """

    def __init__(
        self,
        session: Session,
        analyzers: AnalyzerSet,
        auth_config: GitHubAuthConfig,
        config: Optional[Settings] = None,
        client_resolver: ClientResolver = resolve_client,
    ):
        self.session = session
        self.analyzers = analyzers
        self.auth_config = auth_config
        self.config = config or default_settings
        self.client_resolver = client_resolver
        self.analysis_repo = AnalysisRepository(session)
        self.registry = InstallationRegistry(session)

    async def review(
        self, payload: dict[str, Any], delivery_id: Optional[str] = None
    ) -> ReviewOutcome:
        """
        Process one pull request event.

        Args:
            payload: ``pull_request`` webhook payload
            delivery_id: Delivery id for log correlation

        Returns:
            ReviewOutcome describing the terminal state
        """
        action = payload.get("action", "")
        pr = payload["pull_request"]
        repo_payload = payload["repository"]
        number = pr["number"]
        full_name = repo_payload.get("full_name", "")

        if action not in REVIEWED_ACTIONS:
            logger.info(f"Ignoring PR action: {action}")
            return ReviewOutcome(status="dropped", error=f"action {action} not reviewed")

        logger.info(
            f"Processing PR #{number} in {full_name}: {action} "
            f"(delivery {delivery_id or 'n/a'})"
        )

        installation_id = (payload.get("installation") or {}).get("id")
        repository = self.registry.find_repository(
            repo_payload, str(installation_id) if installation_id else None
        )
        if repository is None:
            logger.error(
                f"Repository {full_name} not found in database. Make sure the "
                "GitHub App is installed and the repository is registered."
            )
            return ReviewOutcome(status="dropped", error="repository not registered")

        analysis = self._start(repository, payload)
        client_outcome = await self._resolve_client(repository)
        if isinstance(client_outcome, Err):
            return self._fail(analysis, client_outcome)

        client: GitHubClient = client_outcome.value
        try:
            return await self._run(analysis, repository, client, payload)
        finally:
            await client.aclose()

    # ===== Stages =====

    def _start(self, repository: Repository, payload: dict[str, Any]) -> Analysis:
        context = pr_context(payload)
        analysis = self.analysis_repo.create_pending(
            repository_id=repository.id,
            name=f"PR #{context['number']}: {context['title']}",
            pr_number=context["number"],
            branch=context["branch"],
            commit=context["head_sha"],
            options={"pr": context, "github_payload": payload},
        )
        self.session.commit()
        logger.info(f"Created analysis {analysis.id} for {repository.full_name}")

        self.analysis_repo.transition(analysis, AnalysisStatus.PROCESSING)
        self.session.commit()
        return analysis

    async def _resolve_client(self, repository: Repository) -> StageOutcome:
        try:
            client = await self.client_resolver(
                repository.github_installation_id, self.auth_config
            )
        except Exception as e:
            logger.error(f"Cannot authenticate for {repository.full_name}: {e}")
            return fatal(e)
        return Ok(client)

    async def _fetch_diff(
        self, client: GitHubClient, repository: Repository, number: int
    ) -> StageOutcome:
        try:
            diff = await fetch_diff(
                client,
                repository.full_name,
                number,
                timeout=self.config.diff_fetch_timeout,
            )
        except Exception as e:
            logger.error(f"Failed to fetch diff for PR #{number}: {e}")
            return fatal(e)
        return Ok(diff)

    async def _analyze(self, payload: dict[str, Any], diff: str) -> StageOutcome:
        try:
            result = await run_fanout(
                self.analyzers, payload, diff, timeout=self.config.analyzer_timeout
            )
        except Exception as e:
            logger.error(f"Analysis failed for PR #{payload['pull_request']['number']}: {e}")
            return fatal(e)
        return Ok(result)

    def _persist(self, analysis: Analysis, fanout: FanoutResult) -> StageOutcome:
        try:
            rows = persist_results(
                self.session, analysis.id, fanout.quality, fanout.security
            )
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Failed to store results for analysis {analysis.id}: {e}")
            return fatal(e)
        return Ok(len(rows))

    async def _run(
        self,
        analysis: Analysis,
        repository: Repository,
        client: GitHubClient,
        payload: dict[str, Any],
    ) -> ReviewOutcome:
        pr = payload["pull_request"]

        diff_outcome = await self._fetch_diff(client, repository, pr["number"])
        if isinstance(diff_outcome, Err):
            return self._fail(analysis, diff_outcome)
        diff = diff_outcome.value

        fanout_outcome = await self._analyze(payload, diff)
        if isinstance(fanout_outcome, Err):
            return self._fail(analysis, fanout_outcome, diff=diff)
        fanout: FanoutResult = fanout_outcome.value

        persist_outcome = self._persist(analysis, fanout)
        if isinstance(persist_outcome, Err):
            return self._fail(analysis, persist_outcome, diff=diff)

        reporting = await run_reporting(
            client,
            ReportTarget(
                full_name=repository.full_name,
                number=pr["number"],
                title=pr.get("title") or "",
                body=pr.get("body") or "",
            ),
            fanout,
            publish_gist=self.config.publish_gists,
            gist_public=self.config.gist_public,
            update_description=self.config.update_pr_description,
        )

        self.analysis_repo.transition(
            analysis,
            AnalysisStatus.COMPLETED,
            diff=diff,
            gist_url=reporting.gist_url,
            results_count=persist_outcome.value,
            pr_gist=fanout.gist.to_dict() if fanout.gist else None,
            degraded_steps=reporting.degraded_steps,
        )
        self.session.commit()
        logger.info(
            f"Analysis {analysis.id} completed for PR #{pr['number']} "
            f"with {persist_outcome.value} results"
        )
        return ReviewOutcome(
            status="completed",
            analysis_id=analysis.id,
            results_count=persist_outcome.value,
            gist_url=reporting.gist_url,
            degraded=reporting.degraded_steps,
        )

    def _fail(self, analysis: Analysis, outcome: Err, **entries: Any) -> ReviewOutcome:
        self.analysis_repo.transition(
            analysis, AnalysisStatus.FAILED, error=outcome.message, **entries
        )
        self.session.commit()
        logger.error(f"Analysis {analysis.id} failed: {outcome.message}")
        return ReviewOutcome(
            status="failed", analysis_id=analysis.id, error=outcome.message
        )
