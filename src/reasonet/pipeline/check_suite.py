"""
Check suite re-runs.

A ``check_suite`` requested/rerequested event carries a head branch, not a
pull request. The resolver finds the open pull requests for that branch and
reviews each one as if it had just been opened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from reasonet.github.client import split_full_name
from reasonet.pipeline.review import PullRequestReviewer, ReviewOutcome

logger = logging.getLogger(__name__)

CHECK_SUITE_ACTIONS = ("requested", "rerequested")


@dataclass
class CheckSuiteOutcome:
    """Reviews triggered by one check suite event."""

    status: str  # processed, dropped
    head_branch: Optional[str] = None
    reviews: list[ReviewOutcome] = field(default_factory=list)
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "head_branch": self.head_branch,
            "reason": self.reason,
            "reviews": [review.to_dict() for review in self.reviews],
        }


class CheckSuiteResolver:
    """Maps check suite events onto pull request reviews."""

    def __init__(self, reviewer: PullRequestReviewer):
        self.reviewer = reviewer

    async def resolve(
        self, payload: dict[str, Any], delivery_id: Optional[str] = None
    ) -> CheckSuiteOutcome:
        """
        Review every open pull request whose head is the check suite's branch.

        Lookup and authentication problems are logged and the event is
        dropped; there is no analysis to mark as failed at this point.
        """
        action = payload.get("action", "")
        if action not in CHECK_SUITE_ACTIONS:
            logger.info(f"Ignoring check_suite action: {action}")
            return CheckSuiteOutcome(status="dropped", reason=f"action {action} ignored")

        repository_payload = payload["repository"]
        full_name = repository_payload["full_name"]
        head_branch = (payload.get("check_suite") or {}).get("head_branch")
        logger.info(
            f"Processing check_suite {action} for repo {full_name}, "
            f"head branch: {head_branch}"
        )
        if not head_branch:
            return CheckSuiteOutcome(status="dropped", reason="no head branch")

        registry = self.reviewer.registry
        repository = registry.repositories.get_by_github_id(str(repository_payload["id"]))
        if repository is None:
            logger.error(
                f"Repository {full_name} not found in database. Cannot trigger analysis."
            )
            return CheckSuiteOutcome(
                status="dropped", head_branch=head_branch, reason="repository not registered"
            )

        owner, repo = split_full_name(full_name)
        try:
            client = await self.reviewer.client_resolver(
                repository.github_installation_id, self.reviewer.auth_config
            )
        except Exception as e:
            logger.error(f"Cannot authenticate for check_suite on {full_name}: {e}")
            return CheckSuiteOutcome(
                status="dropped", head_branch=head_branch, reason=str(e)
            )

        try:
            pull_requests = await client.list_pull_requests(
                owner, repo, state="open", head=f"{owner}:{head_branch}"
            )
        except Exception as e:
            logger.error(f"Failed to list pull requests for {full_name}: {e}")
            return CheckSuiteOutcome(
                status="dropped", head_branch=head_branch, reason=str(e)
            )
        finally:
            await client.aclose()

        outcome = CheckSuiteOutcome(status="processed", head_branch=head_branch)
        if not pull_requests:
            logger.info(f"No open PRs found for check suite on branch {head_branch}")
            return outcome

        for pr in pull_requests:
            logger.info(
                f"Found related PR #{pr['number']} for check suite, triggering analysis"
            )
            pr_payload = {
                "action": "opened",
                "number": pr["number"],
                "pull_request": pr,
                "repository": repository_payload,
                "installation": payload.get("installation"),
            }
            outcome.reviews.append(
                await self.reviewer.review(pr_payload, delivery_id=delivery_id)
            )

        return outcome
