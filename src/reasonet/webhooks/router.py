"""
Webhook event routing.

Dispatches a verified delivery to its handler by the ``X-GitHub-Event``
kind. Kinds without a handler are acknowledged as ignored so GitHub does
not redeliver them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from reasonet.pipeline.check_suite import CheckSuiteResolver
from reasonet.pipeline.review import PullRequestReviewer
from reasonet.services.registry import InstallationRegistry

logger = logging.getLogger(__name__)


@dataclass
class WebhookAck:
    """Acknowledgment returned for every accepted delivery."""

    event: str
    status: str  # processed, ignored
    delivery_id: Optional[str] = None
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "status": self.status,
            "delivery_id": self.delivery_id,
            "detail": self.detail,
        }


class WebhookRouter:
    """
    Routes verified webhook deliveries.

    Args:
        session: Database session for the delivery
        reviewer: Pull request review pipeline bound to the same session
    """

    def __init__(self, session: Session, reviewer: PullRequestReviewer):
        self.session = session
        self.registry = InstallationRegistry(session)
        self.reviewer = reviewer
        self.check_suites = CheckSuiteResolver(reviewer)

    async def dispatch(
        self, event: str, payload: dict[str, Any], delivery_id: Optional[str] = None
    ) -> WebhookAck:
        """
        Handle one delivery.

        Args:
            event: ``X-GitHub-Event`` header value
            payload: Parsed JSON body
            delivery_id: ``X-GitHub-Delivery`` header value

        Returns:
            WebhookAck for the HTTP response

        Raises:
            Exception: Unexpected handler failures (mapped to HTTP 500)
        """
        logger.info(f"Received GitHub webhook: {event} (delivery {delivery_id or 'n/a'})")

        if event == "installation":
            change = self.registry.handle_installation(payload)
            return WebhookAck(event, "processed", delivery_id, change.to_dict())

        if event == "installation_repositories":
            change = self.registry.handle_installation_repositories(payload)
            return WebhookAck(event, "processed", delivery_id, change.to_dict())

        if event == "pull_request":
            outcome = await self.reviewer.review(payload, delivery_id=delivery_id)
            status = "ignored" if outcome.status == "dropped" else "processed"
            return WebhookAck(event, status, delivery_id, outcome.to_dict())

        if event == "check_suite":
            suite = await self.check_suites.resolve(payload, delivery_id=delivery_id)
            status = "ignored" if suite.status == "dropped" else "processed"
            return WebhookAck(event, status, delivery_id, suite.to_dict())

        logger.info(f"Unhandled event type: {event}")
        return WebhookAck(event, "ignored", delivery_id, {"reason": "unhandled event"})
