"""
FastAPI dependencies for the webhook pipeline.

Each piece the pipeline needs is its own dependency so tests can override
collaborators, credentials or the client resolver independently.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from reasonet.analyzers.loader import AnalyzerSet, load_analyzers
from reasonet.config import Settings, settings
from reasonet.db.connection import get_db
from reasonet.github.auth import GitHubAuthConfig, resolve_client
from reasonet.pipeline.review import ClientResolver, PullRequestReviewer
from reasonet.webhooks.router import WebhookRouter


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def _configured_analyzers() -> AnalyzerSet:
    return load_analyzers(settings)


def get_analyzers() -> AnalyzerSet:
    """Configured analysis collaborators, loaded once per process."""
    return _configured_analyzers()


def get_auth_config(config: Settings = Depends(get_settings)) -> GitHubAuthConfig:
    return GitHubAuthConfig.from_settings(config)


def get_client_resolver() -> ClientResolver:
    return resolve_client


def get_reviewer(
    session: Session = Depends(get_db),
    analyzers: AnalyzerSet = Depends(get_analyzers),
    auth_config: GitHubAuthConfig = Depends(get_auth_config),
    config: Settings = Depends(get_settings),
    client_resolver: ClientResolver = Depends(get_client_resolver),
) -> PullRequestReviewer:
    return PullRequestReviewer(
        session,
        analyzers,
        auth_config,
        config=config,
        client_resolver=client_resolver,
    )


def get_webhook_router(
    session: Session = Depends(get_db),
    reviewer: PullRequestReviewer = Depends(get_reviewer),
) -> WebhookRouter:
    return WebhookRouter(session, reviewer)
