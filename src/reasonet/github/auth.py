"""
GitHub authentication resolution.

Produces one API client per request, preferring an installation-scoped
token minted from the GitHub App identity and falling back to the static
personal token:

1. installation id present and app id + private key configured:
   exchange an app JWT for an installation token. Any error here is logged
   and the resolver falls through.
2. static token configured: token-scoped client.
3. otherwise: AuthenticationUnavailable.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx
from jose import jwt

from reasonet.config import Settings
from reasonet.exceptions import AuthenticationUnavailable, GitHubAPIError
from reasonet.github.client import DEFAULT_API_URL, JSON_MEDIA_TYPE, GitHubClient

logger = logging.getLogger(__name__)


@dataclass
class GitHubAuthConfig:
    """Credentials and transport options for building GitHub clients."""

    app_id: str = ""
    private_key: str = ""
    token: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "GitHubAuthConfig":
        return cls(
            app_id=config.github_app_id,
            private_key=config.github_app_private_key,
            token=config.github_token,
            api_url=config.github_api_url,
            timeout=config.github_request_timeout,
        )

    @property
    def app_configured(self) -> bool:
        return bool(self.app_id and self.private_key)


AppClientFactory = Callable[[str, GitHubAuthConfig], Awaitable[GitHubClient]]
TokenClientFactory = Callable[[GitHubAuthConfig], GitHubClient]


def load_private_key(raw: str) -> str:
    """
    Load the GitHub App private key.

    Accepts a PEM string (with literal ``\\n`` escapes, as stored in env
    files) or a path to a PEM file.
    """
    if "BEGIN" in raw and "PRIVATE KEY" in raw:
        return raw.replace("\\n", "\n")
    path = Path(raw.strip().strip('"')).expanduser()
    if path.is_file():
        return path.read_text()
    raise ValueError(
        "GITHUB_APP_PRIVATE_KEY must be a PEM string or path to a private key file"
    )


def generate_app_jwt(app_id: str, private_key: str, now: Optional[int] = None) -> str:
    """
    Generate the short-lived JWT that authenticates as the GitHub App.

    ``iat`` is backdated 60 seconds to tolerate clock drift; the token
    expires after 10 minutes, the maximum GitHub allows.
    """
    issued = int(now if now is not None else time.time())
    payload = {
        "iat": issued - 60,
        "exp": issued + 600,
        "iss": app_id,
    }
    return jwt.encode(payload, load_private_key(private_key), algorithm="RS256")


async def request_installation_token(
    installation_id: str, config: GitHubAuthConfig
) -> str:
    """
    Exchange an app JWT for an installation access token.

    Raises:
        GitHubAPIError: If GitHub rejects the exchange or omits the token
    """
    app_jwt = generate_app_jwt(config.app_id, config.private_key)
    async with httpx.AsyncClient(
        base_url=config.api_url.rstrip("/"),
        timeout=config.timeout,
        transport=config.transport,
    ) as client:
        try:
            response = await client.post(
                f"/app/installations/{installation_id}/access_tokens",
                headers={
                    "Authorization": f"Bearer {app_jwt}",
                    "Accept": JSON_MEDIA_TYPE,
                },
            )
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Installation token request failed: {e}") from e

    if response.is_error:
        raise GitHubAPIError(
            f"Installation token request for {installation_id} rejected",
            status_code=response.status_code,
        )
    token = response.json().get("token")
    if not token:
        raise GitHubAPIError("Installation token response missing token")
    return token


async def create_installation_client(
    installation_id: str, config: GitHubAuthConfig
) -> GitHubClient:
    """Build a client authenticated as a specific installation."""
    token = await request_installation_token(installation_id, config)
    return GitHubClient(
        token,
        api_url=config.api_url,
        timeout=config.timeout,
        auth_method="installation",
        installation_id=installation_id,
        transport=config.transport,
    )


def create_token_client(config: GitHubAuthConfig) -> GitHubClient:
    """Build a client authenticated with the static personal token."""
    return GitHubClient(
        config.token,
        api_url=config.api_url,
        timeout=config.timeout,
        auth_method="token",
        transport=config.transport,
    )


async def resolve_client(
    installation_id: Optional[str],
    config: GitHubAuthConfig,
    *,
    app_client_factory: AppClientFactory = create_installation_client,
    token_client_factory: TokenClientFactory = create_token_client,
) -> GitHubClient:
    """
    Resolve the GitHub client to use for one repository.

    Args:
        installation_id: The repository's stored installation id, if any
        config: Available credentials
        app_client_factory: Builds an installation-scoped client
        token_client_factory: Builds a static-token client

    Returns:
        A ready-to-use GitHubClient

    Raises:
        AuthenticationUnavailable: If neither credential path yields a client
    """
    if installation_id:
        if config.app_configured:
            try:
                client = await app_client_factory(installation_id, config)
                logger.info(
                    f"Using GitHub App auth for installation {installation_id}"
                )
                return client
            except Exception as e:
                logger.error(
                    f"GitHub App authentication failed for installation "
                    f"{installation_id}, falling back: {e}"
                )
        else:
            logger.error(
                f"Repository has installation {installation_id} but GITHUB_APP_ID "
                "or GITHUB_APP_PRIVATE_KEY is not configured"
            )

    if config.token:
        logger.info("Falling back to personal access token for GitHub API")
        return token_client_factory(config)

    raise AuthenticationUnavailable(
        "No GitHub authentication method available: configure GITHUB_APP_ID and "
        "GITHUB_APP_PRIVATE_KEY, or GITHUB_TOKEN"
    )
