"""
Async GitHub REST client.

Thin wrapper over ``httpx.AsyncClient`` covering the calls the review
pipeline makes: diff retrieval, pull request listing and updates, issue
comments and gists. Every transport or HTTP failure surfaces as
:class:`reasonet.exceptions.GitHubAPIError`.
"""

import logging
from typing import Any, Optional

import httpx

from reasonet.exceptions import GitHubAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
JSON_MEDIA_TYPE = "application/vnd.github+json"


class GitHubClient:
    """
    Token-scoped GitHub REST client.

    Attributes:
        auth_method: How the token was obtained ("installation" or "token")
        installation_id: Installation the token is scoped to, if any
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        auth_method: str = "token",
        installation_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth_method = auth_method
        self.installation_id = installation_id
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": JSON_MEDIA_TYPE,
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "reasonet-review-bot",
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        accept: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {"Accept": accept} if accept else None
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            message = ""
            try:
                data = response.json()
                if isinstance(data, dict):
                    message = data.get("message", "")
            except ValueError:
                message = response.text[:200]
            raise GitHubAPIError(
                f"{method} {path} failed: {message or response.reason_phrase}",
                status_code=response.status_code,
            )
        return response

    async def get_pull_request_diff(self, owner: str, repo: str, number: int) -> str:
        """
        Fetch the unified diff of a pull request.

        Args:
            owner: Repository owner login
            repo: Repository name
            number: Pull request number

        Returns:
            Diff text
        """
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/pulls/{number}", accept=DIFF_MEDIA_TYPE
        )
        return response.text

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "open",
        head: Optional[str] = None,
    ) -> list[dict]:
        """
        List pull requests of a repository.

        Args:
            owner: Repository owner login
            repo: Repository name
            state: "open", "closed" or "all"
            head: Filter by head as "user:ref-name"

        Returns:
            Pull request objects
        """
        params: dict[str, Any] = {"state": state, "per_page": 100}
        if head:
            params["head"] = head
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/pulls", params=params
        )
        return response.json()

    async def update_pull_request(
        self, owner: str, repo: str, number: int, **fields: Any
    ) -> dict:
        """Update pull request fields (title, body, state, base)."""
        response = await self._request(
            "PATCH", f"/repos/{owner}/{repo}/pulls/{number}", json=fields
        )
        return response.json()

    async def create_issue_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> dict:
        """Post a comment on an issue or pull request."""
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{number}/comments",
            json={"body": body},
        )
        return response.json()

    async def create_gist(
        self, description: str, files: dict[str, str], public: bool = False
    ) -> dict:
        """
        Create a gist.

        Args:
            description: Gist description
            files: Mapping of file name to content
            public: Whether the gist is public

        Returns:
            Gist object (``html_url`` holds the link)
        """
        response = await self._request(
            "POST",
            "/gists",
            json={
                "description": description,
                "public": public,
                "files": {name: {"content": content} for name, content in files.items()},
            },
        )
        return response.json()


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split "owner/repo" into its two parts."""
    owner, _, repo = full_name.partition("/")
    if not owner or not repo:
        raise ValueError(f"Invalid repository full name: {full_name!r}")
    return owner, repo
