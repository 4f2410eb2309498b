"""
Diff retrieval for pull requests.
"""

import asyncio
import logging
from typing import Optional

from reasonet.github.client import GitHubClient, split_full_name

logger = logging.getLogger(__name__)


async def fetch_diff(
    client: GitHubClient,
    full_name: str,
    number: int,
    timeout: Optional[float] = None,
) -> str:
    """
    Fetch the unified diff of a pull request within a time bound.

    Args:
        client: Resolved GitHub client
        full_name: Repository "owner/name"
        number: Pull request number
        timeout: Seconds before giving up (None for unbounded)

    Returns:
        Diff text

    Raises:
        GitHubAPIError: On transport or authorization failure
        TimeoutError: If the fetch exceeds ``timeout``
    """
    owner, repo = split_full_name(full_name)
    logger.info(f"Fetching diff for PR #{number} from {owner}/{repo}")
    try:
        diff = await asyncio.wait_for(
            client.get_pull_request_diff(owner, repo, number), timeout=timeout
        )
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"Diff fetch for PR #{number} timed out after {timeout}s") from e

    logger.info(f"Fetched diff for PR #{number} ({len(diff)} bytes)")
    return diff
