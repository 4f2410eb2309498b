"""
Concurrent analysis fan-out.

Runs the quality, security and gist collaborators over the same diff as
asyncio tasks. Each is bounded by the caller's timeout. The first failure
(timeout included) cancels the remaining tasks and propagates: partial
findings without the digest, or the reverse, are treated as an incomplete
analysis.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional

from reasonet.analyzers.loader import AnalyzerSet
from reasonet.models.findings import CodeQualityIssue, PRGist, SecurityIssue

logger = logging.getLogger(__name__)


@dataclass
class FanoutResult:
    """Combined output of the three collaborators."""

    quality: list[CodeQualityIssue] = field(default_factory=list)
    security: list[SecurityIssue] = field(default_factory=list)
    gist: Optional[PRGist] = None
    duration_ms: float = 0.0

    @property
    def findings_count(self) -> int:
        return len(self.quality) + len(self.security)


async def _bounded(name: str, coro: Awaitable[Any], timeout: Optional[float]) -> Any:
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"{name} analyzer timed out after {timeout}s") from e


async def run_fanout(
    analyzers: AnalyzerSet,
    payload: dict[str, Any],
    diff: str,
    timeout: Optional[float] = None,
) -> FanoutResult:
    """
    Run all three collaborators concurrently and wait for every one.

    Args:
        analyzers: Collaborators to run
        payload: Original pull request event payload
        diff: Unified diff of the pull request
        timeout: Per-collaborator bound in seconds (None for unbounded)

    Returns:
        FanoutResult with findings and digest

    Raises:
        Exception: The first collaborator failure; the others are cancelled
    """
    started = time.perf_counter()
    tasks = [
        asyncio.ensure_future(
            _bounded("quality", analyzers.quality.analyze(payload, diff), timeout)
        ),
        asyncio.ensure_future(
            _bounded("security", analyzers.security.scan(payload, diff), timeout)
        ),
        asyncio.ensure_future(
            _bounded("gist", analyzers.gist.generate(payload, diff), timeout)
        ),
    ]

    try:
        quality, security, gist = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    result = FanoutResult(
        quality=list(quality or []),
        security=list(security or []),
        gist=gist,
        duration_ms=(time.perf_counter() - started) * 1000,
    )
    logger.info(
        f"Analysis complete: {len(result.quality)} quality issues, "
        f"{len(result.security)} security issues ({result.duration_ms:.0f}ms)"
    )
    return result
