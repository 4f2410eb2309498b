"""
Baseline collaborators.

Used when no external analyzers are configured. They report no findings
and build the digest purely from diff statistics, so the pipeline runs end
to end without any model or scanner behind it.
"""

from dataclasses import dataclass, field
from typing import Any

from reasonet.models.findings import CodeQualityIssue, PRGist, SecurityIssue


@dataclass
class DiffStats:
    """Line and file counts of a unified diff."""

    files: list[str] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


def compute_diff_stats(diff: str) -> DiffStats:
    """
    Count touched files and added/removed lines in a unified diff.

    Examples:
        >>> stats = compute_diff_stats("diff --git a/x.py b/x.py\\n+++ b/x.py\\n+a\\n-b\\n")
        >>> (stats.files, stats.additions, stats.deletions)
        (['x.py'], 1, 1)
    """
    stats = DiffStats()
    for line in diff.splitlines():
        if line.startswith("diff --git "):
            path = line.rsplit(" b/", 1)[-1]
            stats.files.append(path)
        elif line.startswith("+++") or line.startswith("---"):
            continue
        elif line.startswith("+"):
            stats.additions += 1
        elif line.startswith("-"):
            stats.deletions += 1
    return stats


def _complexity(stats: DiffStats) -> str:
    if stats.changed_lines > 500 or len(stats.files) > 20:
        return "HIGH"
    if stats.changed_lines > 100 or len(stats.files) > 5:
        return "MEDIUM"
    return "LOW"


class DiffStatsQualityAnalyzer:
    async def analyze(self, payload: dict[str, Any], diff: str) -> list[CodeQualityIssue]:
        return []


class DiffStatsSecurityAnalyzer:
    async def scan(self, payload: dict[str, Any], diff: str) -> list[SecurityIssue]:
        return []


class DiffStatsGistGenerator:
    async def generate(self, payload: dict[str, Any], diff: str) -> PRGist:
        stats = compute_diff_stats(diff)
        title = (payload.get("pull_request") or {}).get("title") or "this pull request"
        return PRGist(
            summary=(
                f"{title}: {len(stats.files)} file(s) changed, "
                f"+{stats.additions}/-{stats.deletions} lines."
            ),
            complexity=_complexity(stats),
            impact=f"Touches {len(stats.files)} file(s).",
            key_changes=stats.files[:10],
            recommendations=[],
        )
