"""
Reporting steps run after findings are persisted.

Three best-effort side effects, executed in order and isolated from each
other's failures:

1. publish a gist with the full report (failure: empty gist url)
2. post a pull request comment (failure: logged loudly, analysis still
   COMPLETED since findings are already stored)
3. rewrite the pull request description summary block (failure: swallowed)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from reasonet.github.client import GitHubClient, split_full_name
from reasonet.models.findings import CodeQualityIssue, PRGist, SecurityIssue
from reasonet.pipeline.fanout import FanoutResult
from reasonet.pipeline.outcomes import (
    FailureKind,
    Ok,
    StageOutcome,
    degraded,
    dropped,
)

logger = logging.getLogger(__name__)

SUMMARY_START = "<!-- reasonet:summary:start -->"
SUMMARY_END = "<!-- reasonet:summary:end -->"

SEVERITY_ICONS = {
    "CRITICAL": "🔴",
    "HIGH": "🟠",
    "MEDIUM": "🟡",
    "LOW": "🔵",
    "INFO": "⚪",
}


@dataclass
class ReportTarget:
    """The pull request the reports are about."""

    full_name: str
    number: int
    title: str = ""
    body: str = ""


@dataclass
class ReportingOutcome:
    """What the three reporting steps achieved."""

    artifact: StageOutcome = field(default_factory=lambda: dropped("not run"))
    comment: StageOutcome = field(default_factory=lambda: dropped("not run"))
    description: StageOutcome = field(default_factory=lambda: dropped("not run"))

    @property
    def gist_url(self) -> str:
        if isinstance(self.artifact, Ok) and self.artifact.value:
            return self.artifact.value
        return ""

    @property
    def degraded_steps(self) -> list[str]:
        return [
            name
            for name, outcome in (
                ("artifact", self.artifact),
                ("comment", self.comment),
                ("description", self.description),
            )
            if not outcome.ok and outcome.kind == FailureKind.DEGRADED
        ]


# ===== Rendering =====


def _issue_line(
    issue: CodeQualityIssue | SecurityIssue, advice: Optional[str]
) -> str:
    icon = SEVERITY_ICONS.get(str(issue.severity).upper(), "⚪")
    location = issue.file
    if issue.line_number:
        location = f"{location}:{issue.line_number}"
    line = f"- {icon} **{str(issue.severity).upper()}** `{location}`: {issue.message}"
    if advice:
        line += f"\n  - 💡 {advice}"
    return line


def _render_findings(
    quality: list[CodeQualityIssue], security: list[SecurityIssue]
) -> list[str]:
    lines = [f"### 🧹 Code Quality ({len(quality)})", ""]
    if quality:
        lines.extend(_issue_line(issue, issue.suggestion) for issue in quality)
    else:
        lines.append("No code quality issues found.")
    lines.extend(["", f"### 🔒 Security ({len(security)})", ""])
    if security:
        lines.extend(_issue_line(issue, issue.remediation) for issue in security)
    else:
        lines.append("No security issues found.")
    return lines


def _render_gist(gist: Optional[PRGist]) -> list[str]:
    if gist is None:
        return ["_No summary was generated for this pull request._"]
    lines = [f"**Complexity:** {gist.complexity}", "", gist.summary]
    if gist.impact:
        lines.extend(["", f"**Impact:** {gist.impact}"])
    if gist.key_changes:
        lines.extend(["", "**Key changes:**"])
        lines.extend(f"- {change}" for change in gist.key_changes)
    if gist.recommendations:
        lines.extend(["", "**Recommendations:**"])
        lines.extend(f"- {item}" for item in gist.recommendations)
    return lines


def render_report_markdown(target: ReportTarget, fanout: FanoutResult) -> str:
    """Full markdown report published as the gist."""
    lines = [
        f"# Reasonet analysis: {target.full_name}#{target.number}",
        "",
    ]
    if target.title:
        lines.extend([f"**{target.title}**", ""])
    lines.extend(["## Summary", ""])
    lines.extend(_render_gist(fanout.gist))
    lines.extend(["", "## Findings", ""])
    lines.extend(_render_findings(fanout.quality, fanout.security))
    return "\n".join(lines) + "\n"


def render_comment(gist_url: str, fanout: FanoutResult) -> str:
    """Pull request comment body."""
    lines = ["## 🤖 Reasonet Review", ""]
    if gist_url:
        lines.extend([f"📄 [Full analysis report]({gist_url})", ""])
    lines.extend(_render_gist(fanout.gist))
    lines.extend(["", "---", ""])
    lines.extend(_render_findings(fanout.quality, fanout.security))
    return "\n".join(lines) + "\n"


def render_description(current_body: str, gist: Optional[PRGist]) -> str:
    """
    Insert or replace the marked summary block in a PR description.

    Text outside the markers is preserved.
    """
    block = "\n".join(
        [SUMMARY_START, "## Reasonet Summary", "", *_render_gist(gist), SUMMARY_END]
    )
    body = current_body or ""
    start = body.find(SUMMARY_START)
    end = body.find(SUMMARY_END)
    if start != -1 and end != -1 and end > start:
        return body[:start] + block + body[end + len(SUMMARY_END) :]
    if body.strip():
        return f"{body.rstrip()}\n\n{block}\n"
    return f"{block}\n"


# ===== Steps =====


async def publish_artifact(
    client: GitHubClient,
    target: ReportTarget,
    fanout: FanoutResult,
    public: bool = False,
) -> StageOutcome:
    """Publish the report as a gist. Returns Ok(url) or a degraded Err."""
    try:
        gist = await client.create_gist(
            description=f"Reasonet analysis for {target.full_name}#{target.number}",
            files={
                f"reasonet-{target.full_name.replace('/', '-')}-pr{target.number}.md": (
                    render_report_markdown(target, fanout)
                )
            },
            public=public,
        )
        url = gist.get("html_url", "")
        logger.info(f"Created gist for PR #{target.number}: {url or 'no URL returned'}")
        return Ok(url)
    except Exception as e:
        logger.error(f"Failed to create gist for PR #{target.number}: {e}")
        return degraded(e)


async def post_comment(
    client: GitHubClient,
    target: ReportTarget,
    gist_url: str,
    fanout: FanoutResult,
) -> StageOutcome:
    """Post the review comment on the pull request."""
    owner, repo = split_full_name(target.full_name)
    try:
        comment = await client.create_issue_comment(
            owner, repo, target.number, render_comment(gist_url, fanout)
        )
        logger.info(f"Posted comment on PR #{target.number}")
        return Ok(comment.get("html_url", ""))
    except Exception as e:
        logger.error(
            f"Failed to post comment on PR #{target.number} in {target.full_name}; "
            f"findings are stored but the pull request was not notified: {e}",
            exc_info=True,
        )
        return degraded(e)


async def rewrite_description(
    client: GitHubClient,
    target: ReportTarget,
    gist: Optional[PRGist],
) -> StageOutcome:
    """Replace or append the summary block in the PR description."""
    owner, repo = split_full_name(target.full_name)
    try:
        await client.update_pull_request(
            owner, repo, target.number, body=render_description(target.body, gist)
        )
        logger.info(f"Updated description of PR #{target.number}")
        return Ok(None)
    except Exception as e:
        logger.warning(f"Failed to update description of PR #{target.number}: {e}")
        return degraded(e)


async def run_reporting(
    client: GitHubClient,
    target: ReportTarget,
    fanout: FanoutResult,
    publish_gist: bool = True,
    gist_public: bool = False,
    update_description: bool = True,
) -> ReportingOutcome:
    """
    Run the three reporting steps in order.

    No step's failure prevents the next one from running.
    """
    outcome = ReportingOutcome()

    if publish_gist:
        outcome.artifact = await publish_artifact(client, target, fanout, gist_public)
    else:
        outcome.artifact = dropped("gist publishing disabled")

    outcome.comment = await post_comment(client, target, outcome.gist_url, fanout)

    if update_description:
        outcome.description = await rewrite_description(client, target, fanout.gist)
    else:
        outcome.description = dropped("description update disabled")

    return outcome
