"""Protocols for the analysis collaborators run by the review fan-out."""

from typing import Any, Protocol, runtime_checkable

from reasonet.models.findings import CodeQualityIssue, PRGist, SecurityIssue


@runtime_checkable
class QualityAnalyzer(Protocol):
    """Reviews a pull request diff for code quality issues."""

    async def analyze(self, payload: dict[str, Any], diff: str) -> list[CodeQualityIssue]:
        ...


@runtime_checkable
class SecurityAnalyzer(Protocol):
    """Scans a pull request diff for security issues."""

    async def scan(self, payload: dict[str, Any], diff: str) -> list[SecurityIssue]:
        ...


@runtime_checkable
class GistGenerator(Protocol):
    """Summarises a pull request into a digest."""

    async def generate(self, payload: dict[str, Any], diff: str) -> PRGist:
        ...
