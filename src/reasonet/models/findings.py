"""
Structured output of the analysis collaborators.

Plain dataclasses passed from the fan-out to the result persister and the
reporting steps. ``to_dict`` produces the JSON stored in Analysis.options.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class CodeQualityIssue:
    """Code quality finding."""

    severity: str  # CRITICAL, HIGH, MEDIUM, LOW, INFO
    message: str
    file: str
    line_number: Optional[int] = None
    suggestion: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SecurityIssue:
    """Security finding."""

    severity: str
    message: str
    file: str
    line_number: Optional[int] = None
    remediation: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PRGist:
    """Summary digest of a pull request."""

    summary: str
    complexity: str = "LOW"  # LOW, MEDIUM, HIGH
    impact: str = ""
    key_changes: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
