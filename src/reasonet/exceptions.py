"""Custom exceptions for Reasonet."""

from typing import Optional


class ReasonetError(Exception):
    """Base class for errors raised by the review pipeline."""


class WebhookSignatureError(ReasonetError):
    """Raised when a webhook delivery fails signature verification."""


class AuthenticationUnavailable(ReasonetError):
    """Raised when no GitHub credential can produce an API client."""

    def __init__(self, message: str = "No GitHub authentication method available"):
        super().__init__(message)


class GitHubAPIError(ReasonetError):
    """Raised when a GitHub REST call fails at the transport or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message)


class InvalidStatusTransition(ReasonetError):
    """Raised when an Analysis is moved to a status its lifecycle forbids."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition analysis from {current} to {target}")


class AnalyzerLoadError(ReasonetError):
    """Raised when a configured analysis collaborator cannot be loaded."""
