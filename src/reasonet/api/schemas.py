"""
API schemas for Reasonet.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from reasonet.models.db import (
    AnalysisStatus,
    AnalysisType,
    ResultStatus,
    ResultType,
    Severity,
)

# ===== Webhooks =====


class WebhookResponse(BaseModel):
    """Acknowledgment of a processed webhook delivery."""

    message: str = "Webhook processed"
    event: str
    status: str  # processed, ignored
    delivery_id: Optional[str] = None
    detail: dict[str, Any] = Field(default_factory=dict)


class WebhookVerifyResponse(BaseModel):
    """Echo of a delivery received on the verification endpoint."""

    message: str
    event: Optional[str] = None
    delivery: Optional[str] = None
    timestamp: datetime


# ===== Analyses =====


class AnalysisResultResponse(BaseModel):
    """A single stored finding."""

    id: UUID
    type: ResultType
    severity: Severity
    title: str
    description: str
    location: Optional[str] = None
    line_start: Optional[int] = None
    line_end: Optional[int] = None
    code: Optional[str] = None
    status: ResultStatus
    created_at: datetime

    class Config:
        from_attributes = True


class AnalysisSummary(BaseModel):
    """Analysis without its findings or audit trail."""

    id: UUID
    repository_id: UUID
    name: str
    status: AnalysisStatus
    type: AnalysisType
    pr_number: Optional[int] = None
    branch: Optional[str] = None
    commit: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AnalysisDetail(AnalysisSummary):
    """Analysis with findings, severity counts and the options audit trail."""

    options: dict[str, Any] = Field(default_factory=dict)
    results: list[AnalysisResultResponse] = Field(default_factory=list)
    severity_counts: dict[str, int] = Field(default_factory=dict)


class AnalysisListResponse(BaseModel):
    """Paginated analyses of one repository."""

    items: list[AnalysisSummary]
    total: int
    limit: int
    offset: int
