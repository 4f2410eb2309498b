"""
Result persistence: findings to AnalysisResult rows.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from reasonet.db.repositories import AnalysisResultRepository
from reasonet.models.db import AnalysisResult, ResultStatus, ResultType, Severity
from reasonet.models.findings import CodeQualityIssue, SecurityIssue

logger = logging.getLogger(__name__)


def normalize_severity(value: Optional[str]) -> str:
    """
    Map a collaborator severity onto the stored enum.

    Examples:
        >>> normalize_severity("high")
        'HIGH'
        >>> normalize_severity("warning")
        'INFO'
    """
    if value:
        candidate = str(value).strip().upper()
        if candidate in Severity.__members__:
            return Severity[candidate].value
    return Severity.INFO.value


def build_result_rows(
    analysis_id: uuid.UUID,
    quality: Iterable[CodeQualityIssue],
    security: Iterable[SecurityIssue],
) -> list[dict]:
    """
    Build AnalysisResult field dicts for every finding.

    Quality findings come first, then security findings.
    """
    rows: list[dict] = []
    for issue in quality:
        rows.append(
            {
                "analysis_id": analysis_id,
                "type": ResultType.CODE_QUALITY.value,
                "severity": normalize_severity(issue.severity),
                "title": issue.message,
                "description": issue.suggestion or "",
                "location": issue.file,
                "line_start": issue.line_number,
                "line_end": issue.line_number,
                "code": issue.code or "",
                "status": ResultStatus.OPEN.value,
            }
        )
    for issue in security:
        rows.append(
            {
                "analysis_id": analysis_id,
                "type": ResultType.SECURITY.value,
                "severity": normalize_severity(issue.severity),
                "title": issue.message,
                "description": issue.remediation or "",
                "location": issue.file,
                "line_start": issue.line_number,
                "line_end": issue.line_number,
                "code": issue.code or "",
                "status": ResultStatus.OPEN.value,
            }
        )
    return rows


def persist_results(
    session: Session,
    analysis_id: uuid.UUID,
    quality: Iterable[CodeQualityIssue],
    security: Iterable[SecurityIssue],
) -> list[AnalysisResult]:
    """
    Bulk-insert the findings of an analysis.

    An empty finding set inserts nothing and is not an error.

    Returns:
        The created rows
    """
    rows = build_result_rows(analysis_id, quality, security)
    if not rows:
        logger.info(f"No findings to store for analysis {analysis_id}")
        return []

    created = AnalysisResultRepository(session).bulk_create(rows)
    logger.info(f"Stored {len(created)} analysis results for analysis {analysis_id}")
    return created
