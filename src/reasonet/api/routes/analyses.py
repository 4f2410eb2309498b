"""
Analysis API routes.

Read-only endpoints for review analyses and their findings.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from reasonet.api.schemas import (
    AnalysisDetail,
    AnalysisListResponse,
    AnalysisResultResponse,
    AnalysisSummary,
)
from reasonet.db.connection import get_db
from reasonet.db.repositories import (
    AnalysisRepository,
    AnalysisResultRepository,
    CodeRepositoryRepository,
)

router = APIRouter()


@router.get("/analyses/{analysis_id}", response_model=AnalysisDetail)
async def get_analysis(
    analysis_id: UUID,
    session: Session = Depends(get_db),
) -> AnalysisDetail:
    """
    Get an analysis with its findings.

    Includes the options audit trail (pull request metadata, diff, gist url,
    error, status history) and per-severity finding counts.
    """
    analysis = AnalysisRepository(session).get_with_results(analysis_id)
    if not analysis:
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")

    summary = AnalysisSummary.model_validate(analysis)
    return AnalysisDetail(
        **summary.model_dump(),
        options=analysis.options or {},
        results=[AnalysisResultResponse.model_validate(r) for r in analysis.results],
        severity_counts=AnalysisResultRepository(session).count_by_severity(
            analysis.id
        ),
    )


@router.get(
    "/repositories/{github_id}/analyses", response_model=AnalysisListResponse
)
async def list_repository_analyses(
    github_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_db),
) -> AnalysisListResponse:
    """List a repository's analyses, newest first, by GitHub repository id."""
    repository = CodeRepositoryRepository(session).get_by_github_id(github_id)
    if not repository:
        raise HTTPException(status_code=404, detail=f"Repository {github_id} not found")

    analysis_repo = AnalysisRepository(session)
    analyses = analysis_repo.get_by_repository(repository.id, limit=limit, offset=offset)
    total = analysis_repo.count_by_repository(repository.id)

    return AnalysisListResponse(
        items=[AnalysisSummary.model_validate(a) for a in analyses],
        total=total,
        limit=limit,
        offset=offset,
    )
