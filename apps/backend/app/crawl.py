"""
Crawl endpoints: trigger crawls, accept results from the local crawler,
read crawl logs and recompute match scores.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.config import Capabilities
from app.deps import get_orchestrator, get_user_id
from core.models import ParsedJob
from orchestrator import CrawlOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/jobs", tags=["crawl"])


class CrawlAllRequest(BaseModel):
    api_only: bool = Field(False, alias="apiOnly")

    model_config = {"populate_by_name": True}


class SubmittedJob(BaseModel):
    externalId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    url: str
    location: Optional[str] = None
    remote: bool = False
    department: Optional[str] = None
    description: Optional[str] = None
    postedAt: Optional[str] = None


class SubmitResultsRequest(BaseModel):
    jobs: List[SubmittedJob]
    duration: Optional[int] = None


@router.post("/crawl/all")
async def crawl_all(
    request: Optional[CrawlAllRequest] = None,
    user_id: int = Depends(get_user_id),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    """
    Crawl every active company.

    With ``apiOnly`` (or when in-process browser crawling is disabled on
    this host) browser-only companies are skipped and returned in
    ``skippedCompanyIds`` for the local crawler.
    """
    api_only = bool(request and request.api_only)
    if not api_only and not Capabilities.is_browser_enabled():
        logger.info("[crawl] Browser disabled on this host, running API phase only")
        api_only = True

    result = await orchestrator.crawl_all_companies(user_id, api_only=api_only)
    return {"success": True, "data": result.to_dict()}


@router.post("/crawl/{company_id}")
async def crawl_company(
    company_id: int,
    user_id: int = Depends(get_user_id),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.crawl_company(user_id, company_id)
    return {"success": True, "data": {"result": result.to_dict()}}


@router.post("/crawl/{company_id}/results")
def submit_results(
    company_id: int,
    request: SubmitResultsRequest,
    user_id: int = Depends(get_user_id),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    """Accept jobs crawled by the out-of-process local crawler."""
    jobs = [ParsedJob.from_dict(job.model_dump()) for job in request.jobs]
    result = orchestrator.submit_crawl_results(user_id, company_id, jobs, duration=request.duration)
    return {"success": True, "data": {"result": result.to_dict()}}


@router.get("/crawl-logs")
def crawl_logs(
    company_id: Optional[int] = Query(None, alias="companyId"),
    limit: int = Query(20, ge=1, le=200),
    user_id: int = Depends(get_user_id),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    logs = orchestrator.get_crawl_logs(user_id, company_id=company_id, limit=limit)
    return {"success": True, "data": {"logs": [log.to_dict() for log in logs], "total": len(logs)}}


@router.post("/recalculate-scores")
def recalculate_scores(
    user_id: int = Depends(get_user_id),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    updated = orchestrator.recalculate_match_scores(user_id)
    return {
        "success": True,
        "data": {"updated": updated},
        "message": f"Recalculated match scores for {updated} jobs",
    }
