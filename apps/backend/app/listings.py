"""
Job listing, company and job profile endpoints.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.deps import get_company_store, get_listing_store, get_orchestrator, get_profile_store, get_settings, get_user_id
from app.config import CrawlSettings
from core.models import JobProfile, JobStatus
from orchestrator import CrawlOrchestrator
from pipeline.company_store import CompanyStore, JobProfileStore
from pipeline.listing_store import JobListingStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/jobs", tags=["listings"])


class StatusUpdate(BaseModel):
    status: JobStatus


class BatchStatusUpdate(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    status: JobStatus


class CleanupRequest(BaseModel):
    olderThanDays: Optional[int] = Field(None, ge=1)


class ProfileUpdate(BaseModel):
    keywords: List[str] = []
    titles: List[str] = []
    locations: List[str] = []
    excludedLocations: List[str] = []
    remoteOnly: bool = False


def _listing_or_404(store: JobListingStore, user_id: int, listing_id: int):
    listing = store.get_listing(user_id, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Job listing not found: {listing_id}")
    return listing


@router.get("/companies")
def list_companies(
    active: bool = Query(False),
    user_id: int = Depends(get_user_id),
    companies: CompanyStore = Depends(get_company_store),
):
    rows = companies.list_companies(user_id, active_only=active)
    return {"success": True, "data": {"companies": [c.to_dict() for c in rows], "total": len(rows)}}


@router.get("/listings")
def list_listings(
    company_id: Optional[int] = Query(None, alias="companyId"),
    status: Optional[JobStatus] = Query(None),
    min_score: Optional[float] = Query(None, alias="minScore", ge=0, le=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
):
    listings, total = store.list_listings(
        user_id, company_id=company_id, status=status, min_score=min_score, limit=limit, offset=offset,
    )
    return {"success": True, "data": {"listings": [l.to_dict() for l in listings], "total": total}}


@router.get("/listings/stats")
def listing_stats(
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
):
    return {"success": True, "data": store.get_stats(user_id)}


@router.get("/listings/{listing_id}")
def get_listing(
    listing_id: int,
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
):
    listing = _listing_or_404(store, user_id, listing_id)
    return {"success": True, "data": {"listing": listing.to_dict()}}


@router.get("/listings/{listing_id}/score")
def listing_score(
    listing_id: int,
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
    profiles: JobProfileStore = Depends(get_profile_store),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    """Match score of one listing with a per-signal explanation."""
    listing = _listing_or_404(store, user_id, listing_id)
    breakdown = orchestrator.calculate_match_score_with_breakdown(listing, profiles.get_profile(user_id))
    return {"success": True, "data": breakdown.to_dict()}


@router.patch("/listings/{listing_id}/status")
def update_status(
    listing_id: int,
    request: StatusUpdate,
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
):
    listing = store.update_status(user_id, listing_id, request.status)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Job listing not found: {listing_id}")
    return {"success": True, "data": {"listing": listing.to_dict()}}


@router.post("/listings/batch-status")
def batch_update_status(
    request: BatchStatusUpdate,
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
):
    """Listings that are not the user's or cannot reach the target status are skipped."""
    updated = store.batch_update_status(user_id, request.ids, request.status)
    return {
        "success": True,
        "data": {"updated": updated, "skipped": len(set(request.ids)) - updated},
    }


@router.post("/listings/cleanup")
def cleanup_dismissed(
    request: Optional[CleanupRequest] = None,
    user_id: int = Depends(get_user_id),
    store: JobListingStore = Depends(get_listing_store),
    settings: CrawlSettings = Depends(get_settings),
):
    days = (request.olderThanDays if request else None) or settings.retention_days
    deleted = store.cleanup_dismissed(user_id, older_than_days=days)
    return {"success": True, "data": {"deleted": deleted, "olderThanDays": days}}


@router.get("/profile")
def get_profile(
    user_id: int = Depends(get_user_id),
    profiles: JobProfileStore = Depends(get_profile_store),
):
    profile = profiles.get_profile(user_id)
    return {"success": True, "data": {"profile": profile.to_dict() if profile else None}}


@router.put("/profile")
def update_profile(
    request: ProfileUpdate,
    user_id: int = Depends(get_user_id),
    profiles: JobProfileStore = Depends(get_profile_store),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    """Save the job profile and rescore the user's listings against it."""
    profile = profiles.upsert_profile(JobProfile(
        user_id=user_id,
        keywords=request.keywords,
        titles=request.titles,
        locations=request.locations,
        excluded_locations=request.excludedLocations,
        remote_only=request.remoteOnly,
    ))
    updated = orchestrator.recalculate_match_scores(user_id)
    return {"success": True, "data": {"profile": profile.to_dict(), "rescored": updated}}
