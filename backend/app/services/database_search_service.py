from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.cached_job import CachedJob
from app.schemas.job_search import DatabaseSearchRequest
from app.utils.normalize import format_timestamp, utcnow

FEW_RESULTS_THRESHOLD = 5


def search_cached_jobs(
    db: Session, req: DatabaseSearchRequest, now: datetime | None = None
) -> tuple[list[CachedJob], int]:
    """Filter the listing cache directly. Returns (page of listings, total matches)."""
    cutoff = format_timestamp((now or utcnow()) - timedelta(days=req.max_age))
    query = db.query(CachedJob).filter(
        CachedJob.last_seen_at >= cutoff,
        or_(CachedJob.is_expired.is_(None), CachedJob.is_expired.is_(False)),
    )

    if req.query.strip():
        term = f"%{req.query.strip()}%"
        query = query.filter(CachedJob.title.ilike(term) | CachedJob.description.ilike(term))
    if req.location.strip():
        query = query.filter(CachedJob.location.ilike(f"%{req.location.strip()}%"))
    if req.company.strip():
        query = query.filter(CachedJob.company.ilike(f"%{req.company.strip()}%"))
    if req.remote_type.strip():
        query = query.filter(CachedJob.remote_type.ilike(f"%{req.remote_type.strip()}%"))
    if req.employment_type.strip():
        term = f"%{req.employment_type.strip()}%"
        query = query.filter(CachedJob.employment_type.ilike(term) | CachedJob.job_type.ilike(term))
    if req.seniority_level.strip():
        query = query.filter(CachedJob.experience_level.ilike(f"%{req.seniority_level.strip()}%"))

    total = query.count()
    jobs = (
        query.order_by(CachedJob.last_seen_at.desc(), CachedJob.title)
        .offset(req.offset)
        .limit(req.limit)
        .all()
    )
    return jobs, total


def build_pagination(total: int, limit: int, offset: int) -> dict:
    total_pages = -(-total // limit)
    current_page = offset // limit + 1
    return {
        "currentPage": current_page,
        "totalPages": total_pages,
        "hasNextPage": current_page < total_pages,
        "hasPreviousPage": current_page > 1,
        "totalResults": total,
        "resultsPerPage": limit,
    }


def search_warnings(found: int) -> list[str]:
    if found == 0:
        return ["No jobs found. Try different search terms or expand your filters."]
    if found < FEW_RESULTS_THRESHOLD:
        return ["Few jobs found in the cache. Run a live search for more results."]
    return []
