import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.dependencies import get_listings_fetcher
from app.schemas.job_search import (
    DatabaseSearchRequest,
    DatabaseSearchResponse,
    JobSearchErrorResponse,
    JobSearchRequest,
    JobSearchResponse,
)
from app.services.database_search_service import build_pagination, search_cached_jobs, search_warnings
from app.services.errors import JobSearchError
from app.services.job_search_service import run_cached_search
from app.services.search_cache_service import listing_to_dict
from app.services.serpapi_service import JobListingsFetcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["job-search"])


def _error_response(message: str) -> JSONResponse:
    body = JobSearchErrorResponse(error=message)
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


@router.post(
    "/cached-job-search",
    response_model=JobSearchResponse,
    responses={500: {"model": JobSearchErrorResponse}},
)
async def cached_job_search(
    req: JobSearchRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    fetcher: JobListingsFetcher = Depends(get_listings_fetcher),
):
    try:
        return await run_cached_search(db, settings, fetcher, req)
    except JobSearchError as exc:
        logger.error("Error in cached job search: %s", exc)
        return _error_response(str(exc))
    except Exception as exc:
        logger.exception("Unexpected error in cached job search")
        return _error_response(str(exc) or exc.__class__.__name__)


@router.post("/database-job-search", response_model=DatabaseSearchResponse)
async def database_job_search(req: DatabaseSearchRequest, db: Session = Depends(get_db)):
    if not (req.query.strip() or req.location.strip() or req.company.strip()):
        return JSONResponse(
            status_code=400,
            content={
                "error": "At least one search parameter (query, location, or company) is required",
                "jobs": [],
                "pagination": build_pagination(0, req.limit, 0),
            },
        )

    try:
        jobs, total = search_cached_jobs(db, req)
    except SQLAlchemyError as exc:
        logger.error("Database search failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Database search failed",
                "jobs": [],
                "pagination": build_pagination(0, req.limit, 0),
            },
        )

    logger.info("Database search returned %d of %d jobs", len(jobs), total)
    return {
        "jobs": [listing_to_dict(job) for job in jobs],
        "pagination": build_pagination(total, req.limit, req.offset),
        "totalResults": total,
        "warnings": search_warnings(len(jobs)),
    }
