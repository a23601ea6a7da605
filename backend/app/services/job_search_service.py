import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import Settings
from app.schemas.job_search import JobSearchRequest
from app.services.errors import ConfigurationError
from app.services.search_cache_service import (
    build_cache_key,
    dedupe_by_url,
    find_fresh_search,
    get_cached_listings,
    listing_to_dict,
    resolve_normalized_query,
    store_search_results,
)
from app.services.serpapi_service import JobListingsFetcher
from app.utils.normalize import format_timestamp, utcnow

logger = logging.getLogger(__name__)


async def run_cached_search(
    db: Session,
    settings: Settings,
    fetcher: JobListingsFetcher,
    req: JobSearchRequest,
    now: datetime | None = None,
) -> dict:
    """
    Serve a search from the cache when a fresh record exists, otherwise fetch
    upstream and cache the result. Raises ``JobSearchError`` when fresh
    results cannot be produced; cache failures never reach the caller.
    """
    if not settings.serp_api_key:
        raise ConfigurationError("SERP_API_KEY not configured")

    now = now or utcnow()
    normalized = resolve_normalized_query(db, req.query)
    cache_key = build_cache_key(
        normalized, req.location, req.date_posted, req.job_type, req.experience_level
    )
    logger.info("Cached job search: query=%r key=%r force=%s", req.query, cache_key, req.force_refresh)

    if not req.force_refresh:
        cached = _serve_from_cache(db, cache_key, req.results_per_page, now, settings.cache_ttl_hours)
        if cached is not None:
            return cached

    logger.info("Cache miss or force refresh for %r - fetching upstream", cache_key)
    fetched = await fetcher.fetch(
        req.query, req.location, req.date_posted, req.job_type, req.experience_level
    )
    # The provider repeats listings across pages
    fresh = dedupe_by_url(fetched)

    report = store_search_results(
        db, cache_key, fresh, now,
        location=req.location.strip(),
        date_posted=req.date_posted.strip(),
        job_type=req.job_type.strip(),
        experience_level=req.experience_level.strip(),
    )

    return {
        "jobs": fresh[: req.results_per_page],
        "fromCache": False,
        "lastUpdated": format_timestamp(now),
        "totalResults": len(fresh),
        "debug_info": {
            "cache_hit": False,
            "cache_key": cache_key,
            "jobs_fetched": len(fetched),
            "jobs_stored": report.listings_stored,
            "jobs_linked": report.links_stored,
            "search_id": report.search_id,
            "cache_errors": report.errors,
        },
    }


def _serve_from_cache(
    db: Session, cache_key: str, limit: int, now: datetime, ttl_hours: int
) -> dict | None:
    lookup = find_fresh_search(db, cache_key, now, timedelta(hours=ttl_hours))
    if not lookup.ok or lookup.value is None:
        return None
    record = lookup.value

    listings = get_cached_listings(db, record.id, limit)
    if not listings.ok:
        logger.warning("Could not resolve cached jobs for %r, treating as miss", cache_key)
        return None
    if record.total_results and not listings.value:
        logger.warning("Search %s has no linked jobs, treating as miss", record.id)
        return None

    logger.info("Cache hit for %r (search %s)", cache_key, record.id)
    return {
        "jobs": [listing_to_dict(job) for job in listings.value],
        "fromCache": True,
        "lastUpdated": record.last_updated_at,
        "totalResults": record.total_results,
        "debug_info": {
            "cache_hit": True,
            "cache_key": cache_key,
            "search_id": record.id,
            "last_updated": record.last_updated_at,
        },
    }
