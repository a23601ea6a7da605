"""
Search result cache: query normalization, cache keys, freshness lookup and
the best-effort writer that persists fetched listings.

Three tables back the cache. ``job_searches`` holds one row per cache key,
``cached_jobs`` one row per listing URL and ``job_search_results`` links the
two. Every write is an upsert keyed on the table's natural unique key, so
concurrent misses for the same search converge on the same rows.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.cached_job import CachedJob
from app.models.job_search import JobSearch
from app.models.job_search_result import JobSearchResult
from app.utils.normalize import format_timestamp
from app.utils.result import Result

logger = logging.getLogger(__name__)

KEY_DELIMITER = "|"

LISTING_FIELDS = (
    "job_url", "title", "company", "location", "description", "salary",
    "posted_at", "source", "via", "thumbnail", "job_type", "employment_type",
    "experience_level", "remote_type", "requirements", "responsibilities",
    "benefits",
)


# ------------------------------------------------------------------
# Normalization and keys
# ------------------------------------------------------------------

def normalize_query(db: Session, query: str) -> Result[str]:
    try:
        value = db.execute(
            text("SELECT normalize_search_query(:q)"), {"q": query}
        ).scalar()
    except SQLAlchemyError as exc:
        db.rollback()
        return Result.failure(exc)
    return Result.success(value)


def resolve_normalized_query(db: Session, query: str) -> str:
    result = normalize_query(db, query)
    if not result.ok:
        logger.warning("Failed to normalize query %r, using local fallback: %s", query, result.error)
        return query.lower().strip()
    return result.value or query.lower().strip()


def build_cache_key(
    query: str,
    location: str = "",
    date_posted: str = "",
    job_type: str = "",
    experience_level: str = "",
) -> str:
    parts = [(p or "").strip() for p in (query, location, date_posted, job_type, experience_level)]
    return KEY_DELIMITER.join(p for p in parts if p).lower()


# ------------------------------------------------------------------
# Lookup
# ------------------------------------------------------------------

def find_fresh_search(
    db: Session, cache_key: str, now: datetime, ttl: timedelta = timedelta(hours=24)
) -> Result[JobSearch | None]:
    """Newest record for ``cache_key`` updated strictly within ``ttl`` of ``now``."""
    cutoff = format_timestamp(now - ttl)
    try:
        record = (
            db.query(JobSearch)
            .filter(JobSearch.search_query == cache_key)
            .filter(JobSearch.last_updated_at > cutoff)
            .order_by(JobSearch.last_updated_at.desc())
            .first()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error checking cached search %r: %s", cache_key, exc)
        return Result.failure(exc)
    return Result.success(record)


def get_cached_listings(db: Session, search_id: str, limit: int) -> Result[list[CachedJob]]:
    try:
        listings = (
            db.query(CachedJob)
            .join(JobSearchResult, JobSearchResult.cached_job_id == CachedJob.id)
            .filter(JobSearchResult.job_search_id == search_id)
            .order_by(JobSearchResult.position, JobSearchResult.created_at)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error fetching cached jobs for search %s: %s", search_id, exc)
        return Result.failure(exc)
    return Result.success(listings)


def listing_to_dict(job: CachedJob) -> dict:
    data = {name: getattr(job, name) for name in LISTING_FIELDS}
    data["id"] = job.id
    return data


# ------------------------------------------------------------------
# Writer
# ------------------------------------------------------------------

# Stamped on a search record whose listings could not be cached, so no
# lookup treats it as fresh.
EXPIRED_TIMESTAMP = "1970-01-01T00:00:00Z"


@dataclass
class CacheWriteReport:
    search_id: str | None = None
    listings_stored: int = 0
    links_stored: int = 0
    errors: list[str] = field(default_factory=list)


def store_search_results(
    db: Session,
    cache_key: str,
    listings: list[dict],
    now: datetime,
    location: str = "",
    date_posted: str = "",
    job_type: str = "",
    experience_level: str = "",
) -> CacheWriteReport:
    """
    Persist one fetch. Each step commits on its own; a failing step is rolled
    back, logged and recorded in the report. Listings already stored stay
    stored when linking fails, but the search record is then expired so the
    incomplete link set is never served as a cache hit.

    The search's link set is replaced by this fetch's listings.
    """
    report = CacheWriteReport()
    stamp = format_timestamp(now)
    unique = dedupe_by_url(listings)

    try:
        report.search_id = _upsert_search(
            db, cache_key, len(unique), stamp,
            location=location, date_posted=date_posted,
            job_type=job_type, experience_level=experience_level,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error creating search record for %r: %s", cache_key, exc)
        report.errors.append(f"search: {exc}")

    listings_ok = True
    ids_by_url: dict[str, str] = {}
    if unique:
        try:
            ids_by_url = _upsert_listings(db, unique, stamp)
            report.listings_stored = len(ids_by_url)
        except SQLAlchemyError as exc:
            db.rollback()
            listings_ok = False
            logger.error("Error storing cached jobs for %r: %s", cache_key, exc)
            report.errors.append(f"listings: {exc}")

    if report.search_id:
        links_ok = False
        if listings_ok:
            try:
                report.links_stored = _replace_links(db, report.search_id, unique, ids_by_url, stamp)
                links_ok = True
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Error linking jobs to search %s: %s", report.search_id, exc)
                report.errors.append(f"links: {exc}")
        if not links_ok:
            _expire_search(db, report.search_id, report)

    logger.info(
        "Cached %d jobs (%d linked) for search %r",
        report.listings_stored, report.links_stored, cache_key,
    )
    return report


def dedupe_by_url(listings: list[dict]) -> list[dict]:
    """One listing per URL, at its first position, carrying its last occurrence's data."""
    by_url: dict[str, dict] = {}
    for listing in listings:
        url = listing.get("job_url")
        if url:
            by_url[url] = listing
    return list(by_url.values())


def _upsert_search(
    db: Session, cache_key: str, total: int, stamp: str, **filters: str
) -> str:
    db.execute(
        text(
            """
            INSERT INTO job_searches (id, search_query, location, date_posted, job_type,
                                      experience_level, total_results, last_updated_at,
                                      created_at, updated_at)
            VALUES (:id, :search_query, :location, :date_posted, :job_type,
                    :experience_level, :total_results, :now, :now, :now)
            ON CONFLICT(search_query) DO UPDATE SET
                location = excluded.location,
                date_posted = excluded.date_posted,
                job_type = excluded.job_type,
                experience_level = excluded.experience_level,
                total_results = excluded.total_results,
                last_updated_at = excluded.last_updated_at,
                updated_at = excluded.updated_at
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "search_query": cache_key,
            "total_results": total,
            "now": stamp,
            **{k: (v or None) for k, v in filters.items()},
        },
    )
    search_id = db.execute(
        text("SELECT id FROM job_searches WHERE search_query = :key"), {"key": cache_key}
    ).scalar_one()
    db.commit()
    return search_id


def _upsert_listings(db: Session, listings: list[dict], stamp: str) -> dict[str, str]:
    rows = []
    for listing in listings:
        row = {name: listing.get(name) for name in LISTING_FIELDS}
        row["source"] = row["source"] or "Google Jobs"
        row["title"] = row["title"] or "Untitled"
        row["id"] = str(uuid.uuid4())
        row["now"] = stamp
        rows.append(row)

    db.execute(
        text(
            """
            INSERT INTO cached_jobs (id, job_url, title, company, location, description,
                                     salary, posted_at, source, via, thumbnail, job_type,
                                     employment_type, experience_level, remote_type,
                                     requirements, responsibilities, benefits,
                                     first_seen_at, last_seen_at, created_at, updated_at)
            VALUES (:id, :job_url, :title, :company, :location, :description,
                    :salary, :posted_at, :source, :via, :thumbnail, :job_type,
                    :employment_type, :experience_level, :remote_type,
                    :requirements, :responsibilities, :benefits,
                    :now, :now, :now, :now)
            ON CONFLICT(job_url) DO UPDATE SET
                title = excluded.title,
                company = excluded.company,
                location = excluded.location,
                description = excluded.description,
                salary = excluded.salary,
                posted_at = excluded.posted_at,
                source = excluded.source,
                via = excluded.via,
                thumbnail = excluded.thumbnail,
                job_type = excluded.job_type,
                employment_type = excluded.employment_type,
                experience_level = excluded.experience_level,
                remote_type = excluded.remote_type,
                requirements = excluded.requirements,
                responsibilities = excluded.responsibilities,
                benefits = excluded.benefits,
                last_seen_at = excluded.last_seen_at,
                updated_at = excluded.updated_at
            """
        ),
        rows,
    )
    urls = [row["job_url"] for row in rows]
    stored = db.query(CachedJob.id, CachedJob.job_url).filter(CachedJob.job_url.in_(urls)).all()
    db.commit()
    return {row.job_url: row.id for row in stored}


def _replace_links(
    db: Session, search_id: str, listings: list[dict], ids_by_url: dict[str, str], stamp: str
) -> int:
    rows = [
        {
            "id": str(uuid.uuid4()),
            "job_search_id": search_id,
            "cached_job_id": ids_by_url[listing["job_url"]],
            "position": position,
            "now": stamp,
        }
        for position, listing in enumerate(listings)
        if listing["job_url"] in ids_by_url
    ]
    # Links from earlier fetches of this search; the listings themselves stay.
    (
        db.query(JobSearchResult)
        .filter(JobSearchResult.job_search_id == search_id)
        .filter(JobSearchResult.cached_job_id.notin_([row["cached_job_id"] for row in rows]))
        .delete(synchronize_session=False)
    )
    if rows:
        db.execute(
            text(
                """
                INSERT INTO job_search_results (id, job_search_id, cached_job_id,
                                                relevance_score, position, created_at)
                VALUES (:id, :job_search_id, :cached_job_id, 1, :position, :now)
                ON CONFLICT(job_search_id, cached_job_id) DO UPDATE SET
                    relevance_score = excluded.relevance_score,
                    position = excluded.position
                """
            ),
            rows,
        )
    db.commit()
    return len(rows)


def _expire_search(db: Session, search_id: str, report: CacheWriteReport):
    try:
        db.execute(
            text("UPDATE job_searches SET last_updated_at = :stamp WHERE id = :id"),
            {"stamp": EXPIRED_TIMESTAMP, "id": search_id},
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error expiring incomplete search %s: %s", search_id, exc)
        report.errors.append(f"expire: {exc}")
    else:
        logger.warning("Expired search %s after an incomplete cache write", search_id)
