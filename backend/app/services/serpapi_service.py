"""
Google Jobs listings via SerpAPI.

Fetches up to ``max_pages`` pages sequentially with a fixed pause between
calls, maps provider results into the cached listing shape and applies the
remote/location post-filter. A failing page is logged and skipped; only a
fetch in which no page succeeded is an error.
"""
import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from app.config import Settings
from app.services.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

SOURCE_LABEL = "Google Jobs"

REMOTE_MARKERS = ("remote", "work from home", "wfh")

DATE_POSTED_CHIPS = {
    "day": "today",
    "today": "today",
    "3days": "3days",
    "week": "week",
    "month": "month",
}

JOB_TYPE_CHIPS = {
    "fulltime": "FULLTIME",
    "full-time": "FULLTIME",
    "full_time": "FULLTIME",
    "parttime": "PARTTIME",
    "part-time": "PARTTIME",
    "part_time": "PARTTIME",
    "contract": "CONTRACTOR",
    "contractor": "CONTRACTOR",
    "internship": "INTERN",
    "intern": "INTERN",
}

# No structured parameter exists for seniority; these are appended to the query.
EXPERIENCE_TERMS = {
    "entry": "entry level",
    "entry_level": "entry level",
    "junior": "entry level",
    "mid": "mid level",
    "mid_level": "mid level",
    "senior": "senior level",
    "senior_level": "senior level",
    "executive": "executive",
    "director": "director",
}

HIGHLIGHT_SECTIONS = {
    "requirements": ("qualifications", "requirements"),
    "responsibilities": ("responsibilities", "duties"),
    "benefits": ("benefits",),
}


def is_remote_location(location: str | None) -> bool:
    return "remote" in (location or "").strip().lower()


def extract_highlights(raw: dict) -> dict[str, str | None]:
    sections: dict[str, list[str]] = {name: [] for name in HIGHLIGHT_SECTIONS}
    for highlight in raw.get("job_highlights") or []:
        title = (highlight.get("title") or "").lower()
        for name, keywords in HIGHLIGHT_SECTIONS.items():
            if any(keyword in title for keyword in keywords):
                sections[name].extend(str(item) for item in highlight.get("items") or [])
                break
    return {name: "\n".join(items) if items else None for name, items in sections.items()}


def _listing_url(raw: dict) -> str | None:
    if raw.get("share_link"):
        return raw["share_link"]
    for option in raw.get("apply_options") or []:
        if option.get("link"):
            return option["link"]
    return raw.get("apply_link")


def map_listing(raw: dict) -> dict | None:
    """Provider result -> cached listing dict. Results without a URL are dropped."""
    url = _listing_url(raw)
    if not url:
        return None

    extensions = raw.get("detected_extensions") or {}
    salary_info = raw.get("salary_info") or {}
    schedule = extensions.get("schedule_type")
    description = raw.get("description") or raw.get("snippet") or ""
    listing = {
        "job_url": url,
        "title": raw.get("title") or "Untitled",
        "company": raw.get("company_name"),
        "location": raw.get("location"),
        "description": description,
        "salary": extensions.get("salary") or salary_info.get("salary") or salary_info.get("range"),
        "posted_at": extensions.get("posted_at") or raw.get("posted_at"),
        "source": SOURCE_LABEL,
        "via": raw.get("via"),
        "thumbnail": raw.get("thumbnail"),
        "job_type": schedule,
        "employment_type": schedule,
        "experience_level": None,
        "remote_type": "remote" if extensions.get("work_from_home") else None,
    }
    listing.update(extract_highlights(raw))
    return listing


def _mentions_remote(listing: dict) -> bool:
    haystack = " ".join(
        listing.get(name) or "" for name in ("title", "location", "description")
    ).lower()
    return any(marker in haystack for marker in REMOTE_MARKERS)


def filter_listings(listings: list[dict], location: str | None) -> list[dict]:
    wanted = (location or "").strip().lower()
    if not wanted:
        return list(listings)
    if is_remote_location(wanted):
        return [job for job in listings if _mentions_remote(job)]
    kept = []
    for job in listings:
        job_location = (job.get("location") or "").lower()
        if job_location and (wanted in job_location or job_location in wanted):
            kept.append(job)
    return kept


class JobListingsFetcher:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://serpapi.com/search",
        country: str = "us",
        language: str = "en",
        max_pages: int = 5,
        page_size: int = 10,
        page_delay: float = 0.2,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.country = country
        self.language = language
        self.max_pages = max_pages
        self.page_size = page_size
        self.page_delay = page_delay
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "JobListingsFetcher":
        options = dict(
            api_key=settings.serp_api_key,
            base_url=settings.serp_api_url,
            country=settings.serp_country,
            language=settings.serp_language,
            max_pages=settings.upstream_max_pages,
            page_size=settings.upstream_page_size,
            page_delay=settings.upstream_page_delay_seconds,
            timeout=settings.upstream_timeout_seconds,
        )
        options.update(overrides)
        return cls(**options)

    def build_params(
        self,
        query: str,
        location: str = "",
        date_posted: str = "",
        job_type: str = "",
        experience_level: str = "",
    ) -> dict[str, str]:
        q = query.strip()
        experience = EXPERIENCE_TERMS.get((experience_level or "").strip().lower())
        if experience:
            q = f"{q} {experience}"

        params = {
            "engine": "google_jobs",
            "q": q,
            "api_key": self.api_key or "",
            "gl": self.country,
            "hl": self.language,
        }

        if is_remote_location(location):
            params["ltype"] = "1"
        elif location and location.strip():
            params["location"] = location.strip()

        chips = []
        date_chip = DATE_POSTED_CHIPS.get((date_posted or "").strip().lower())
        if date_chip:
            chips.append(f"date_posted:{date_chip}")
        type_chip = JOB_TYPE_CHIPS.get((job_type or "").strip().lower())
        if type_chip:
            chips.append(f"employment_type:{type_chip}")
        if chips:
            params["chips"] = ",".join(chips)

        return params

    async def fetch(
        self,
        query: str,
        location: str = "",
        date_posted: str = "",
        job_type: str = "",
        experience_level: str = "",
    ) -> list[dict]:
        base_params = self.build_params(query, location, date_posted, job_type, experience_level)
        jobs: list[dict] = []
        succeeded = 0
        attempted = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for page in range(self.max_pages):
                if page > 0:
                    await self._sleep(self.page_delay)

                params = dict(base_params)
                if page > 0:
                    params["start"] = str(page * self.page_size)

                attempted += 1
                logger.info("SerpAPI call %d/%d - start: %d", page + 1, self.max_pages, page * self.page_size)
                try:
                    raw_results = await self._fetch_page(client, params)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.error("SerpAPI call %d failed: %s", page + 1, exc)
                    continue
                succeeded += 1

                if not raw_results:
                    logger.info("SerpAPI call %d: no jobs found", page + 1)
                    if page > 0:
                        break
                    continue

                mapped = [job for job in (map_listing(r) for r in raw_results) if job]
                kept = filter_listings(mapped, location)
                jobs.extend(kept)
                logger.info(
                    "SerpAPI call %d: got %d jobs, kept %d, total so far: %d",
                    page + 1, len(raw_results), len(kept), len(jobs),
                )

        if attempted and not succeeded:
            raise UpstreamFetchError(f"All {attempted} SerpAPI calls failed")

        logger.info("SerpAPI fetch completed: %d total jobs", len(jobs))
        return jobs

    async def _fetch_page(self, client: httpx.AsyncClient, params: dict[str, str]) -> list[dict]:
        response = await client.get(self.base_url, params=params)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected SerpAPI payload")
        if data.get("error") and not data.get("jobs_results"):
            # SerpAPI reports "no results" through the error field as well
            if "hasn't returned any results" in str(data["error"]):
                return []
            raise ValueError(f"SerpAPI error: {data['error']}")
        results = data.get("jobs_results") or data.get("job_results") or data.get("jobs") or []
        return [r for r in results if isinstance(r, dict)]
