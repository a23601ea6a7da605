from app.models.job_search import JobSearch
from app.models.cached_job import CachedJob
from app.models.job_search_result import JobSearchResult

__all__ = ["JobSearch", "CachedJob", "JobSearchResult"]
