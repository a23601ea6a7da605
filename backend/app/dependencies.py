from fastapi import Depends

from app.config import Settings, get_settings
from app.services.serpapi_service import JobListingsFetcher


def get_listings_fetcher(settings: Settings = Depends(get_settings)) -> JobListingsFetcher:
    return JobListingsFetcher.from_settings(settings)
