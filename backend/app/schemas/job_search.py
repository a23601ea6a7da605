from pydantic import BaseModel, ConfigDict, Field


class JobSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    query: str = Field(..., min_length=1)
    location: str = ""
    results_per_page: int = Field(50, ge=1, alias="resultsPerPage")
    date_posted: str = Field("", alias="datePosted")
    job_type: str = Field("", alias="jobType")
    experience_level: str = Field("", alias="experienceLevel")
    force_refresh: bool = Field(False, alias="forceRefresh")


class JobListing(BaseModel):
    id: str | None = None
    job_url: str
    title: str
    company: str | None = None
    location: str | None = None
    description: str | None = None
    salary: str | None = None
    posted_at: str | None = None
    source: str
    via: str | None = None
    thumbnail: str | None = None
    job_type: str | None = None
    employment_type: str | None = None
    experience_level: str | None = None
    remote_type: str | None = None
    requirements: str | None = None
    responsibilities: str | None = None
    benefits: str | None = None


class JobSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    jobs: list[JobListing]
    from_cache: bool = Field(alias="fromCache")
    last_updated: str = Field(alias="lastUpdated")
    total_results: int = Field(alias="totalResults")
    debug_info: dict = {}


class JobSearchErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    jobs: list[JobListing] = []
    from_cache: bool = Field(False, alias="fromCache")
    total_results: int = Field(0, alias="totalResults")


class DatabaseSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    location: str = ""
    remote_type: str = Field("", alias="remoteType")
    employment_type: str = Field("", alias="employmentType")
    seniority_level: str = Field("", alias="seniorityLevel")
    company: str = ""
    max_age: int = Field(30, ge=1, alias="maxAge")
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    has_next_page: bool = Field(alias="hasNextPage")
    has_previous_page: bool = Field(alias="hasPreviousPage")
    total_results: int = Field(alias="totalResults")
    results_per_page: int = Field(alias="resultsPerPage")


class DatabaseSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    jobs: list[JobListing]
    pagination: Pagination
    total_results: int = Field(alias="totalResults")
    warnings: list[str] = []
