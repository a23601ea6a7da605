class JobSearchError(Exception):
    """A search request that cannot be answered."""


class ConfigurationError(JobSearchError):
    pass


class UpstreamFetchError(JobSearchError):
    pass
