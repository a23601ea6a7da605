import re
from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_WHITESPACE = re.compile(r"\s+")


def normalize_search_text(value: str | None) -> str | None:
    """Case-fold, trim and collapse internal whitespace."""
    if value is None:
        return None
    return _WHITESPACE.sub(" ", value).strip().lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
