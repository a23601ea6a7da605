import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.config import Settings, get_settings
from app.database import get_db, init_db, register_sql_functions
from app.dependencies import get_listings_fetcher
from app.main import app
from app.services.serpapi_service import JobListingsFetcher


def _on_connect(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    register_sql_functions(dbapi_conn)


def make_result(title, location, url, description="", **extra):
    """A Google Jobs result as SerpAPI returns it."""
    result = {
        "title": title,
        "company_name": extra.pop("company_name", "Acme Corp"),
        "location": location,
        "description": description,
        "share_link": url,
        "via": "via LinkedIn",
        "detected_extensions": {"posted_at": "2 days ago", "schedule_type": "Full-time"},
    }
    result.update(extra)
    return result


class FakeSerpApi:
    """Serves queued pages of results and records every request it receives."""

    def __init__(self, pages=None):
        self.pages = list(pages or [])
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = len(self.requests) - 1
        if index >= len(self.pages):
            return httpx.Response(200, json={"jobs_results": []})
        page = self.pages[index]
        if isinstance(page, httpx.Response):
            return page
        if isinstance(page, Exception):
            raise page
        return httpx.Response(200, json={"jobs_results": page})

    @property
    def call_count(self) -> int:
        return len(self.requests)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(data_path=tmp_path / "data", serp_api_key="test-key")


@pytest.fixture
def session_factory(test_settings):
    db_path = test_settings.db_path
    init_db(db_path)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _on_connect)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield TestSession
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_serpapi():
    return FakeSerpApi()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_fetcher(test_settings, fake_serpapi, recording_sleep):
    def _make(**overrides):
        options = dict(
            transport=httpx.MockTransport(fake_serpapi.handler),
            sleep=recording_sleep,
        )
        options.update(overrides)
        return JobListingsFetcher.from_settings(test_settings, **options)
    return _make


@pytest.fixture
def client(test_settings, session_factory, make_fetcher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_listings_fetcher] = lambda: make_fetcher()
    yield TestClient(app)
    app.dependency_overrides.clear()
