from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from app.services.search_cache_service import store_search_results

URL = "/api/v1/database-job-search"


def _seed(session_factory, listings, when=None):
    db = session_factory()
    try:
        store_search_results(db, "seed", listings, when or datetime.now(timezone.utc))
    finally:
        db.close()


def _listing(url, title, location="Austin, TX", company="Acme Corp", **extra):
    listing = {
        "job_url": url,
        "title": title,
        "company": company,
        "location": location,
        "description": extra.pop("description", ""),
        "source": "Google Jobs",
    }
    listing.update(extra)
    return listing


class TestDatabaseJobSearch:
    def test_requires_a_search_parameter(self, client):
        r = client.post(URL, json={"remoteType": "remote"})
        assert r.status_code == 400
        data = r.json()
        assert "At least one search parameter" in data["error"]
        assert data["jobs"] == []
        assert data["pagination"]["totalResults"] == 0

    def test_matches_title_and_description(self, client, session_factory):
        _seed(session_factory, [
            _listing("https://jobs/1", "Data Engineer"),
            _listing("https://jobs/2", "Analyst", description="Strong data engineering skills"),
            _listing("https://jobs/3", "Chef"),
        ])
        r = client.post(URL, json={"query": "data eng"})
        assert r.status_code == 200
        data = r.json()
        assert data["totalResults"] == 2
        assert {job["job_url"] for job in data["jobs"]} == {"https://jobs/1", "https://jobs/2"}

    def test_filters_by_company_and_location(self, client, session_factory):
        _seed(session_factory, [
            _listing("https://jobs/1", "Engineer", location="Austin, TX", company="Initech"),
            _listing("https://jobs/2", "Engineer", location="Denver, CO", company="Initech"),
            _listing("https://jobs/3", "Engineer", location="Austin, TX", company="Globex"),
        ])
        r = client.post(URL, json={"company": "initech", "location": "austin"})
        data = r.json()
        assert [job["job_url"] for job in data["jobs"]] == ["https://jobs/1"]

    def test_filters_by_employment_type(self, client, session_factory):
        _seed(session_factory, [
            _listing("https://jobs/1", "Engineer", job_type="Full-time", employment_type="Full-time"),
            _listing("https://jobs/2", "Engineer", job_type="Contractor", employment_type="Contractor"),
        ])
        r = client.post(URL, json={"query": "engineer", "employmentType": "contract"})
        assert [job["job_url"] for job in r.json()["jobs"]] == ["https://jobs/2"]

    def test_excludes_old_and_expired_listings(self, client, session_factory):
        _seed(session_factory, [_listing("https://jobs/old", "Engineer")],
              when=datetime.now(timezone.utc) - timedelta(days=45))
        _seed(session_factory, [
            _listing("https://jobs/new", "Engineer"),
            _listing("https://jobs/expired", "Engineer"),
        ])
        db = session_factory()
        try:
            db.execute(text("UPDATE cached_jobs SET is_expired = 1 WHERE job_url = 'https://jobs/expired'"))
            db.commit()
        finally:
            db.close()

        r = client.post(URL, json={"query": "engineer", "maxAge": 30})
        assert [job["job_url"] for job in r.json()["jobs"]] == ["https://jobs/new"]

    def test_pagination(self, client, session_factory):
        _seed(session_factory, [_listing(f"https://jobs/{i}", f"Engineer {i}") for i in range(12)])

        r = client.post(URL, json={"query": "engineer", "limit": 5, "offset": 5})
        data = r.json()
        assert len(data["jobs"]) == 5
        page = data["pagination"]
        assert page["currentPage"] == 2
        assert page["totalPages"] == 3
        assert page["hasNextPage"] is True
        assert page["hasPreviousPage"] is True
        assert page["totalResults"] == 12
        assert page["resultsPerPage"] == 5
        assert data["warnings"] == []

    def test_warns_when_nothing_found(self, client):
        data = client.post(URL, json={"query": "astronaut"}).json()
        assert data["jobs"] == []
        assert data["totalResults"] == 0
        assert data["warnings"]

    def test_warns_when_few_found(self, client, session_factory):
        _seed(session_factory, [_listing("https://jobs/1", "Engineer")])
        data = client.post(URL, json={"query": "engineer"}).json()
        assert len(data["jobs"]) == 1
        assert data["warnings"]
