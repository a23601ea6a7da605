import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import get_settings
from app.utils.normalize import normalize_search_text


class Base(DeclarativeBase):
    pass


def register_sql_functions(dbapi_conn):
    dbapi_conn.create_function(
        "normalize_search_query", 1, normalize_search_text, deterministic=True
    )


def _on_connect(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    register_sql_functions(dbapi_conn)


def get_engine(db_path: Path | None = None):
    path = db_path or get_settings().db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _on_connect)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SCHEMA_SQL = """\
-- ============================================================
-- SEARCHES (one row per normalized cache key)
-- ============================================================
CREATE TABLE IF NOT EXISTS job_searches (
    id               TEXT PRIMARY KEY,
    search_query     TEXT NOT NULL UNIQUE,
    location         TEXT,
    date_posted      TEXT,
    job_type         TEXT,
    experience_level TEXT,
    total_results    INTEGER NOT NULL DEFAULT 0,
    last_updated_at  TEXT NOT NULL,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_job_searches_updated ON job_searches(last_updated_at);

-- ============================================================
-- CACHED LISTINGS (one row per canonical listing URL)
-- ============================================================
CREATE TABLE IF NOT EXISTS cached_jobs (
    id               TEXT PRIMARY KEY,
    job_url          TEXT NOT NULL UNIQUE,
    title            TEXT NOT NULL,
    company          TEXT,
    location         TEXT,
    description      TEXT,
    salary           TEXT,
    posted_at        TEXT,
    source           TEXT NOT NULL DEFAULT 'Google Jobs',
    via              TEXT,
    thumbnail        TEXT,
    job_type         TEXT,
    employment_type  TEXT,
    experience_level TEXT,
    remote_type      TEXT,
    requirements     TEXT,
    responsibilities TEXT,
    benefits         TEXT,
    is_expired       INTEGER NOT NULL DEFAULT 0,
    first_seen_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    last_seen_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_cached_jobs_last_seen ON cached_jobs(last_seen_at);
CREATE INDEX IF NOT EXISTS idx_cached_jobs_company ON cached_jobs(company);

-- ============================================================
-- SEARCH <-> LISTING LINKS
-- ============================================================
CREATE TABLE IF NOT EXISTS job_search_results (
    id              TEXT PRIMARY KEY,
    job_search_id   TEXT NOT NULL REFERENCES job_searches(id) ON DELETE CASCADE,
    cached_job_id   TEXT NOT NULL REFERENCES cached_jobs(id) ON DELETE CASCADE,
    relevance_score REAL NOT NULL DEFAULT 1,
    position        INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (job_search_id, cached_job_id)
);

CREATE INDEX IF NOT EXISTS idx_job_search_results_search ON job_search_results(job_search_id);
"""


MIGRATIONS: list[str] = []


def init_db(db_path: Path | None = None):
    path = db_path or get_settings().db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    # Run migrations idempotently (ALTER TABLE fails if the column exists)
    for migration in MIGRATIONS:
        try:
            conn.execute(migration)
            conn.commit()
        except sqlite3.OperationalError:
            pass  # column already exists
    conn.close()
