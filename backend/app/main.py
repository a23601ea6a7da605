import logging
import sqlite3
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import init_db
from app.routers import job_search

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create or migrate the cache database, then integrity-check it
    try:
        init_db(settings.db_path)
        conn = sqlite3.connect(str(settings.db_path))
        result = conn.execute("PRAGMA integrity_check").fetchone()
        conn.close()
        if result and result[0] == "ok":
            logger.info("Database integrity check passed.")
        else:
            logger.error("DATABASE INTEGRITY CHECK FAILED: %s", result)
    except (OSError, sqlite3.Error) as exc:
        logger.error("Could not run startup migration/integrity check: %s", exc)
    yield


app = FastAPI(
    title="Job Search Cache",
    description="Cached job search over an external Google Jobs provider",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(job_search.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}


def run():
    uvicorn.run(app, host=settings.host, port=settings.port)
