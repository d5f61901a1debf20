# rehab/main.py
import os
import time
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from rehab.routers.sessions import router as sessions_router
from rehab.routers.days import router as days_router
from rehab.routers.progress import router as progress_router
from rehab.db import SessionLocal, init_db  # SessionLocal for healthz DB check
from rehab.settings import get_settings

log = logging.getLogger("uvicorn")

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield

app = FastAPI(
    title="Back Rehab API",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "sessions", "description": "Timed exercise execution"},
        {"name": "days", "description": "Daily exercise plan and diary"},
        {"name": "progress", "description": "Resumable progress and manual settings"},
    ],
)

# CORS (relax for local dev; tighten origins in prod via env)
ALLOW_ORIGINS = get_settings().ALLOW_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response

@app.get("/")
def root():
    return {"ok": True, "name": "Back Rehab API"}

@app.get("/ping")
def ping():
    return {"pong": True}

@app.get("/healthz")
def healthz():
    # Quick DB sanity check
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@app.get("/version")
def version():
    return {"version": os.getenv("API_VERSION", "dev")}

# Routers
app.include_router(sessions_router)
app.include_router(days_router)
app.include_router(progress_router)
