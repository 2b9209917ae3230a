# src/fab_planner/api/app.py
from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request

from .. import config
from .routers import assignments, calendar, feasibility, occupation, plans

config.configure_logging()
logger = logging.getLogger("fab_planner.api")

# ================== App ==================
app = FastAPI(title="Fab Planner API")

app.include_router(calendar.router)
app.include_router(plans.router)
app.include_router(assignments.router)
app.include_router(feasibility.router)
app.include_router(occupation.router)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
    t0 = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    logger.info(
        "[%s] %s %s -> %s (%.1f ms)",
        rid, request.method, request.url.path, response.status_code, (time.perf_counter() - t0) * 1000,
    )
    return response


@app.get("/health")
def health():
    return {"status": "ok"}
