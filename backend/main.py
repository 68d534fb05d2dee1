from __future__ import annotations

import logging
import os
import time
import uuid
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load .env from backend directory so CALENDAR_TIME_ZONE etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from engine.deadlines import preview_contract, schedule_portfolio
from models import (
    CalendarEventsRequest,
    ContractPreview,
    ContractTerm,
    PortfolioSummary,
    PreviewRequest,
    ScheduleRequest,
    ScheduleResponse,
)
from reporting.calendar_export import select_for_sync, sync_limit, to_calendar_event
from reporting.deadline_summary import summarize_portfolio
from services.contract_normalizer import InputSource, normalize_contract, normalize_contracts

VERSION = (os.environ.get("RELEASE_VERSION") or "").strip() or "unknown"

_LOG = logging.getLogger("uvicorn.error")

app = FastAPI(title="Lease Deadline Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)


@app.on_event("startup")
def startup_log() -> None:
    port = os.environ.get("PORT", "8010")
    host = os.environ.get("HOST", "127.0.0.1")
    _LOG.info("Backend starting on http://%s:%s version=%s", host, port, VERSION)


def _resolve_now(value: Optional[date]) -> date:
    # The engine never reads the clock; requests without `now` are evaluated as of today.
    return value or date.today()


def _schedule(req: ScheduleRequest) -> Tuple[List[ContractTerm], ScheduleResponse]:
    now = _resolve_now(req.now)
    contracts, excluded, warnings = normalize_contracts(req.contracts, InputSource.STORE)
    deadlines = schedule_portfolio(contracts, now)
    _LOG.info(
        "SCHEDULE contracts=%s deadlines=%s excluded=%s now=%s",
        len(contracts), len(deadlines), len(excluded), now,
    )
    return contracts, ScheduleResponse(
        now=now,
        deadlines=deadlines,
        excluded_contract_ids=excluded,
        warnings=warnings,
    )


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.post("/deadlines", response_model=ScheduleResponse)
def schedule_deadlines(req: ScheduleRequest) -> ScheduleResponse:
    """
    Deadlines for every active contract, sorted by date.
    Contracts whose start date cannot be read are listed in excluded_contract_ids.
    """
    _, response = _schedule(req)
    return response


@app.post("/deadlines/preview", response_model=ContractPreview)
def preview_deadlines(req: PreviewRequest) -> ContractPreview:
    """Next deadlines for a single contract being edited."""
    if not req.contract:
        raise HTTPException(status_code=400, detail="contract payload is empty")
    now = _resolve_now(req.now)
    normalized = normalize_contract(req.contract, InputSource.MANUAL)
    return preview_contract(normalized.contract, now)


@app.post("/deadlines/summary", response_model=PortfolioSummary)
def deadline_summary(req: ScheduleRequest) -> PortfolioSummary:
    contracts, scheduled = _schedule(req)
    return summarize_portfolio(contracts, scheduled.deadlines, scheduled.now)


@app.post("/deadlines/calendar-events")
def calendar_events(req: CalendarEventsRequest) -> List[dict]:
    """Calendar event payloads for future-dated deadlines."""
    _, scheduled = _schedule(req)
    limit = req.limit if req.limit is not None else sync_limit()
    selected = select_for_sync(scheduled.deadlines, scheduled.now, limit)
    return [to_calendar_event(record) for record in selected]
