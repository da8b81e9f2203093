"""FastAPI service for the habit progress dashboard.

Serves the progress analytics as JSON and as a CSV download.  The user's
habit snapshot is cached (TTL from settings); analytics are recomputed
on every request since they depend on the requested range and today.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from date_range import InvalidRange, resolve_progress_range
from logging_config import configure_logging
from progress_csv import build_progress_csv, get_progress_csv_filename
from progress_data import fetch_progress_inputs, load_progress_snapshot, resolve_today
from progress_metrics import build_progress_response
from settings import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
settings = get_settings()
DATA_PATH = settings.data_path
CACHE_TTL_SECONDS = settings.cache_ttl_seconds

Preset = Literal["this_week", "last_week", "four_weeks", "three_months", "custom"]

configure_logging(settings.log_level)

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Habit Progress Dashboard",
    root_path="/progress",
)


@app.exception_handler(RequestValidationError)
async def _query_validation_error(request: Request, exc: RequestValidationError):
    """Report bad query params as 400 with the first error message."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid query params."
    logger.info("Rejected query for %s: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"detail": message})


# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "data": None,
    "built_at": 0.0,
}


def _load_snapshot() -> dict[str, Any]:
    try:
        return load_progress_snapshot(str(DATA_PATH))
    except FileNotFoundError:
        logger.error("Progress data file not found: %s", DATA_PATH)
        raise HTTPException(status_code=503, detail="Data file not found")
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in %s: %s", DATA_PATH, exc)
        raise HTTPException(status_code=500, detail="Invalid JSON in progress data file")


def _get_cached_data(force_refresh: bool = False) -> dict[str, Any]:
    """Return the cached habit snapshot, reloading if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["data"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["data"]

    data = _load_snapshot()
    logger.info("Loaded progress snapshot from %s", DATA_PATH)

    with _cache_lock:
        _cache["data"] = data
        _cache["built_at"] = time.monotonic()

    return data


def _build_response(preset: Preset, start: str | None, end: str | None) -> dict[str, Any]:
    snapshot = _get_cached_data()
    today = resolve_today(snapshot["user"].get("timezone") or settings.timezone)
    try:
        range_info = resolve_progress_range(preset, today, start=start, end=end)
    except InvalidRange as exc:
        logger.info("Rejected progress range (preset=%s, start=%s, end=%s): %s", preset, start, end, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return build_progress_response(**fetch_progress_inputs(snapshot, range_info))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/progress")
def api_progress(preset: Preset = "this_week", start: str | None = None, end: str | None = None):
    """Return the progress analytics for the requested range."""
    return _build_response(preset, start, end)


@app.get("/api/progress/export.csv")
def api_progress_csv(preset: Preset = "this_week", start: str | None = None, end: str | None = None):
    """Return the progress analytics flattened to a CSV download."""
    data = _build_response(preset, start, end)
    filename = get_progress_csv_filename(data["range"])
    return Response(
        content=build_progress_csv(data),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/refresh")
def api_refresh():
    """Force a snapshot reload."""
    data = _get_cached_data(force_refresh=True)
    return {
        "status": "refreshed",
        "habits": len(data["habits"]),
    }
