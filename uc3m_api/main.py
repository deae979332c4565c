import logging
import os
from contextlib import asynccontextmanager
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import RedirectResponse, Response

from .core.cache_service import CalendarCache
from .core.client import TimetableClientError, create_http_client
from .core.constants import (
    CALENDAR_CACHE_CONTROL,
    CALENDAR_CACHE_SIZE,
    CALENDAR_CACHE_TTL,
    CALENDAR_CONTENT_TYPE,
    UC3M_TIMEZONE_NAME,
)
from .core.parsers import ParseError
from .core.service import Timetable
from .models.timetable import SIGNED_NUMBER_RE, U8_MAX, U16_MAX, TimetableId, TimetableUrlParseError

# Load environment variables from a .env file in the working directory or any parent.
load_dotenv()

logging.basicConfig(level=logging.INFO, format='[%(asctime)s] %(levelname)s - %(name)s - %(message)s')
log = logging.getLogger(__name__)

I32_MIN, I32_MAX = -(2**31), 2**31 - 1

# Query parameters of the calendar endpoint and their accepted ranges
TIMETABLE_QUERY_PARAMS: Tuple[Tuple[str, int, int], ...] = (
    ("year", I32_MIN, I32_MAX),
    ("plan", 0, U16_MAX),
    ("center", 0, U8_MAX),
    ("grade", 0, U8_MAX),
    ("group", 0, U16_MAX),
    ("period", 0, U8_MAX),
)


def _load_time_zone() -> ZoneInfo:
    tz_name = os.getenv("UC3M_TIMEZONE", UC3M_TIMEZONE_NAME)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning(f"Invalid UC3M_TIMEZONE {tz_name!r}, falling back to {UC3M_TIMEZONE_NAME}")
        return ZoneInfo(UC3M_TIMEZONE_NAME)


# --- Lifespan Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Lifespan: Application startup sequence initiated.")
    app.state.time_zone = _load_time_zone()
    app.state.max_retries = int(os.getenv("UC3M_MAX_RETRIES", 3))
    app.state.save_debug_html = os.getenv("UC3M_SAVE_DEBUG_HTML", "false").lower() == "true"
    app.state.calendar_cache = CalendarCache(
        ttl=int(os.getenv("UC3M_CACHE_TTL", CALENDAR_CACHE_TTL)),
        maxsize=int(os.getenv("UC3M_CACHE_SIZE", CALENDAR_CACHE_SIZE)),
    )
    app.state.http_client = create_http_client(timeout=float(os.getenv("UC3M_HTTP_TIMEOUT", 30.0)))
    log.info(f"Lifespan startup: HTTPX client created, time zone {app.state.time_zone.key}.")

    yield  # Application runs here

    log.info("Lifespan: Application shutdown sequence initiated.")
    http_client: httpx.AsyncClient = app.state.http_client
    if not http_client.is_closed:
        await http_client.aclose()
        log.info("Lifespan shutdown: HTTPX client closed.")


app = FastAPI(
    title="UC3M Timetable API",
    description="Publishes UC3M timetables as iCalendar feeds.",
    version="0.1.0",
    lifespan=lifespan,
)


def _query_int(request: Request, name: str, minimum: int, maximum: int) -> int:
    raw = request.query_params.get(name)
    if raw is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"missing `{name}` query parameter")
    # ASCII decimal digits only
    value = int(raw) if SIGNED_NUMBER_RE.fullmatch(raw) else None
    if value is None or not minimum <= value <= maximum:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"invalid `{name}` query parameter")
    return value


@app.get("/", summary="Timetable as an iCalendar feed", tags=["Timetable"])
async def get_timetable_calendar(request: Request):
    """
    Returns the timetable identified by the `year`, `plan`, `center`, `grade`,
    `group` and `period` query parameters as an iCalendar document.
    """
    values = {name: _query_int(request, name, lo, hi) for name, lo, hi in TIMETABLE_QUERY_PARAMS}
    timetable_id = TimetableId(**values, time_zone=request.app.state.time_zone)

    cache: CalendarCache = request.app.state.calendar_cache
    calendar_text = cache.get(timetable_id)
    if calendar_text is None:
        try:
            timetable = await Timetable.fetch(
                timetable_id,
                request.app.state.http_client,
                max_retries=request.app.state.max_retries,
                save_debug_html=request.app.state.save_debug_html,
            )
        except (TimetableClientError, ParseError) as e:
            log.error(f"Cannot build calendar for {timetable_id.url()}: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"cannot parse timetable: {e}",
            )
        calendar_text = timetable.to_ical()
        cache.put(timetable_id, calendar_text)

    return Response(
        content=calendar_text,
        media_type=CALENDAR_CONTENT_TYPE,
        headers={"Cache-Control": CALENDAR_CACHE_CONTROL},
    )


@app.get("/from", summary="Redirect from a published timetable address", tags=["Timetable"])
async def redirect_from_timetable_url(request: Request):
    """
    Converts the address of a published timetable (the `url` query parameter)
    into the equivalent calendar feed address and redirects to it.
    """
    timetable_url = request.query_params.get("url")
    if timetable_url is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing `url` query parameter")
    try:
        timetable_id = TimetableId.from_url(timetable_url, time_zone=request.app.state.time_zone)
    except httpx.InvalidURL:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="cannot parse timetable url")
    except TimetableUrlParseError as e:
        log.warning(f"Unknown timetable address {timetable_url!r}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"unknown timetable id: {e}")

    redirect = (
        f"/?year={timetable_id.year}&plan={timetable_id.plan}&center={timetable_id.center}"
        f"&grade={timetable_id.grade}&group={timetable_id.group}&period={timetable_id.period}"
    )
    return RedirectResponse(redirect, status_code=status.HTTP_302_FOUND)
