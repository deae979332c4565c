# uc3m_api/core/cache_service.py
import logging
import time
from typing import Callable, Optional

from cachetools import TTLCache

from .constants import CALENDAR_CACHE_SIZE, CALENDAR_CACHE_TTL
from ..models.timetable import TimetableId

log = logging.getLogger(__name__)


class CalendarCache:
    """
    In-process cache of rendered calendars, keyed by timetable identifier.

    Entries expire after `ttl` seconds, matching the freshness promised to
    calendar clients through the response cache headers.
    """

    def __init__(
        self,
        ttl: int = CALENDAR_CACHE_TTL,
        maxsize: int = CALENDAR_CACHE_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def get(self, timetable_id: TimetableId) -> Optional[str]:
        calendar_text = self._cache.get(timetable_id)
        if calendar_text is not None:
            log.debug(f"Calendar cache hit for {timetable_id}")
        return calendar_text

    def put(self, timetable_id: TimetableId, calendar_text: str) -> None:
        self._cache[timetable_id] = calendar_text
        log.debug(f"Cached calendar for {timetable_id} ({len(self._cache)} entries)")

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
