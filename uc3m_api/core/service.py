# uc3m_api/core/service.py
import logging
from datetime import datetime, timezone
from typing import Optional, Union

import httpx
from bs4 import BeautifulSoup

from .client import fetch_timetable_html
from .parsers import TimetableParser
from ..models.calendar import Calendar
from ..models.timetable import TimetableId

# Setup module logger
log = logging.getLogger(__name__)


class Timetable:
    """A parsed timetable together with its iCalendar representation."""

    def __init__(self, timetable_id: TimetableId, calendar: Calendar, created_on: datetime):
        self.id = timetable_id
        self.calendar = calendar
        self.created_on = created_on

    @classmethod
    def parse(
        cls,
        timetable_id: TimetableId,
        html: Union[str, BeautifulSoup],
        created_on: Optional[datetime] = None,
    ) -> "Timetable":
        """
        Parses the timetable with the given identifier.

        Args:
            timetable_id: The timetable identifier.
            html: The timetable page.
            created_on: Time stamp of the events; now, in the timetable's zone, by default.

        Raises:
            ParseError: If the page is not a well-formed timetable.
        """
        if created_on is None:
            created_on = datetime.now(timezone.utc).astimezone(timetable_id.time_zone)
        calendar = TimetableParser(timetable_id, html, created_on).parse()
        log.info(f"Parsed timetable {timetable_id.url()} ({len(calendar.components)} events).")
        return cls(timetable_id, calendar, created_on)

    @classmethod
    async def fetch(
        cls,
        timetable_id: TimetableId,
        client: httpx.AsyncClient,
        *,
        max_retries: int = 3,
        save_debug_html: bool = False,
    ) -> "Timetable":
        """
        Fetches and parses the timetable with the given identifier.

        Raises:
            TimetableClientError: If the page cannot be retrieved.
            ParseError: If the page is not a well-formed timetable.
        """
        url = timetable_id.url()
        log.debug(f"Service: Fetching timetable HTML from {url}...")
        html = await fetch_timetable_html(
            client, url, max_retries=max_retries, save_debug_html=save_debug_html
        )
        return cls.parse(timetable_id, html)

    def to_ical(self) -> str:
        return str(self.calendar)
