# uc3m_api/core/parsers.py
import logging
import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from .constants import (
    GROUP_SELECTOR,
    MONTH_ABBREVIATIONS,
    PRODUCT_NAME,
    ROW_QUANTUM_MINUTES,
    SESSION_CELL_CLASS,
    SESSION_SELECTOR,
    SPEC_VERSION,
    TIME_SELECTOR,
    TIMETABLE_SELECTOR,
    TIMETABLE_TABLE_SELECTOR,
)
from .fail_fast import ProcessState, process
from ..models.calendar import Calendar
from ..models.events import Event, Recurrence, TimeUnit
from ..models.timetable import TimetableId

log = logging.getLogger(__name__)

_RE_NUMBER = re.compile(r"\+?[0-9]+")


class ParseErrorKind(Enum):
    MISSING_TBODY_ELEM = "cannot find the time table `tbody` element"
    MISSING_ROW_TIME_CELL = "cannot find the `hh:mm` cell of the time table row"
    CHILDLESS_TIME_ELEMENT = "time element has no children"
    NON_TEXTUAL_TIME_NODE = "first child of the time element is not a textual node"
    NON_ELEMENT_MINUTES_NODE = "last child of the time cell is not an element"
    NON_NUMERIC_HOUR = "time cell has a non-numeric hour value"
    NON_NUMERIC_MINUTES = "time cell has a non-numeric minutes value"
    INVALID_TIME = "time cell does not hold a valid time of day"
    INVALID_ROW_SPAN = "element has an invalid `rowspan` attribute value"
    MISSING_GROUP_ELEM = "cannot find the subject group element of cell element"
    CHILDLESS_GROUP_ELEM = "cell group element has no children"
    NON_TEXTUAL_GROUP_CHILD = "first child of the subject group element is not a textual node"
    MISSING_SESSIONS_ELEM = "cannot find the sessions element of subject group element"
    MISMATCHED_SESSION_NODES = "sessions element does not hold (date, location, separator) node triples"
    NON_ELEMENT_SESSION_DATE_NODE = "session date node is not an element"
    NON_ELEMENT_SESSION_LOCATION_NODE = "session location node is not an element"
    MISSING_DATE_RANGE = "session within a cell is missing date range"
    NON_TEXTUAL_DATE_RANGE = "first child of date range element is not a textual node"
    MISSING_LOCATION_SPAN = "cannot find the location span of session"
    NON_TEXTUAL_LOCATION_SPAN = "location span of a session is not a textual node"
    INVALID_START_DATE = "start date of session is invalid"
    INVALID_END_DATE = "end date of session is invalid"
    INVALID_DATE_FORMAT = "formatted date does not follow the `dd.month` format"
    INVALID_DAY = "invalid day value"
    INVALID_MONTH = "invalid month value"
    INVALID_DATE = "day does not exist in the given month"
    EMPTY_TIMETABLE = "time table has no sessions"


class ParseError(Exception):
    """Raised when the timetable page does not have the expected structure."""

    def __init__(self, kind: ParseErrorKind, detail: Optional[str] = None):
        self.kind = kind
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind.value} ({self.detail})"
        return self.kind.value


# --- Node helpers ---

def _is_text(node: Optional[PageElement]) -> bool:
    # Comments, CDATA sections and the like are not textual content
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _first_child(elem: Tag) -> Optional[PageElement]:
    return elem.contents[0] if elem.contents else None


def _child_elements(elem: Tag) -> Iterator[Tag]:
    return (child for child in elem.children if isinstance(child, Tag))


def _first_text(elem: Tag, missing: ParseErrorKind, non_textual: ParseErrorKind) -> str:
    """Returns the text of the first child node of `elem`, which must be a text node."""
    node = _first_child(elem)
    if node is None:
        raise ParseError(missing)
    if not _is_text(node):
        raise ParseError(non_textual)
    return str(node)


def _parse_number(raw: str, kind: ParseErrorKind) -> int:
    value = raw.strip()
    if not _RE_NUMBER.fullmatch(value):
        raise ParseError(kind, repr(raw))
    return int(value)


def _localize(day: date, at: time, tz) -> Optional[datetime]:
    """
    Combines a date and a wall-clock time in `tz`. Returns None when that
    wall-clock time is skipped or repeated by a UTC offset transition.
    """
    local = datetime.combine(day, at, tzinfo=tz)
    if local.replace(fold=0).utcoffset() != local.replace(fold=1).utcoffset():
        return None
    return local


class TimetableParser:
    """
    Reconstructs the sessions of a timetable page as calendar events.

    Rows are quarter-hour slots headed by their start time. Cells marked as
    holding a session span as many rows as the session lasts, and list one or
    more (date range, location) pairs. Events come out in document order: row,
    then cell, then session.
    """

    def __init__(
        self,
        timetable_id: TimetableId,
        html: Union[str, BeautifulSoup],
        created_on: datetime,
    ):
        """
        Args:
            timetable_id: Identifier of the parsed timetable (year and time zone are used).
            html: The timetable page, raw or already parsed.
            created_on: Time stamp (DTSTAMP) of every produced event.
        """
        self.timetable_id = timetable_id
        self.soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "lxml")
        self.created_on = created_on

    @property
    def time_zone(self):
        return self.timetable_id.time_zone

    def parse(self) -> Calendar:
        """
        Parses the page as an iCalendar object.

        Raises:
            ParseError: If the page is malformed or lists no session at all.
        """
        events = self.parse_events()
        if not events:
            raise ParseError(ParseErrorKind.EMPTY_TIMETABLE)
        return Calendar(PRODUCT_NAME, SPEC_VERSION, [event.into_component() for event in events])

    def parse_events(self) -> List[Event]:
        """
        Parses every session of the page.

        The first error found fails the whole page, even though the rows
        before it were parsed successfully.

        Raises:
            ParseError: On the first malformed row, cell or session.
        """
        rows = self._timetable_rows()
        events: List[Event] = []
        state: ProcessState = ProcessState()
        for row_index, row_elem in enumerate(rows):
            self._push_row(row_elem, events, state)
            if not state.ok:
                log.warning(f"Row {row_index}: {state.error}")
                break

        state.raise_for_error()
        log.info(f"Parsing finished. Extracted {len(events)} events.")
        return events

    def _timetable_rows(self) -> Iterator[Tag]:
        table_body = self.soup.select_one(TIMETABLE_SELECTOR)
        if table_body is not None:
            return _child_elements(table_body)

        # lxml does not insert the `tbody` an HTML5 parser would imply
        table = self.soup.select_one(TIMETABLE_TABLE_SELECTOR)
        if table is None:
            log.error("Timetable body not found in HTML.")
            raise ParseError(ParseErrorKind.MISSING_TBODY_ELEM)
        return (child for child in _child_elements(table) if child.name == "tr")

    def _push_row(self, row_elem: Tag, dest: List[Event], state: ProcessState) -> None:
        try:
            start_time = self._row_start_time(row_elem)
        except ParseError as e:
            state.error = e
            return

        cell_elems = (
            cell_elem
            for cell_elem in _child_elements(row_elem)
            if SESSION_CELL_CLASS in (cell_elem.get("class") or [])
        )
        cells, _ = process(
            (_SessionCell(self, start_time, cell_elem) for cell_elem in cell_elems),
            ParseError,
            state,
        )
        for cell in cells:
            cell.push_sessions(dest, state)
        log.debug(f"Parsed row starting at {start_time:%H:%M}; {len(dest)} events so far.")

    @staticmethod
    def _row_start_time(row_elem: Tag) -> time:
        time_elem = row_elem.select_one(TIME_SELECTOR)
        if time_elem is None:
            raise ParseError(ParseErrorKind.MISSING_ROW_TIME_CELL)

        hour = _parse_number(
            _first_text(
                time_elem,
                ParseErrorKind.CHILDLESS_TIME_ELEMENT,
                ParseErrorKind.NON_TEXTUAL_TIME_NODE,
            ),
            ParseErrorKind.NON_NUMERIC_HOUR,
        )

        # The minutes are wrapped in a <sup> element
        minutes_elem = time_elem.contents[-1]
        if not isinstance(minutes_elem, Tag):
            raise ParseError(ParseErrorKind.NON_ELEMENT_MINUTES_NODE)
        minutes = _parse_number(
            _first_text(
                minutes_elem,
                ParseErrorKind.CHILDLESS_TIME_ELEMENT,
                ParseErrorKind.NON_TEXTUAL_TIME_NODE,
            ),
            ParseErrorKind.NON_NUMERIC_MINUTES,
        )

        try:
            return time(hour, minutes)
        except ValueError as e:
            raise ParseError(ParseErrorKind.INVALID_TIME, f"{hour}:{minutes}") from e


class _SessionCell:
    """A timetable cell holding the sessions of one course."""

    def __init__(self, parser: TimetableParser, start_time: time, elem: Tag):
        raw_span = elem.get("rowspan")
        span = 1 if raw_span is None else _parse_number(raw_span, ParseErrorKind.INVALID_ROW_SPAN)
        if span < 1:
            raise ParseError(ParseErrorKind.INVALID_ROW_SPAN, repr(raw_span))

        group_elem = elem.select_one(GROUP_SELECTOR)
        if group_elem is None:
            raise ParseError(ParseErrorKind.MISSING_GROUP_ELEM)

        self.parser = parser
        self.start_time = start_time
        self.duration = timedelta(minutes=ROW_QUANTUM_MINUTES * span)
        self.group_elem = group_elem

    def push_sessions(self, dest: List[Event], state: ProcessState) -> None:
        """Appends the events of this cell to `dest`, reporting the first error into `state`."""
        try:
            course_name = _first_text(
                self.group_elem,
                ParseErrorKind.CHILDLESS_GROUP_ELEM,
                ParseErrorKind.NON_TEXTUAL_GROUP_CHILD,
            ).strip()

            sessions_elem = self.group_elem.select_one(SESSION_SELECTOR)
            if sessions_elem is None:
                raise ParseError(ParseErrorKind.MISSING_SESSIONS_ELEM)
        except ParseError as e:
            state.error = e
            return

        events, _ = process(self._sessions(sessions_elem, course_name), ParseError, state)
        dest.extend(events)

    def _sessions(self, sessions_elem: Tag, course_name: str) -> Iterator[Event]:
        # Sessions are listed as (date range, location, separator) node triples
        nodes = sessions_elem.contents
        if len(nodes) % 3 != 0:
            raise ParseError(ParseErrorKind.MISMATCHED_SESSION_NODES, f"{len(nodes)} nodes")
        for i in range(0, len(nodes), 3):
            date_range_span, location_span = nodes[i], nodes[i + 1]
            if not isinstance(date_range_span, Tag):
                raise ParseError(ParseErrorKind.NON_ELEMENT_SESSION_DATE_NODE)
            if not isinstance(location_span, Tag):
                raise ParseError(ParseErrorKind.NON_ELEMENT_SESSION_LOCATION_NODE)
            yield self._parse_session(date_range_span, location_span, course_name)

    def _parse_session(self, date_range_span: Tag, location_span: Tag, course_name: str) -> Event:
        raw_range = _first_text(
            date_range_span,
            ParseErrorKind.MISSING_DATE_RANGE,
            ParseErrorKind.NON_TEXTUAL_DATE_RANGE,
        ).strip().rstrip(":").rstrip()
        start_date, end_date = self._parse_date_range(raw_range)
        location = _first_text(
            location_span,
            ParseErrorKind.MISSING_LOCATION_SPAN,
            ParseErrorKind.NON_TEXTUAL_LOCATION_SPAN,
        ).strip()

        start = _localize(start_date, self.start_time, self.parser.time_zone)
        if start is None:
            raise ParseError(ParseErrorKind.INVALID_START_DATE, raw_range)

        uid = f"{course_name}-{raw_range}@{PRODUCT_NAME}"
        event = (
            Event(uid, self.parser.created_on, start)
            .with_summary(course_name)
            .with_location(location)
            .with_duration(self.duration)
        )
        if start_date == end_date:
            return event

        # Multi-week sessions always repeat weekly until the last date
        end = _localize(end_date, self.start_time, self.parser.time_zone)
        if end is None:
            raise ParseError(ParseErrorKind.INVALID_END_DATE, raw_range)
        return event.with_recurrence(Recurrence.until(TimeUnit.WEEK, end))

    def _parse_date_range(self, raw_range: str) -> Tuple[date, date]:
        # A range without a dash is a single-day session
        start, dash, end = raw_range.partition("-")
        if not dash:
            day = self._parse_date(raw_range)
            return day, day
        return self._parse_date(start), self._parse_date(end)

    def _parse_date(self, raw_date: str) -> date:
        day_text, dot, month_text = raw_date.strip().partition(".")
        if not dot:
            raise ParseError(ParseErrorKind.INVALID_DATE_FORMAT, repr(raw_date))
        day = _parse_number(day_text, ParseErrorKind.INVALID_DAY)
        month = MONTH_ABBREVIATIONS.get(month_text.strip())
        if month is None:
            raise ParseError(ParseErrorKind.INVALID_MONTH, repr(month_text))
        try:
            return date(self.parser.timetable_id.year, month, day)
        except ValueError as e:
            raise ParseError(ParseErrorKind.INVALID_DATE, repr(raw_date)) from e
