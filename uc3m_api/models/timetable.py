# uc3m_api/models/timetable.py
import logging
import re
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import UC3M_TIMETABLE_DOMAIN, UC3M_TIMETABLE_PATH, UC3M_TIMEZONE_NAME

log = logging.getLogger(__name__)

U8_MAX = 2**8 - 1
U16_MAX = 2**16 - 1

# Query keys of the remote timetable address, per identity field
QUERY_KEYS = {
    "plan": "plan",
    "center": "centro",
    "grade": "curso",
    "group": "grupo",
    "period": "valorPer",
}
PERIOD_TYPE_KEY = "tipoPer"
PERIOD_TYPE_VALUE = "C"

# Decimal digits only, optionally signed; matched against the whole value
SIGNED_NUMBER_RE = re.compile(r"[+-]?[0-9]+")
UNSIGNED_NUMBER_RE = re.compile(r"\+?[0-9]+")


def uc3m_time_zone() -> ZoneInfo:
    """The time zone the university publishes its timetables in."""
    return ZoneInfo(UC3M_TIMEZONE_NAME)


class UrlErrorReason(Enum):
    MISSING_DOMAIN = "url is missing domain"
    INCORRECT_DOMAIN = "incorrect timetable domain"
    CANNOT_BE_A_BASE_URL = "cannot parse cannot-be-a-base url"
    MISSING_YEAR_SEGMENT = "url is missing year segment"
    INVALID_YEAR_SEGMENT = "cannot parse non-numeric year segment"
    MISSING_QUERY_PARAM = "missing query param"
    INVALID_QUERY_PARAM = "invalid query param"


class TimetableUrlParseError(Exception):
    """Raised when an address does not point to a timetable."""

    def __init__(self, reason: UrlErrorReason, param: Optional[str] = None):
        self.reason = reason
        self.param = param
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.param is not None:
            return f"{self.reason.value} `{self.param}`"
        return self.reason.value


class TimetableId(BaseModel):
    """Identifies a published timetable."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    year: int
    plan: int = Field(..., ge=0, le=U16_MAX)
    center: int = Field(..., ge=0, le=U8_MAX)
    grade: int = Field(..., ge=0, le=U8_MAX)
    group: int = Field(..., ge=0, le=U16_MAX)
    period: int = Field(..., ge=0, le=U8_MAX)
    time_zone: ZoneInfo

    def url(self) -> str:
        """Returns the address the timetable is published at."""
        params = {
            QUERY_KEYS["plan"]: str(self.plan),
            QUERY_KEYS["center"]: str(self.center),
            QUERY_KEYS["grade"]: str(self.grade),
            QUERY_KEYS["group"]: str(self.group),
            PERIOD_TYPE_KEY: PERIOD_TYPE_VALUE,
            QUERY_KEYS["period"]: str(self.period),
        }
        base = f"https://{UC3M_TIMETABLE_DOMAIN}{UC3M_TIMETABLE_PATH.format(year=self.year)}"
        return str(httpx.URL(base, params=params))

    @classmethod
    def from_url(
        cls, url: Union[str, httpx.URL], time_zone: Optional[ZoneInfo] = None
    ) -> "TimetableId":
        """
        Recovers the timetable identifier from its published address.

        Args:
            url: The timetable address. Strings are parsed with httpx, whose
                 `httpx.InvalidURL` propagates for unparseable input.
            time_zone: Zone of the resulting identifier; the university's by default.

        Raises:
            TimetableUrlParseError: If the address does not identify a timetable.
        """
        if not isinstance(url, httpx.URL):
            url = httpx.URL(url)

        if not url.host:
            raise TimetableUrlParseError(UrlErrorReason.MISSING_DOMAIN)
        if url.host != UC3M_TIMETABLE_DOMAIN:
            raise TimetableUrlParseError(UrlErrorReason.INCORRECT_DOMAIN)
        if not url.path.startswith("/"):
            raise TimetableUrlParseError(UrlErrorReason.CANNOT_BE_A_BASE_URL)

        # /horarios-web/publicacion/<year>/...
        segments = url.path.split("/")[1:]
        if len(segments) < 3:
            raise TimetableUrlParseError(UrlErrorReason.MISSING_YEAR_SEGMENT)
        year_segment = segments[2]
        if not SIGNED_NUMBER_RE.fullmatch(year_segment):
            raise TimetableUrlParseError(UrlErrorReason.INVALID_YEAR_SEGMENT)

        def query_param(field: str, maximum: int) -> int:
            name = QUERY_KEYS[field]
            values = url.params.get_list(name)
            if not values:
                raise TimetableUrlParseError(UrlErrorReason.MISSING_QUERY_PARAM, name)
            raw = values[-1]
            if not UNSIGNED_NUMBER_RE.fullmatch(raw) or int(raw) > maximum:
                raise TimetableUrlParseError(UrlErrorReason.INVALID_QUERY_PARAM, name)
            return int(raw)

        timetable_id = cls(
            year=int(year_segment),
            plan=query_param("plan", U16_MAX),
            center=query_param("center", U8_MAX),
            grade=query_param("grade", U8_MAX),
            group=query_param("group", U16_MAX),
            period=query_param("period", U8_MAX),
            time_zone=time_zone or uc3m_time_zone(),
        )
        log.debug(f"Parsed timetable id {timetable_id} from {url}")
        return timetable_id
