from zoneinfo import ZoneInfo

import httpx
import pytest
from pydantic import ValidationError

from uc3m_api.models.timetable import TimetableId, TimetableUrlParseError, UrlErrorReason

TIMETABLE_URL = (
    "https://aplicaciones.uc3m.es/horarios-web/publicacion/2022/porCentroPlanCursoGrupo.tt"
    "?plan=433&centro=2&curso=4&grupo=121&tipoPer=C&valorPer=1"
)
BASE = "https://aplicaciones.uc3m.es/horarios-web/publicacion/2022/porCentroPlanCursoGrupo.tt"


def test_url(timetable_id: TimetableId):
    assert timetable_id.url() == TIMETABLE_URL


def test_from_url(timetable_id: TimetableId):
    assert TimetableId.from_url(TIMETABLE_URL) == timetable_id


def test_from_url_accepts_httpx_urls(timetable_id: TimetableId):
    assert TimetableId.from_url(httpx.URL(TIMETABLE_URL)) == timetable_id


def test_url_round_trip(madrid: ZoneInfo):
    timetable_id = TimetableId(year=2023, plan=65535, center=255, grade=0, group=7, period=2, time_zone=madrid)
    assert TimetableId.from_url(timetable_id.url()) == timetable_id


def test_from_url_keeps_given_time_zone():
    canary = ZoneInfo("Atlantic/Canary")
    assert TimetableId.from_url(TIMETABLE_URL, time_zone=canary).time_zone == canary


def test_from_url_ignores_query_order_and_takes_last_repeated_value(timetable_id: TimetableId):
    url = f"{BASE}?valorPer=1&grupo=121&curso=4&centro=2&plan=1&plan=433"
    assert TimetableId.from_url(url) == timetable_id


def test_identifier_is_hashable(timetable_id: TimetableId):
    assert len({timetable_id, TimetableId.from_url(TIMETABLE_URL)}) == 1


@pytest.mark.parametrize(
    "field,value",
    [("plan", 65536), ("center", 256), ("grade", -1), ("group", 70000), ("period", 300)],
)
def test_identifier_field_ranges(madrid: ZoneInfo, field: str, value: int):
    values = dict(year=2022, plan=433, center=2, grade=4, group=121, period=1, time_zone=madrid)
    values[field] = value
    with pytest.raises(ValidationError):
        TimetableId(**values)


@pytest.mark.parametrize(
    "url,reason,param",
    [
        ("/horarios-web/publicacion/2022/x.tt", UrlErrorReason.MISSING_DOMAIN, None),
        (TIMETABLE_URL.replace("aplicaciones.uc3m.es", "example.com"), UrlErrorReason.INCORRECT_DOMAIN, None),
        ("https://aplicaciones.uc3m.es/horarios-web", UrlErrorReason.MISSING_YEAR_SEGMENT, None),
        ("https://aplicaciones.uc3m.es/horarios-web/publicacion/veinte/x.tt", UrlErrorReason.INVALID_YEAR_SEGMENT, None),
        (f"{BASE}?centro=2&curso=4&grupo=121&valorPer=1", UrlErrorReason.MISSING_QUERY_PARAM, "plan"),
        (f"{BASE}?plan=433&centro=2&curso=4&grupo=121", UrlErrorReason.MISSING_QUERY_PARAM, "valorPer"),
        (f"{BASE}?plan=433&centro=2&curso=cuarto&grupo=121&valorPer=1", UrlErrorReason.INVALID_QUERY_PARAM, "curso"),
        (f"{BASE}?plan=433&centro=256&curso=4&grupo=121&valorPer=1", UrlErrorReason.INVALID_QUERY_PARAM, "centro"),
        (f"{BASE}?plan=433&centro=2&curso=4&grupo=-1&valorPer=1", UrlErrorReason.INVALID_QUERY_PARAM, "grupo"),
        (f"{BASE}?plan=433%0A&centro=2&curso=4&grupo=121&valorPer=1", UrlErrorReason.INVALID_QUERY_PARAM, "plan"),
        (f"{BASE}?plan=433&centro=2&curso=4&grupo=1_21&valorPer=1", UrlErrorReason.INVALID_QUERY_PARAM, "grupo"),
        ("https://aplicaciones.uc3m.es/horarios-web/publicacion/2022%0A/x.tt", UrlErrorReason.INVALID_YEAR_SEGMENT, None),
    ],
)
def test_from_url_errors(url: str, reason: UrlErrorReason, param):
    with pytest.raises(TimetableUrlParseError) as excinfo:
        TimetableId.from_url(url)
    assert excinfo.value.reason is reason
    assert excinfo.value.param == param


def test_url_error_message_names_the_param():
    error = TimetableUrlParseError(UrlErrorReason.MISSING_QUERY_PARAM, "plan")
    assert str(error) == "missing query param `plan`"


def test_from_url_unparseable_address():
    with pytest.raises(httpx.InvalidURL):
        TimetableId.from_url("https://aplicaciones.uc3m.es:port/horarios-web")
