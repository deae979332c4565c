from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from uc3m_api.models.calendar import ContractViolation
from uc3m_api.models.events import Count, Event, Recurrence, TimeUnit, Until

MADRID = ZoneInfo("Europe/Madrid")
NOW = datetime(2022, 8, 19, 21, 52, 3, tzinfo=MADRID)


def prop_names(event: Event):
    return [prop.name for prop in event.into_component().props]


# --- Recurrence ---

def test_time_unit_frequencies():
    assert [unit.recurrence_freq for unit in TimeUnit] == [
        "SECONDLY", "MINUTELY", "HOURLY", "DAILY", "WEEKLY", "MONTHLY", "YEARLY",
    ]


def test_recurrence_until_is_written_in_utc():
    # 22:30:15 in Madrid summer time is 20:30:15 UTC
    until = datetime(2022, 8, 19, 22, 30, 15, tzinfo=MADRID)
    assert str(Recurrence.until(TimeUnit.WEEK, until)) == "FREQ=WEEKLY;UNTIL=20220819T203015"


def test_recurrence_count_with_interval():
    recurrence = Recurrence.times(TimeUnit.HOUR, 10).with_interval(2)
    assert str(recurrence) == "FREQ=HOURLY;COUNT=10;INTERVAL=2"
    assert recurrence.bound == Count(10)


def test_recurrence_has_exactly_one_bound():
    recurrence = Recurrence.until(TimeUnit.DAY, NOW)
    assert isinstance(recurrence.bound, Until)
    assert recurrence.interval is None


@pytest.mark.parametrize("count", [0, -3])
def test_recurrence_count_must_be_positive(count: int):
    with pytest.raises(ContractViolation):
        Recurrence.times(TimeUnit.WEEK, count)


def test_recurrence_interval_must_be_positive():
    with pytest.raises(ContractViolation):
        Recurrence.times(TimeUnit.WEEK, 3).with_interval(0)


# --- Event ---

def test_minimal_event_props():
    assert prop_names(Event("1", NOW, NOW)) == ["DTSTAMP", "UID", "DTSTART"]


def test_event_props_keep_fixed_order_regardless_of_builder_order():
    event = (
        Event("1", NOW, NOW)
        .with_recurrence(Recurrence.times(TimeUnit.DAY, 2))
        .with_end(NOW + timedelta(hours=1))
        .with_location("Room")
        .with_description("Details")
        .with_summary("Title")
        .with_created_on(NOW)
    )
    assert prop_names(event) == [
        "DTSTAMP", "UID", "DTSTART", "CREATED", "SUMMARY", "DESCRIPTION", "LOCATION", "DTEND", "RRULE",
    ]


def test_event_text_props_are_escaped():
    component = Event("a,b", NOW, NOW).with_summary("Maths; Physics").into_component()
    assert component.first_prop("UID").value == "a\\,b"
    assert component.first_prop("SUMMARY").value == "Maths\\; Physics"


def test_event_with_end():
    end = NOW + timedelta(hours=1)
    event = Event("1", NOW, NOW).with_end(end)

    assert event.end == end
    assert event.duration is None
    assert str(event.into_component().first_prop("DTEND")) == 'DTEND;TZID="/Europe/Madrid":20220819T225203\r\n'


def test_event_end_after_duration_is_rejected():
    event = Event("1", NOW, NOW).with_duration(timedelta(hours=1))
    with pytest.raises(ContractViolation, match="duration"):
        event.with_end(NOW + timedelta(hours=1))


def test_event_duration_after_end_is_rejected():
    event = Event("1", NOW, NOW).with_end(NOW + timedelta(hours=1))
    with pytest.raises(ContractViolation, match="end datetime"):
        event.with_duration(timedelta(hours=1))


def test_event_duration_must_be_positive():
    with pytest.raises(ContractViolation):
        Event("1", NOW, NOW).with_duration(timedelta(0))


def test_event_setters_can_be_repeated():
    event = Event("1", NOW, NOW).with_duration(timedelta(hours=1)).with_duration(timedelta(hours=2))
    assert event.duration == timedelta(hours=2)
    assert event.into_component().first_prop("DURATION").value == "PT7200S"
