# uc3m_api/models/events.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from ..core import serializer
from .calendar import Component, ContractViolation, Prop


class TimeUnit(Enum):
    """Named intervals of time, valued by their recurrence frequency keyword."""

    SECOND = "SECONDLY"
    MINUTE = "MINUTELY"
    HOUR = "HOURLY"
    DAY = "DAILY"
    WEEK = "WEEKLY"
    MONTH = "MONTHLY"
    YEAR = "YEARLY"

    @property
    def recurrence_freq(self) -> str:
        return self.value


# --- Event termination: an event either ends at a date-time or lasts a duration ---

@dataclass(frozen=True)
class EndAt:
    date_time: datetime


@dataclass(frozen=True)
class Lasting:
    duration: timedelta


EventTermination = Union[EndAt, Lasting]


# --- Recurrence bound: a rule repeats either until a date-time or a number of times ---

@dataclass(frozen=True)
class Until:
    date_time: datetime


@dataclass(frozen=True)
class Count:
    count: int


RecurrenceBound = Union[Until, Count]


def _positive_int(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ContractViolation(f"recurrence {what} must be positive; got {value!r}")
    return value


class Recurrence:
    """
    A recurrence rule specification.

    Build it through `Recurrence.until` or `Recurrence.times`; exactly one of
    the two bounds is ever set.
    """

    def __init__(self, frequency: TimeUnit, bound: RecurrenceBound):
        self.frequency = frequency
        self.bound = bound
        self.interval: Optional[int] = None

    @classmethod
    def until(cls, frequency: TimeUnit, until: datetime) -> "Recurrence":
        """Repeats with the given frequency until `until` (inclusive)."""
        return cls(frequency, Until(until))

    @classmethod
    def times(cls, frequency: TimeUnit, count: int) -> "Recurrence":
        """
        Repeats with the given frequency `count` times. The start of the
        event counts as the first occurrence.
        """
        return cls(frequency, Count(_positive_int(count, "count")))

    def with_interval(self, interval: int) -> "Recurrence":
        """
        Sets the interval at which the rule repeats. For example, within a
        rule with daily frequency, `8` means the event occurs every eight days.
        """
        self.interval = _positive_int(interval, "interval")
        return self

    def __eq__(self, other) -> bool:
        if not isinstance(other, Recurrence):
            return NotImplemented
        return (self.frequency, self.bound, self.interval) == (
            other.frequency,
            other.bound,
            other.interval,
        )

    def __repr__(self) -> str:
        return f"Recurrence({self.frequency!r}, {self.bound!r}, interval={self.interval!r})"

    def __str__(self) -> str:
        return serializer.format_recurrence(self)


class Event:
    """
    A scheduled amount of time on a calendar.

    Built fluently, e.g.::

        Event(uid, now, start).with_summary("Lecture").with_duration(timedelta(hours=2))
    """

    def __init__(self, uid: str, last_modified: datetime, start: datetime):
        """
        Args:
            uid: Persistent, globally unique identifier of the event.
            last_modified: When the information of the event was last modified (DTSTAMP).
            start: When the event begins.
        """
        self.uid = uid
        self.last_modified = last_modified
        self.start = start
        self.created_on: Optional[datetime] = None
        self.summary: Optional[str] = None
        self.description: Optional[str] = None
        self.location: Optional[str] = None
        self.recurrence: Optional[Recurrence] = None
        self.termination: Optional[EventTermination] = None

    def with_created_on(self, created_on: datetime) -> "Event":
        self.created_on = created_on
        return self

    def with_summary(self, summary: str) -> "Event":
        self.summary = summary
        return self

    def with_description(self, description: str) -> "Event":
        self.description = description
        return self

    def with_location(self, location: str) -> "Event":
        self.location = location
        return self

    def with_recurrence(self, recurrence: Recurrence) -> "Event":
        self.recurrence = recurrence
        return self

    def with_end(self, end: datetime) -> "Event":
        """Sets the date-time by which the event ends. Excludes a duration."""
        if isinstance(self.termination, Lasting):
            raise ContractViolation("cannot set end datetime of event with duration")
        self.termination = EndAt(end)
        return self

    def with_duration(self, duration: timedelta) -> "Event":
        """Sets the positive duration of the event. Excludes an end date-time."""
        if isinstance(self.termination, EndAt):
            raise ContractViolation("cannot set duration of event with end datetime")
        if duration <= timedelta(0):
            raise ContractViolation(f"event duration must be positive; got {duration}")
        self.termination = Lasting(duration)
        return self

    @property
    def end(self) -> Optional[datetime]:
        return self.termination.date_time if isinstance(self.termination, EndAt) else None

    @property
    def duration(self) -> Optional[timedelta]:
        return self.termination.duration if isinstance(self.termination, Lasting) else None

    def into_component(self) -> Component:
        """
        Converts the event into a `VEVENT` component. Properties always come out
        in this order, skipping the absent ones: DTSTAMP, UID, DTSTART, CREATED,
        SUMMARY, DESCRIPTION, LOCATION, DTEND, DURATION, RRULE.
        """
        props: List[Prop] = [
            Prop.date_time("DTSTAMP", self.last_modified),
            Prop.text("UID", [self.uid]),
            Prop.date_time("DTSTART", self.start),
        ]
        if self.created_on is not None:
            props.append(Prop.date_time("CREATED", self.created_on))
        if self.summary is not None:
            props.append(Prop.text("SUMMARY", [self.summary]))
        if self.description is not None:
            props.append(Prop.text("DESCRIPTION", [self.description]))
        if self.location is not None:
            props.append(Prop.text("LOCATION", [self.location]))
        if self.end is not None:
            props.append(Prop.date_time("DTEND", self.end))
        if self.duration is not None:
            props.append(Prop("DURATION", serializer.format_duration(self.duration)))
        if self.recurrence is not None:
            props.append(Prop("RRULE", str(self.recurrence)))
        return Component("VEVENT", props)

    def __repr__(self) -> str:
        return f"Event(uid={self.uid!r}, start={self.start!r}, termination={self.termination!r})"
