# uc3m_api/core/serializer.py
"""
Renders calendar model values to the RFC 5545 wire format.

The model classes in `uc3m_api.models` call into this module from their
`__str__` methods, so `str(calendar)` is the whole iCalendar stream.
"""
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from ..models.calendar import Calendar, Component, Param, Prop
    from ..models.events import Recurrence

CRLF = "\r\n"
# Content lines longer than this many octets are folded
MAX_LINE_OCTETS = 75
FOLD_CONTINUATION = CRLF + " "


def escape_text(value: str) -> str:
    """Escapes a TEXT value (RFC 5545, section 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def join_text(values: Iterable[str]) -> str:
    """Escapes each textual value and joins them into a multi-valued TEXT value."""
    return ",".join(escape_text(value) for value in values)


def format_date_time(date_time: datetime) -> str:
    """
    Formats a date-time as local time in its own zone.

    The format is loosely based on ISO 8601, but with dashes, colons and the
    UTC offset stripped (e.g. `20220819T215203`).
    """
    return (
        f"{date_time.year:04d}{date_time.month:02d}{date_time.day:02d}"
        f"T{date_time.hour:02d}{date_time.minute:02d}{date_time.second:02d}"
    )


def format_duration(duration: timedelta) -> str:
    """Formats a positive duration as a number of seconds, e.g. `PT7200S`."""
    return f"PT{int(duration.total_seconds())}S"


def format_recurrence(recurrence: "Recurrence") -> str:
    """Formats a recurrence rule value, e.g. `FREQ=WEEKLY;UNTIL=20221216T090000`."""
    # Imported here, the models module imports this one at load time
    from ..models.events import Count, Until

    parts = [f"FREQ={recurrence.frequency.recurrence_freq}"]
    bound = recurrence.bound
    if isinstance(bound, Until):
        # The UNTIL part must be specified in UTC time
        parts.append(f"UNTIL={format_date_time(bound.date_time.astimezone(timezone.utc))}")
    elif isinstance(bound, Count):
        parts.append(f"COUNT={bound.count}")
    if recurrence.interval is not None:
        parts.append(f"INTERVAL={recurrence.interval}")
    return ";".join(parts)


def fold_line(line: str) -> str:
    """
    Folds a content line (without its terminating CRLF) at 75 octets.

    The running length is counted in UTF-8 octets, so a multi-byte character is
    never split. Every continuation starts with a single space, which counts
    towards the length of the continuation line.
    """
    out: List[str] = []
    line_len = 0
    for ch in line:
        ch_len = len(ch.encode("utf-8"))
        if line_len + ch_len > MAX_LINE_OCTETS:
            out.append(FOLD_CONTINUATION)
            line_len = 1 + ch_len
        else:
            line_len += ch_len
        out.append(ch)
    return "".join(out)


def unfold(text: str) -> str:
    """Reverses `fold_line`; handy for reading folded output back."""
    return text.replace(FOLD_CONTINUATION, "")


def render_param(param: "Param") -> str:
    # Parameter values are always quoted, sparing the check for ':', ';' or ','
    values = ",".join(f'"{value}"' for value in param.values)
    return f";{param.name}={values}"


def render_prop(prop: "Prop") -> str:
    line = prop.name + "".join(render_param(param) for param in prop.params) + ":" + prop.value
    return fold_line(line) + CRLF


def render_component(component: "Component") -> str:
    body = "".join(render_prop(prop) for prop in component.props)
    return f"BEGIN:{component.name}{CRLF}{body}END:{component.name}{CRLF}"


def render_calendar(calendar: "Calendar") -> str:
    props = "".join(render_prop(prop) for prop in calendar.props)
    components = "".join(render_component(component) for component in calendar.components)
    return f"BEGIN:VCALENDAR{CRLF}{props}{components}END:VCALENDAR{CRLF}"
