# uc3m_api/models/calendar.py
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core import serializer


class ContractViolation(AssertionError):
    """
    Raised when a calendar object is assembled incorrectly.

    This signals a programming error in the caller, not bad external data,
    and is never meant to be caught and recovered from.
    """


class PropHolder:
    """
    A container of `Prop`s.

    Some properties can have multiple values, in which case multiple props with
    the same name may be added to the holder.
    """

    _props: List["Prop"]

    @property
    def props(self) -> Tuple["Prop", ...]:
        return tuple(self._props)

    def first_prop(self, name: str) -> Optional["Prop"]:
        """Searches for the first property with the given name."""
        return next((prop for prop in self._props if prop.name == name), None)

    def has_prop(self, name: str) -> bool:
        return any(prop.name == name for prop in self._props)


class Param:
    """
    A `Prop` parameter, holding meta-information about the property or its value.

    Values are always written quoted, so they cannot contain a double quote.
    """

    __slots__ = ("name", "values")

    def __init__(self, name: str, values: Sequence[str]):
        for value in values:
            if '"' in value:
                raise ContractViolation(
                    f"Parameter value cannot contain double quotes (\"); got '{value}'"
                )
        self.name = name
        self.values: Tuple[str, ...] = tuple(values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Param):
            return NotImplemented
        return (self.name, self.values) == (other.name, other.values)

    def __repr__(self) -> str:
        return f"Param({self.name!r}, {list(self.values)!r})"


class Prop:
    """A calendar property: one content line before folding."""

    __slots__ = ("name", "params", "value")

    def __init__(self, name: str, value: str, params: Optional[Iterable[Param]] = None):
        self.name = name
        self.params: List[Param] = list(params or [])
        self.value = value

    @classmethod
    def text(cls, name: str, values: Sequence[str]) -> "Prop":
        """
        Creates a property with comma-separated textual values, escaping
        characters where needed.

        Args:
            name: The property name.
            values: One or more raw text values. Pass `[value]` for a single one.
        """
        if isinstance(values, str):
            values = [values]
        return cls(name, serializer.join_text(values))

    @classmethod
    def date_time(cls, name: str, date_time: datetime) -> "Prop":
        """
        Creates a property with a date-time value in local time, qualified by
        a `TZID` parameter holding the global (solidus-prefixed) zone id.
        """
        zone_name = getattr(date_time.tzinfo, "key", None)
        if zone_name is None:
            raise ContractViolation(
                f"date-time property {name} needs an IANA time zone; got {date_time!r}"
            )
        return cls(
            name,
            serializer.format_date_time(date_time),
            params=[Param("TZID", [f"/{zone_name}"])],
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Prop):
            return NotImplemented
        return (self.name, self.params, self.value) == (other.name, other.params, other.value)

    def __repr__(self) -> str:
        return f"Prop({self.name!r}, {self.value!r}, params={self.params!r})"

    def __str__(self) -> str:
        return serializer.render_prop(self)


class Component(PropHolder):
    """
    A collection of `Prop`s that express a particular calendar semantic, such as
    an event (`VEVENT`), a to-do or an alarm.
    """

    def __init__(self, name: str, props: Iterable[Prop]):
        self.name = name
        self._props = list(props)

    @classmethod
    def from_event(cls, event) -> "Component":
        return event.into_component()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        return (self.name, self._props) == (other.name, other._props)

    def __repr__(self) -> str:
        return f"Component({self.name!r}, {self._props!r})"

    def __str__(self) -> str:
        return serializer.render_component(self)


class Calendar(PropHolder):
    """
    An iCalendar object: calendar-wide properties followed by components.

    Date-time properties use global `TZID` values (prefixed with a solidus), so
    no `VTIMEZONE` component is emitted.
    """

    def __init__(self, product: str, spec_version: str, components: Iterable[Component]):
        """
        Args:
            product: Identifier of the product that created the calendar (PRODID).
            spec_version: Highest iCalendar version needed to interpret it (VERSION).
            components: A non-empty sequence of components, owned by the calendar.
        """
        components = list(components)
        if not components:
            raise ContractViolation("calendar must have >= 1 components")
        self._props = [
            Prop.text("PRODID", [product]),
            Prop.text("VERSION", [spec_version]),
        ]
        self._components = components

    @property
    def components(self) -> Tuple[Component, ...]:
        return tuple(self._components)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Calendar):
            return NotImplemented
        return (self._props, self._components) == (other._props, other._components)

    def __str__(self) -> str:
        return serializer.render_calendar(self)
