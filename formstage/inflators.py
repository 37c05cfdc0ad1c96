"""Built-in inflators.

Inflators turn submitted strings into Python objects so that validators and
transformers can work with real types. They only run for fields that have
no errors, and only when no constraint failed anywhere on the form.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from dateutil import parser as date_parser
from dateutil import tz

from formstage.errors import InflatorError
from formstage.processors import Inflator
from formstage.registry import register
from formstage.types import Stage


@register(Stage.INFLATOR, "DateTime")
class DateTimeInflator(Inflator):
    """Parse a date or date-time string with python-dateutil.

    Attributes:
        dayfirst: Read ambiguous dates as DD/MM/YYYY
        yearfirst: Read ambiguous dates as YYYY/MM/DD
        time_zone: Zone name attached to naive results (e.g. "UTC")
        date_only: Return a ``date`` instead of a ``datetime``

    Examples:
        >>> DateTimeInflator().inflate("2024-03-01 10:30")
        datetime.datetime(2024, 3, 1, 10, 30)
        >>> DateTimeInflator(dayfirst=True, date_only=True).inflate("01/03/2024")
        datetime.date(2024, 3, 1)
    """

    options = ("dayfirst", "yearfirst", "time_zone", "date_only")
    default_message = "Invalid date"

    def __init__(
        self,
        dayfirst: bool = False,
        yearfirst: bool = False,
        time_zone: Optional[str] = None,
        date_only: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.dayfirst = dayfirst
        self.yearfirst = yearfirst
        self.time_zone = time_zone
        self.date_only = date_only

    def inflate(self, value: Any) -> Any:
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                parsed = date_parser.parse(
                    str(value), dayfirst=self.dayfirst, yearfirst=self.yearfirst
                )
            except (ValueError, OverflowError) as exc:
                raise InflatorError(field=self.field, processor=self) from exc

        if self.time_zone and parsed.tzinfo is None:
            zone = tz.gettz(self.time_zone)
            if zone is None:
                raise InflatorError(
                    f"Unknown time zone '{self.time_zone}'", field=self.field, processor=self
                )
            parsed = parsed.replace(tzinfo=zone)

        return parsed.date() if self.date_only else parsed


@register(Stage.INFLATOR, "Callback")
class CallbackInflator(Inflator):
    """Replace the value with ``callback(value)``.

    The callback may raise ``InflatorError`` to reject the value.
    """

    options = ("callback",)

    def __init__(self, callback: Callable[[Any], Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.callback = callback

    def inflate(self, value: Any) -> Any:
        return self.callback(value)


__all__ = [
    "DateTimeInflator",
    "CallbackInflator",
]
