"""Built-in filters.

Filters only tidy values; they run on every present field before any
constraint and cannot produce errors. Non-string values pass through the
string filters untouched.
"""

import re
from typing import Any, Callable, Optional

from formstage.processors import Filter
from formstage.registry import register
from formstage.types import Stage


@register(Stage.FILTER, "Trim")
class TrimFilter(Filter):
    """Strip leading and trailing whitespace."""

    def filter(self, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


@register(Stage.FILTER, "Whitespace")
class WhitespaceFilter(Filter):
    """Remove all whitespace."""

    def filter(self, value: Any) -> Any:
        return re.sub(r"\s+", "", value) if isinstance(value, str) else value


@register(Stage.FILTER, "LowerCase")
class LowerCaseFilter(Filter):
    def filter(self, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


@register(Stage.FILTER, "UpperCase")
class UpperCaseFilter(Filter):
    def filter(self, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


@register(Stage.FILTER, "Regex")
class RegexFilter(Filter):
    """Replace every match of ``match`` with ``replace``.

    Examples:
        >>> RegexFilter(match=r"[^0-9]", replace="").filter("01-23 45")
        '012345'
    """

    options = ("match", "replace")

    def __init__(self, match: str, replace: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.match = match
        self.replace = replace

    def filter(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return re.sub(self.match, self.replace, value)


@register(Stage.FILTER, "Callback")
class CallbackFilter(Filter):
    """Apply ``callback(value)`` and keep what it returns."""

    options = ("callback",)

    def __init__(self, callback: Optional[Callable[[Any], Any]] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.callback = callback

    def filter(self, value: Any) -> Any:
        if self.callback is None:
            return value
        return self.callback(value)


__all__ = [
    "TrimFilter",
    "WhitespaceFilter",
    "LowerCaseFilter",
    "UpperCaseFilter",
    "RegexFilter",
    "CallbackFilter",
]
