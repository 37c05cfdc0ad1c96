"""Query collaborator and submission detection.

A query is whatever carries the submitted request data. formstage only needs
three operations from it, captured by the ``Query`` protocol. Plain
mappings (and multi-dicts that expose ``getlist``, such as those of most web
frameworks) are adapted with ``MappingQuery``.

``SubmissionGate`` decides whether a query counts as a submission of a given
form before any processing happens.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, List, Union

from typing_extensions import Protocol, runtime_checkable

from formstage.errors import QueryMalformedError

if TYPE_CHECKING:
    from formstage.form import Form

logger = logging.getLogger(__name__)


@runtime_checkable
class Query(Protocol):
    """Read-only view of submitted request data."""

    def has_param(self, name: str) -> bool:
        ...

    def list_params(self) -> List[str]:
        ...

    def param_values(self, name: str) -> List[Any]:
        ...


class MappingQuery:
    """Adapt a mapping of submitted data to the ``Query`` protocol.

    Values may be scalars or lists. A value of ``None`` counts as absent.

    Examples:
        >>> query = MappingQuery({"user": "bob", "tags": ["a", "b"], "x": None})
        >>> query.has_param("user"), query.has_param("x")
        (True, False)
        >>> query.param_values("tags")
        ['a', 'b']
    """

    def __init__(self, data: Mapping):
        self.data = data

    def has_param(self, name: str) -> bool:
        return len(self.param_values(name)) > 0

    def list_params(self) -> List[str]:
        return [str(key) for key in self.data.keys()]

    def param_values(self, name: str) -> List[Any]:
        if name not in self.data:
            return []
        getlist = getattr(self.data, "getlist", None)
        if callable(getlist):
            values = list(getlist(name))
        else:
            value = self.data[name]
            values = list(value) if isinstance(value, (list, tuple)) else [value]
        return [v for v in values if v is not None]


def ensure_query(query: Any) -> Query:
    """Return ``query`` as a ``Query``, adapting mappings.

    Raises:
        QueryMalformedError: If ``query`` is neither a query nor a mapping
    """
    if isinstance(query, Query):
        return query
    if isinstance(query, Mapping):
        return MappingQuery(query)
    raise QueryMalformedError(
        f"Invalid query object of type {type(query).__name__}: expected a "
        f"mapping or an object with has_param/list_params/param_values"
    )


Indicator = Union[str, Callable[["Form", Query], Any], None]


class SubmissionGate:
    """Decide whether a query is a submission of a form.

    The decision follows the configured indicator:

    1. A field name: submitted iff that name has a value in the query.
    2. A callable: submitted iff ``indicator(form, query)`` is truthy.
    3. None: submitted iff any field's nested name has a value.

    Attributes:
        indicator: The configured indicator
    """

    def __init__(self, indicator: Indicator = None):
        self.indicator = indicator

    def is_submitted(self, form: "Form", query: Query) -> bool:
        """Apply the indicator to ``query``.

        Raises:
            QueryMalformedError: If the query fails while being read
        """
        try:
            present = set(query.list_params())
        except Exception as exc:
            raise QueryMalformedError(f"Invalid query object: {exc}") from exc

        if self.indicator is not None and not callable(self.indicator):
            logger.debug(f"Checking submission indicator field '{self.indicator}'")
            return self.indicator in present and self._has_param(query, self.indicator)

        if callable(self.indicator):
            return bool(self.indicator(form, query))

        names: List[str] = []
        for field in form.get_fields():
            name = field.nested_name
            if name and name not in names:
                names.append(name)
        logger.debug(f"No indicator, checking fields {names}")
        return any(name in present and self._has_param(query, name) for name in names)

    def _has_param(self, query: Query, name: str) -> bool:
        try:
            return query.has_param(name)
        except Exception as exc:
            raise QueryMalformedError(f"Invalid query object: {exc}") from exc


__all__ = [
    "Query",
    "MappingQuery",
    "ensure_query",
    "Indicator",
    "SubmissionGate",
]
