"""Conditions that decide whether a stage processor runs.

Any processor may carry a ``when`` condition. Before the pipeline invokes
the processor it evaluates the condition; if it is false the processor is
simply not invoked for that run.

Two kinds exist, behind the same ``evaluate(context) -> bool`` interface:

- FieldCondition compares the raw submitted values of another field
  against a set of accepted values.
- CallbackCondition delegates to a user-supplied callable.

Conditions are built from the same dict shape used in form definitions:

    {"field": "bar", "values": [1, 3, 5], "not": False}
    {"callback": some_function}
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Optional, Union

if TYPE_CHECKING:
    from formstage.form import Form
    from formstage.processors import Processor
    from formstage.query import Query


@dataclass
class ProcessingContext:
    """What a condition may inspect.

    Attributes:
        form: The form being processed
        query: The submitted query (raw values)
        params: The processed-params tree as it stands at this point
        processor: The processor whose condition is being evaluated
    """
    form: "Form"
    query: Optional["Query"]
    params: Dict[str, Any]
    processor: Optional["Processor"] = None


class Condition:
    """Base class for ``when`` conditions."""

    def evaluate(self, context: ProcessingContext) -> bool:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


def is_true_value(value: Any) -> bool:
    """Whether a raw submitted value counts as true.

    Empty values and the string ``"0"`` are false.

    Examples:
        >>> is_true_value("1"), is_true_value("0"), is_true_value("")
        (True, False, False)
    """
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


@dataclass(frozen=True)
class FieldCondition(Condition):
    """Passes when another field's raw submitted value matches.

    Without ``values`` the condition passes when any raw value of the field
    is true (see ``is_true_value``). With ``values`` it passes when any raw
    value, compared as a string, is one of them. ``negate`` inverts the outcome.

    Examples:
        >>> from formstage.query import MappingQuery
        >>> cond = FieldCondition(field="bar", values=frozenset({"1", "3", "5"}))
        >>> ctx = ProcessingContext(form=None, query=MappingQuery({"bar": "2"}), params={})
        >>> cond.evaluate(ctx)
        False
    """
    field: str
    values: Optional[FrozenSet[str]] = None
    negate: bool = False

    def evaluate(self, context: ProcessingContext) -> bool:
        raw = []
        if context.query is not None:
            raw = context.query.param_values(self.field)

        if self.values is None:
            matched = any(is_true_value(v) for v in raw)
        else:
            matched = any(str(v) in self.values for v in raw)

        return not matched if self.negate else matched

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"field": self.field}
        if self.values is not None:
            result["values"] = sorted(self.values)
        if self.negate:
            result["not"] = True
        return result


@dataclass(frozen=True)
class CallbackCondition(Condition):
    """Passes when ``callback(context)`` is truthy.

    The callback is shared, not copied, when a form is cloned.
    """
    callback: Callable[[ProcessingContext], Any] = field(compare=False)
    negate: bool = False

    def evaluate(self, context: ProcessingContext) -> bool:
        matched = bool(self.callback(context))
        return not matched if self.negate else matched

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"callback": self.callback}
        if self.negate:
            result["not"] = True
        return result

    def __deepcopy__(self, memo: Dict[int, Any]) -> "CallbackCondition":
        return self


def build_condition(spec: Union[Condition, Dict[str, Any], None]) -> Optional[Condition]:
    """Build a condition from a ``when`` spec.

    Raises:
        ValueError: If the definition names neither a field nor a callback
    """
    if spec is None or isinstance(spec, Condition):
        return spec

    negate = bool(spec.get("not", False))

    if "callback" in spec:
        return CallbackCondition(callback=spec["callback"], negate=negate)

    if "field" not in spec:
        raise ValueError("A 'when' condition needs either 'field' or 'callback'")

    values = spec.get("values")
    if values is None and "value" in spec:
        values = [spec["value"]]

    return FieldCondition(
        field=spec["field"],
        values=frozenset(str(v) for v in values) if values is not None else None,
        negate=negate,
    )


__all__ = [
    "ProcessingContext",
    "is_true_value",
    "Condition",
    "FieldCondition",
    "CallbackCondition",
    "build_condition",
]
