"""Stage processor base classes.

Every processor belongs to exactly one field and to one of the five stages.
The pipeline calls each kind through a fixed contract:

- ``Filter.process(form, params)`` mutates the field's value in place and
  never produces errors.
- ``Constraint.process(params) -> errors`` checks structure and format.
- ``Inflator.process(value) -> (value, errors)`` converts the raw value into
  a richer object; the returned value is written back even with errors.
- ``Validator.process(params) -> errors`` applies business rules.
- ``Transformer.process(value, params) -> (value, errors)`` produces the
  final value; the returned value replaces the stored one.

Subclasses normally override the per-value hook (``filter``,
``constrain_value``, ``inflate``, ``validate_value``, ``transform``) and let
the base class deal with list values and error construction.
"""

import copy
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from formstage.conditions import Condition, ProcessingContext, build_condition
from formstage.errors import (
    ConstraintError,
    InflatorError,
    StageError,
    TransformerError,
    ValidatorError,
)
from formstage.nested import get_nested_value, set_nested_value
from formstage.types import Stage

if TYPE_CHECKING:
    from formstage.field import Field
    from formstage.form import Form


def is_empty(value: Any) -> bool:
    """None, empty strings and empty lists count as no input."""
    return value is None or value == "" or value == []


class Processor:
    """Common behaviour of all stage processors.

    Attributes:
        field: The owning field (back-reference, set on attachment)
        when: Optional condition gating this processor
        message: Optional message used for errors this processor produces
    """

    stage: Stage
    type: Optional[str] = None
    default_message: Optional[str] = None

    # Constructor options included in to_dict()
    options: Tuple[str, ...] = ()

    # Attributes shared by reference when cloning
    shared_attributes: Tuple[str, ...] = ("field", "when", "callback")

    def __init__(self, when: Any = None, message: Optional[str] = None) -> None:
        self.field: Optional["Field"] = None
        self.when: Optional[Condition] = build_condition(when)
        self.message = message

    @property
    def nested_name(self) -> Optional[str]:
        if self.field is None:
            return None
        return self.field.nested_name

    def applies(self, context: ProcessingContext) -> bool:
        """Whether the ``when`` condition (if any) allows this processor to run."""
        if self.when is None:
            return True
        context.processor = self
        return self.when.evaluate(context)

    def clone(self, field: Optional["Field"] = None) -> "Processor":
        """Copy this processor onto ``field``, sharing callbacks."""
        new = copy.copy(self)
        for key, value in vars(self).items():
            if key not in self.shared_attributes:
                setattr(new, key, copy.deepcopy(value))
        new.field = field
        return new

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        for name in self.options:
            result[name] = getattr(self, name)
        if self.message is not None:
            result["message"] = self.message
        if self.when is not None:
            result["when"] = self.when.to_dict()
        return result

    def __repr__(self) -> str:
        return f"<{self.stage.value} {self.type} on {self.nested_name!r}>"


class Filter(Processor):
    """Cleans up a value before anything that can fail runs."""

    stage = Stage.FILTER

    def process(self, form: "Form", params: Dict[str, Any]) -> None:
        name = self.nested_name
        value = get_nested_value(params, name)
        if isinstance(value, list):
            value = [self.filter(v) for v in value]
        else:
            value = self.filter(value)
        set_nested_value(params, name, value)

    def filter(self, value: Any) -> Any:
        raise NotImplementedError


class Constraint(Processor):
    """Checks a value, producing at most one error.

    List values are checked element-wise and fail if any element fails.
    Empty values pass every constraint except ``Required``. ``not=True``
    inverts the check for non-empty values.
    """

    stage = Stage.CONSTRAINT
    error_class = ConstraintError

    def __init__(self, when: Any = None, message: Optional[str] = None, **kwargs: Any) -> None:
        negate = kwargs.pop("not", False)
        if kwargs:
            raise TypeError(f"Unknown options for {type(self).__name__}: {sorted(kwargs)}")
        super().__init__(when=when, message=message)
        self.negate = bool(negate)

    def pre_process(self) -> None:
        """Hook run before ``process`` on every pipeline run."""

    def process(self, params: Dict[str, Any]) -> List[StageError]:
        value = get_nested_value(params, self.nested_name)

        if isinstance(value, list) and not self.checks_lists:
            passed = all(self._check(v, params) for v in value)
        else:
            passed = self._check(value, params)

        if passed:
            return []
        return [self.make_error()]

    # Constraints that inspect the whole list rather than each element
    checks_lists = False

    def _check(self, value: Any, params: Dict[str, Any]) -> bool:
        if is_empty(value):
            return True
        return self.constrain_value(value, params) != self.negate

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        raise NotImplementedError

    def make_error(self, field: Optional["Field"] = None) -> StageError:
        return self.error_class(field=field or self.field, processor=self)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.negate:
            result["not"] = True
        return result


class Inflator(Processor):
    """Converts a submitted value into a richer object."""

    stage = Stage.INFLATOR

    def process(self, value: Any) -> Tuple[Any, List[StageError]]:
        errors: List[StageError] = []

        def convert(item: Any) -> Any:
            if is_empty(item):
                return item
            try:
                return self.inflate(item)
            except InflatorError as error:
                errors.append(error)
                return item

        if isinstance(value, list):
            return [convert(v) for v in value], errors
        return convert(value), errors

    def inflate(self, value: Any) -> Any:
        raise NotImplementedError


class Validator(Processor):
    """Applies a business rule to an already inflated value."""

    stage = Stage.VALIDATOR

    def process(self, params: Dict[str, Any]) -> List[StageError]:
        value = get_nested_value(params, self.nested_name)
        if self.validate_value(value, params):
            return []
        return [ValidatorError(field=self.field, processor=self)]

    def validate_value(self, value: Any, params: Dict[str, Any]) -> bool:
        raise NotImplementedError


class Transformer(Processor):
    """Produces the final value of a fully validated field."""

    stage = Stage.TRANSFORMER

    def process(self, value: Any, params: Dict[str, Any]) -> Tuple[Any, List[StageError]]:
        try:
            return self.transform(value, params), []
        except TransformerError as error:
            return value, [error]

    def transform(self, value: Any, params: Dict[str, Any]) -> Any:
        raise NotImplementedError


__all__ = [
    "is_empty",
    "Processor",
    "Filter",
    "Constraint",
    "Inflator",
    "Validator",
    "Transformer",
]
