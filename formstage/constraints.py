"""Built-in constraints.

Constraints check that submitted values are structurally sound. Any error a
constraint records on a field stops that field's inflators, validators and
transformers from running, and stops those stages altogether for the run.

All constraints except ``Required`` let empty values through, so an optional
field can be left blank without tripping e.g. ``Email``.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from formstage.errors import StageError
from formstage.nested import get_nested_value
from formstage.processors import Constraint, is_empty
from formstage.registry import register
from formstage.types import Stage


@register(Stage.CONSTRAINT, "Required")
class RequiredConstraint(Constraint):
    """The field must be present and non-empty."""

    default_message = "This field is required"

    def _check(self, value: Any, params: Dict[str, Any]) -> bool:
        if isinstance(value, list):
            return any(not is_empty(v) for v in value)
        return not is_empty(value)

    checks_lists = True


@register(Stage.CONSTRAINT, "Length")
class LengthConstraint(Constraint):
    """String length must lie within ``min``..``max`` (either may be omitted)."""

    options = ("min", "max")

    def __init__(self, min: Optional[int] = None, max: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.min = min
        self.max = max

    @property
    def default_message(self) -> str:
        if self.min is not None and self.max is not None:
            return f"Must be between {self.min} and {self.max} characters long"
        if self.min is not None:
            return f"Must be at least {self.min} characters long"
        return f"Must be at most {self.max} characters long"

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        length = len(str(value))
        if self.min is not None and length < self.min:
            return False
        if self.max is not None and length > self.max:
            return False
        return True


@register(Stage.CONSTRAINT, "MinLength")
class MinLengthConstraint(LengthConstraint):
    options = ("min",)

    def __init__(self, min: int, **kwargs: Any) -> None:
        super().__init__(min=min, **kwargs)


@register(Stage.CONSTRAINT, "MaxLength")
class MaxLengthConstraint(LengthConstraint):
    options = ("max",)

    def __init__(self, max: int, **kwargs: Any) -> None:
        super().__init__(max=max, **kwargs)


@register(Stage.CONSTRAINT, "Integer")
class IntegerConstraint(Constraint):
    """An optionally signed whole number."""

    default_message = "Must be a whole number"

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return re.fullmatch(r"[+-]?\d+", str(value).strip()) is not None


@register(Stage.CONSTRAINT, "Number")
class NumberConstraint(Constraint):
    """Anything ``float()`` accepts, excluding nan and infinities."""

    default_message = "Must be a number"

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        try:
            number = float(value)
        except (TypeError, ValueError):
            return False
        return number == number and number not in (float("inf"), float("-inf"))


@register(Stage.CONSTRAINT, "Range")
class RangeConstraint(NumberConstraint):
    """A number between ``min`` and ``max`` inclusive."""

    options = ("min", "max")

    def __init__(self, min: Optional[float] = None, max: Optional[float] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.min = min
        self.max = max

    @property
    def default_message(self) -> str:
        if self.min is not None and self.max is not None:
            return f"Must be between {self.min} and {self.max}"
        if self.min is not None:
            return f"Must be at least {self.min}"
        return f"Must be at most {self.max}"

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        if not super().constrain_value(value, params):
            return False
        number = float(value)
        if self.min is not None and number < self.min:
            return False
        if self.max is not None and number > self.max:
            return False
        return True


@register(Stage.CONSTRAINT, "Regex")
class RegexConstraint(Constraint):
    """The whole value must match ``regex``."""

    options = ("regex",)

    def __init__(self, regex: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.regex = regex
        self._pattern = re.compile(regex)

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return self._pattern.fullmatch(str(value)) is not None


@register(Stage.CONSTRAINT, "Email")
class EmailConstraint(RegexConstraint):
    """A single address of the form ``local@domain.tld``."""

    options = ()
    default_message = "Must be a valid email address"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(regex=r"[^@\s]+@[^@\s]+\.[^@\s]+", **kwargs)


@register(Stage.CONSTRAINT, "Set")
class SetConstraint(Constraint):
    """The value must be one of ``set`` (compared as strings)."""

    options = ("set",)
    default_message = "Must be one of the allowed values"

    def __init__(self, set: List[Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.set = list(set)

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return str(value) in {str(v) for v in self.set}


class _OthersConstraint(Constraint):
    """A constraint that compares against other fields by nested name."""

    options = ("others",)

    def __init__(self, others: Union[str, List[str]], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.others = [others] if isinstance(others, str) else list(others)


@register(Stage.CONSTRAINT, "Equal")
class EqualConstraint(_OthersConstraint):
    """The value must equal the value of every field in ``others``."""

    default_message = "Does not match"
    checks_lists = True

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return all(get_nested_value(params, name) == value for name in self.others)


@register(Stage.CONSTRAINT, "DependOn")
class DependOnConstraint(_OthersConstraint):
    """If this field has a value, every field in ``others`` needs one too.

    Errors are attached to the missing fields, not to this one.
    """

    default_message = "This field is required"

    def process(self, params: Dict[str, Any]) -> List[StageError]:
        value = get_nested_value(params, self.nested_name)
        if is_empty(value):
            return []

        form = self.field.form if self.field is not None else None
        errors: List[StageError] = []
        for name in self.others:
            if not is_empty(get_nested_value(params, name)):
                continue
            target = form.get_field(name) if form is not None else None
            errors.append(self.make_error(field=target))
        return errors


@register(Stage.CONSTRAINT, "JSONSchema")
class JSONSchemaConstraint(Constraint):
    """The value must validate against a JSON Schema (Draft 7).

    Useful for fields whose value is itself structured, such as a nested
    block collected as a whole or a JSON payload decoded by a filter.

    Examples:
        >>> c = JSONSchemaConstraint(schema={"type": "string", "maxLength": 3})
        >>> c.constrain_value("abc", {}), c.constrain_value("abcd", {})
        (True, False)
    """

    options = ("schema",)
    shared_attributes = Constraint.shared_attributes + ("_validator",)
    checks_lists = True

    def __init__(self, schema: Dict[str, Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        Draft7Validator.check_schema(schema)
        self.schema = schema
        self._validator = Draft7Validator(schema)

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return self._validator.is_valid(value)

    def process(self, params: Dict[str, Any]) -> List[StageError]:
        value = get_nested_value(params, self.nested_name)
        if is_empty(value) or self.constrain_value(value, params) != self.negate:
            return []
        if self.message is not None or self.negate:
            return [self.make_error()]
        # report the first schema violation as the message
        first = next(iter(self._validator.iter_errors(value)))
        return [self.error_class(first.message, field=self.field, processor=self)]


@register(Stage.CONSTRAINT, "Callback")
class CallbackConstraint(Constraint):
    """Passes when ``callback(value, params)`` is truthy."""

    options = ("callback",)

    def __init__(self, callback: Callable[[Any, Dict[str, Any]], Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.callback = callback

    def constrain_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return bool(self.callback(value, params))


__all__ = [
    "RequiredConstraint",
    "LengthConstraint",
    "MinLengthConstraint",
    "MaxLengthConstraint",
    "IntegerConstraint",
    "NumberConstraint",
    "RangeConstraint",
    "RegexConstraint",
    "EmailConstraint",
    "SetConstraint",
    "EqualConstraint",
    "DependOnConstraint",
    "JSONSchemaConstraint",
    "CallbackConstraint",
]
