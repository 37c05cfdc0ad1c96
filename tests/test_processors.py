"""Unit tests for stage processors, the registry and ``when`` conditions.

Tests cover:
- Built-in filters, constraints, inflators, validators and transformers
- Empty-value handling, list handling and ``not`` inversion
- Default and explicit error messages
- Registry lookups and failures
- Building and evaluating ``when`` conditions
- Cloning processors
"""

from datetime import date, datetime

import jsonschema
import pytest

from formstage.conditions import (
    CallbackCondition,
    FieldCondition,
    ProcessingContext,
    build_condition,
)
from formstage.errors import ConstraintError, InflatorError, RegistrationError
from formstage.field import Field
from formstage.form import Form
from formstage.processors import Filter
from formstage.query import MappingQuery
from formstage.registry import create_processor, lookup, register, registered_tags
from formstage.types import Stage


def constraint_errors(spec, params):
    field = Field("x", constraints=[spec])
    return field.processors(Stage.CONSTRAINT)[0].process(params)


def filtered(spec, value):
    field = Field("x", filters=[spec])
    params = {"x": value}
    field.processors(Stage.FILTER)[0].process(None, params)
    return params["x"]


class TestFilters:
    """Test built-in filters."""

    def test_trim(self):
        """Should strip surrounding whitespace."""
        assert filtered("Trim", "  bob  ") == "bob"

    def test_trim_each_list_element(self):
        """List values are filtered element-wise."""
        assert filtered("Trim", [" a", "b "]) == ["a", "b"]

    def test_whitespace(self):
        """Should remove all whitespace."""
        assert filtered("Whitespace", " 12 34 5 ") == "12345"

    def test_case_filters(self):
        """Should change case."""
        assert filtered("LowerCase", "AbC") == "abc"
        assert filtered("UpperCase", "AbC") == "ABC"

    def test_regex(self):
        """Should replace every match."""
        assert filtered({"type": "Regex", "match": r"[^0-9]", "replace": ""}, "01-23") == "0123"

    def test_callback(self):
        """Should keep the callback's return value."""
        assert filtered({"type": "Callback", "callback": lambda v: v * 2}, "ab") == "abab"

    def test_non_strings_untouched(self):
        """String filters leave other types alone."""
        assert filtered("Trim", 5) == 5
        assert filtered("LowerCase", None) is None


class TestRequired:
    """Test the Required constraint."""

    def test_missing_value(self):
        """An absent value fails."""
        errors = constraint_errors("Required", {})
        assert len(errors) == 1
        assert isinstance(errors[0], ConstraintError)

    def test_empty_string(self):
        """An empty string fails."""
        assert len(constraint_errors("Required", {"x": ""})) == 1

    def test_present_value(self):
        """A non-empty value passes."""
        assert constraint_errors("Required", {"x": "a"}) == []

    def test_list_values(self):
        """A list passes if any element is non-empty."""
        assert len(constraint_errors("Required", {"x": ["", ""]})) == 1
        assert constraint_errors("Required", {"x": ["", "a"]}) == []

    def test_default_message(self):
        """Errors take the processor's default message."""
        error = constraint_errors("Required", {})[0]
        assert error.message == "This field is required"
        assert error.type == "Required"

    def test_explicit_message(self):
        """A configured message wins over the default."""
        error = constraint_errors({"type": "Required", "message": "Who are you?"}, {})[0]
        assert error.message == "Who are you?"


class TestFormatConstraints:
    """Test constraints that check the shape of a value."""

    def test_length(self):
        """Should enforce min and max length."""
        spec = {"type": "Length", "min": 3, "max": 5}
        assert len(constraint_errors(spec, {"x": "ab"})) == 1
        assert constraint_errors(spec, {"x": "abc"}) == []
        assert len(constraint_errors(spec, {"x": "abcdef"})) == 1

    def test_length_message(self):
        """The default message describes the bounds."""
        error = constraint_errors({"type": "Length", "min": 3, "max": 5}, {"x": "ab"})[0]
        assert error.message == "Must be between 3 and 5 characters long"

    def test_min_and_max_length(self):
        """Single-bound variants only check their bound."""
        assert len(constraint_errors({"type": "MinLength", "min": 2}, {"x": "a"})) == 1
        assert constraint_errors({"type": "MinLength", "min": 2}, {"x": "abcdef"}) == []
        assert len(constraint_errors({"type": "MaxLength", "max": 2}, {"x": "abc"})) == 1

    def test_empty_values_pass(self):
        """Non-Required constraints let empty values through."""
        assert constraint_errors({"type": "Length", "min": 3}, {"x": ""}) == []
        assert constraint_errors("Email", {}) == []

    def test_integer(self):
        """Should accept whole numbers only."""
        assert constraint_errors("Integer", {"x": "12"}) == []
        assert constraint_errors("Integer", {"x": "-3"}) == []
        assert len(constraint_errors("Integer", {"x": "1.5"})) == 1
        assert len(constraint_errors("Integer", {"x": "abc"})) == 1

    def test_number(self):
        """Should accept finite numbers."""
        assert constraint_errors("Number", {"x": "1.5"}) == []
        assert len(constraint_errors("Number", {"x": "nan"})) == 1
        assert len(constraint_errors("Number", {"x": "abc"})) == 1

    def test_range(self):
        """Should enforce numeric bounds."""
        spec = {"type": "Range", "min": 1, "max": 10}
        assert len(constraint_errors(spec, {"x": "0"})) == 1
        assert constraint_errors(spec, {"x": "5"}) == []
        assert len(constraint_errors(spec, {"x": "x"})) == 1

    def test_regex(self):
        """The whole value must match."""
        spec = {"type": "Regex", "regex": "[a-z]+"}
        assert constraint_errors(spec, {"x": "abc"}) == []
        assert len(constraint_errors(spec, {"x": "ab1"})) == 1

    def test_email(self):
        """Should accept a plausible address."""
        assert constraint_errors("Email", {"x": "ann@example.com"}) == []
        assert len(constraint_errors("Email", {"x": "nope"})) == 1

    def test_set(self):
        """Values are compared as strings."""
        spec = {"type": "Set", "set": [1, 2]}
        assert constraint_errors(spec, {"x": "1"}) == []
        assert len(constraint_errors(spec, {"x": "3"})) == 1

    def test_not_inverts(self):
        """``not`` inverts the check."""
        spec = {"type": "Regex", "regex": r"\d+", "not": True}
        assert len(constraint_errors(spec, {"x": "123"})) == 1
        assert constraint_errors(spec, {"x": "abc"}) == []

    def test_list_checked_element_wise(self):
        """One failing element produces one error."""
        assert len(constraint_errors("Integer", {"x": ["1", "x", "y"]})) == 1
        assert constraint_errors("Integer", {"x": ["1", "2"]}) == []

    def test_callback(self):
        """Passes when the callback is truthy."""
        spec = {"type": "Callback", "callback": lambda value, params: value == "ok"}
        assert constraint_errors(spec, {"x": "ok"}) == []
        assert len(constraint_errors(spec, {"x": "no"})) == 1

    def test_unknown_option(self):
        """Unknown options are rejected."""
        with pytest.raises(TypeError):
            create_processor(Stage.CONSTRAINT, {"type": "Required", "bogus": 1})


class TestJSONSchemaConstraint:
    """Test the JSONSchema constraint."""

    def test_valid_value(self):
        """A value matching the schema passes."""
        spec = {"type": "JSONSchema", "schema": {"type": "string", "pattern": "^[A-Z]"}}
        assert constraint_errors(spec, {"x": "Abc"}) == []

    def test_invalid_value_reports_schema_message(self):
        """The first schema violation becomes the message."""
        spec = {"type": "JSONSchema", "schema": {"type": "string", "pattern": "^[A-Z]"}}
        errors = constraint_errors(spec, {"x": "abc"})
        assert len(errors) == 1
        assert "does not match" in errors[0].message

    def test_structured_value(self):
        """Whole lists are validated, not their elements."""
        spec = {"type": "JSONSchema", "schema": {"type": "array", "maxItems": 2}}
        assert constraint_errors(spec, {"x": ["a", "b"]}) == []
        assert len(constraint_errors(spec, {"x": ["a", "b", "c"]})) == 1

    def test_invalid_schema(self):
        """A broken schema is rejected when the constraint is built."""
        with pytest.raises(jsonschema.SchemaError):
            create_processor(Stage.CONSTRAINT, {"type": "JSONSchema", "schema": {"type": 5}})


class TestInflators:
    """Test built-in inflators."""

    def inflate(self, spec, value):
        field = Field("x", inflators=[spec])
        return field.processors(Stage.INFLATOR)[0].process(value)

    def test_datetime(self):
        """Should parse a date-time string."""
        value, errors = self.inflate("DateTime", "2024-03-01 10:30")
        assert value == datetime(2024, 3, 1, 10, 30)
        assert errors == []

    def test_date_only_dayfirst(self):
        """Should honour dayfirst and date_only."""
        value, errors = self.inflate({"type": "DateTime", "dayfirst": True, "date_only": True}, "01/03/2024")
        assert value == date(2024, 3, 1)

    def test_time_zone(self):
        """Naive results get the configured zone."""
        value, errors = self.inflate({"type": "DateTime", "time_zone": "UTC"}, "2024-03-01 10:30")
        assert value.tzinfo is not None
        assert value.utcoffset().total_seconds() == 0

    def test_unparseable(self):
        """A bad value yields an error and is kept as it was."""
        value, errors = self.inflate("DateTime", "banana")
        assert value == "banana"
        assert len(errors) == 1
        assert isinstance(errors[0], InflatorError)
        assert errors[0].message == "Invalid date"

    def test_list_values(self):
        """Lists are inflated element-wise."""
        value, errors = self.inflate("DateTime", ["2024-01-01", "2024-01-02"])
        assert value == [datetime(2024, 1, 1), datetime(2024, 1, 2)]

    def test_callback_error(self):
        """A callback may reject a value with InflatorError."""
        def parse(value):
            raise InflatorError("Not today")

        value, errors = self.inflate({"type": "Callback", "callback": parse}, "x")
        assert value == "x"
        assert errors[0].message == "Not today"


class TestValidatorsAndTransformers:
    """Test the callback validator and transformer."""

    def test_callback_validator(self):
        """Fails when the callback is falsy."""
        field = Field("x", validators=[{"type": "Callback", "callback": lambda v, p: v > 3}])
        validator = field.processors(Stage.VALIDATOR)[0]
        assert validator.process({"x": 5}) == []
        assert len(validator.process({"x": 1})) == 1

    def test_callback_transformer(self):
        """Returns the callback's value."""
        field = Field("x", transformers=[{"type": "Callback", "callback": lambda v, p: v + 1}])
        transformer = field.processors(Stage.TRANSFORMER)[0]
        assert transformer.process(1, {"x": 1}) == (2, [])


class TestRegistry:
    """Test processor registration and lookup."""

    def test_lookup_builtin(self):
        """Built-ins are registered under their tags."""
        assert lookup(Stage.FILTER, "Trim").type == "Trim"

    def test_registered_tags(self):
        """Tags can be listed per stage."""
        tags = registered_tags(Stage.INFLATOR)
        assert set(tags) >= {"DateTime", "Callback"}
        assert "Trim" not in tags

    def test_unknown_tag(self):
        """Unknown tags raise RegistrationError."""
        with pytest.raises(RegistrationError) as exc_info:
            lookup(Stage.CONSTRAINT, "Telepathy")
        assert exc_info.value.tag == "Telepathy"
        assert exc_info.value.kind == "constraint"

    def test_same_tag_different_stage(self):
        """Tags are scoped by stage."""
        with pytest.raises(RegistrationError):
            lookup(Stage.TRANSFORMER, "Trim")

    def test_dict_without_type(self):
        """A definition dict must say what it is."""
        with pytest.raises(RegistrationError):
            create_processor(Stage.FILTER, {"match": "x"})

    def test_instance_of_wrong_stage(self):
        """An instance must belong to the requested stage."""
        trim = create_processor(Stage.FILTER, "Trim")
        with pytest.raises(TypeError):
            create_processor(Stage.CONSTRAINT, trim)

    def test_register_custom(self):
        """Applications can register their own processors."""

        @register(Stage.FILTER, "Reverse")
        class ReverseFilter(Filter):
            def filter(self, value):
                return value[::-1]

        assert filtered("Reverse", "abc") == "cba"


class TestConditions:
    """Test building and evaluating ``when`` conditions."""

    def context(self, data):
        return ProcessingContext(form=None, query=MappingQuery(data), params={})

    def test_values_match(self):
        """Passes when a raw value is in the set."""
        condition = build_condition({"field": "bar", "values": [1, 3, 5]})
        assert isinstance(condition, FieldCondition)
        assert condition.evaluate(self.context({"bar": "3"})) is True
        assert condition.evaluate(self.context({"bar": "2"})) is False

    def test_single_value(self):
        """``value`` is shorthand for a one-element set."""
        condition = build_condition({"field": "bar", "value": "yes"})
        assert condition.evaluate(self.context({"bar": "yes"})) is True

    def test_true_without_values(self):
        """Without values, any true raw value passes."""
        condition = build_condition({"field": "bar"})
        assert condition.evaluate(self.context({"bar": "x"})) is True
        assert condition.evaluate(self.context({"bar": ""})) is False
        assert condition.evaluate(self.context({})) is False

    def test_zero_is_false_without_values(self):
        """The string "0" is false unless listed in values."""
        assert build_condition({"field": "bar"}).evaluate(self.context({"bar": "0"})) is False
        assert build_condition({"field": "bar", "values": [0]}).evaluate(self.context({"bar": "0"})) is True

    def test_not(self):
        """``not`` inverts the match."""
        condition = build_condition({"field": "bar", "values": ["1"], "not": True})
        assert condition.evaluate(self.context({"bar": "1"})) is False
        assert condition.evaluate(self.context({"bar": "2"})) is True

    def test_callback(self):
        """A callback condition receives the context."""
        condition = build_condition({"callback": lambda ctx: "go" in ctx.query.list_params()})
        assert isinstance(condition, CallbackCondition)
        assert condition.evaluate(self.context({"go": "1"})) is True
        assert condition.evaluate(self.context({})) is False

    def test_no_query(self):
        """A field condition without a query sees no values."""
        condition = build_condition({"field": "bar"})
        context = ProcessingContext(form=None, query=None, params={})
        assert condition.evaluate(context) is False

    def test_incomplete_definition(self):
        """A condition needs a field or a callback."""
        with pytest.raises(ValueError):
            build_condition({"values": [1]})

    def test_to_dict(self):
        """Field conditions serialise back to their definition."""
        condition = build_condition({"field": "bar", "values": [3, 1], "not": True})
        assert condition.to_dict() == {"field": "bar", "values": ["1", "3"], "not": True}


class TestProcessorClone:
    """Test copying processors onto other fields."""

    def test_clone_copies_options(self):
        """Options are deep-copied."""
        original = Field("a", constraints=[{"type": "Set", "set": [1, 2]}])
        constraint = original.processors(Stage.CONSTRAINT)[0]
        target = Field("b")
        cloned = constraint.clone(target)

        cloned.set.append(3)
        assert constraint.set == [1, 2]
        assert cloned.field is target
        assert cloned.nested_name == "b"

    def test_clone_shares_callbacks(self):
        """Callbacks and callback conditions are shared by reference."""
        def check(value, params):
            return True

        def gate(ctx):
            return True

        original = Field("a", constraints=[{"type": "Callback", "callback": check, "when": {"callback": gate}}])
        constraint = original.processors(Stage.CONSTRAINT)[0]
        cloned = constraint.clone(Field("b"))

        assert cloned.callback is check
        assert cloned.when is constraint.when

    def test_to_dict(self):
        """Processors serialise their options."""
        constraint = create_processor(Stage.CONSTRAINT, {"type": "Length", "min": 1, "max": 4, "not": True})
        assert constraint.to_dict() == {"type": "Length", "min": 1, "max": 4, "not": True}


class TestCrossFieldConstraints:
    """Test constraints that look at other fields."""

    def test_equal(self):
        """Both fields must hold the same value."""
        form = Form(elements=[
            {"name": "password", "constraints": [{"type": "Equal", "others": "confirm"}]},
            {"name": "confirm"},
        ])
        form.process({"password": "a", "confirm": "b"})
        assert form.has_errors() == ["password"]
        assert form.get_errors("password")[0].message == "Does not match"

        form.process({"password": "a", "confirm": "a"})
        assert form.has_errors() == []

    def test_depend_on_reports_missing_field(self):
        """The error goes on the field that is missing."""
        form = Form(elements=[
            {"name": "phone", "constraints": [{"type": "DependOn", "others": ["area"]}]},
            {"name": "area"},
        ])
        form.process({"phone": "123"})
        assert form.has_errors() == ["area"]

        form.process({"phone": "123", "area": "01"})
        assert form.has_errors() == []

    def test_depend_on_empty_source(self):
        """Nothing is required while this field is empty."""
        form = Form(elements=[
            {"name": "phone", "constraints": [{"type": "DependOn", "others": ["area"]}]},
            {"name": "area"},
        ])
        form.process({"phone": ""})
        assert form.has_errors() == []
