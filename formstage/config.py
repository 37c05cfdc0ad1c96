"""Form configuration and the form definition schema.

``FormConfig`` holds the form-wide settings that influence processing.
``FORM_DEFINITION_SCHEMA`` is a JSON Schema (Draft 7) describing the nested
dict accepted by ``formstage.form.build_form``; ``validate_definition``
checks a definition against it and reports every problem at once.

A definition looks like:

    {
        "indicator": "submit",
        "nested_subscript": False,
        "elements": [
            {"name": "email", "filters": ["Trim"], "constraints": ["Required", "Email"]},
            {"type": "Block", "nested_name": "address", "elements": [{"name": "city"}]},
        ],
        "constraints": [{"type": "Required", "names": ["address.city"]}],
    }
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List

from jsonschema import Draft7Validator

from formstage.errors import FormDefinitionError
from formstage.query import Indicator


@dataclass
class FormConfig:
    """Form-wide processing settings.

    Attributes:
        indicator: Field name or callable deciding whether the form was
            submitted; None means "any field present"
        nested_subscript: Build nested names as ``a[b]`` instead of ``a.b``
        params_ignore_underscore: Leave names starting with ``_`` out of the
            valid names
        query_type: Key of the upload parser used for ``File`` fields

    Examples:
        >>> FormConfig.from_dict({"indicator": "submit", "unknown": 1})
        FormConfig(indicator='submit', nested_subscript=False, params_ignore_underscore=False, query_type='mapping')
    """
    indicator: Indicator = None
    nested_subscript: bool = False
    params_ignore_underscore: bool = False
    query_type: str = "mapping"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormConfig":
        """Create FormConfig from dict, ignoring keys that are not settings."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


_WHEN_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "field": {"type": "string"},
        "values": {"type": "array"},
        "not": {"type": "boolean"},
    },
    "anyOf": [{"required": ["field"]}, {"required": ["callback"]}],
}

_PROCESSOR_SCHEMA: Dict[str, Any] = {
    "anyOf": [
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {"type": "string", "minLength": 1},
                "name": {"type": "string"},
                "names": {"type": "array", "items": {"type": "string"}},
                "message": {"type": "string"},
                "when": _WHEN_SCHEMA,
            },
        },
    ]
}

_PROCESSOR_LISTS: Dict[str, Any] = {
    key: {"type": "array", "items": {"$ref": "#/definitions/processor"}}
    for key in ("filters", "constraints", "inflators", "validators", "transformers")
}

FORM_DEFINITION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "definitions": {
        "processor": _PROCESSOR_SCHEMA,
        "element": {
            "type": "object",
            "properties": {
                "type": {"type": "string"},
                "name": {"type": "string", "minLength": 1},
                "nested_name": {"type": "string", "minLength": 1},
                "multi_value": {"type": "boolean"},
                "default_empty_value": {"type": "boolean"},
                "non_param": {"type": "boolean"},
                "elements": {"type": "array", "items": {"$ref": "#/definitions/element"}},
                **_PROCESSOR_LISTS,
            },
        },
    },
    "properties": {
        "nested_subscript": {"type": "boolean"},
        "params_ignore_underscore": {"type": "boolean"},
        "query_type": {"type": "string", "minLength": 1},
        "elements": {"type": "array", "items": {"$ref": "#/definitions/element"}},
        **_PROCESSOR_LISTS,
    },
}

_definition_validator = Draft7Validator(FORM_DEFINITION_SCHEMA)


def validate_definition(definition: Dict[str, Any]) -> None:
    """Check a form definition dict against ``FORM_DEFINITION_SCHEMA``.

    Raises:
        FormDefinitionError: Listing every problem with its dotted path
    """
    problems: List[Dict[str, str]] = []
    for error in sorted(_definition_validator.iter_errors(definition), key=lambda e: [str(p) for p in e.absolute_path]):
        problems.append({
            "path": ".".join(str(p) for p in error.absolute_path),
            "message": error.message,
        })
    if problems:
        raise FormDefinitionError(problems)


__all__ = [
    "FormConfig",
    "FORM_DEFINITION_SCHEMA",
    "validate_definition",
]
