"""formstage: server-side form definition and processing.

formstage provides:
- Forms declared in code or as nested definition dicts
- A fixed processing pipeline: filter, constrain, inflate, validate, transform
- Per-field error collection with typed, serialisable errors
- Conditional processors (``when``) driven by other submitted fields
- Read-only accessors over the cleaned values of a processed submission

Rendering, templating and configuration file loading are left to the
application.

Basic usage:
    >>> from formstage import build_form
    >>> form = build_form({
    ...     "elements": [
    ...         {"name": "email", "filters": ["Trim"], "constraints": ["Required", "Email"]},
    ...     ]
    ... })
    >>> report = form.process({"email": " ann@example.com "})
    >>> form.submitted_and_valid()
    True
    >>> form.params()
    {'email': 'ann@example.com'}
"""

__version__ = "0.1.0"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formstage.config import FormConfig
from formstage.errors import (
    ConstraintError,
    FormDefinitionError,
    InflatorError,
    QueryMalformedError,
    RegistrationError,
    TransformerError,
    ValidatorError,
)
from formstage.field import Block, Field, File
from formstage.form import Form, build_form
from formstage.pipeline import ProcessingReport
from formstage.types import PipelineStep, Stage

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "Form",
    "build_form",
    "FormConfig",
    "Field",
    "File",
    "Block",
    "Stage",
    "PipelineStep",
    "ProcessingReport",
    "ConstraintError",
    "InflatorError",
    "ValidatorError",
    "TransformerError",
    "QueryMalformedError",
    "RegistrationError",
    "FormDefinitionError",
]
