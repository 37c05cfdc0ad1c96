"""The Form: definition API, processing entry point and param accessors.

Usage:
    >>> from formstage.form import Form
    >>> form = Form(elements=[
    ...     {"name": "user", "filters": ["Trim"], "constraints": ["Required"]},
    ...     {"name": "age", "constraints": ["Integer"]},
    ... ])
    >>> report = form.process({"user": "  bob ", "age": "x"})
    >>> form.submitted, form.submitted_and_valid()
    (True, False)
    >>> form.param_value("user")
    'bob'
    >>> form.has_errors()
    ['age']

A form instance holds the state of its last ``process()`` call and must not
be processed concurrently. Use ``clone()`` to get an independent copy for
each request.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from formstage.config import FormConfig, validate_definition
from formstage.errors import ErrorCollector, QueryMalformedError, StageError
from formstage.field import STAGE_KEYS, Block, Element, Field, _as_list
from formstage.nested import get_nested_value, set_nested_value, split_nested_name
from formstage.pipeline import FormProcessingPipeline, ProcessingReport
from formstage.processors import Processor
from formstage.query import Query, SubmissionGate, ensure_query
from formstage.registry import ProcessorSpec, create_processor
from formstage.types import Stage
from formstage.uploads import get_upload_parser

logger = logging.getLogger(__name__)


class Form(Block):
    """A form definition plus the results of its last processing run.

    Attributes:
        config: Form-wide settings
        query: The query used by the last (or next) ``process()`` call
        submitted: Whether the last processed query was a submission
        input: Submitted values for known field names, as a nested tree
        processed_params: The params tree after the pipeline ran
    """

    element_type = "Form"
    is_form = True

    def __init__(
        self,
        config: Optional[FormConfig] = None,
        elements: Optional[Iterable[Union[Element, Dict[str, Any]]]] = None,
        query: Optional[Any] = None,
    ) -> None:
        self.config = config or FormConfig()
        super().__init__(elements=elements)
        self.query: Optional[Query] = ensure_query(query) if query is not None else None
        self.submitted = False
        self.input: Dict[str, Any] = {}
        self.processed_params: Dict[str, Any] = {}
        self.error_collector = ErrorCollector()
        self._valid_names: List[str] = []
        self._valid_non_param: List[str] = []

    @property
    def settings(self) -> Dict[str, Any]:
        return {"nested_subscript": self.config.nested_subscript}

    # -- definition ---------------------------------------------------------

    def _attach(self, stage: Stage, spec: ProcessorSpec) -> List[Processor]:
        """Attach a processor to named fields, or to every current field.

        Without ``name``/``names`` the processor is copied onto each field
        that exists now; fields added later are not affected.
        """
        names: List[str] = []
        if isinstance(spec, dict):
            names = _as_list(spec.get("name")) + _as_list(spec.get("names"))

        if names:
            targets = [f for name in names for f in self.get_fields(nested_name=name)]
        else:
            targets = self.get_fields()

        created: List[Processor] = []
        for target in targets:
            if isinstance(spec, Processor):
                processor = spec.clone(target)
            else:
                processor = create_processor(stage, spec)
            created.append(target.add_processor(stage, processor))
        return created

    def filter(self, spec: ProcessorSpec) -> List[Processor]:
        return self._attach(Stage.FILTER, spec)

    def constraint(self, spec: ProcessorSpec) -> List[Processor]:
        return self._attach(Stage.CONSTRAINT, spec)

    def inflator(self, spec: ProcessorSpec) -> List[Processor]:
        return self._attach(Stage.INFLATOR, spec)

    def validator(self, spec: ProcessorSpec) -> List[Processor]:
        return self._attach(Stage.VALIDATOR, spec)

    def transformer(self, spec: ProcessorSpec) -> List[Processor]:
        return self._attach(Stage.TRANSFORMER, spec)

    # -- processing ---------------------------------------------------------

    def process(self, query: Optional[Any] = None) -> ProcessingReport:
        """Process a submission and record the results on this form.

        Args:
            query: A ``Query`` or a mapping of submitted values. If omitted,
                the query given earlier (to the constructor or a previous
                call) is reused.

        Returns:
            A ProcessingReport summarising the run

        Raises:
            QueryMalformedError: If the query cannot be read. Nothing about
                the previous run's results is changed in that case.
            RegistrationError: If the form has upload fields and no parser is
                registered for ``config.query_type``
        """
        if query is not None:
            query = ensure_query(query)
        else:
            query = self.query

        submitted = False
        upload_parser = None
        collected: Dict[str, Any] = {}
        if query is not None:
            submitted = SubmissionGate(self.config.indicator).is_submitted(self, query)
        if submitted:
            if any(f.upload for f in self.get_fields()):
                upload_parser = get_upload_parser(self.config.query_type)
            collected = self._collect_input(query)

        self.query = query
        self.submitted = submitted
        self.input = collected
        self.processed_params = {}
        self._valid_names = []
        self._valid_non_param = []
        self.error_collector.clear()

        logger.debug(f"Form submitted: {submitted}")
        if not submitted:
            return ProcessingReport(submitted=False)

        return FormProcessingPipeline(self, upload_parser=upload_parser).run()

    def _collect_input(self, query: Query) -> Dict[str, Any]:
        """Submitted values of every known field, as a nested tree.

        Raises:
            QueryMalformedError: If the query fails while being read
        """
        try:
            present = set(query.list_params())
        except Exception as exc:
            raise QueryMalformedError(f"Invalid query object: {exc}") from exc
        result: Dict[str, Any] = {}

        for f in self.get_fields():
            name = f.nested_name
            if name is None or name not in present:
                continue
            try:
                values = query.param_values(name)
            except Exception as exc:
                raise QueryMalformedError(f"Invalid query object: {exc}") from exc
            if not values:
                continue
            value = list(values) if f.multi_value or len(values) > 1 else values[0]

            if f.is_nested:
                set_nested_value(result, name, value)
            else:
                result[name] = value

        return result

    # -- errors -------------------------------------------------------------

    def errors_for(self, field: Field) -> List[StageError]:
        return self.error_collector.errors_for(field)

    def get_errors(
        self,
        name: Optional[str] = None,
        stage: Optional[Stage] = None,
        type: Optional[str] = None,
    ) -> List[StageError]:
        """Recorded errors, optionally filtered by field name, stage or type tag."""
        errors = self.error_collector.all()
        if name is not None:
            wanted = split_nested_name(name)
            errors = [e for e in errors if e.name and split_nested_name(e.name) == wanted]
        if stage is not None:
            errors = [e for e in errors if e.stage == Stage(stage)]
        if type is not None:
            errors = [e for e in errors if e.type == type]
        return errors

    def has_errors(self, name: Optional[str] = None) -> Union[bool, List[str]]:
        """Names of fields with errors, or whether ``name`` (or below it) has any."""
        names: List[str] = []
        for f in self.error_collector.fields_with_errors():
            if f.nested_name and f.nested_name not in names:
                names.append(f.nested_name)

        if name is None:
            return names

        wanted = split_nested_name(name)
        return any(split_nested_name(n)[: len(wanted)] == wanted for n in names)

    def submitted_and_valid(self) -> bool:
        return self.submitted and not self.has_errors()

    # -- params -------------------------------------------------------------

    def valid(self, name: Optional[str] = None) -> Union[bool, List[str]]:
        """The valid names, or whether ``name`` is valid.

        A name is valid if it is in the valid names, is a present error-free
        ``non_param`` field, or names a block whose fields are all error-free.
        """
        if name is None:
            return list(self._valid_names)

        if name in self._valid_names or name in self._valid_non_param:
            return True

        if not self.submitted:
            return False

        for block in self.get_blocks(name):
            if not any(f.has_errors for f in block.get_fields()):
                return True
        return False

    def params(self) -> Dict[str, Any]:
        """Nested dict of every valid name and its processed value."""
        if not self.submitted:
            return {}
        result: Dict[str, Any] = {}
        for name in self._valid_names:
            value = get_nested_value(self.processed_params, name)
            if isinstance(value, list):
                value = list(value)
            set_nested_value(result, name, value)
        return result

    def param(self, name: Optional[str] = None) -> Any:
        """Without a name, the valid names; with one, its stored value or None."""
        if name is None:
            return self.valid()
        if not self.valid(name):
            return None
        return get_nested_value(self.processed_params, name)

    def param_value(self, name: str) -> Any:
        """A single value for ``name``: the first one if it has several.

        Returns None if the name is not valid.
        """
        if not self.valid(name):
            return None
        value = get_nested_value(self.processed_params, name)
        if isinstance(value, list):
            return value[0] if value else None
        return value

    def param_array(self, name: str) -> List[Any]:
        """Every value of ``name`` as a list (empty if not valid)."""
        if not self.valid(name):
            return []
        value = get_nested_value(self.processed_params, name)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    def param_list(self, name: str) -> Tuple[Any, ...]:
        """Every value of ``name`` as a tuple (empty if not valid)."""
        return tuple(self.param_array(name))

    def add_valid(self, name: str, value: Any) -> Any:
        """Store ``value`` under ``name`` and mark it valid immediately."""
        set_nested_value(self.input, name, value)
        set_nested_value(self.processed_params, name, value)
        if name not in self._valid_names:
            self._valid_names.append(name)
        return value

    # -- copying and comparison --------------------------------------------

    def clone(self) -> "Form":
        """An independent copy of the definition, without processing state.

        Callables (indicator, callbacks, callback conditions) are shared.
        """
        new = Form(config=replace(self.config))
        for element in self.elements:
            new.element(element.clone())
        return new

    def to_dict(self) -> Dict[str, Any]:
        result = self.config.to_dict()
        result["elements"] = [e.to_dict() for e in self.elements]
        return result

    def equals(self, other: Any) -> bool:
        """Whether ``other`` is a form with the same definition."""
        return isinstance(other, Form) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"<Form fields={[f.nested_name for f in self.get_fields()]}>"


def build_form(definition: Dict[str, Any]) -> Form:
    """Build a form from a nested definition dict.

    The definition is checked against ``FORM_DEFINITION_SCHEMA`` first.
    Form-level processor lists are attached after all elements exist.

    Raises:
        FormDefinitionError: If the definition fails schema validation
        RegistrationError: If it names an unknown element or processor type

    Examples:
        >>> form = build_form({
        ...     "indicator": "submit",
        ...     "elements": [{"name": "q"}, {"name": "submit"}],
        ...     "filters": ["Trim"],
        ... })
        >>> form.process({"q": " x "}).submitted
        False
    """
    validate_definition(definition)

    form = Form(config=FormConfig.from_dict(definition), elements=definition.get("elements"))

    for stage, key in STAGE_KEYS.items():
        for spec in definition.get(key) or []:
            form._attach(stage, spec)

    return form


__all__ = [
    "Form",
    "build_form",
]
