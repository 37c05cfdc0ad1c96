"""The form processing pipeline.

``FormProcessingPipeline`` runs one processing pass over a submitted form:

    BuildParams -> ProcessFileUploads -> Filter -> Constrain
      -> (if no errors) Inflate -> (if no errors) Validate
      -> (if no errors) Transform -> BuildValidNames

Every stage works on the same processed-params tree and records errors in
the form's ErrorCollector. Within a stage, processors are visited field by
field in definition order and, per field, in the order they were attached.

Processor faults are isolated: an exception raised by one processor becomes
a typed error on that processor's field and the pipeline moves on. Only
filters are trusted not to fail.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from formstage.conditions import ProcessingContext
from formstage.errors import STAGE_ERROR_CLASSES, StageError
from formstage.nested import (
    get_nested_value,
    nested_key_exists,
    set_nested_value,
    split_nested_name,
)
from formstage.processors import Processor
from formstage.types import ERROR_GATED_STEPS, PipelineStep, Stage
from formstage.uploads import UploadParser

if TYPE_CHECKING:
    from formstage.form import Form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingReport:
    """Summary of one ``Form.process()`` call.

    Attributes:
        submitted: Whether the query counted as a submission
        steps_run: Pipeline steps that ran, in order
        steps_skipped: Steps skipped because errors were already recorded
        error_count: Number of errors recorded
        valid_names: The computed valid names
    """
    submitted: bool
    steps_run: List[PipelineStep] = field(default_factory=list)
    steps_skipped: List[PipelineStep] = field(default_factory=list)
    error_count: int = 0
    valid_names: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.submitted and self.error_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "submitted": self.submitted,
            "isValid": self.is_valid,
            "stepsRun": [s.value for s in self.steps_run],
            "stepsSkipped": [s.value for s in self.steps_skipped],
            "errorCount": self.error_count,
            "validNames": list(self.valid_names),
        }


class FormProcessingPipeline:
    """Runs the processing stages of a single submitted form.

    The pipeline reads ``form.input`` and writes ``form.processed_params``,
    the form's error collector and its valid names. A pipeline instance is
    good for one run.

    Examples:
        >>> from formstage.form import Form
        >>> form = Form(elements=[{"name": "age", "constraints": ["Integer"]}])
        >>> report = form.process({"age": "x"})
        >>> [s.value for s in report.steps_skipped]
        ['inflate', 'validate', 'transform']
    """

    def __init__(self, form: "Form", upload_parser: Optional[UploadParser] = None) -> None:
        self.form = form
        self.upload_parser = upload_parser
        self.params: Dict[str, Any] = {}
        self._steps_run: List[PipelineStep] = []
        self._steps_skipped: List[PipelineStep] = []

    @property
    def errors(self):
        return self.form.error_collector

    def run(self) -> ProcessingReport:
        """Run every step and return a report."""
        self._step(PipelineStep.BUILD_PARAMS, self._build_params)
        self._step(PipelineStep.PROCESS_FILE_UPLOADS, self._process_file_uploads)
        self._step(PipelineStep.FILTER, self._filter_input)
        self._step(PipelineStep.CONSTRAIN, self._constrain_input)

        gated = {
            PipelineStep.INFLATE: self._inflate_input,
            PipelineStep.VALIDATE: self._validate_input,
            PipelineStep.TRANSFORM: self._transform_input,
        }
        for step in ERROR_GATED_STEPS:
            if len(self.errors):
                logger.debug(f"Skipping {step.value}: {len(self.errors)} error(s) recorded")
                self._steps_skipped.append(step)
                continue
            self._step(step, gated[step])

        self._step(PipelineStep.BUILD_VALID_NAMES, self._build_valid_names)

        return ProcessingReport(
            submitted=True,
            steps_run=list(self._steps_run),
            steps_skipped=list(self._steps_skipped),
            error_count=len(self.errors),
            valid_names=list(self.form._valid_names),
        )

    def _step(self, step: PipelineStep, method: Callable[[], None]) -> None:
        logger.debug(f"Running {step.value}")
        method()
        self._steps_run.append(step)

    def _context(self) -> ProcessingContext:
        return ProcessingContext(form=self.form, query=self.form.query, params=self.params)

    def _processors(self, stage: Stage) -> List[Processor]:
        return [p for f in self.form.get_fields() for p in f.processors(stage)]

    def _is_present(self, processor: Processor) -> bool:
        name = processor.nested_name
        return name is not None and nested_key_exists(self.params, name)

    def _field_has_errors(self, processor: Processor) -> bool:
        return processor.field is not None and self.errors.has_errors_for(processor.field)

    def _convert_fault(self, processor: Processor, exc: Exception) -> StageError:
        error_class = STAGE_ERROR_CLASSES[processor.stage]
        if isinstance(exc, error_class):
            return exc
        logger.warning(
            f"{processor.stage.value} {processor.type} on '{processor.nested_name}' "
            f"raised {type(exc).__name__}; recording a generic error",
            exc_info=True,
        )
        return error_class()

    def _record(self, processor: Processor, errors: List[StageError]) -> None:
        for error in errors:
            if error.field is None:
                error.field = processor.field
            if error.processor is None:
                error.processor = processor
            logger.debug(
                f"{error.stage.value} error on '{error.name}' from {processor.type}: {error.message}"
            )
            self.errors.add(error)

    def _build_params(self) -> None:
        source = self.form.input
        for f in self.form.get_fields():
            name = f.nested_name
            if name is None:
                continue
            if nested_key_exists(self.params, name):
                continue
            if not nested_key_exists(source, name) and not f.default_empty_value:
                continue

            value = get_nested_value(source, name)
            if isinstance(value, list):
                # upload handles cannot be deep-copied
                value = list(value)
            elif value is None and f.default_empty_value:
                value = ""

            set_nested_value(self.params, name, value)

        self.form.processed_params = self.params

    def _process_file_uploads(self) -> None:
        names: List[str] = []
        for f in self.form.get_fields():
            if f.upload and f.nested_name and f.nested_name not in names:
                names.append(f.nested_name)
        if not names or self.upload_parser is None:
            return

        for name in names:
            if not nested_key_exists(self.form.input, name):
                continue
            set_nested_value(self.params, name, self.upload_parser(self.form, name))

    def _filter_input(self) -> None:
        context = self._context()
        for processor in self._processors(Stage.FILTER):
            if not self._is_present(processor) or not processor.applies(context):
                continue
            processor.process(self.form, self.params)

    def _constrain_input(self) -> None:
        context = self._context()
        for processor in self._processors(Stage.CONSTRAINT):
            if not processor.applies(context):
                logger.debug(f"Skipping constraint {processor.type} on '{processor.nested_name}': condition not met")
                continue
            processor.pre_process()
            try:
                errors = processor.process(self.params)
            except Exception as exc:
                errors = [self._convert_fault(processor, exc)]
            self._record(processor, errors)

    def _inflate_input(self) -> None:
        context = self._context()
        for processor in self._processors(Stage.INFLATOR):
            if not self._is_present(processor) or self._field_has_errors(processor):
                continue
            if not processor.applies(context):
                continue
            name = processor.nested_name
            value = get_nested_value(self.params, name)
            try:
                value, errors = processor.process(value)
            except Exception as exc:
                value = None
                errors = [self._convert_fault(processor, exc)]
            self._record(processor, errors)
            set_nested_value(self.params, name, value)

    def _validate_input(self) -> None:
        context = self._context()
        for processor in self._processors(Stage.VALIDATOR):
            if not self._is_present(processor) or self._field_has_errors(processor):
                continue
            if not processor.applies(context):
                continue
            try:
                errors = processor.process(self.params)
            except Exception as exc:
                errors = [self._convert_fault(processor, exc)]
            self._record(processor, errors)

    def _transform_input(self) -> None:
        context = self._context()
        for processor in self._processors(Stage.TRANSFORMER):
            if not self._is_present(processor) or self._field_has_errors(processor):
                continue
            if not processor.applies(context):
                continue
            name = processor.nested_name
            value = get_nested_value(self.params, name)
            try:
                value, errors = processor.process(value, self.params)
            except Exception as exc:
                errors = [self._convert_fault(processor, exc)]
            self._record(processor, errors)
            set_nested_value(self.params, name, value)

    def _build_valid_names(self) -> None:
        skip_private = self.form.config.params_ignore_underscore
        error_names = set(self.form.has_errors())

        candidates: List[str] = []
        valid_non_param: List[str] = []
        claimed = {
            split_nested_name(f.nested_name)[0] for f in self.form.get_fields() if f.nested_name
        }

        for f in self.form.get_fields():
            name = f.nested_name
            if name is None:
                continue
            if skip_private and f.name.startswith("_"):
                continue
            if f.non_param:
                if nested_key_exists(self.params, name) and name not in error_names:
                    valid_non_param.append(name)
            elif nested_key_exists(self.params, name):
                candidates.append(name)

        for key, value in self.params.items():
            if isinstance(value, dict):
                continue
            if skip_private and key.startswith("_"):
                continue
            if key in claimed:
                continue
            candidates.append(key)

        valid: List[str] = []
        for name in candidates:
            if name not in error_names and name not in valid:
                valid.append(name)

        self.form._valid_names = valid
        self.form._valid_non_param = valid_non_param


__all__ = [
    "ProcessingReport",
    "FormProcessingPipeline",
]
