"""Error types and the per-field error collector for formstage.

Two families of errors live here:

- Stage errors (ConstraintError, InflatorError, ValidatorError,
  TransformerError) describe a problem with submitted data. They are
  exceptions, so a processor may raise one, and they are also plain values,
  so a processor may return a list of them. The pipeline records them in an
  ErrorCollector and never lets them abort a processing run.
- Fatal errors (QueryMalformedError, RegistrationError, FormDefinitionError)
  describe a problem with the caller's input or form definition and always
  propagate.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from formstage.types import Stage

if TYPE_CHECKING:
    from formstage.field import Field
    from formstage.processors import Processor


class FormstageError(Exception):
    """Base class for every error raised by formstage."""


class StageError(FormstageError):
    """An error produced while running a stage processor.

    Attributes:
        stage: The stage kind this error belongs to
        field: The field the error is attached to (assigned by the pipeline
            if the processor leaves it unset)
        processor: The processor that produced the error (assigned by the
            pipeline if unset)

    Examples:
        >>> err = ConstraintError("Too short")
        >>> err.stage
        <Stage.CONSTRAINT: 'constraint'>
        >>> err.message
        'Too short'
    """

    stage: Stage = Stage.CONSTRAINT
    default_message = "Invalid input"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional["Field"] = None,
        processor: Optional["Processor"] = None,
    ) -> None:
        self._message = message
        self.field = field
        self.processor = processor
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        """The explicit message, else the processor's, else the default."""
        if self._message:
            return self._message
        if self.processor is not None and self.processor.message:
            return self.processor.message
        if self.processor is not None and self.processor.default_message:
            return self.processor.default_message
        return self.default_message

    @property
    def type(self) -> Optional[str]:
        """Type tag of the originating processor, e.g. ``"Required"``."""
        if self.processor is None:
            return None
        return self.processor.type

    @property
    def name(self) -> Optional[str]:
        """Nested name of the field this error is attached to."""
        if self.field is None:
            return None
        return self.field.nested_name

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "stage": self.stage.value,
            "message": self.message,
        }
        if self.type is not None:
            result["type"] = self.type
        if self.name is not None:
            result["field"] = self.name
        return result


class ConstraintError(StageError):
    stage = Stage.CONSTRAINT
    default_message = "Invalid input"


class InflatorError(StageError):
    stage = Stage.INFLATOR
    default_message = "Invalid input"


class ValidatorError(StageError):
    stage = Stage.VALIDATOR
    default_message = "Invalid input"


class TransformerError(StageError):
    stage = Stage.TRANSFORMER
    default_message = "Invalid input"


STAGE_ERROR_CLASSES: Dict[Stage, type] = {
    Stage.CONSTRAINT: ConstraintError,
    Stage.INFLATOR: InflatorError,
    Stage.VALIDATOR: ValidatorError,
    Stage.TRANSFORMER: TransformerError,
}


class QueryMalformedError(FormstageError):
    """Raised when the submitted query object cannot be read.

    This is the only fatal condition of ``Form.process()``: it is raised
    before any stage runs and is never recorded as a field error.
    """


class RegistrationError(FormstageError):
    """Raised when a processor type tag or query type is not registered.

    Attributes:
        kind: What was being looked up (a stage value or ``"query_type"``)
        tag: The unknown tag
    """

    def __init__(self, kind: str, tag: str, message: Optional[str] = None):
        self.kind = kind
        self.tag = tag
        super().__init__(message or f"No {kind} registered for type '{tag}'")


class FormDefinitionError(FormstageError):
    """Raised when a form definition dict fails schema validation.

    Attributes:
        problems: One ``{"path": ..., "message": ...}`` dict per problem
    """

    def __init__(self, problems: List[Dict[str, str]]):
        self.problems = problems
        summary = "; ".join(
            f"{p['path'] or '<root>'}: {p['message']}" for p in problems
        )
        super().__init__(f"Invalid form definition: {summary}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"message": str(self), "problems": list(self.problems)}


class ErrorCollector:
    """Accumulates stage errors per field.

    Fields are keyed by identity, so two fields sharing a nested name keep
    separate buckets. Iteration yields errors in the order they were added.

    Examples:
        >>> from formstage.field import Field
        >>> collector = ErrorCollector()
        >>> name = Field("name")
        >>> collector.add(ConstraintError("Required", field=name))
        >>> len(collector)
        1
        >>> collector.has_errors_for(name)
        True
    """

    def __init__(self) -> None:
        self._by_field: Dict["Field", List[StageError]] = {}
        self._ordered: List[StageError] = []

    def add(self, error: StageError) -> None:
        """Record an error under its field.

        Raises:
            ValueError: If the error has not been attached to a field
        """
        if error.field is None:
            raise ValueError("Cannot collect an error that has no field")
        self._by_field.setdefault(error.field, []).append(error)
        self._ordered.append(error)

    def errors_for(self, field: "Field") -> List[StageError]:
        return list(self._by_field.get(field, []))

    def has_errors_for(self, field: "Field") -> bool:
        return bool(self._by_field.get(field))

    def fields_with_errors(self) -> List["Field"]:
        return [f for f, errors in self._by_field.items() if errors]

    def all(self) -> List[StageError]:
        return list(self._ordered)

    def clear(self) -> None:
        self._by_field.clear()
        self._ordered.clear()

    def __iter__(self) -> Iterator[StageError]:
        return iter(list(self._ordered))

    def __len__(self) -> int:
        return len(self._ordered)


__all__ = [
    "FormstageError",
    "StageError",
    "ConstraintError",
    "InflatorError",
    "ValidatorError",
    "TransformerError",
    "STAGE_ERROR_CLASSES",
    "QueryMalformedError",
    "RegistrationError",
    "FormDefinitionError",
    "ErrorCollector",
]
