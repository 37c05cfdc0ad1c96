"""Static registry of stage processor types.

Built-in processors register themselves with the ``register`` decorator when
their module is imported; applications can register their own the same way.
Form definitions refer to processors by ``(stage, type tag)``, which is
resolved once, when the processor is attached to a field.

Examples:
    >>> from formstage.processors import Filter
    >>> @register(Stage.FILTER, "Reverse")
    ... class Reverse(Filter):
    ...     def filter(self, value):
    ...         return value[::-1]
    >>> lookup(Stage.FILTER, "Reverse") is Reverse
    True
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Type, Union

from formstage.errors import RegistrationError
from formstage.types import Stage

if TYPE_CHECKING:
    from formstage.field import Field
    from formstage.processors import Processor

ProcessorSpec = Union[str, Dict[str, Any], "Processor"]

_REGISTRY: Dict[Tuple[Stage, str], Type["Processor"]] = {}


def register(stage: Stage, tag: str) -> Callable[[Type["Processor"]], Type["Processor"]]:
    """Class decorator registering a processor under ``(stage, tag)``."""

    def decorator(cls: Type["Processor"]) -> Type["Processor"]:
        _REGISTRY[(Stage(stage), tag)] = cls
        cls.type = tag
        return cls

    return decorator


def lookup(stage: Stage, tag: str) -> Type["Processor"]:
    """Return the class registered for ``(stage, tag)``.

    Raises:
        RegistrationError: If nothing is registered under that tag
    """
    try:
        return _REGISTRY[(Stage(stage), tag)]
    except KeyError:
        raise RegistrationError(Stage(stage).value, tag) from None


def registered_tags(stage: Stage) -> Dict[str, Type["Processor"]]:
    return {tag: cls for (s, tag), cls in _REGISTRY.items() if s == Stage(stage)}


def create_processor(
    stage: Stage,
    spec: ProcessorSpec,
    field: Optional["Field"] = None,
) -> "Processor":
    """Build a processor from a tag, a definition dict or an instance.

    A dict must carry a ``type`` key; its remaining keys are passed to the
    processor's constructor. ``name``/``names`` keys are ignored here, they
    are consumed by the form when routing processors to fields.

    Raises:
        RegistrationError: If the type tag is unknown
        TypeError: If an instance of the wrong stage is supplied
    """
    from formstage.processors import Processor

    if isinstance(spec, Processor):
        if spec.stage != Stage(stage):
            raise TypeError(
                f"Expected a {Stage(stage).value} processor, got a {spec.stage.value}"
            )
        processor = spec
    elif isinstance(spec, str):
        processor = lookup(stage, spec)()
    elif isinstance(spec, dict):
        options = {k: v for k, v in spec.items() if k not in ("type", "name", "names")}
        if "type" not in spec:
            raise RegistrationError(
                Stage(stage).value, "<missing>", "Processor definition has no 'type'"
            )
        processor = lookup(stage, spec["type"])(**options)
    else:
        raise TypeError(f"Cannot build a processor from {type(spec).__name__}")

    if field is not None:
        processor.field = field
    return processor


__all__ = [
    "ProcessorSpec",
    "register",
    "lookup",
    "registered_tags",
    "create_processor",
]
