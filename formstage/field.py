"""Form elements: fields and the blocks that group them.

Elements form a tree rooted at a ``Form``. Each element keeps an explicit
reference to its parent; settings that may be given at any level (such as
``default_empty_value``) are looked up with ``resolve``, which walks that
parent chain until some element has the setting.

A ``Block`` with a ``nested_name`` contributes a path segment to every field
inside it, so a ``city`` field inside ``Block(nested_name="address")`` has
the nested name ``address.city`` (or ``address[city]`` with subscript
notation).
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Union

# Imported for their side effect of registering the built-in processors
from formstage import constraints, filters, inflators, transformers, validators  # noqa: F401
from formstage.errors import RegistrationError, StageError
from formstage.nested import join_nested_name, split_nested_name
from formstage.processors import Processor
from formstage.registry import ProcessorSpec, create_processor
from formstage.types import Stage

# Definition keys holding processor lists, per stage
STAGE_KEYS: Dict[Stage, str] = {
    Stage.FILTER: "filters",
    Stage.CONSTRAINT: "constraints",
    Stage.INFLATOR: "inflators",
    Stage.VALIDATOR: "validators",
    Stage.TRANSFORMER: "transformers",
}


def resolve(node: Optional["Element"], attribute: str, default: Any = None) -> Any:
    """Find ``attribute`` on ``node`` or its nearest ancestor that sets it.

    Examples:
        >>> block = Block(default_empty_value=True)
        >>> field = block.element({"name": "nickname"})
        >>> resolve(field, "default_empty_value")
        True
        >>> resolve(field, "nested_subscript", False)
        False
    """
    while node is not None:
        settings = node.settings
        if attribute in settings:
            return settings[attribute]
        node = node.parent
    return default


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class Element:
    """Base class of everything that can sit in a form's element tree."""

    element_type = "Element"
    is_form = False

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name
        self.parent: Optional["Element"] = None
        self._settings: Dict[str, Any] = {}

    @property
    def settings(self) -> Dict[str, Any]:
        """Settings set on this element itself (see ``resolve``)."""
        return self._settings

    @property
    def form(self) -> Optional[Any]:
        """The ``Form`` at the root of this element's tree, if any."""
        node: Element = self
        while node.parent is not None:
            node = node.parent
        return node if node.is_form else None

    def _parent_segments(self) -> List[str]:
        segments: List[str] = []
        node = self.parent
        while node is not None:
            segment = getattr(node, "nested_segment", None)
            if segment:
                segments = split_nested_name(segment) + segments
            node = node.parent
        return segments

    def clone(self) -> "Element":
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


class Field(Element):
    """A named input and the processors attached to it.

    Attributes:
        name: The field's own name (may itself contain a path)
        multi_value: Always store the submitted value as a list
        non_param: Track validity but never expose the value via ``params()``
        upload: Value comes from the form's upload parser

    Examples:
        >>> field = Field("email", constraints=["Required", "Email"], filters=["Trim"])
        >>> [p.type for p in field.processors(Stage.CONSTRAINT)]
        ['Required', 'Email']
        >>> field.nested_name
        'email'
    """

    element_type = "Field"
    upload = False

    def __init__(
        self,
        name: str,
        multi_value: bool = False,
        default_empty_value: Optional[bool] = None,
        non_param: bool = False,
        filters: Optional[Iterable[ProcessorSpec]] = None,
        constraints: Optional[Iterable[ProcessorSpec]] = None,
        inflators: Optional[Iterable[ProcessorSpec]] = None,
        validators: Optional[Iterable[ProcessorSpec]] = None,
        transformers: Optional[Iterable[ProcessorSpec]] = None,
    ) -> None:
        super().__init__(name)
        self.multi_value = multi_value
        self.non_param = non_param
        if default_empty_value is not None:
            self._settings["default_empty_value"] = default_empty_value
        self._processors: Dict[Stage, List[Processor]] = {stage: [] for stage in Stage}

        for stage, specs in (
            (Stage.FILTER, filters),
            (Stage.CONSTRAINT, constraints),
            (Stage.INFLATOR, inflators),
            (Stage.VALIDATOR, validators),
            (Stage.TRANSFORMER, transformers),
        ):
            for spec in _as_list(specs):
                self.add_processor(stage, spec)

    @property
    def nested_name(self) -> Optional[str]:
        """Full path of this field.

        A name under a named block is joined in the form's notation; a
        top-level name is kept exactly as declared.
        """
        if not self.name:
            return None
        parents = self._parent_segments()
        if not parents:
            # a top-level name is used as written
            return self.name
        segments = parents + split_nested_name(self.name)
        return join_nested_name(segments, subscript=bool(resolve(self, "nested_subscript", False)))

    @property
    def is_nested(self) -> bool:
        name = self.nested_name
        return name is not None and len(split_nested_name(name)) > 1

    @property
    def default_empty_value(self) -> bool:
        return bool(resolve(self, "default_empty_value", False))

    def add_processor(self, stage: Stage, spec: ProcessorSpec) -> Processor:
        """Attach a processor built from a tag, dict or instance."""
        processor = create_processor(stage, spec, field=self)
        self._processors[Stage(stage)].append(processor)
        return processor

    def processors(self, stage: Stage) -> List[Processor]:
        return list(self._processors[Stage(stage)])

    def filter(self, spec: ProcessorSpec) -> Processor:
        return self.add_processor(Stage.FILTER, spec)

    def constraint(self, spec: ProcessorSpec) -> Processor:
        return self.add_processor(Stage.CONSTRAINT, spec)

    def inflator(self, spec: ProcessorSpec) -> Processor:
        return self.add_processor(Stage.INFLATOR, spec)

    def validator(self, spec: ProcessorSpec) -> Processor:
        return self.add_processor(Stage.VALIDATOR, spec)

    def transformer(self, spec: ProcessorSpec) -> Processor:
        return self.add_processor(Stage.TRANSFORMER, spec)

    @property
    def errors(self) -> List[StageError]:
        """Errors recorded against this field by the last processing run."""
        form = self.form
        if form is None:
            return []
        return form.errors_for(self)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def clone(self) -> "Field":
        new = copy.copy(self)
        new.parent = None
        new._settings = copy.deepcopy(self._settings)
        new._processors = {
            stage: [p.clone(new) for p in processors]
            for stage, processors in self._processors.items()
        }
        return new

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.element_type, "name": self.name}
        if self.multi_value:
            result["multi_value"] = True
        if self.non_param:
            result["non_param"] = True
        if "default_empty_value" in self._settings:
            result["default_empty_value"] = self._settings["default_empty_value"]
        for stage, key in STAGE_KEYS.items():
            if self._processors[stage]:
                result[key] = [p.to_dict() for p in self._processors[stage]]
        return result

    def __repr__(self) -> str:
        return f"<{self.element_type} {self.nested_name!r}>"


class File(Field):
    """A field whose value is produced by the form's upload parser."""

    element_type = "File"
    upload = True


class Block(Element):
    """A container of elements, optionally adding a path segment.

    Attributes:
        nested_segment: The segment this block adds to its fields' names
        elements: Child elements in definition order
    """

    element_type = "Block"

    def __init__(
        self,
        nested_name: Optional[str] = None,
        name: Optional[str] = None,
        elements: Optional[Iterable[Union["Element", Dict[str, Any]]]] = None,
        default_empty_value: Optional[bool] = None,
    ) -> None:
        super().__init__(name)
        self.nested_segment = nested_name
        self.elements: List[Element] = []
        if default_empty_value is not None:
            self._settings["default_empty_value"] = default_empty_value
        for spec in _as_list(elements):
            self.element(spec)

    @property
    def nested_name(self) -> Optional[str]:
        """Full path of this block, or None if it adds no segment."""
        if not self.nested_segment:
            return None
        segments = self._parent_segments() + split_nested_name(self.nested_segment)
        return join_nested_name(segments, subscript=bool(resolve(self, "nested_subscript", False)))

    def element(self, spec: Union["Element", Dict[str, Any]]) -> "Element":
        """Add a child element built from an instance or definition dict."""
        element = build_element(spec)
        element.parent = self
        self.elements.append(element)
        return element

    def get_all_elements(self) -> List[Element]:
        """Every descendant element, depth first."""
        result: List[Element] = []
        for element in self.elements:
            result.append(element)
            if isinstance(element, Block):
                result.extend(element.get_all_elements())
        return result

    def get_fields(self, nested_name: Optional[str] = None) -> List[Field]:
        """Descendant fields in definition order, optionally by nested name.

        Dotted and subscript spellings of ``nested_name`` are equivalent.
        """
        fields = [e for e in self.get_all_elements() if isinstance(e, Field)]
        if nested_name is None:
            return fields
        wanted = split_nested_name(nested_name)
        return [f for f in fields if f.nested_name and split_nested_name(f.nested_name) == wanted]

    def get_field(self, nested_name: str) -> Optional[Field]:
        matches = self.get_fields(nested_name=nested_name)
        return matches[0] if matches else None

    def get_blocks(self, nested_name: str) -> List["Block"]:
        wanted = split_nested_name(nested_name)
        return [
            e for e in self.get_all_elements()
            if isinstance(e, Block) and e.nested_name and split_nested_name(e.nested_name) == wanted
        ]

    def clone(self) -> "Block":
        new = copy.copy(self)
        new.parent = None
        new._settings = copy.deepcopy(self._settings)
        new.elements = []
        for element in self.elements:
            child = element.clone()
            child.parent = new
            new.elements.append(child)
        return new

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.element_type}
        if self.name:
            result["name"] = self.name
        if self.nested_segment:
            result["nested_name"] = self.nested_segment
        if "default_empty_value" in self._settings:
            result["default_empty_value"] = self._settings["default_empty_value"]
        result["elements"] = [e.to_dict() for e in self.elements]
        return result


ELEMENT_TYPES: Dict[str, type] = {
    "Field": Field,
    "Text": Field,
    "File": File,
    "Block": Block,
    "Fieldset": Block,
}


def build_element(spec: Union[Element, Dict[str, Any]]) -> Element:
    """Build an element from an instance or a definition dict.

    Raises:
        RegistrationError: If the dict names an unknown element type
    """
    if isinstance(spec, Element):
        return spec
    options = dict(spec)
    tag = options.pop("type", "Field")
    try:
        cls = ELEMENT_TYPES[tag]
    except KeyError:
        raise RegistrationError("element", tag) from None
    return cls(**options)


__all__ = [
    "resolve",
    "Element",
    "Field",
    "File",
    "Block",
    "ELEMENT_TYPES",
    "build_element",
]
