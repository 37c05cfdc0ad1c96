"""Built-in transformers.

Transformers run last, on fully validated values. Whatever ``transform``
returns replaces the stored value.
"""

from typing import Any, Callable, Dict

from formstage.processors import Transformer
from formstage.registry import register
from formstage.types import Stage


@register(Stage.TRANSFORMER, "Callback")
class CallbackTransformer(Transformer):
    """Replace the value with ``callback(value, params)``."""

    options = ("callback",)

    def __init__(self, callback: Callable[[Any, Dict[str, Any]], Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.callback = callback

    def transform(self, value: Any, params: Dict[str, Any]) -> Any:
        return self.callback(value, params)


__all__ = ["CallbackTransformer"]
