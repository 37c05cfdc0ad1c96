"""Built-in validators.

Validators hold business rules that need inflated values, e.g. "the end
date is after the start date". Applications usually supply their own via
``Callback`` or by subclassing ``Validator``.
"""

from typing import Any, Callable, Dict

from formstage.processors import Validator
from formstage.registry import register
from formstage.types import Stage


@register(Stage.VALIDATOR, "Callback")
class CallbackValidator(Validator):
    """Passes when ``callback(value, params)`` is truthy.

    The callback may also raise ``ValidatorError`` with its own message.
    """

    options = ("callback",)

    def __init__(self, callback: Callable[[Any, Dict[str, Any]], Any], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.callback = callback

    def validate_value(self, value: Any, params: Dict[str, Any]) -> bool:
        return bool(self.callback(value, params))


__all__ = ["CallbackValidator"]
