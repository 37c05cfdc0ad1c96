"""Upload parser collaborators.

Fields flagged as uploads (``File``) are not copied verbatim into the
processed params. Instead the parser registered for the form's
``query_type`` is asked for their value, so that a web framework adapter
can hand back its own upload objects.

A parser is any callable ``parser(form, name) -> value``.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict

from formstage.errors import RegistrationError

if TYPE_CHECKING:
    from formstage.form import Form

UploadParser = Callable[["Form", str], Any]

_PARSERS: Dict[str, UploadParser] = {}


def register_upload_parser(query_type: str, parser: UploadParser) -> None:
    _PARSERS[query_type] = parser


def get_upload_parser(query_type: str) -> UploadParser:
    """Return the parser for ``query_type``.

    Raises:
        RegistrationError: If no parser is registered for it
    """
    try:
        return _PARSERS[query_type]
    except KeyError:
        raise RegistrationError("query_type", query_type) from None


def parse_mapping_uploads(form: "Form", name: str) -> Any:
    """Return the raw query values: a scalar for one, a list for several."""
    values = form.query.param_values(name) if form.query is not None else []
    if len(values) == 1:
        return values[0]
    return list(values)


register_upload_parser("mapping", parse_mapping_uploads)


__all__ = [
    "UploadParser",
    "register_upload_parser",
    "get_upload_parser",
    "parse_mapping_uploads",
]
