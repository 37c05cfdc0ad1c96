"""Hierarchical value access for dotted and subscripted names.

Field names such as ``"address.city"``, ``"address[city]"`` or
``"tags[0]"`` address a path into a tree of plain dicts and lists. The
functions here read, write and enumerate such paths. Both notations are
accepted on input and may be mixed; output notation is chosen by the
``subscript`` flag.

Nothing here raises for absent paths: reads return the default and
existence checks return False.

Examples:
    >>> tree = {}
    >>> set_nested_value(tree, "address.city", "Leeds")
    >>> set_nested_value(tree, "tags[1]", "b")
    >>> tree
    {'address': {'city': 'Leeds'}, 'tags': [None, 'b']}
    >>> get_nested_value(tree, "address[city]")
    'Leeds'
    >>> sorted(enumerate_paths(tree))
    ['address.city', 'tags.0', 'tags.1']
"""

import re
from typing import Any, Dict, List, Optional

_SEGMENT_RE = re.compile(r"[^.\[\]]+")

_MISSING = object()


def split_nested_name(name: str) -> List[str]:
    """Split a dotted or subscripted name into its path segments.

    Examples:
        >>> split_nested_name("a.b[0][c]")
        ['a', 'b', '0', 'c']
    """
    return _SEGMENT_RE.findall(name)


def join_nested_name(segments: List[str], subscript: bool = False) -> str:
    """Join path segments in dotted or subscript notation.

    Examples:
        >>> join_nested_name(["a", "b", "0"])
        'a.b.0'
        >>> join_nested_name(["a", "b", "0"], subscript=True)
        'a[b][0]'
    """
    segments = [str(s) for s in segments]
    if not segments:
        return ""
    if subscript:
        return segments[0] + "".join(f"[{s}]" for s in segments[1:])
    return ".".join(segments)


def _is_index(segment: str) -> bool:
    return segment.isdigit()


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, _MISSING)
    if isinstance(node, list) and _is_index(segment):
        index = int(segment)
        if index < len(node):
            return node[index]
    return _MISSING


def _lookup(tree: Any, name: str) -> Any:
    node = tree
    for segment in split_nested_name(name):
        node = _child(node, segment)
        if node is _MISSING:
            return _MISSING
    return node


def get_nested_value(tree: Any, name: str, default: Optional[Any] = None) -> Any:
    """Return the value at ``name``, or ``default`` if the path is absent."""
    value = _lookup(tree, name)
    if value is _MISSING:
        return default
    return value


def nested_key_exists(tree: Any, name: str) -> bool:
    """Whether ``name`` is present, even if its value is None."""
    if not split_nested_name(name):
        return False
    return _lookup(tree, name) is not _MISSING


def _new_container(next_segment: str) -> Any:
    return [] if _is_index(next_segment) else {}


def _assign(node: Any, segment: str, value: Any) -> None:
    if isinstance(node, list):
        index = int(segment)
        while len(node) <= index:
            node.append(None)
        node[index] = value
    else:
        node[segment] = value


def set_nested_value(tree: Dict[str, Any], name: str, value: Any) -> None:
    """Store ``value`` at ``name``, creating intermediate containers.

    An intermediate node becomes a list when the following segment is
    numeric and a dict otherwise. A scalar sitting where a container is
    needed is replaced.
    """
    segments = split_nested_name(name)
    if not segments:
        return

    node = tree
    for segment, next_segment in zip(segments, segments[1:]):
        if isinstance(node, list) and not _is_index(segment):
            # a keyed segment cannot address a list
            return
        child = _child(node, segment)
        if child is _MISSING or not isinstance(child, (dict, list)):
            child = _new_container(next_segment)
            _assign(node, segment, child)
        elif isinstance(child, list) and not _is_index(next_segment):
            child = {str(i): v for i, v in enumerate(child)}
            _assign(node, segment, child)
        node = child

    if isinstance(node, list) and not _is_index(segments[-1]):
        return
    _assign(node, segments[-1], value)


def enumerate_paths(tree: Any, subscript: bool = False) -> List[str]:
    """List the path of every leaf value in ``tree``.

    Empty dicts and lists contribute no paths.
    """
    paths: List[str] = []

    def walk(node: Any, prefix: List[str]) -> None:
        if isinstance(node, dict):
            items = [(str(k), v) for k, v in node.items()]
        elif isinstance(node, list):
            items = [(str(i), v) for i, v in enumerate(node)]
        else:
            paths.append(join_nested_name(prefix, subscript))
            return
        for key, child in items:
            walk(child, prefix + [key])

    if isinstance(tree, (dict, list)):
        walk(tree, [])
    return paths


__all__ = [
    "split_nested_name",
    "join_nested_name",
    "get_nested_value",
    "set_nested_value",
    "nested_key_exists",
    "enumerate_paths",
]
