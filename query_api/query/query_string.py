"""
Bracket-notation query string parsing.

``price[gte]=100&tags[]=a&tags[]=b`` is parsed into
``{"price": {"gte": "100"}, "tags": ["a", "b"]}`` so that operator
suffixes reach the query translator as nested mappings.
"""

import re
from typing import Any, Dict, Iterable, List, Tuple

MAX_DEPTH = 5

_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def split_key(key: str, depth: int = MAX_DEPTH) -> List[str]:
    """
    Split ``a[b][c]`` into ``["a", "b", "c"]``.

    Segments past ``depth`` are kept as one literal trailing segment.
    Keys starting with ``[`` are not split.
    """
    bracket = key.find("[")
    if bracket <= 0:
        return [key]

    segments = [key[:bracket]]
    rest = key[bracket:]
    pos = 0
    while len(segments) <= depth:
        match = _SEGMENT.match(rest, pos)
        if not match:
            break
        segments.append(match.group(1))
        pos = match.end()

    if pos < len(rest):
        segments.append(rest[pos:])
    return segments


def _assign(container: Dict[str, Any], segments: List[str], value: str) -> None:
    head, rest = segments[0], segments[1:]

    if not rest or rest == [""]:
        existing = container.get(head)
        if isinstance(existing, list):
            existing.append(value)
        elif head in container and not isinstance(existing, dict):
            container[head] = [existing, value]
        elif rest:
            container[head] = [value]
        else:
            container[head] = value
        return

    child = container.get(head)
    if not isinstance(child, dict):
        child = {}
        container[head] = child
    _assign(child, rest, value)


def parse_query_string(pairs: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Build a nested mapping from decoded query string pairs.

    Args:
        pairs: ``(key, value)`` tuples in request order, e.g.
            ``request.query_params.multi_items()``

    Returns:
        Mapping of strings, lists of strings and nested mappings.
        Repeated keys become lists.
    """
    parsed: Dict[str, Any] = {}
    for key, value in pairs:
        if not key:
            continue
        _assign(parsed, split_key(key), value)
    return parsed
