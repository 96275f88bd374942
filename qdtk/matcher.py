"""Case-insensitive substring matching inside nested payloads"""

from dataclasses import dataclass
from typing import Dict, Optional

from qdtk.errors import PayloadDepthError
from qdtk.models import JSONValue

DEFAULT_MAX_DEPTH = 100


@dataclass(frozen=True)
class Query:
    """Text to look for, optionally restricted to one payload field"""

    text: str
    field: Optional[str] = None

    @property
    def needle(self) -> str:
        return self.text.lower()


def matches(
    payload: Dict[str, JSONValue],
    query: Query,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """Check whether any string in ``payload`` contains the query text.

    With ``query.field`` set only that key is searched; a payload without
    the key does not match. Numbers, booleans and nulls never match, they
    are not turned into strings first.
    """
    needle = query.needle

    if query.field is not None:
        if query.field not in payload:
            return False
        return contains(payload[query.field], needle, max_depth)

    return any(contains(value, needle, max_depth) for value in payload.values())


def contains(value: JSONValue, needle: str, max_depth: int = DEFAULT_MAX_DEPTH, depth: int = 0) -> bool:
    """Recursive containment test; ``needle`` must already be lower-cased"""
    if depth > max_depth:
        raise PayloadDepthError(max_depth)

    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, dict):
        return any(contains(v, needle, max_depth, depth + 1) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains(item, needle, max_depth, depth + 1) for item in value)
    return False
