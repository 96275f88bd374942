"""Records and pages as returned by the scroll API"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# Payload values: JSON scalars, nested mappings and sequences
JSONValue = Union[str, int, float, bool, None, Dict[str, "JSONValue"], List["JSONValue"]]


@dataclass(frozen=True)
class Record:
    """One point: id, payload and, when requested, its vector"""

    id: Union[int, str]
    payload: Dict[str, JSONValue] = field(default_factory=dict)
    vector: Any = None

    @classmethod
    def from_point(cls, point: Dict) -> "Record":
        return cls(
            id=point.get("id"),
            payload=point.get("payload") or {},
            vector=point.get("vector"),
        )


@dataclass
class Page:
    """Records of one scroll call plus the cursor for the next one.

    ``next_offset`` is None once the collection is exhausted.
    """

    records: List[Record]
    next_offset: Optional[Any] = None

    def __len__(self) -> int:
        return len(self.records)
