from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"


@dataclass(frozen=True)
class FieldSpec:
    """One input of a section. `key` is the merge-data key the renderer reads."""

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise ValueError("field key must be a non-empty string")
        # accept plain strings / lists from callers, store canonical types
        object.__setattr__(self, "type", FieldType(self.type))
        object.__setattr__(self, "options", tuple(self.options or ()))


def duplicate_keys(keys: Iterable[str]) -> List[str]:
    seen, dups = set(), []
    for key in keys:
        if key in seen and key not in dups:
            dups.append(key)
        seen.add(key)
    return dups
