from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from onboarding.core.errors import StructuralError
from onboarding.documents import grid as g
from onboarding.documents.fields import FieldSpec, duplicate_keys


class SectionKind(str, Enum):
    FORM = "form"
    DYNAMIC_FORM = "dynamic_form"
    TABLE_LAYOUT = "table_layout"
    DYNAMIC_TABLE = "dynamic_table"
    CHECKBOX_MATRIX = "checkbox_matrix"
    SIGNATURE_AREA = "signature_area"


class DuplicateFieldKey(StructuralError):
    code = "DUPLICATE_FIELD_KEY"

    def __init__(self, section_id: str, keys: List[str]):
        self.section_id = section_id
        self.keys = list(keys)
        super().__init__(
            f"Field keys used more than once in section {section_id}: {self.keys}",
            {"sectionId": section_id, "keys": self.keys},
        )


class InactivePayload(StructuralError):
    code = "SECTION_INACTIVE_PAYLOAD"


@dataclass(frozen=True)
class Section:
    """
    One titled block of a template.
    TABLE_LAYOUT sections carry `table` (and no fields); every other kind
    carries `fields` (and no table).
    """

    id: str
    title: str
    kind: SectionKind = SectionKind.FORM
    fields: Tuple[FieldSpec, ...] = ()
    table: Optional[g.Grid] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", SectionKind(self.kind))
        object.__setattr__(self, "fields", tuple(self.fields or ()))

        if self.kind == SectionKind.TABLE_LAYOUT:
            if self.table is None:
                raise InactivePayload(f"Section {self.id} is a table layout without a table")
            if self.fields:
                raise InactivePayload(f"Section {self.id} is a table layout but has fields")
            g.check(self.table)
        elif self.table is not None:
            raise InactivePayload(f"Section {self.id} ({self.kind.value}) may not carry a table")

        dups = duplicate_keys(self.field_keys)
        if dups:
            raise DuplicateFieldKey(self.id, dups)

    @property
    def is_table(self) -> bool:
        return self.kind == SectionKind.TABLE_LAYOUT

    @property
    def field_keys(self) -> List[str]:
        if self.table is not None:
            return g.field_keys(self.table)
        return [f.key for f in self.fields]

    @property
    def active_fields(self) -> List[FieldSpec]:
        """Fields in document order, table cells row-major."""
        if self.table is not None:
            return [c.field for c in self.table.cells if c.field is not None]
        return list(self.fields)
