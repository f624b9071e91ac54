from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from jsonschema import validate

from onboarding.core.settings import settings
from onboarding.documents import grid as g
from onboarding.documents.fields import FieldSpec
from onboarding.documents.sections import Section, SectionKind

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_SECTIONS_FILE = DATA_DIR / "default_sections.yaml"
SCHEMA_FILE = DATA_DIR / "default_sections.schema.json"


def _field_from_dict(d: Dict[str, Any]) -> FieldSpec:
    return FieldSpec(
        key=str(d["key"]),
        label=str(d.get("label") or d["key"]),
        type=d.get("type", "text"),
        required=bool(d.get("required", False)),
        options=tuple(d.get("options") or ()),
    )


def _section_from_dict(d: Dict[str, Any]) -> Section:
    kind = SectionKind(d["kind"])
    if kind == SectionKind.TABLE_LAYOUT:
        table = d.get("table") or {}
        return Section(
            id=str(d["id"]),
            title=str(d["title"]),
            kind=kind,
            table=g.create_empty_grid(
                int(table.get("rows", settings.DEFAULT_TABLE_ROWS)),
                int(table.get("cols", settings.DEFAULT_TABLE_COLS)),
            ),
        )
    return Section(
        id=str(d["id"]),
        title=str(d["title"]),
        kind=kind,
        fields=tuple(_field_from_dict(f) for f in d.get("fields") or []),
    )


@lru_cache(maxsize=8)
def load_default_sections(path: Optional[str] = None) -> Dict[str, Tuple[Section, ...]]:
    """
    Load the per-document-type default section sets.
    The YAML is validated against the bundled JSON schema before use.
    """
    sections_path = Path(path or settings.DEFAULT_SECTIONS_PATH or DEFAULT_SECTIONS_FILE)

    with sections_path.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f)

    with SCHEMA_FILE.open("r", encoding="utf-8") as f:
        schema = json.load(f)

    validate(instance=d, schema=schema)

    return {
        str(doc_type): tuple(_section_from_dict(s) for s in sections)
        for doc_type, sections in d["documentTypes"].items()
    }


def default_sections_for(document_type: str, path: Optional[str] = None) -> Tuple[Section, ...]:
    # unknown types get no defaults rather than an error
    return load_default_sections(path).get(str(document_type), ())
