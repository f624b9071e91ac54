from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from onboarding.core.errors import MISSING_REQUIRED_FIELD, ValidationIssue
from onboarding.core.logging_config import logger
from onboarding.documents import grid as g
from onboarding.documents.fields import FieldSpec, FieldType
from onboarding.documents.sections import Section, SectionKind
from onboarding.documents.template_model import Template

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_PLACEHOLDER = re.compile(r"\{(page|totalPages)\}")
_CSS_UNSAFE = re.compile(r"[<>{};]")

DYNAMIC_KINDS = (SectionKind.DYNAMIC_FORM, SectionKind.DYNAMIC_TABLE)


# -----------------------------
# Merge data
# -----------------------------


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Áno" if value else "Nie"
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _records(section: Section, merge_data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    # repeating sections read a list of records stored under the section id
    value = merge_data.get(section.id) or []
    return [r for r in value if isinstance(r, Mapping)]


def _required_fields(section: Section) -> List[FieldSpec]:
    # signatures are collected on paper
    return [f for f in section.active_fields if f.required and f.type != FieldType.SIGNATURE]


def missing_required_fields(template: Template, merge_data: Mapping[str, Any]) -> List[ValidationIssue]:
    """
    Required fields without a value in merge_data.

    Flat sections (and table field cells) look their key up directly;
    dynamic sections check every record under merge_data[section.id] and
    need at least one record.
    """
    issues: List[ValidationIssue] = []
    for section in template.sections:
        required = _required_fields(section)
        if not required:
            continue

        if section.kind in DYNAMIC_KINDS:
            records = _records(section, merge_data) or [{}]
            for idx, record in enumerate(records):
                for f in required:
                    if _is_blank(record.get(f.key)):
                        issues.append(
                            ValidationIssue(
                                MISSING_REQUIRED_FIELD,
                                f"{section.title}: {f.label} is required.",
                                {"sectionId": section.id, "fieldKey": f.key, "record": idx},
                            )
                        )
            continue

        for f in required:
            if _is_blank(merge_data.get(f.key)):
                issues.append(
                    ValidationIssue(
                        MISSING_REQUIRED_FIELD,
                        f"{section.title}: {f.label} is required.",
                        {"sectionId": section.id, "fieldKey": f.key},
                    )
                )
    return issues


# -----------------------------
# Styles
# -----------------------------


def _css_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("<", "\\3C ")
    return f'"{escaped}"'


def page_counter_content(page_number_format: str) -> str:
    """
    'Strana {page}/{totalPages}' -> '"Strana " counter(page) "/" counter(pages)'
    for an @page margin box.
    """
    parts: List[str] = []
    pos = 0
    for m in _PLACEHOLDER.finditer(page_number_format):
        if m.start() > pos:
            parts.append(_css_string(page_number_format[pos : m.start()]))
        parts.append("counter(page)" if m.group(1) == "page" else "counter(pages)")
        pos = m.end()
    if pos < len(page_number_format):
        parts.append(_css_string(page_number_format[pos:]))
    return " ".join(parts) or '""'


def _css_value(value: str) -> str:
    return _CSS_UNSAFE.sub("", str(value)).strip()


def stylesheet(template: Template) -> str:
    st = template.styling
    primary = _css_value(st.primary_color)
    return f"""
@page {{
  size: {_css_value(st.page_format)};
  margin: {_css_value(st.margin)};
  @bottom-left {{ content: {_css_string(template.footer.branding_text)}; }}
  @bottom-right {{ content: {page_counter_content(template.footer.page_number_format)}; }}
}}
body {{ font-family: {_css_value(st.font_family)}; font-size: {_css_value(st.font_size)}; }}
.doc-header {{ background-color: {_css_value(template.header.background_color)}; color: #fff; padding: 8px; }}
.doc-header .logo {{ max-height: 40px; }}
.section {{ page-break-inside: avoid; margin-bottom: 12px; }}
.section-title {{ color: {primary}; border-bottom: 1px solid {primary}; font-size: 1.1em; }}
table {{ width: 100%; border-collapse: collapse; }}
td, th {{ border: 1px solid #999; padding: 4px; vertical-align: top; }}
dl.form dt {{ font-weight: bold; }}
.signature-line {{ border-bottom: 1px solid #000; min-height: 32px; }}
.doc-footer {{ display: none; }}
"""


# -----------------------------
# Renderer
# -----------------------------


class HtmlDocumentRenderer:
    """Template + merge data -> HTML bytes (utf-8)."""

    def __init__(self, templates_dir: Optional[str] = None, page_template: str = "contract.html"):
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.page_template = page_template
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _field_view(self, f: FieldSpec, merge_data: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "key": f.key,
            "label": f.label,
            "required": f.required,
            "value": _display(merge_data.get(f.key)),
        }

    def _cell_view(self, cell: g.GridCell, merge_data: Mapping[str, Any]) -> Dict[str, Any]:
        view: Dict[str, Any] = {
            "id": cell.id,
            "kind": cell.kind.value,
            "colspan": cell.colspan,
            "rowspan": cell.rowspan,
            "label": cell.label or "",
        }
        if cell.field is not None:
            view["field_label"] = cell.field.label
            view["value"] = _display(merge_data.get(cell.field.key))
        return view

    def _section_view(self, section: Section, merge_data: Mapping[str, Any]) -> Dict[str, Any]:
        view: Dict[str, Any] = {"id": section.id, "title": section.title, "kind": section.kind.value}

        if section.kind == SectionKind.TABLE_LAYOUT and section.table is not None:
            view["rows"] = [
                [self._cell_view(c, merge_data) for c in row] for row in g.rows_of(section.table)
            ]
        elif section.kind in DYNAMIC_KINDS:
            view["fields"] = [{"key": f.key, "label": f.label} for f in section.fields]
            view["records"] = [
                [_display(r.get(f.key)) for f in section.fields] for r in _records(section, merge_data)
            ]
        elif section.kind == SectionKind.CHECKBOX_MATRIX:
            view["fields"] = [
                {"key": f.key, "label": f.label, "value": bool(merge_data.get(f.key))}
                for f in section.fields
            ]
        else:
            view["fields"] = [self._field_view(f, merge_data) for f in section.fields]
        return view

    def context(self, template: Template, merge_data: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "template": template,
            "sections": [self._section_view(s, merge_data) for s in template.sections],
            "stylesheet": Markup(stylesheet(template)),
        }

    def render_html(self, template: Template, merge_data: Mapping[str, Any]) -> str:
        html = self.jinja_env.get_template(self.page_template).render(**self.context(template, merge_data))
        logger.bind(
            template_id=template.template_id,
            document_type=template.document_type.value,
            sections=len(template.sections),
        ).info("document_rendered")
        return html

    def render(self, template: Template, merge_data: Mapping[str, Any]) -> bytes:
        return self.render_html(template, merge_data).encode("utf-8")