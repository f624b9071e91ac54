from __future__ import annotations

import pytest

from onboarding.core.errors import MISSING_REQUIRED_FIELD
from onboarding.documents import grid as g
from onboarding.documents import template_model as tm
from onboarding.documents.fields import FieldSpec
from onboarding.documents.renderer import HtmlDocumentRenderer, missing_required_fields, page_counter_content
from onboarding.documents.sections import Section, SectionKind


@pytest.fixture
def contract_template():
    table = g.create_empty_grid(2, 2)
    table = g.merge_cells(table, ["cell_0_0", "cell_0_1"])
    table = g.set_cell_content(table, "cell_0_0", "label", "Bank details")
    table = g.set_cell_content(table, "cell_1_0", "field", FieldSpec(key="iban", label="IBAN", required=True))

    t, _ = tm.apply_default_sections(tm.Template(name="G1 contract"), tm.DocumentType.G1)
    t = tm.add_section(t, Section(id="bank", title="3. BANKA", kind=SectionKind.TABLE_LAYOUT, table=table))
    t = tm.add_section(
        t,
        Section(
            id="owners",
            title="4. OSOBY",
            kind=SectionKind.DYNAMIC_FORM,
            fields=(FieldSpec(key="first_name", label="Meno", required=True),),
        ),
    )
    t = tm.add_section(
        t,
        Section(
            id="sign",
            title="Podpis",
            kind=SectionKind.SIGNATURE_AREA,
            fields=(FieldSpec(key="merchant_signature", label="Obchodník", type="signature", required=True),),
        ),
    )
    return tm.update_header(t, title="Žiadosť <o> prijímanie kariet")


@pytest.fixture
def merge_data():
    return {
        "company_name": "Príklad s.r.o.",
        "ico": "12345678",
        "address_street": "Príkladová 123",
        "address_city": "Bratislava",
        "address_zip": "81101",
        "iban": "SK31 1200 0000 1987 4263 7541",
        "owners": [{"first_name": "Ján"}],
    }


def test_page_counter_content():
    assert page_counter_content("Strana {page}/{totalPages}") == '"Strana " counter(page) "/" counter(pages)'
    assert page_counter_content("{page}") == "counter(page)"
    assert page_counter_content("") == '""'


def test_render_html_contains_sections_and_spans(contract_template, merge_data):
    html = HtmlDocumentRenderer().render(contract_template, merge_data).decode("utf-8")

    assert "1. ÚDAJE O SPOLEČNOSTI" in html
    assert "Príklad s.r.o." in html
    assert 'colspan="2"' in html
    assert "Bank details" in html
    assert "SK31 1200 0000 1987 4263 7541" in html
    assert "Ján" in html
    assert "counter(pages)" in html
    assert "size: A4" in html
    # header text is escaped
    assert "&lt;o&gt;" in html


def test_rendered_sections_follow_template_order(contract_template, merge_data):
    t = tm.reorder_sections(contract_template, 2, 0)

    html = HtmlDocumentRenderer().render_html(t, merge_data)

    assert html.index("3. BANKA") < html.index("1. ÚDAJE O SPOLEČNOSTI")


def test_missing_required_fields(contract_template, merge_data):
    assert missing_required_fields(contract_template, merge_data) == []

    data = dict(merge_data, ico="  ", owners=[])
    issues = missing_required_fields(contract_template, data)

    assert {i.code for i in issues} == {MISSING_REQUIRED_FIELD}
    assert {i.meta["fieldKey"] for i in issues} == {"ico", "first_name"}


def test_pdf_render(contract_template, merge_data):
    # weasyprint needs pango/cairo from the OS
    try:
        from onboarding.documents.pdf import PdfDocumentRenderer
    except (ImportError, OSError) as e:
        pytest.skip(f"weasyprint unavailable: {e}")

    pdf = PdfDocumentRenderer().render(contract_template, merge_data)

    assert pdf.startswith(b"%PDF")
