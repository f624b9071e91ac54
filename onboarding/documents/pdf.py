from __future__ import annotations

from typing import Any, Mapping, Optional

from weasyprint import HTML
from weasyprint.text.fonts import FontConfiguration

from onboarding.core.errors import RenderError
from onboarding.core.logging_config import logger
from onboarding.documents.renderer import HtmlDocumentRenderer
from onboarding.documents.template_model import Template


class PdfDocumentRenderer:
    """
    HTML from HtmlDocumentRenderer, printed by weasyprint. Page size, margins
    and the page-number footer come from the template's own stylesheet.
    """

    def __init__(self, html_renderer: Optional[HtmlDocumentRenderer] = None, base_url: Optional[str] = None):
        self.html_renderer = html_renderer or HtmlDocumentRenderer()
        # logo refs are resolved relative to this
        self.base_url = base_url

    def render(self, template: Template, merge_data: Mapping[str, Any]) -> bytes:
        html_content = self.html_renderer.render_html(template, merge_data)
        font_config = FontConfiguration()
        try:
            return HTML(string=html_content, base_url=self.base_url).write_pdf(font_config=font_config)
        except Exception as e:
            logger.bind(template_id=template.template_id, error=str(e)).error("pdf_render_failed")
            raise RenderError(
                f"PDF generation failed: {e}", {"templateId": template.template_id}
            ) from e
