"""
Template Composer Kernel — PDF Exporter

Default `generate_pdf` collaborator, built on reportlab's canvas.

Each template page becomes one PDF page. Sections keep their canvas
geometry (scaled from 96 dpi canvas units to points) and are painted in
z-index order; items are written with the renderer's text channel.
Text that does not fit a section is cut with an ellipsis line.

Expects an already-resolved model (pipeline.resolve_template), so content
is never substituted a second time here.
"""

from __future__ import annotations

import io
import logging
from datetime import date

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LEGAL, LETTER, landscape
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from composer.config import settings
from composer.kernel.document import ordered_items, ordered_pages, ordered_sections
from composer.kernel.renderer import TEXT, render_item, strip_html
from composer.kernel.types import Page, Section, Template, page_dimensions
from composer.kernel.variables import VariableResolver, format_date

logger = logging.getLogger(__name__)

PAGE_SIZES = {"A4": A4, "Letter": LETTER, "Legal": LEGAL}

TITLE_SIZE = 16
HEADING_SIZE = 12
BODY_SIZE = 10
FOOTER_SIZE = 8
LINE_GAP = 1.35


def _hex(value: str | None, default: colors.Color = colors.black) -> colors.Color:
    if not value:
        return default
    try:
        return colors.HexColor("#" + str(value).lstrip("#"))
    except Exception:
        return default


def _number(value: object, default: float) -> float:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    return default


def pdf_pagesize(template_settings: dict) -> tuple[float, float]:
    size = PAGE_SIZES.get(template_settings.get("page_size", "A4"), A4)
    if template_settings.get("orientation") == "landscape":
        return landscape(size)
    return size


class PdfExporter:
    def __init__(
        self,
        font: str | None = None,
        bold_font: str | None = None,
        today: date | None = None,
    ):
        self.font = font or settings.PDF_FONT
        self.bold_font = bold_font or settings.PDF_BOLD_FONT
        self.today = today

    def generate_pdf(self, template: Template) -> bytes:
        buffer = io.BytesIO()
        pagesize = pdf_pagesize(template.settings)
        canv = canvas.Canvas(buffer, pagesize=pagesize)
        canv.setTitle(template.title)
        canv.setSubject(template.description or template.type)

        pages = ordered_pages(template)
        for number, page in enumerate(pages, start=1):
            self._draw_page(canv, template, page, pagesize, first=number == 1)
            self._draw_footer(canv, template, pagesize, number, len(pages))
            canv.showPage()
        canv.save()

        data = buffer.getvalue()
        logger.debug("pdf: rendered %d page(s), %d bytes for %r", len(pages), len(data), template.title)
        return data

    # -- Page ----------------------------------------------------------------

    def _draw_page(
        self,
        canv: canvas.Canvas,
        template: Template,
        page: Page,
        pagesize: tuple[float, float],
        first: bool,
    ) -> None:
        page_w, page_h = pagesize
        canvas_w, _ = page_dimensions(template.settings)
        scale = page_w / canvas_w
        margins = template.settings.get("margins")
        if not isinstance(margins, dict):
            margins = {}
        left = _number(margins.get("left"), 40) * scale
        right = page_w - _number(margins.get("right"), 40) * scale
        top = page_h - _number(margins.get("top"), 40) * scale

        background = template.settings.get("background_color")
        if isinstance(background, str) and background.lower() not in ("#fff", "#ffffff"):
            canv.setFillColor(_hex(background, colors.white))
            canv.rect(0, 0, page_w, page_h, stroke=0, fill=1)

        y = top
        if first:
            canv.setFillColor(colors.black)
            canv.setFont(self.bold_font, TITLE_SIZE)
            canv.drawString(left, y - TITLE_SIZE, template.title)
            y -= TITLE_SIZE * 2
        if page.content:
            y = self._draw_lines(canv, strip_html(page.content), left, y, right - left, 0, BODY_SIZE)

        sections = ordered_sections(template, page)
        for section in sorted(sections, key=lambda s: s.z_index):
            self._draw_section(canv, template, section, scale, page_h)

    def _draw_section(
        self,
        canv: canvas.Canvas,
        template: Template,
        section: Section,
        scale: float,
        page_h: float,
    ) -> None:
        style = section.style or {}
        x = section.position.x * scale
        w = section.size.width * scale
        h = section.size.height * scale
        y_top = page_h - section.position.y * scale
        padding = _number(style.get("padding", 16), 0) * scale

        canv.saveState()
        canv.setFillColor(_hex(style.get("background_color"), colors.white))
        canv.setStrokeColor(_hex(style.get("border_color"), colors.lightgrey))
        canv.setLineWidth(_number(style.get("border_width", 1), 0))
        radius = _number(style.get("border_radius", 0), 0) * scale
        stroke = 1 if style.get("border_width") else 0
        canv.roundRect(x, y_top - h, w, h, radius, stroke=stroke, fill=1)
        canv.restoreState()

        inner_x = x + padding
        inner_w = max(w - 2 * padding, 10.0)
        floor = y_top - h + padding

        canv.setFillColor(colors.black)
        canv.setFont(self.bold_font, HEADING_SIZE)
        y = y_top - padding - HEADING_SIZE
        canv.drawString(inner_x, y, section.title)
        y -= HEADING_SIZE * 0.6

        resolver = VariableResolver.authoring()
        blocks = []
        if section.description:
            blocks.append(section.description)
        if section.template_content:
            blocks.append(strip_html(section.template_content))
        for index, item in enumerate(ordered_items(template, section)):
            blocks.append(render_item(item, TEXT, resolver, index=index, today=self.today))

        for block in blocks:
            y = self._draw_lines(canv, block, inner_x, y, inner_w, floor, BODY_SIZE)
            if y is None:
                break
            y -= BODY_SIZE * 0.5

    def _draw_lines(
        self,
        canv: canvas.Canvas,
        text: str,
        x: float,
        y: float,
        width: float,
        floor: float,
        size: float,
    ) -> float | None:
        """Wrap and draw text downwards from y. Returns the next baseline, or None when cut."""
        canv.setFont(self.font, size)
        leading = size * LINE_GAP
        for paragraph in text.split("\n"):
            for line in simpleSplit(paragraph, self.font, size, width) or [""]:
                if y - leading < floor:
                    canv.drawString(x, y - size, "...")
                    return None
                y -= leading
                canv.drawString(x, y, line)
        return y

    # -- Footer --------------------------------------------------------------

    def _draw_footer(
        self,
        canv: canvas.Canvas,
        template: Template,
        pagesize: tuple[float, float],
        number: int,
        total: int,
    ) -> None:
        page_w, _ = pagesize
        generated = format_date(self.today or date.today())
        canv.setFont(self.font, FOOTER_SIZE)
        canv.setFillColor(colors.grey)
        canv.drawString(24, 18, template.title)
        canv.drawRightString(page_w - 24, 18, f"Generated on {generated} - Page {number} of {total}")
