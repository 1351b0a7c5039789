"""
Template Composer Kernel — Rendering Pipeline

One shared model, three outputs:
  render_canvas   — absolute layout (position/size/z-index), tokens highlighted
  render_preview  — reading order (`order`), tokens substituted, read-only items
  export_pdf      — resolved model handed to a PDF exporter in a worker thread

The canvas and preview paths render items through the same renderer, so
the author sees the same data interpretation that gets exported.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol

from composer.kernel.document import ordered_items, ordered_pages, ordered_sections, page_at
from composer.kernel.renderer import CANVAS, PREVIEW_MODE, escape, highlight_tokens, render_item
from composer.kernel.types import ExportResult, Section, Selection, Template, page_dimensions
from composer.kernel.variables import VariableResolver

if TYPE_CHECKING:
    from composer.kernel.session import EditSession

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """The PDF exporter failed."""

    def __init__(self, template_title: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"PDF export failed for {template_title!r}: {cause}")


class PdfRenderer(Protocol):
    def generate_pdf(self, template: Template) -> bytes: ...


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

BASE_CSS = """
*, *::before, *::after { box-sizing: border-box; }
body { font-family: "IBM Plex Sans", sans-serif; color: #1a1a1a; margin: 0; }
.canvas-page { position: relative; margin: 24px auto; overflow: hidden; }
.canvas-section { position: absolute; overflow: hidden; }
.canvas-section.is-selected { outline: 2px solid #2563eb; }
.canvas-section.is-locked { cursor: not-allowed; }
.preview-document { max-width: 794px; margin: 0 auto; padding: 32px 24px; }
.preview-page { margin-bottom: 48px; }
.preview-section { margin-bottom: 24px; }
.item { margin-bottom: 16px; }
.item.is-selected { outline: 1px dashed #2563eb; }
.item-required { color: #dc2626; margin-left: 4px; }
.rating-step { width: 32px; height: 32px; border-radius: 50%; border: 2px solid #d1d5db; }
.rating-step.is-filled { background: #2563eb; border-color: #2563eb; color: #fff; }
.item-file-placeholder, .item-image-placeholder {
  border: 2px dashed #d1d5db; padding: 24px; text-align: center; color: #6b7280;
}
.item-instruction { background: #eff6ff; border: 1px solid #bfdbfe; padding: 12px; }
.variable-highlight { background: #dbeafe; color: #1e40af; padding: 0 2px; border-radius: 2px; }
"""


# ---------------------------------------------------------------------------
# Canvas
# ---------------------------------------------------------------------------


def render_canvas(
    template: Template,
    selection: Selection | None = None,
    page_index: int = 0,
) -> str:
    """
    The authoring surface for one page.
    Sections are absolutely positioned and stacked by z-index; tokens stay verbatim.
    """
    page = page_at(template, page_index)
    if page is None:
        return ""

    resolver = VariableResolver.authoring()
    width, height = page_dimensions(template.settings)
    background = template.settings.get("background_color", "#ffffff")

    parts: list[str] = [
        f'<div class="canvas-page" data-page-id="{escape(page.id)}" '
        f'style="width: {width}px; height: {height}px; background: {escape(background)};">'
    ]
    if page.content:
        parts.append(f'<div class="canvas-page-content">{highlight_tokens(page.content)}</div>')

    sections = ordered_sections(template, page)
    for section_index, section in sorted(enumerate(sections), key=lambda s: (s[1].z_index, s[0])):
        selected_item = None
        section_selected = False
        if selection is not None and selection.page_index == page_index and selection.section_index == section_index:
            section_selected = selection.is_section
            selected_item = None if selection.is_section else selection.item_index
        parts.append(
            _render_canvas_section(template, section, resolver, section_selected, selected_item)
        )

    parts.append("</div>")
    return "\n".join(parts)


def _render_canvas_section(
    template: Template,
    section: Section,
    resolver: VariableResolver,
    selected: bool,
    selected_item: int | None,
) -> str:
    classes = ["canvas-section"]
    if selected:
        classes.append("is-selected")
    if section.locked:
        classes.append("is-locked")

    layout = (
        f"left: {section.position.x}px; top: {section.position.y}px; "
        f"width: {section.size.width}px; height: {section.size.height}px; "
        f"z-index: {section.z_index};"
    )
    parts = [
        f'<section class="{" ".join(classes)}" data-section-id="{escape(section.id)}" '
        f'style="{layout} {_section_style(section.style)}">'
    ]
    parts.append(f'<h3 class="section-title">{escape(section.title)}</h3>')
    if section.description:
        parts.append(f'<p class="section-description">{escape(section.description)}</p>')
    if section.template_content:
        parts.append(f'<div class="section-content">{highlight_tokens(section.template_content)}</div>')
    for item_index, item in enumerate(ordered_items(template, section)):
        parts.append(
            render_item(item, CANVAS, resolver, index=item_index, selected=item_index == selected_item)
        )
    parts.append("</section>")
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


def render_preview(
    template: Template,
    values: dict[str, Any] | None = None,
    *,
    today: date | None = None,
    standalone: bool = True,
) -> str:
    """
    Read-only rendering in reading order with tokens substituted.
    `values` switches from sample data to live data (samples fill the gaps).
    """
    resolver = _resolver(template, values, today)

    title = resolver.apply(template.title)
    parts: list[str] = ['<article class="preview-document">']
    parts.append(f"<h1>{escape(title)}</h1>")
    if template.description:
        parts.append(f'<p class="preview-description">{escape(resolver.apply(template.description))}</p>')

    pages = ordered_pages(template)
    for page in pages:
        parts.append(f'<div class="preview-page" data-page-id="{escape(page.id)}">')
        if len(pages) > 1:
            parts.append(f"<h2>{escape(page.title)}</h2>")
        if page.content:
            parts.append(f'<div class="preview-page-content">{resolver.apply_html(page.content)}</div>')
        for section in ordered_sections(template, page):
            parts.append(_render_preview_section(template, section, resolver, today))
        parts.append("</div>")
    parts.append("</article>")

    body = "\n".join(parts)
    if not standalone:
        return body
    return _document_shell(escape(title), body)


def _render_preview_section(
    template: Template,
    section: Section,
    resolver: VariableResolver,
    today: date | None,
) -> str:
    parts = [
        f'<section class="preview-section" data-section-id="{escape(section.id)}" '
        f'style="{_section_style(section.style)}">'
    ]
    parts.append(f"<h3>{escape(section.title)}</h3>")
    if section.description:
        parts.append(f'<p class="section-description">{escape(section.description)}</p>')
    if section.template_content:
        parts.append(f'<div class="section-content">{resolver.apply_html(section.template_content)}</div>')
    for item_index, item in enumerate(ordered_items(template, section)):
        parts.append(render_item(item, PREVIEW_MODE, resolver, index=item_index, today=today))
    parts.append("</section>")
    return "\n".join(parts)


def _document_shell(title: str, body: str) -> str:
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="utf-8">',
            '  <meta name="viewport" content="width=device-width, initial-scale=1">',
            f"  <title>{title}</title>",
            "  <style>",
            BASE_CSS,
            "  </style>",
            "</head>",
            "<body>",
            body,
            "</body>",
            "</html>",
        ]
    )


def _section_style(style: dict[str, Any]) -> str:
    """Presentation-only style tokens → inline CSS."""
    declarations = []
    if style.get("background_color"):
        declarations.append(f"background-color: {style['background_color']};")
    if style.get("border_width") is not None and style.get("border_color"):
        declarations.append(
            f"border: {style['border_width']}px {style.get('border_style', 'solid')} {style['border_color']};"
        )
    if style.get("border_radius") is not None:
        declarations.append(f"border-radius: {style['border_radius']}px;")
    if style.get("padding") is not None:
        declarations.append(f"padding: {style['padding']}px;")
    if style.get("shadow"):
        declarations.append(f"box-shadow: {style['shadow']};")
    return escape(" ".join(declarations))


# ---------------------------------------------------------------------------
# Resolution + export
# ---------------------------------------------------------------------------


def _resolver(template: Template, values: dict[str, Any] | None, today: date | None) -> VariableResolver:
    if values:
        return VariableResolver.live(template, values, today)
    return VariableResolver.preview(template, today)


def resolve_template(
    template: Template,
    values: dict[str, Any] | None = None,
    *,
    today: date | None = None,
) -> Template:
    """
    A copy of the model with title, description, page content, section
    template content, rich text and instruction labels substituted.
    Values landing in markup are HTML-escaped. Ids and layout are untouched.
    """
    resolver = _resolver(template, values, today)

    pages = {
        pid: replace(page, content=resolver.apply_html(page.content))
        for pid, page in template.pages.items()
    }
    sections = {
        sid: replace(section, template_content=resolver.apply_html(section.template_content))
        if section.template_content is not None
        else section
        for sid, section in template.sections.items()
    }
    items = {}
    for iid, item in template.items.items():
        if item.type == "rich_text":
            items[iid] = replace(item, rich_content=resolver.apply_html(item.rich_content or item.label))
        elif item.type == "instruction":
            items[iid] = replace(item, label=resolver.apply(item.label))
        else:
            items[iid] = item

    return replace(
        template,
        title=resolver.apply(template.title),
        description=resolver.apply(template.description),
        pages=pages,
        sections=sections,
        items=items,
    )


_FILENAME_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def pdf_filename(template: Template, today: date | None = None) -> str:
    stem = _FILENAME_RE.sub("_", template.title).lower() or "template"
    return f"{stem}_{(today or date.today()).isoformat()}.pdf"


async def export_pdf(
    session: EditSession,
    exporter: PdfRenderer | None = None,
    values: dict[str, Any] | None = None,
    *,
    today: date | None = None,
) -> ExportResult:
    """
    Export the session's current model.
    The result is stamped with the revision it was issued against;
    `stale` is set when the session was edited during the export.
    """
    if exporter is None:
        from composer.kernel.pdf import PdfExporter

        exporter = PdfExporter(today=today)

    issued = session.revision
    template = session.template
    resolved = resolve_template(template, values, today=today)

    try:
        data = await asyncio.to_thread(exporter.generate_pdf, resolved)
    except Exception as e:
        logger.warning("pipeline: PDF export failed for template_id=%s: %s", template.id, e)
        raise ExportError(template.title, e) from e

    stale = session.revision != issued
    if stale:
        logger.info("pipeline: export of revision %d superseded by %d", issued, session.revision)

    return ExportResult(
        data=data,
        filename=pdf_filename(template, today),
        revision=issued,
        stale=stale,
    )


class RenderPipeline:
    """
    Keeps the canvas rendering in step with an editing session.
    Preview and PDF are produced on demand from the same model.
    """

    def __init__(self, session: EditSession, exporter: PdfRenderer | None = None):
        self._session = session
        self._exporter = exporter
        self.canvas_html = ""
        self._refresh(session)
        self._unsubscribe = session.subscribe(self._refresh)

    def _refresh(self, session: EditSession) -> None:
        self.canvas_html = render_canvas(
            session.template,
            session.selection,
            session.current_page_index,
        )

    def preview(self, values: dict[str, Any] | None = None, *, today: date | None = None) -> str:
        return render_preview(self._session.template, values, today=today)

    async def export_pdf(self, values: dict[str, Any] | None = None, *, today: date | None = None) -> ExportResult:
        return await export_pdf(self._session, self._exporter, values, today=today)

    def close(self) -> None:
        self._unsubscribe()
