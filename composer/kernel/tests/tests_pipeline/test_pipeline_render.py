"""
Template Composer Pipeline — Canvas, Preview and Resolution

The canvas is an absolute layout with tokens kept; the preview is a flow
layout in reading order with tokens substituted. Both come from the same
model.
"""

import re
from datetime import date

from composer.kernel.document import ordered_sections, page_at, section_at
from composer.kernel.pipeline import RenderPipeline, pdf_filename, render_canvas, render_preview, resolve_template
from composer.kernel.renderer import count_rating_steps
from composer.kernel.session import EditSession
from composer.kernel.types import Selection
from composer.kernel.variables import TOKEN_PATTERN, builtin_samples

TODAY = date(2026, 3, 14)


class TestCanvas:
    def test_absolute_layout(self, contract):
        html = render_canvas(contract)
        first = section_at(contract, 0, 0)
        assert f'data-section-id="{first.id}"' in html
        assert "left: 50px; top: 50px; width: 700px; height: 400px; z-index: 1;" in html

    def test_letter_page_dimensions(self, contract):
        assert "width: 816px; height: 1056px;" in render_canvas(contract)

    def test_tokens_kept_and_highlighted(self, contract):
        html = render_canvas(contract)
        assert '<span class="variable-highlight">{client_name}</span>' in html
        assert "John Doe" not in html

    def test_sections_stacked_by_z_index(self, session):
        low = session.add_section().target_id
        high = session.add_section().target_id
        session.bring_section_to_front(low)
        html = render_canvas(session.template)
        assert html.index(f'data-section-id="{high}"') < html.index(f'data-section-id="{low}"')

    def test_selected_section_marked(self, session):
        sid = session.add_section().target_id
        html = render_canvas(session.template, Selection(0, 0, -1))
        assert f'class="canvas-section is-selected" data-section-id="{sid}"' in html

    def test_selected_item_marked(self, every_type_session):
        s = every_type_session
        s.select_item(0, 0, 3)
        html = render_canvas(s.template, s.selection)
        rating = section_at(s.template, 0, 0).item_ids[3]
        assert f'is-selected" data-item-id="{rating}"' in html
        assert "canvas-section is-selected" not in html

    def test_locked_section_marked(self, session):
        sid = session.add_section().target_id
        session.update_section(sid, {"locked": True})
        assert "is-locked" in render_canvas(session.template)

    def test_missing_page_renders_nothing(self, session):
        assert render_canvas(session.template, page_index=4) == ""


class TestPreview:
    def test_full_document(self, contract):
        html = render_preview(contract, today=TODAY)
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Professional Service Agreement</title>" in html

    def test_tokens_substituted(self, contract):
        html = render_preview(contract, today=TODAY)
        assert "John Doe" in html
        assert "ABC Corporation" in html
        assert "$10,000" in html
        known = set(builtin_samples(TODAY)) | {v.name for v in contract.variables}
        assert not [t for t in TOKEN_PATTERN.findall(html) if t in known]

    def test_live_values(self, contract):
        html = render_preview(contract, {"client_name": "Acme Ltd"}, today=TODAY)
        assert "Acme Ltd" in html
        assert "John Doe" not in html

    def test_reading_order_not_canvas_order(self, contract):
        s = EditSession(contract)
        terms, client, signatures = (sec.id for sec in ordered_sections(contract, page_at(contract, 0)))
        s.move_section(signatures, 50, 10)
        s.reorder_section(terms, 2)
        html = render_preview(s.template, standalone=False)
        positions = [html.index(f'data-section-id="{sid}"') for sid in (client, signatures, terms)]
        assert positions == sorted(positions)

    def test_page_content_then_sections(self):
        from composer.kernel.starters import audit_checklist_template

        t = audit_checklist_template()
        html = render_preview(t, today=TODAY, standalone=False)
        assert "Conducted on: 3/14/2026" in html
        assert "Inspector: Jane Smith" in html
        assert html.index("Site Inspection Audit") < html.index("General Site Conditions")
        assert count_rating_steps(html) == 5

    def test_preview_is_read_only(self, every_type_session):
        html = render_preview(every_type_session.template, standalone=False)
        assert 'type="file"' not in html
        assert re.search(r'<input type="text"[^>]*readonly disabled', html)


class TestResolveTemplate:
    def test_resolved_copy(self, contract):
        resolved = resolve_template(contract, today=TODAY)
        terms = section_at(resolved, 0, 0)
        assert "John Doe" in terms.template_content
        assert "{client_name}" in section_at(contract, 0, 0).template_content

    def test_ids_and_layout_untouched(self, contract):
        resolved = resolve_template(contract, today=TODAY)
        assert resolved.page_ids == contract.page_ids
        for sid, section in contract.sections.items():
            assert resolved.sections[sid].position == section.position
            assert resolved.sections[sid].item_ids == section.item_ids

    def test_rich_text_resolved(self, session):
        r = session.add_item_to_last_section("rich_text")
        session.update_item(0, 0, {"rich_content": "<p>{company_name}</p>"})
        resolved = resolve_template(session.template)
        assert resolved.items[r.target_id].rich_content == "<p>ABC Corporation</p>"

    def test_title_and_description_resolved_like_preview(self, session):
        session.update_template({"title": "Agreement for {client_name}", "description": "Prepared by {company_name}"})
        resolved = resolve_template(session.template, today=TODAY)
        assert resolved.title == "Agreement for John Doe"
        assert resolved.description == "Prepared by ABC Corporation"
        html = render_preview(session.template, today=TODAY)
        assert f"<h1>{resolved.title}</h1>" in html
        assert f"<title>{resolved.title}</title>" in html
        assert "{client_name}" not in html


class TestValueEscaping:
    """Caller values are text: they never become markup in HTML content."""

    HOSTILE = {"client_name": "<script>alert(1)</script>"}

    def test_page_and_section_content(self, session):
        session.update_page({"content": "<p>{client_name}</p>"})
        sid = session.add_section().target_id
        session.update_section(sid, {"template_content": "<div>{client_name}</div>"})
        html = render_preview(session.template, self.HOSTILE, today=TODAY, standalone=False)
        assert "<script>" not in html
        assert "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>" in html
        assert "<div>&lt;script&gt;alert(1)&lt;/script&gt;</div>" in html

    def test_rich_text_item(self, session):
        session.add_item_to_last_section("rich_text")
        session.update_item(0, 0, {"rich_content": "<p>{client_name}</p>"})
        html = render_preview(session.template, self.HOSTILE, today=TODAY, standalone=False)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_resolved_model_escapes_markup_only(self, session):
        session.update_template({"title": "For {client_name}"})
        session.update_page({"content": "<p>{client_name}</p>"})
        resolved = resolve_template(session.template, self.HOSTILE, today=TODAY)
        assert page_at(resolved, 0).content == "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>"
        assert resolved.title == "For <script>alert(1)</script>"


class TestFilename:
    def test_slug(self, contract):
        assert pdf_filename(contract, TODAY) == "professional_service_agreement_2026-03-14.pdf"

    def test_symbols_replaced(self, session):
        session.update_template({"title": "Q3 Audit: Site #4"})
        assert pdf_filename(session.template, TODAY) == "q3_audit__site__4_2026-03-14.pdf"


class TestRenderPipeline:
    def test_canvas_follows_session(self, session):
        pipeline = RenderPipeline(session)
        assert "canvas-section" not in pipeline.canvas_html
        sid = session.add_section().target_id
        assert sid in pipeline.canvas_html
        session.select(sid)
        assert "is-selected" in pipeline.canvas_html

    def test_canvas_follows_current_page(self, session):
        pipeline = RenderPipeline(session)
        session.add_page()
        assert session.template.page_ids[1] in pipeline.canvas_html

    def test_close_detaches(self, session):
        pipeline = RenderPipeline(session)
        pipeline.close()
        session.add_section()
        assert "canvas-section" not in pipeline.canvas_html

    def test_preview(self, contract):
        pipeline = RenderPipeline(EditSession(contract))
        assert "John Doe" in pipeline.preview(today=TODAY)
