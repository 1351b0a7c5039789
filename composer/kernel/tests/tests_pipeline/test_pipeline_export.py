"""
Template Composer Pipeline — PDF Export

export_pdf resolves the model, runs the exporter off the event loop and
stamps the result with the revision it was issued against.
"""

import asyncio
import threading
from datetime import date

import pytest

from composer.kernel.document import template_from_dict
from composer.kernel.pdf import PdfExporter, pdf_pagesize
from composer.kernel.pipeline import ExportError, RenderPipeline, export_pdf, render_preview
from composer.kernel.session import EditSession
from composer.kernel.starters import audit_checklist_template, certification_contract_template

TODAY = date(2026, 3, 14)


class RecordingExporter:
    def __init__(self):
        self.seen = None

    def generate_pdf(self, template):
        self.seen = template
        return b"%PDF-fake"


class BlockingExporter:
    """Holds the worker thread until the test releases it."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def generate_pdf(self, template):
        self.started.set()
        self.release.wait(timeout=5)
        return b"%PDF-late"


class FailingExporter:
    def generate_pdf(self, template):
        raise RuntimeError("font not found")


class TestExportPdf:
    @pytest.mark.asyncio
    async def test_real_exporter_produces_pdf(self, contract):
        session = EditSession(contract)
        result = await export_pdf(session, today=TODAY)
        assert result.data.startswith(b"%PDF")
        assert result.filename == "professional_service_agreement_2026-03-14.pdf"
        assert result.revision == session.revision
        assert not result.stale

    @pytest.mark.asyncio
    async def test_exporter_receives_resolved_model(self, contract):
        exporter = RecordingExporter()
        await export_pdf(EditSession(contract), exporter, {"client_name": "Acme Ltd"}, today=TODAY)
        terms = exporter.seen.sections[exporter.seen.pages[exporter.seen.page_ids[0]].section_ids[0]]
        assert "Acme Ltd" in terms.template_content
        assert "{client_name}" not in terms.template_content

    @pytest.mark.asyncio
    async def test_pdf_title_matches_preview_heading(self, session):
        session.update_template({"title": "Agreement for {client_name}"})
        exporter = RecordingExporter()
        await export_pdf(session, exporter, today=TODAY)
        assert exporter.seen.title == "Agreement for John Doe"
        assert f"<h1>{exporter.seen.title}</h1>" in render_preview(session.template, today=TODAY)

    @pytest.mark.asyncio
    async def test_edit_during_export_marks_stale(self, session):
        exporter = BlockingExporter()
        task = asyncio.create_task(export_pdf(session, exporter, today=TODAY))
        while not exporter.started.is_set():
            await asyncio.sleep(0.01)
        session.add_section()
        exporter.release.set()
        result = await task
        assert result.stale
        assert result.revision == 0

    @pytest.mark.asyncio
    async def test_failure_wrapped(self, session):
        with pytest.raises(ExportError) as exc:
            await export_pdf(session, FailingExporter())
        assert isinstance(exc.value.cause, RuntimeError)
        assert session.template.page_ids

    @pytest.mark.asyncio
    async def test_through_render_pipeline(self, contract):
        exporter = RecordingExporter()
        pipeline = RenderPipeline(EditSession(contract), exporter)
        result = await pipeline.export_pdf(today=TODAY)
        assert result.data == b"%PDF-fake"


class TestPdfExporter:
    """
    The reportlab exporter lays out every page and survives awkward content.
    """

    def test_one_pdf_page_per_template_page(self, session):
        session.add_item_to_last_section("rating")
        session.add_page()
        session.add_page()
        data = PdfExporter(today=TODAY).generate_pdf(session.template)
        assert data.startswith(b"%PDF")
        assert b"/Count 3" in data

    def test_overflowing_section_is_cut(self, session):
        sid = session.add_section().target_id
        session.resize_section(sid, 200, 60)
        for _ in range(20):
            session.add_item_to_last_section("multiple_choice")
        assert PdfExporter(today=TODAY).generate_pdf(session.template).startswith(b"%PDF")

    def test_every_item_type(self, every_type_session):
        assert PdfExporter(today=TODAY).generate_pdf(every_type_session.template).startswith(b"%PDF")

    def test_malformed_imported_settings_degrade(self):
        t = template_from_dict(
            {"title": "Imported", "settings": {"background_color": 123, "margins": {"left": "wide", "top": None}}}
        )
        assert PdfExporter(today=TODAY).generate_pdf(t).startswith(b"%PDF")

    def test_certification_starter(self):
        data = PdfExporter(today=TODAY).generate_pdf(certification_contract_template())
        assert b"/Count 10" in data

    def test_audit_starter(self):
        assert PdfExporter(today=TODAY).generate_pdf(audit_checklist_template()).startswith(b"%PDF")

    def test_pagesize_orientation(self):
        portrait = pdf_pagesize({"page_size": "Letter"})
        landscape = pdf_pagesize({"page_size": "Letter", "orientation": "landscape"})
        assert portrait == (landscape[1], landscape[0])
        assert portrait[0] < portrait[1]
