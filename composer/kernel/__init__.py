"""
Template Composer Kernel — the document engine.

Components:
  document     — arena model constructors, (de)serialization, validation
  mutations    — (template, args) → MutationResult  (pure, never throws)
  session      — EditSession: selection, current page, revision, listeners
  variables    — {token} substitution in authoring / preview / live contexts
  renderer     — item → markup for the canvas, preview and text channels
  pipeline     — canvas / preview / resolved model / PDF export
  coordinator  — save and publish against a TemplateStore
"""

from composer.kernel.coordinator import PersistenceCoordinator, PersistenceError, PublishError
from composer.kernel.document import (
    DocumentError,
    new_template,
    template_from_dict,
    template_from_json,
    template_to_dict,
    template_to_json,
    validate_template,
)
from composer.kernel.pipeline import (
    ExportError,
    RenderPipeline,
    export_pdf,
    render_canvas,
    render_preview,
    resolve_template,
)
from composer.kernel.renderer import render_item
from composer.kernel.session import EditSession
from composer.kernel.storage import HttpTemplateStore, MemoryTemplateStore, TemplateStore
from composer.kernel.variables import VariableResolver, substitute

__all__ = [
    "new_template",
    "template_to_dict",
    "template_from_dict",
    "template_to_json",
    "template_from_json",
    "validate_template",
    "DocumentError",
    "EditSession",
    "VariableResolver",
    "substitute",
    "render_item",
    "render_canvas",
    "render_preview",
    "resolve_template",
    "export_pdf",
    "RenderPipeline",
    "ExportError",
    "TemplateStore",
    "MemoryTemplateStore",
    "HttpTemplateStore",
    "PersistenceCoordinator",
    "PersistenceError",
    "PublishError",
]
