"""
Template Composer Kernel — Document Model

Pure constructors, tree queries, validation, and (de)serialization for the
Template → Page → Section → Item graph.

The in-memory model is an arena (flat maps keyed by id per level).
The wire model is the nested tree:

    {title, description, type, is_published, settings,
     metadata: {variables: [...], ...}, id, created_at, updated_at,
     pages: [{id, title, order, content,
              sections: [{id, title, ..., zIndex, items: [...]}]}]}
"""

from __future__ import annotations

import copy
import json
import logging
from collections import Counter
from dataclasses import replace
from typing import Any

from composer.kernel.types import (
    CHOICE_ITEM_TYPES,
    DEFAULT_ITEM_LABELS,
    DEFAULT_OPTIONS,
    DEFAULT_RATING_SCALE,
    DEFAULT_SECTION_STYLE,
    DEFAULT_SETTINGS,
    ITEM_TYPES,
    TEMPLATE_TYPES,
    VARIABLE_TYPES,
    Item,
    Page,
    Position,
    Section,
    Size,
    Template,
    VariableDeclaration,
    is_valid_variable_name,
    new_id,
)

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """A serialized document is structurally invalid."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def new_page(order: int = 0, title: str | None = None) -> Page:
    return Page(
        id=new_id("page"),
        title=title if title is not None else f"Page {order + 1}",
        order=order,
    )


def new_section(order: int = 0, title: str | None = None) -> Section:
    """A section at the default canvas position (50, 50), 800×200, z-index 1."""
    return Section(
        id=new_id("section"),
        title=title if title is not None else f"Section {order + 1}",
        order=order,
        position=Position(),
        size=Size(),
        style=dict(DEFAULT_SECTION_STYLE),
    )


def new_item(item_type: str, order: int = 0) -> Item:
    """
    A typed item with the default label for its type.
    Choice types get two seed options; rating gets the default 5-step scale.
    """
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unknown item type: {item_type}")

    return Item(
        id=new_id("item"),
        type=item_type,
        label=DEFAULT_ITEM_LABELS.get(item_type, "Question"),
        order=order,
        required=False,
        options=DEFAULT_OPTIONS if item_type in CHOICE_ITEM_TYPES else None,
        rating_scale=DEFAULT_RATING_SCALE if item_type == "rating" else None,
    )


def new_template(
    title: str = "Untitled Template",
    type: str = "audit",
    description: str = "",
) -> Template:
    """A fresh local draft (no backend id) with one empty page."""
    page = new_page(0)
    return Template(
        title=title,
        description=description,
        type=type,
        page_ids=(page.id,),
        pages={page.id: page},
        settings=copy.deepcopy(DEFAULT_SETTINGS),
    )


def ensure_page(template: Template) -> Template:
    """Auto-provision one empty page when the model has none."""
    if template.page_ids:
        return template
    page = new_page(0)
    return replace(template, page_ids=(page.id,), pages={**template.pages, page.id: page})


# ---------------------------------------------------------------------------
# Tree queries
# ---------------------------------------------------------------------------


def ordered_pages(template: Template) -> list[Page]:
    return [template.pages[pid] for pid in template.page_ids]


def ordered_sections(template: Template, page: Page) -> list[Section]:
    return [template.sections[sid] for sid in page.section_ids]


def ordered_items(template: Template, section: Section) -> list[Item]:
    return [template.items[iid] for iid in section.item_ids]


def page_at(template: Template, page_index: int) -> Page | None:
    if 0 <= page_index < len(template.page_ids):
        return template.pages[template.page_ids[page_index]]
    return None


def section_at(template: Template, page_index: int, section_index: int) -> Section | None:
    page = page_at(template, page_index)
    if page is None or not 0 <= section_index < len(page.section_ids):
        return None
    return template.sections[page.section_ids[section_index]]


def item_at(template: Template, page_index: int, section_index: int, item_index: int) -> Item | None:
    section = section_at(template, page_index, section_index)
    if section is None or not 0 <= item_index < len(section.item_ids):
        return None
    return template.items[section.item_ids[item_index]]


def locate_section(template: Template, section_id: str) -> tuple[int, int] | None:
    """(page_index, section_index) of a section, or None."""
    if section_id not in template.sections:
        return None
    for page_index, page_id in enumerate(template.page_ids):
        section_ids = template.pages[page_id].section_ids
        if section_id in section_ids:
            return page_index, section_ids.index(section_id)
    return None


def locate_item(template: Template, item_id: str) -> tuple[int, int, int] | None:
    """(page_index, section_index, item_index) of an item, or None."""
    if item_id not in template.items:
        return None
    for page_index, page_id in enumerate(template.page_ids):
        for section_index, section_id in enumerate(template.pages[page_id].section_ids):
            item_ids = template.sections[section_id].item_ids
            if item_id in item_ids:
                return page_index, section_index, item_ids.index(item_id)
    return None


def tree_ids(template: Template) -> list[str]:
    """Every id reachable from the root, in document order (duplicates kept)."""
    ids: list[str] = []
    for page in ordered_pages(template):
        ids.append(page.id)
        for section in ordered_sections(template, page):
            ids.append(section.id)
            ids.extend(section.item_ids)
    return ids


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_template(template: Template) -> list[str]:
    """
    Check the document invariants.
    Returns a list of error strings. Empty list = valid.
    """
    errors: list[str] = []

    if not template.page_ids:
        errors.append("Template must have at least one page")

    if template.type not in TEMPLATE_TYPES:
        errors.append(f"Unknown template type: {template.type}")

    ids = tree_ids(template)
    duplicates = sorted(i for i, n in Counter(ids).items() if n > 1)
    if duplicates:
        errors.append(f"Duplicate ids: {', '.join(duplicates)}")

    for page_index, page in enumerate(ordered_pages(template)):
        if page.order != page_index:
            errors.append(f"Page {page.id} has order {page.order}, expected {page_index}")
        for section_index, section_id in enumerate(page.section_ids):
            section = template.sections.get(section_id)
            if section is None:
                errors.append(f"Page {page.id} references missing section {section_id}")
                continue
            if section.order != section_index:
                errors.append(f"Section {section.id} has order {section.order}, expected {section_index}")
            for item_index, item_id in enumerate(section.item_ids):
                item = template.items.get(item_id)
                if item is None:
                    errors.append(f"Section {section.id} references missing item {item_id}")
                    continue
                if item.order != item_index:
                    errors.append(f"Item {item.id} has order {item.order}, expected {item_index}")
                if item.type not in ITEM_TYPES:
                    errors.append(f"Item {item.id} has unknown type: {item.type}")

    seen_names: set[str] = set()
    for decl in template.variables:
        if not is_valid_variable_name(decl.name):
            errors.append(f"Invalid variable name: {decl.name!r}")
        if decl.type not in VARIABLE_TYPES:
            errors.append(f"Variable {decl.name} has unknown type: {decl.type}")
        if decl.name in seen_names:
            errors.append(f"Variable {decl.name} declared twice")
        seen_names.add(decl.name)

    return errors


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def template_to_dict(template: Template) -> dict[str, Any]:
    """Nested wire representation. Variable declarations only, never values."""
    pages = []
    for page in ordered_pages(template):
        page_dict = page.to_dict()
        sections = []
        for section in ordered_sections(template, page):
            section_dict = section.to_dict()
            section_dict["items"] = [item.to_dict() for item in ordered_items(template, section)]
            sections.append(section_dict)
        page_dict["sections"] = sections
        pages.append(page_dict)

    metadata = copy.deepcopy(template.metadata)
    metadata["variables"] = [decl.to_dict() for decl in template.variables]

    d: dict[str, Any] = {
        "title": template.title,
        "description": template.description,
        "type": template.type,
        "is_published": template.is_published,
        "settings": copy.deepcopy(template.settings),
        "metadata": metadata,
        "pages": pages,
    }
    if template.id is not None:
        d["id"] = template.id
    if template.created_at is not None:
        d["created_at"] = template.created_at
    if template.updated_at is not None:
        d["updated_at"] = template.updated_at
    return d


def template_from_dict(d: dict[str, Any], *, strict: bool = False) -> Template:
    """
    Rebuild the arena from the nested wire representation.

    List position is canonical; `order` is renormalized to match it.
    A document without pages gets one empty page.
    strict=True raises DocumentError on duplicate ids or unknown types;
    otherwise duplicated ids are re-minted and logged.
    """
    errors: list[str] = []
    seen: set[str] = set()

    def claim(raw_id: Any, prefix: str) -> str:
        node_id = str(raw_id) if raw_id not in (None, "") else new_id(prefix)
        if node_id in seen:
            if strict:
                errors.append(f"Duplicate id: {node_id}")
            else:
                logger.warning("document: re-minting duplicate id %s", node_id)
                node_id = new_id(prefix)
        seen.add(node_id)
        return node_id

    pages: dict[str, Page] = {}
    sections: dict[str, Section] = {}
    items: dict[str, Item] = {}
    page_ids: list[str] = []

    for page_index, raw_page in enumerate(d.get("pages") or []):
        page_id = claim(raw_page.get("id"), "page")
        section_ids: list[str] = []
        for section_index, raw_section in enumerate(raw_page.get("sections") or []):
            section_id = claim(raw_section.get("id"), "section")
            item_ids: list[str] = []
            for item_index, raw_item in enumerate(raw_section.get("items") or []):
                item_id = claim(raw_item.get("id"), "item")
                item = Item.from_dict({**raw_item, "id": item_id, "order": item_index})
                if strict and item.type not in ITEM_TYPES:
                    errors.append(f"Item {item_id} has unknown type: {item.type}")
                items[item_id] = item
                item_ids.append(item_id)
            sections[section_id] = Section.from_dict(
                {**raw_section, "id": section_id, "order": section_index},
                item_ids=tuple(item_ids),
            )
            section_ids.append(section_id)
        pages[page_id] = Page.from_dict(
            {**raw_page, "id": page_id, "order": page_index},
            section_ids=tuple(section_ids),
        )
        page_ids.append(page_id)

    metadata = copy.deepcopy(d.get("metadata") or {})
    raw_variables = metadata.pop("variables", None) or []
    variables = tuple(VariableDeclaration.from_dict(v) for v in raw_variables)

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings.update(copy.deepcopy(d.get("settings") or {}))

    raw_id = d.get("id")
    template = Template(
        title=d.get("title", "Untitled Template"),
        description=d.get("description") or "",
        type=d.get("type", "audit"),
        page_ids=tuple(page_ids),
        pages=pages,
        sections=sections,
        items=items,
        is_published=bool(d.get("is_published", False)),
        settings=settings,
        variables=variables,
        metadata=metadata,
        id=str(raw_id) if raw_id is not None else None,
        created_at=d.get("created_at"),
        updated_at=d.get("updated_at"),
    )

    template = ensure_page(template)
    if strict:
        errors.extend(e for e in validate_template(template) if e not in errors)
        if errors:
            raise DocumentError(errors)

    return template


def template_to_json(template: Template) -> str:
    return json.dumps(template_to_dict(template), ensure_ascii=False)


def template_from_json(data: str, *, strict: bool = False) -> Template:
    return template_from_dict(json.loads(data), strict=strict)
