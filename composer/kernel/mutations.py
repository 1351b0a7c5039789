"""
Template Composer Kernel — Mutation API

Pure functions: (template, args) → MutationResult
No side effects. No IO. Never throws.

Every operation returns a brand-new Template built by structural sharing:
only the maps along the touched path are copied, untouched nodes are shared.
The input template is never modified.

Rejected operations return the input template unchanged with
applied=False and an error of the form "CODE: message".

`order` is renormalized to dense 0..n-1 after every structural change.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from composer.kernel.document import (
    locate_section,
    new_item,
    new_page,
    new_section,
    page_at,
    section_at,
)
from composer.kernel.presets import SECTION_PRESETS
from composer.kernel.types import (
    DUPLICATE_OFFSET,
    ITEM_TYPES,
    MARGIN_SIDES,
    MAX_RATING_SCALE,
    ORIENTATIONS,
    PAGE_SIZES,
    VARIABLE_TYPES,
    Item,
    MutationResult,
    Page,
    Position,
    Section,
    Size,
    Template,
    VariableDeclaration,
    is_valid_variable_name,
    new_id,
)

# Fields a shallow-merge update may touch, per entity
PAGE_FIELDS: set[str] = {"title", "content"}
SECTION_FIELDS: set[str] = {
    "title",
    "description",
    "position",
    "size",
    "z_index",
    "locked",
    "style",
    "template_content",
}
ITEM_FIELDS: set[str] = {
    "label",
    "required",
    "options",
    "rating_scale",
    "placeholder",
    "rich_content",
    "image_url",
}
TEMPLATE_FIELDS: set[str] = {"title", "description", "settings", "variables", "metadata"}

IMMUTABLE_FIELDS: set[str] = {"id", "type"}
STRUCTURAL_FIELDS: set[str] = {"order", "pages", "sections", "items", "page_ids", "section_ids", "item_ids"}
RESERVED_FIELDS: set[str] = {"is_published", "created_at", "updated_at"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _reject(template: Template, code: str, msg: str) -> MutationResult:
    return MutationResult(template=template, applied=False, error=f"{code}: {msg}")


def _ok(template: Template, target_id: str | None = None) -> MutationResult:
    return MutationResult(template=template, applied=True, target_id=target_id)


def _mint(template: Template, prefix: str) -> str:
    """New id guaranteed absent from every arena of the template."""
    while True:
        node_id = new_id(prefix)
        if node_id not in template.pages and node_id not in template.sections and node_id not in template.items:
            return node_id


def _renumbered(nodes: dict[str, Any], ids: tuple[str, ...]) -> dict[str, Any]:
    """Copy of an arena with `order` dense along `ids`."""
    out = dict(nodes)
    for index, node_id in enumerate(ids):
        node = out[node_id]
        if node.order != index:
            out[node_id] = replace(node, order=index)
    return out


def _with_page(template: Template, page: Page) -> Template:
    return replace(template, pages={**template.pages, page.id: page})


def _with_section(template: Template, section: Section) -> Template:
    return replace(template, sections={**template.sections, section.id: section})


def _with_item(template: Template, item: Item) -> Template:
    return replace(template, items={**template.items, item.id: item})


def _set_section_ids(template: Template, page: Page, section_ids: tuple[str, ...]) -> Template:
    page = replace(page, section_ids=section_ids)
    template = _with_page(template, page)
    return replace(template, sections=_renumbered(template.sections, section_ids))


def _set_item_ids(template: Template, section: Section, item_ids: tuple[str, ...]) -> Template:
    section = replace(section, item_ids=item_ids)
    template = _with_section(template, section)
    return replace(template, items=_renumbered(template.items, item_ids))


def _check_fields(updates: dict[str, Any], allowed: set[str], current: Any) -> tuple[str, str] | None:
    """Return (code, message) for the first field an update may not touch."""
    if not isinstance(updates, dict):
        return "INVALID_VALUE", "updates must be a dict"
    for key, value in updates.items():
        if key in IMMUTABLE_FIELDS:
            if getattr(current, key, None) != value:
                return "IMMUTABLE_FIELD", f"{key} cannot be changed"
            continue
        if key in STRUCTURAL_FIELDS:
            return "STRUCTURAL_FIELD", f"{key} is changed through structural operations"
        if key in RESERVED_FIELDS:
            return "RESERVED_FIELD", f"{key} is managed by the persistence coordinator"
        if key not in allowed:
            return "UNKNOWN_FIELD", key
    return None


def _coerce_position(value: Any) -> Position | None:
    if isinstance(value, Position):
        return value
    if isinstance(value, dict) and _is_number(value.get("x")) and _is_number(value.get("y")):
        return Position(x=value["x"], y=value["y"])
    return None


def _coerce_size(value: Any) -> Size | None:
    if isinstance(value, Size):
        size = value
    elif isinstance(value, dict) and _is_number(value.get("width")) and _is_number(value.get("height")):
        size = Size(width=value["width"], height=value["height"])
    else:
        return None
    if size.width <= 0 or size.height <= 0:
        return None
    return size


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _coerce_variable(value: Any) -> VariableDeclaration | None:
    if isinstance(value, VariableDeclaration):
        decl = value
    elif isinstance(value, dict) and "name" in value:
        decl = VariableDeclaration.from_dict(value)
    else:
        return None
    if not is_valid_variable_name(decl.name) or not isinstance(decl.type, str) or decl.type not in VARIABLE_TYPES:
        return None
    if decl.default is not None and not isinstance(decl.default, str):
        return None
    return decl


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------


def update_template(template: Template, updates: dict[str, Any]) -> MutationResult:
    bad = _check_fields(updates, TEMPLATE_FIELDS, template)
    if bad:
        return _reject(template, *bad)

    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key in IMMUTABLE_FIELDS:
            continue
        if key in ("title", "description"):
            if not isinstance(value, str):
                return _reject(template, "INVALID_VALUE", f"{key} must be a string")
            changes[key] = value
        elif key == "settings":
            if not isinstance(value, dict):
                return _reject(template, "INVALID_VALUE", "settings must be a dict")
            error = _settings_error(value)
            if error:
                return _reject(template, "INVALID_VALUE", error)
            changes["settings"] = dict(value)
        elif key == "metadata":
            if not isinstance(value, dict) or "variables" in value:
                return _reject(template, "INVALID_VALUE", "metadata must be a dict without variables")
            changes["metadata"] = dict(value)
        elif key == "variables":
            if value is None:
                value = []
            if not isinstance(value, list | tuple):
                return _reject(template, "INVALID_VALUE", "variables must be a list of declarations")
            decls = [_coerce_variable(v) for v in value]
            if any(d is None for d in decls):
                return _reject(template, "INVALID_VALUE", "variables must be valid declarations")
            names = [d.name for d in decls]
            if len(names) != len(set(names)):
                return _reject(template, "INVALID_VALUE", "variable names must be unique")
            changes["variables"] = tuple(decls)

    return _ok(replace(template, **changes))


def _settings_error(updates: dict[str, Any]) -> str | None:
    """Message for the first setting with an unusable value, else None."""
    if "page_size" in updates and updates["page_size"] not in PAGE_SIZES:
        return f"page_size must be one of {sorted(PAGE_SIZES)}"
    if "orientation" in updates and updates["orientation"] not in ORIENTATIONS:
        return f"orientation must be one of {sorted(ORIENTATIONS)}"
    if "zoom" in updates and not (_is_number(updates["zoom"]) and 25 <= updates["zoom"] <= 200):
        return "zoom must be between 25 and 200"
    if "margins" in updates:
        margins = updates["margins"]
        if not isinstance(margins, dict):
            return "margins must be a dict"
        for side, amount in margins.items():
            if side not in MARGIN_SIDES:
                return f"unknown margin {side}"
            if not _is_number(amount) or amount < 0:
                return f"margin {side} must be a non-negative number"
    if "grid_size" in updates and not (_is_number(updates["grid_size"]) and updates["grid_size"] > 0):
        return "grid_size must be a positive number"
    for key in ("background_color", "theme"):
        if key in updates and not isinstance(updates[key], str):
            return f"{key} must be a string"
    for key in ("grid_enabled", "snap_to_grid", "show_ruler"):
        if key in updates and not isinstance(updates[key], bool):
            return f"{key} must be a bool"
    return None


def update_settings(template: Template, updates: dict[str, Any]) -> MutationResult:
    """Merge layout settings (page size, margins, theme, ...)."""
    if not isinstance(updates, dict):
        return _reject(template, "INVALID_VALUE", "settings updates must be a dict")
    error = _settings_error(updates)
    if error:
        return _reject(template, "INVALID_VALUE", error)

    settings = dict(template.settings)
    for key, value in updates.items():
        if key == "margins":
            settings["margins"] = {**settings.get("margins", {}), **value}
        else:
            settings[key] = value
    return _ok(replace(template, settings=settings))


def declare_variable(template: Template, declaration: VariableDeclaration | dict[str, Any]) -> MutationResult:
    """Add a variable declaration, replacing one with the same name."""
    decl = _coerce_variable(declaration)
    if decl is None:
        return _reject(template, "INVALID_VALUE", f"invalid variable declaration: {declaration!r}")

    variables = [v for v in template.variables if v.name != decl.name]
    existing = [v.name for v in template.variables]
    if decl.name in existing:
        variables.insert(existing.index(decl.name), decl)
    else:
        variables.append(decl)
    return _ok(replace(template, variables=tuple(variables)), target_id=decl.name)


def remove_variable(template: Template, name: str) -> MutationResult:
    if not any(v.name == name for v in template.variables):
        return _reject(template, "NOT_FOUND", f"variable {name}")
    return _ok(replace(template, variables=tuple(v for v in template.variables if v.name != name)))


def set_published(template: Template, published: bool) -> MutationResult:
    """Flip the publish flag. Reserved for the persistence coordinator."""
    return _ok(replace(template, is_published=bool(published)))


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def add_page(template: Template) -> MutationResult:
    order = len(template.page_ids)
    page = replace(new_page(order), id=_mint(template, "page"))
    template = replace(
        template,
        page_ids=(*template.page_ids, page.id),
        pages={**template.pages, page.id: page},
    )
    return _ok(template, target_id=page.id)


def update_page(template: Template, page_index: int, updates: dict[str, Any]) -> MutationResult:
    page = page_at(template, page_index)
    if page is None:
        return _reject(template, "NOT_FOUND", f"page index {page_index}")
    bad = _check_fields(updates, PAGE_FIELDS, page)
    if bad:
        return _reject(template, *bad)
    changes = {k: v for k, v in updates.items() if k in PAGE_FIELDS}
    if any(not isinstance(v, str) for v in changes.values()):
        return _reject(template, "INVALID_VALUE", "page title and content must be strings")
    return _ok(_with_page(template, replace(page, **changes)), target_id=page.id)


def delete_page(template: Template, page_index: int) -> MutationResult:
    """Remove a page and cascade to its sections and items. The last page stays."""
    page = page_at(template, page_index)
    if page is None:
        return _reject(template, "NOT_FOUND", f"page index {page_index}")
    if len(template.page_ids) == 1:
        return _reject(template, "LAST_PAGE", "a template keeps at least one page")

    sections = dict(template.sections)
    items = dict(template.items)
    for section_id in page.section_ids:
        for item_id in sections.pop(section_id).item_ids:
            items.pop(item_id, None)
    pages = dict(template.pages)
    del pages[page.id]
    page_ids = tuple(pid for pid in template.page_ids if pid != page.id)

    template = replace(
        template,
        page_ids=page_ids,
        pages=_renumbered(pages, page_ids),
        sections=sections,
        items=items,
    )
    return _ok(template, target_id=page.id)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def add_section(template: Template, page_index: int) -> MutationResult:
    """Append a section at (50, 50), 800×200, z-index 1, with no items."""
    page = page_at(template, page_index)
    if page is None:
        return _reject(template, "NOT_FOUND", f"page index {page_index}")

    section = replace(new_section(len(page.section_ids)), id=_mint(template, "section"))
    template = _with_section(template, section)
    template = _set_section_ids(template, page, (*page.section_ids, section.id))
    return _ok(template, target_id=section.id)


def update_section(template: Template, section_id: str, updates: dict[str, Any]) -> MutationResult:
    """
    Shallow-merge into a section.
    A locked section rejects position/size changes but accepts everything else.
    """
    section = template.sections.get(section_id)
    if section is None or locate_section(template, section_id) is None:
        return _reject(template, "NOT_FOUND", f"section {section_id}")

    if isinstance(updates, dict) and "zIndex" in updates:
        updates = {("z_index" if k == "zIndex" else k): v for k, v in updates.items()}
    bad = _check_fields(updates, SECTION_FIELDS, section)
    if bad:
        return _reject(template, *bad)

    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key in IMMUTABLE_FIELDS:
            continue
        if key == "position":
            position = _coerce_position(value)
            if position is None:
                return _reject(template, "INVALID_VALUE", "position needs numeric x and y")
            changes["position"] = position
        elif key == "size":
            size = _coerce_size(value)
            if size is None:
                return _reject(template, "INVALID_VALUE", "size needs positive width and height")
            changes["size"] = size
        elif key == "z_index":
            if not isinstance(value, int) or isinstance(value, bool):
                return _reject(template, "INVALID_VALUE", "z_index must be an int")
            changes["z_index"] = value
        elif key == "locked":
            changes["locked"] = bool(value)
        elif key == "style":
            if not isinstance(value, dict):
                return _reject(template, "INVALID_VALUE", "style must be a dict")
            changes["style"] = dict(value)
        elif key == "template_content":
            if value is not None and not isinstance(value, str):
                return _reject(template, "INVALID_VALUE", "template_content must be a string")
            changes["template_content"] = value
        else:
            if not isinstance(value, str):
                return _reject(template, "INVALID_VALUE", f"{key} must be a string")
            changes[key] = value

    if section.locked:
        moved = "position" in changes and changes["position"] != section.position
        resized = "size" in changes and changes["size"] != section.size
        if moved or resized:
            return _reject(template, "LOCKED", f"section {section_id} is locked")

    return _ok(_with_section(template, replace(section, **changes)), target_id=section_id)


def move_section(template: Template, section_id: str, x: float, y: float) -> MutationResult:
    return update_section(template, section_id, {"position": {"x": x, "y": y}})


def resize_section(template: Template, section_id: str, width: float, height: float) -> MutationResult:
    return update_section(template, section_id, {"size": {"width": width, "height": height}})


def bring_section_to_front(template: Template, section_id: str) -> MutationResult:
    location = locate_section(template, section_id)
    if location is None:
        return _reject(template, "NOT_FOUND", f"section {section_id}")
    page = page_at(template, location[0])
    top = max(template.sections[sid].z_index for sid in page.section_ids)
    section = template.sections[section_id]
    if section.z_index == top and sum(template.sections[sid].z_index == top for sid in page.section_ids) == 1:
        return _ok(template, target_id=section_id)
    return update_section(template, section_id, {"z_index": top + 1})


def reorder_section(template: Template, section_id: str, new_index: int) -> MutationResult:
    """Move a section within its page's reading order. Canvas position is untouched."""
    location = locate_section(template, section_id)
    if location is None:
        return _reject(template, "NOT_FOUND", f"section {section_id}")
    page = page_at(template, location[0])
    if not 0 <= new_index < len(page.section_ids):
        return _reject(template, "INVALID_VALUE", f"index {new_index} out of range")

    section_ids = [sid for sid in page.section_ids if sid != section_id]
    section_ids.insert(new_index, section_id)
    return _ok(_set_section_ids(template, page, tuple(section_ids)), target_id=section_id)


def delete_section(template: Template, section_id: str) -> MutationResult:
    """Remove a section and its items from its page."""
    location = locate_section(template, section_id)
    if location is None:
        return _reject(template, "NOT_FOUND", f"section {section_id}")
    page = page_at(template, location[0])

    sections = dict(template.sections)
    removed = sections.pop(section_id)
    items = {iid: item for iid, item in template.items.items() if iid not in removed.item_ids}
    template = replace(template, sections=sections, items=items)
    template = _set_section_ids(template, page, tuple(sid for sid in page.section_ids if sid != section_id))
    return _ok(template, target_id=section_id)


def duplicate_section(template: Template, section_id: str) -> MutationResult:
    """
    Deep-clone a section with fresh section and item ids.
    The copy is offset by (+20, +20) and appended as the last sibling.
    """
    location = locate_section(template, section_id)
    if location is None:
        return _reject(template, "NOT_FOUND", f"section {section_id}")
    page = page_at(template, location[0])
    source = template.sections[section_id]

    items = dict(template.items)
    clone_item_ids: list[str] = []
    for item_id in source.item_ids:
        clone_id = _mint(replace(template, items=items), "item")
        items[clone_id] = replace(template.items[item_id], id=clone_id)
        clone_item_ids.append(clone_id)

    template = replace(template, items=items)
    clone = replace(
        source,
        id=_mint(template, "section"),
        title=f"{source.title} (Copy)",
        position=source.position.offset(DUPLICATE_OFFSET, DUPLICATE_OFFSET),
        style=dict(source.style),
        item_ids=tuple(clone_item_ids),
    )
    template = _with_section(template, clone)
    template = _set_section_ids(template, page, (*page.section_ids, clone.id))
    return _ok(template, target_id=clone.id)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def add_item(template: Template, page_index: int, section_index: int, item_type: str) -> MutationResult:
    if item_type not in ITEM_TYPES:
        return _reject(template, "INVALID_TYPE", f"unknown item type {item_type}")
    section = section_at(template, page_index, section_index)
    if section is None:
        return _reject(template, "NOT_FOUND", f"section {page_index}/{section_index}")

    item = replace(new_item(item_type, len(section.item_ids)), id=_mint(template, "item"))
    template = _with_item(template, item)
    template = _set_item_ids(template, section, (*section.item_ids, item.id))
    return _ok(template, target_id=item.id)


def add_item_to_last_section(template: Template, page_index: int, item_type: str) -> MutationResult:
    """
    Append a typed item to the page's last section.
    A page without sections gets exactly one new section first.
    """
    if item_type not in ITEM_TYPES:
        return _reject(template, "INVALID_TYPE", f"unknown item type {item_type}")
    page = page_at(template, page_index)
    if page is None:
        return _reject(template, "NOT_FOUND", f"page index {page_index}")

    if not page.section_ids:
        result = add_section(template, page_index)
        template = result.template
        page = page_at(template, page_index)

    return add_item(template, page_index, len(page.section_ids) - 1, item_type)


def update_item(
    template: Template,
    page_index: int,
    section_index: int,
    item_index: int,
    updates: dict[str, Any],
) -> MutationResult:
    section = section_at(template, page_index, section_index)
    if section is None or not 0 <= item_index < len(section.item_ids):
        return _reject(template, "NOT_FOUND", f"item {page_index}/{section_index}/{item_index}")
    item = template.items[section.item_ids[item_index]]

    bad = _check_fields(updates, ITEM_FIELDS, item)
    if bad:
        return _reject(template, *bad)

    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key in IMMUTABLE_FIELDS:
            continue
        if key == "required":
            changes["required"] = bool(value)
        elif key == "options":
            if value is not None and (
                not isinstance(value, list | tuple) or not all(isinstance(o, str) for o in value)
            ):
                return _reject(template, "INVALID_VALUE", "options must be a list of strings")
            changes["options"] = tuple(value) if value is not None else None
        elif key == "rating_scale":
            if value is not None and (
                not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= MAX_RATING_SCALE
            ):
                return _reject(template, "INVALID_VALUE", f"rating_scale must be an int from 1 to {MAX_RATING_SCALE}")
            changes["rating_scale"] = value
        elif key == "label":
            if not isinstance(value, str):
                return _reject(template, "INVALID_VALUE", "label must be a string")
            changes["label"] = value
        else:
            if value is not None and not isinstance(value, str):
                return _reject(template, "INVALID_VALUE", f"{key} must be a string")
            changes[key] = value

    return _ok(_with_item(template, replace(item, **changes)), target_id=item.id)


def delete_item(template: Template, page_index: int, section_index: int, item_index: int) -> MutationResult:
    section = section_at(template, page_index, section_index)
    if section is None or not 0 <= item_index < len(section.item_ids):
        return _reject(template, "NOT_FOUND", f"item {page_index}/{section_index}/{item_index}")

    item_id = section.item_ids[item_index]
    items = dict(template.items)
    del items[item_id]
    template = replace(template, items=items)
    template = _set_item_ids(template, section, tuple(iid for iid in section.item_ids if iid != item_id))
    return _ok(template, target_id=item_id)


def duplicate_item(template: Template, page_index: int, section_index: int, item_index: int) -> MutationResult:
    """Copy an item with a fresh id, inserted right after the source."""
    section = section_at(template, page_index, section_index)
    if section is None or not 0 <= item_index < len(section.item_ids):
        return _reject(template, "NOT_FOUND", f"item {page_index}/{section_index}/{item_index}")

    source = template.items[section.item_ids[item_index]]
    clone = replace(source, id=_mint(template, "item"))
    item_ids = list(section.item_ids)
    item_ids.insert(item_index + 1, clone.id)
    template = _with_item(template, clone)
    template = _set_item_ids(template, section, tuple(item_ids))
    return _ok(template, target_id=clone.id)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


def add_section_preset(template: Template, page_index: int, preset: str) -> MutationResult:
    """
    Append a pre-configured section (title, description, items) to a page.
    All or nothing: if any step is rejected the input template is returned.
    """
    spec = SECTION_PRESETS.get(preset) if isinstance(preset, str) else None
    if spec is None:
        return _reject(template, "INVALID_TYPE", f"unknown section preset {preset}")

    result = add_section(template, page_index)
    if not result.applied:
        return result
    section_id = result.target_id
    section_index = len(page_at(result.template, page_index).section_ids) - 1

    result = update_section(result.template, section_id, {k: v for k, v in spec.items() if k != "items"})
    for item_index, (item_type, fields) in enumerate(spec["items"]):
        if not result.applied:
            break
        result = add_item(result.template, page_index, section_index, item_type)
        if result.applied:
            result = update_item(result.template, page_index, section_index, item_index, fields)

    if not result.applied:
        return MutationResult(template=template, applied=False, error=result.error)
    return _ok(result.template, target_id=section_id)
