"""
Template Composer Kernel — Shared Types

Data classes used across document, mutations, renderer, pipeline, and coordinator.
These are the contracts that bind the kernel together.

Storage layout (arena):
- `pages`, `sections`, `items` are flat maps keyed by id
- parents hold ordered id tuples: `page_ids`, `section_ids`, `item_ids`
- every node is a frozen dataclass; mutations rebuild only the touched path
"""

from __future__ import annotations

import copy
import enum
import itertools
import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Variable names are referenced as `{name}` tokens, so braces are never allowed.
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


# ---------------------------------------------------------------------------
# Type registries
# ---------------------------------------------------------------------------

ITEM_TYPES: tuple[str, ...] = (
    "text",
    "multiple_choice",
    "dropdown",
    "rating",
    "date",
    "file",
    "image",
    "instruction",
    "rich_text",
)

CHOICE_ITEM_TYPES: set[str] = {"multiple_choice", "dropdown"}

TEMPLATE_TYPES: set[str] = {"contract", "audit", "certification", "other"}

VARIABLE_TYPES: set[str] = {"text", "date", "currency", "number"}

RENDER_MODES: set[str] = {"canvas", "preview"}

DEFAULT_ITEM_LABELS: dict[str, str] = {
    "text": "Enter your text question here",
    "rich_text": "Rich text content area",
    "multiple_choice": "Select one option",
    "dropdown": "Choose from dropdown",
    "rating": "Rate from 1 to 5",
    "date": "Select a date",
    "file": "Upload a file",
    "image": "Upload an image",
    "instruction": "Add instructions here",
}

DEFAULT_OPTIONS: tuple[str, ...] = ("Option 1", "Option 2")
DEFAULT_RATING_SCALE = 5
MAX_RATING_SCALE = 10

# Canvas defaults for a freshly added section (canvas units)
DEFAULT_SECTION_X = 50
DEFAULT_SECTION_Y = 50
DEFAULT_SECTION_WIDTH = 800
DEFAULT_SECTION_HEIGHT = 200
DEFAULT_SECTION_Z_INDEX = 1
DUPLICATE_OFFSET = 20

DEFAULT_SECTION_STYLE: dict[str, Any] = {
    "background_color": "#ffffff",
    "border_color": "#e2e8f0",
    "border_width": 1,
    "border_style": "solid",
    "border_radius": 8,
    "padding": 16,
    "shadow": "0 1px 3px rgba(0,0,0,0.1)",
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "page_size": "A4",
    "orientation": "portrait",
    "margins": {"top": 40, "right": 40, "bottom": 40, "left": 40},
    "background_color": "#ffffff",
    "grid_enabled": True,
    "grid_size": 10,
    "snap_to_grid": True,
    "show_ruler": True,
    "zoom": 100,
    "theme": "default",
}

PAGE_SIZES: set[str] = {"A4", "Letter", "Legal"}
ORIENTATIONS: set[str] = {"portrait", "landscape"}
MARGIN_SIDES: set[str] = {"top", "right", "bottom", "left"}

# Canvas page dimensions (canvas units, 96 dpi)
PAGE_DIMENSIONS: dict[str, tuple[int, int]] = {
    "A4": (794, 1123),
    "Letter": (816, 1056),
    "Legal": (816, 1344),
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """Top-left corner of a section on the canvas."""

    x: float = DEFAULT_SECTION_X
    y: float = DEFAULT_SECTION_Y

    def offset(self, dx: float, dy: float) -> Position:
        return Position(x=self.x + dx, y=self.y + dy)

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Position:
        return cls(x=d.get("x", DEFAULT_SECTION_X), y=d.get("y", DEFAULT_SECTION_Y))


@dataclass(frozen=True)
class Size:
    width: float = DEFAULT_SECTION_WIDTH
    height: float = DEFAULT_SECTION_HEIGHT

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Size:
        return cls(
            width=d.get("width", DEFAULT_SECTION_WIDTH),
            height=d.get("height", DEFAULT_SECTION_HEIGHT),
        )


@dataclass(frozen=True)
class Item:
    """
    A typed content item (form element) inside a section.

    Type-specific attributes are None when they do not apply:
    - options: multiple_choice, dropdown
    - rating_scale: rating
    - rich_content: rich_text (HTML)
    - placeholder: text
    - image_url: image
    """

    id: str
    type: str
    label: str = ""
    order: int = 0
    required: bool = False
    options: tuple[str, ...] | None = None
    rating_scale: int | None = None
    placeholder: str | None = None
    rich_content: str | None = None
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "order": self.order,
            "required": self.required,
        }
        if self.options is not None:
            d["options"] = list(self.options)
        if self.rating_scale is not None:
            d["rating_scale"] = self.rating_scale
        if self.placeholder is not None:
            d["placeholder"] = self.placeholder
        if self.rich_content is not None:
            d["rich_content"] = self.rich_content
        if self.image_url is not None:
            d["image_url"] = self.image_url
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Item:
        options = d.get("options")
        return cls(
            id=d["id"],
            type=d.get("type", "text"),
            label=d.get("label", ""),
            order=d.get("order", 0),
            required=bool(d.get("required", False)),
            options=tuple(str(o) for o in options) if isinstance(options, list | tuple) else None,
            rating_scale=d.get("rating_scale"),
            placeholder=d.get("placeholder"),
            rich_content=d.get("rich_content"),
            image_url=d.get("image_url"),
        )


@dataclass(frozen=True)
class Section:
    """
    A positioned container on a page.

    `order` is the reading sequence (preview, PDF).
    `position`, `size`, `z_index` are the canvas layout. The two never mix.
    """

    id: str
    title: str = ""
    description: str = ""
    order: int = 0
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    z_index: int = DEFAULT_SECTION_Z_INDEX
    locked: bool = False
    style: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SECTION_STYLE))
    template_content: str | None = None
    item_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Section attributes without the `items` list (added by the document layer)."""
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "zIndex": self.z_index,
            "locked": self.locked,
            "style": dict(self.style),
        }
        if self.template_content is not None:
            d["template_content"] = self.template_content
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any], item_ids: tuple[str, ...] = ()) -> Section:
        return cls(
            id=d["id"],
            title=d.get("title", ""),
            description=d.get("description") or "",
            order=d.get("order", 0),
            position=Position.from_dict(d.get("position") or {}),
            size=Size.from_dict(d.get("size") or {}),
            z_index=d.get("zIndex", d.get("z_index", DEFAULT_SECTION_Z_INDEX)),
            locked=bool(d.get("locked", False)),
            style=dict(d.get("style") or {}),
            template_content=d.get("template_content"),
            item_ids=item_ids,
        )


@dataclass(frozen=True)
class Page:
    id: str
    title: str = ""
    order: int = 0
    content: str = ""
    section_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Page attributes without the `sections` list."""
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], section_ids: tuple[str, ...] = ()) -> Page:
        return cls(
            id=d["id"],
            title=d.get("title", ""),
            order=d.get("order", 0),
            content=d.get("content") or "",
            section_ids=section_ids,
        )


@dataclass(frozen=True)
class VariableDeclaration:
    """A named token declared at template level. Values are never persisted."""

    name: str
    type: str = "text"
    default: str | None = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "description": self.description,
        }
        if self.default is not None:
            d["default"] = self.default
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> VariableDeclaration:
        return cls(
            name=d["name"],
            type=d.get("type", "text"),
            default=d.get("default"),
            description=d.get("description") or "",
        )


@dataclass(frozen=True)
class Template:
    """
    The root aggregate and the unit of persistence identity.

    `id is None` means a local draft that was never saved.
    """

    title: str = "Untitled Template"
    description: str = ""
    type: str = "audit"
    page_ids: tuple[str, ...] = ()
    pages: dict[str, Page] = field(default_factory=dict)
    sections: dict[str, Section] = field(default_factory=dict)
    items: dict[str, Item] = field(default_factory=dict)
    is_published: bool = False
    settings: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_SETTINGS))
    variables: tuple[VariableDeclaration, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_synced(self) -> bool:
        return self.id is not None


@dataclass(frozen=True)
class Selection:
    """
    The focused node of an editing session.
    item_index == -1 means the section itself is selected.
    """

    page_index: int
    section_index: int
    item_index: int = -1

    @property
    def is_section(self) -> bool:
        return self.item_index == -1


@dataclass
class MutationResult:
    """
    Result of one Mutation API call.
    Mutations never throw; they always return one of these.
    """

    template: Template
    applied: bool
    error: str | None = None
    target_id: str | None = None  # id of the node created or touched


class PublishState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class SaveResult:
    """Outcome of a create-or-update round trip."""

    template: Template
    created: bool
    stale: bool  # session was edited while the request was in flight
    revision: int  # session revision the request was issued against


@dataclass
class ExportResult:
    data: bytes
    filename: str
    revision: int
    stale: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_ID_COUNTER = itertools.count(1)
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def new_id(prefix: str) -> str:
    """
    Mint a collision-resistant node id.

    Format: <prefix>-<base36 ms timestamp>-<process counter>-<random hex>
    The counter keeps ids minted in the same millisecond apart; the random
    suffix keeps ids from different processes apart.
    """
    stamp = _base36(time.time_ns() // 1_000_000)
    return f"{prefix}-{stamp}-{next(_ID_COUNTER):x}-{secrets.token_hex(4)}"


def is_valid_variable_name(value: str) -> bool:
    return isinstance(value, str) and bool(VARIABLE_NAME_PATTERN.match(value))


def page_dimensions(settings: dict[str, Any]) -> tuple[int, int]:
    """Canvas (width, height) for a page size + orientation. Unknown sizes fall back to A4."""
    width, height = PAGE_DIMENSIONS.get(settings.get("page_size", "A4"), PAGE_DIMENSIONS["A4"])
    if settings.get("orientation") == "landscape":
        return height, width
    return width, height


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
