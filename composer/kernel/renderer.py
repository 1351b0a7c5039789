"""
Template Composer Kernel — Item Renderer

Pure function: (item, mode, resolver?) → markup string
No IO. Deterministic for a given resolver.

Channels:
- canvas  — the authoring surface: live controls, tokens kept and highlighted
- preview — read-only representation: disabled controls, tokens substituted
- text    — plain text lines for the PDF exporter

Every item type has a mustache template (rendered with chevron) in each
channel. All channels read the item through item_view(), so the data
interpretation is shared and only interactivity differs.

Render-time degradations are silent: a missing rating scale renders the
default 5 steps, an oversized one is capped at 10, missing options render
a placeholder, an unknown type renders a generic block, and a template
failure falls back to the label.
"""

from __future__ import annotations

import re
from datetime import date
from html import escape as _html_escape
from html import unescape as _html_unescape
from typing import Any

import chevron

from composer.kernel.types import DEFAULT_RATING_SCALE, ITEM_TYPES, MAX_RATING_SCALE, Item
from composer.kernel.variables import PREVIEW, TOKEN_PATTERN, VariableResolver, builtin_samples

CANVAS = "canvas"
PREVIEW_MODE = "preview"
TEXT = "text"
CHANNELS: tuple[str, ...] = (CANVAS, PREVIEW_MODE, TEXT)

# Preview fills the first few rating steps to show a sample answer
SAMPLE_RATING = 3
ANSWER_LINE = "________________________"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_PARTIALS: dict[str, str] = {
    "label": (
        '<label class="item-label" for="{{dom_id}}">{{label}}'
        '{{#required}}<span class="item-required">*</span>{{/required}}</label>'
    ),
    "heading": (
        '<p class="item-label">{{label}}'
        '{{#required}}<span class="item-required">*</span>{{/required}}</p>'
    ),
}

_WRAPPER = (
    '<div class="item item-{{type}}{{#selected}} is-selected{{/selected}}" '
    'data-item-id="{{id}}" data-item-type="{{type}}">{{{body}}}</div>'
)

_HTML_TEMPLATES: dict[str, str] = {
    "text": (
        "{{> label}}"
        '<input type="text" id="{{dom_id}}" name="{{id}}" placeholder="{{placeholder}}"'
        '{{#readonly}} value="Sample response" readonly disabled{{/readonly}}>'
    ),
    "multiple_choice": (
        "{{> heading}}"
        '<div class="item-choices">'
        "{{#options}}"
        '<label class="item-option"><input type="radio" name="{{dom_id}}" value="{{value}}"'
        "{{{attrs}}}> {{value}}</label>"
        "{{/options}}"
        "{{^options}}"
        '<p class="item-empty">No options</p>'
        "{{/options}}"
        "</div>"
    ),
    "dropdown": (
        "{{> label}}"
        '<select id="{{dom_id}}" name="{{id}}"{{#readonly}} disabled{{/readonly}}>'
        '{{#options}}<option value="{{value}}"{{{attrs}}}>{{value}}</option>{{/options}}'
        '{{^options}}<option value="">Sample option</option>{{/options}}'
        "</select>"
    ),
    "rating": (
        "{{> heading}}"
        '<div class="item-rating" data-scale="{{rating_scale}}">'
        "{{#steps}}"
        '<button type="button" class="rating-step{{{css}}}" data-value="{{value}}"{{{attrs}}}>{{value}}</button>'
        "{{/steps}}"
        "</div>"
    ),
    "date": (
        "{{> label}}"
        '<input type="date" id="{{dom_id}}" name="{{id}}"'
        '{{#readonly}} value="{{sample_date}}" readonly disabled{{/readonly}}>'
    ),
    "file": (
        "{{> label}}"
        '{{#readonly}}<div class="item-file-placeholder">sample-document.pdf uploaded</div>{{/readonly}}'
        '{{^readonly}}<input type="file" id="{{dom_id}}" name="{{id}}">{{/readonly}}'
    ),
    "image": (
        '<figure class="item-image">'
        '{{#image_url}}<img src="{{image_url}}" alt="{{label}}" loading="lazy">{{/image_url}}'
        "{{^image_url}}"
        '{{#readonly}}<div class="item-image-placeholder">Image placeholder</div>{{/readonly}}'
        '{{^readonly}}<input type="file" id="{{dom_id}}" name="{{id}}" accept="image/*">{{/readonly}}'
        "{{/image_url}}"
        "<figcaption>{{label}}</figcaption>"
        "</figure>"
    ),
    "instruction": '<div class="item-instruction"><p>{{{content_html}}}</p></div>',
    "rich_text": '<div class="item-rich-text">{{{content_html}}}</div>',
}

_HTML_FALLBACK = '<div class="item-unknown">{{type}}: {{label}}</div>'

_TEXT_TEMPLATES: dict[str, str] = {
    "text": "{{{number}}}. {{{label}}}\nAnswer: " + ANSWER_LINE,
    "multiple_choice": "{{{number}}}. {{{label}}}{{#options}}\n   {{{letter}}}) {{{value}}}{{/options}}",
    "dropdown": "{{{number}}}. {{{label}}}\nSelection: " + ANSWER_LINE,
    "rating": "{{{number}}}. {{{label}}}\nRating (1-{{{rating_scale}}}): " + ANSWER_LINE,
    "date": "{{{number}}}. {{{label}}}\nDate: " + ANSWER_LINE,
    "file": "{{{number}}}. {{{label}}}\nFile Attachment: " + ANSWER_LINE,
    "image": "{{{number}}}. {{{label}}}\n[IMAGE: {{{label}}}]",
    "instruction": "NOTE: {{{content_text}}}",
    "rich_text": "{{{content_text}}}",
}

_TEXT_FALLBACK = "{{{number}}}. {{{label}}}"


def missing_templates() -> dict[str, list[str]]:
    """Item types without a template, per channel. Empty lists when exhaustive."""
    return {
        CANVAS: [t for t in ITEM_TYPES if t not in _HTML_TEMPLATES],
        PREVIEW_MODE: [t for t in ITEM_TYPES if t not in _HTML_TEMPLATES],
        TEXT: [t for t in ITEM_TYPES if t not in _TEXT_TEMPLATES],
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def item_view(item: Item) -> dict[str, Any]:
    """
    Mode-independent reading of an item, with render defaults applied.
    Both HTML channels and the text channel render from this.
    """
    options = [str(o) for o in (item.options or ()) if o is not None]
    scale = item.rating_scale
    if not isinstance(scale, int) or isinstance(scale, bool) or scale < 1:
        scale = DEFAULT_RATING_SCALE
    scale = min(scale, MAX_RATING_SCALE)

    return {
        "id": item.id,
        "type": item.type,
        "label": item.label or "",
        "required": bool(item.required),
        "placeholder": item.placeholder or "",
        "options": options,
        "rating_scale": scale,
        "rich_content": item.rich_content if item.rich_content else item.label or "",
        "image_url": item.image_url or "",
    }


def render_item(
    item: Item,
    mode: str = CANVAS,
    resolver: VariableResolver | None = None,
    *,
    index: int = 0,
    selected: bool = False,
    today: date | None = None,
) -> str:
    """
    Render one item for a channel.
    `index` is the item's position in its section (numbering in the text channel).
    """
    if mode not in CHANNELS:
        raise ValueError(f"Unknown render mode: {mode}")

    if resolver is None:
        resolver = _default_resolver(mode, today)

    view = item_view(item)
    context = _build_context(view, mode, resolver, index=index, selected=selected, today=today)

    if mode == TEXT:
        template = _TEXT_TEMPLATES.get(view["type"], _TEXT_FALLBACK)
        try:
            return chevron.render(template, context).strip()
        except Exception:
            return f"{index + 1}. {view['label']}"

    template = _HTML_TEMPLATES.get(view["type"], _HTML_FALLBACK)
    try:
        body = chevron.render(template, context, partials_dict=_PARTIALS)
    except Exception:
        body = f'<p class="item-label">{escape(view["label"])}</p>'
    return chevron.render(_WRAPPER, {**context, "body": body})


def count_rating_steps(markup: str) -> int:
    """Number of rendered rating steps in HTML markup."""
    return len(re.findall(r'class="rating-step[^"]*"', markup))


# ---------------------------------------------------------------------------
# Context building
# ---------------------------------------------------------------------------


def _default_resolver(mode: str, today: date | None) -> VariableResolver:
    if mode == CANVAS:
        return VariableResolver.authoring()
    return VariableResolver(PREVIEW, builtin_samples(today))


def _build_context(
    view: dict[str, Any],
    mode: str,
    resolver: VariableResolver,
    *,
    index: int,
    selected: bool,
    today: date | None,
) -> dict[str, Any]:
    readonly = mode != CANVAS
    context: dict[str, Any] = dict(view)
    context.update(
        {
            "readonly": readonly,
            "selected": selected and mode == CANVAS,
            "dom_id": f"{mode}-{view['id']}",
            "number": index + 1,
            "sample_date": (today or date.today()).isoformat(),
        }
    )

    context["options"] = [
        {
            "value": option,
            "letter": _option_letter(i),
            "attrs": _option_attrs(view["type"], i, readonly),
        }
        for i, option in enumerate(view["options"])
    ]

    context["steps"] = [
        {
            "value": step,
            "css": " is-filled" if readonly and step <= SAMPLE_RATING else "",
            "attrs": " disabled" if readonly else "",
        }
        for step in range(1, view["rating_scale"] + 1)
    ]

    if view["type"] in ("rich_text", "instruction"):
        source = view["rich_content"] if view["type"] == "rich_text" else view["label"]
        if view["type"] == "rich_text":
            resolved = resolver.apply_html(source)
            content_html = resolved
        else:
            resolved = resolver.apply(source)
            content_html = escape(resolved)
        if mode == CANVAS:
            content_html = highlight_tokens(content_html)
        context["content_html"] = content_html
        context["content_text"] = strip_html(resolved) if view["type"] == "rich_text" else resolved

    return context


def _option_letter(index: int) -> str:
    letters = "abcdefghijklmnopqrstuvwxyz"
    if index < len(letters):
        return letters[index]
    return f"{letters[index // len(letters) - 1]}{letters[index % len(letters)]}"


def _option_attrs(item_type: str, index: int, readonly: bool) -> str:
    if not readonly:
        return ""
    if item_type == "dropdown":
        return " selected" if index == 0 else ""
    return " disabled checked" if index == 0 else " disabled"


# ---------------------------------------------------------------------------
# Inline helpers
# ---------------------------------------------------------------------------

_IMG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_ALT_RE = re.compile(r'alt="([^"]*)"', re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</(?:p|div|h[1-6]|li|tr|blockquote)>|<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def escape(text: str) -> str:
    """HTML-escape user content."""
    return _html_escape(str(text), quote=True)


def highlight_tokens(html: str) -> str:
    """Wrap `{name}` tokens so authors can see the dynamic positions."""
    return TOKEN_PATTERN.sub(r'<span class="variable-highlight">{\1}</span>', html)


def strip_html(html: str) -> str:
    """
    Plain text from rich content. Images become [IMAGE: alt] markers,
    block boundaries become line breaks.
    """
    if not html:
        return ""

    def image_marker(m: re.Match) -> str:
        alt = _ALT_RE.search(m.group(0))
        label = alt.group(1) if alt and alt.group(1) else "Uploaded image"
        return f"\n[IMAGE: {label}]\n"

    text = _IMG_RE.sub(image_marker, html)
    text = _BLOCK_END_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = _html_unescape(text)
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return "\n".join(line for line in lines if line)
