"""
Template Composer Kernel — Variable Substitution

Replaces `{name}` tokens inside content strings.

Token grammar (stable, stored in authored content):
    "{" + one or more of [A-Za-z0-9_] + "}"     (no escaping mechanism)

Contexts:
    authoring — tokens are kept verbatim so the author sees dynamic positions
    preview   — built-in sample table, then the template's declared variables
    live      — caller-supplied real values, then the preview fallbacks

Substitution is one global pass: every occurrence is replaced and a
substituted value is never scanned again, so values containing `{...}`
cannot trigger further expansion. Unresolved tokens stay as literal text.
"""

from __future__ import annotations

import html
import re
from datetime import date, timedelta
from typing import Any

from composer.config import settings
from composer.kernel.document import ordered_items, ordered_pages, ordered_sections
from composer.kernel.types import Template, VariableDeclaration

TOKEN_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")

AUTHORING = "authoring"
PREVIEW = "preview"
LIVE = "live"

SAMPLE_CURRENCY_AMOUNT = 1_000
SAMPLE_NUMBER = 100


# ---------------------------------------------------------------------------
# Sample values
# ---------------------------------------------------------------------------


def format_date(value: date) -> str:
    """Localized short date, e.g. 10/19/2026."""
    return settings.SAMPLE_DATE_FORMAT.format(
        month=value.month,
        day=value.day,
        year=value.year,
    )


def format_currency(amount: float) -> str:
    return f"{settings.SAMPLE_CURRENCY_SYMBOL}{amount:,.0f}"


def builtin_samples(today: date | None = None) -> dict[str, str]:
    """The fixed sample table used when previewing without live data."""
    today = today or date.today()
    return {
        "client_name": "John Doe",
        "contract_date": format_date(today),
        "company_name": "ABC Corporation",
        "contract_amount": format_currency(10_000),
        "amount": format_currency(10_000),
        "service_description": "Professional consulting services",
        "payment_schedule": "Monthly payments",
        "start_date": format_date(today),
        "end_date": format_date(today + timedelta(days=365)),
        "signature_date": format_date(today),
        "audit_date": format_date(today),
        "inspector_name": "Jane Smith",
        "site_location": "123 Business Street",
        "address": "123 Main St, City, State 12345",
    }


def sample_value(declaration: VariableDeclaration, today: date | None = None) -> str:
    """A type-appropriate sample for a declared variable."""
    if declaration.type == "date":
        return format_date(today or date.today())
    if declaration.type == "currency":
        return format_currency(SAMPLE_CURRENCY_AMOUNT)
    if declaration.type == "number":
        return str(SAMPLE_NUMBER)
    return f"Sample {declaration.name.replace('_', ' ')}"


def preview_values(template: Template, today: date | None = None) -> dict[str, str]:
    """
    Token table for preview/PDF.
    Built-in samples win; declared variables fill the gaps with their
    default, or a synthesized sample when they have none.
    """
    values = builtin_samples(today)
    for decl in template.variables:
        if decl.name in values:
            continue
        values[decl.name] = decl.default if decl.default is not None else sample_value(decl, today)
    return values


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------


def substitute(content: str, values: dict[str, Any]) -> str:
    """Replace every known token in one pass. Unknown tokens are left as-is."""
    if not content:
        return content or ""

    def replace_token(m: re.Match) -> str:
        value = values.get(m.group(1))
        if value is None:
            return m.group(0)
        return str(value)

    return TOKEN_PATTERN.sub(replace_token, content)


class VariableResolver:
    """
    Substitution bound to one context.

    Build once per render pass (the value table is computed up front) and
    call apply() for every content string.
    """

    def __init__(self, mode: str = AUTHORING, values: dict[str, Any] | None = None):
        if mode not in (AUTHORING, PREVIEW, LIVE):
            raise ValueError(f"Unknown substitution context: {mode}")
        self.mode = mode
        self.values: dict[str, Any] = dict(values or {})

    @classmethod
    def authoring(cls) -> VariableResolver:
        return cls(AUTHORING)

    @classmethod
    def preview(cls, template: Template, today: date | None = None) -> VariableResolver:
        return cls(PREVIEW, preview_values(template, today))

    @classmethod
    def live(
        cls,
        template: Template,
        values: dict[str, Any],
        today: date | None = None,
    ) -> VariableResolver:
        merged: dict[str, Any] = preview_values(template, today)
        merged.update({k: v for k, v in values.items() if v is not None})
        return cls(LIVE, merged)

    @property
    def substitutes(self) -> bool:
        return self.mode != AUTHORING

    def apply(self, content: str | None) -> str:
        if content is None:
            return ""
        if not self.substitutes:
            return content
        return substitute(content, self.values)

    def apply_html(self, content: str | None) -> str:
        """apply() for markup: substituted values are HTML-escaped, the markup itself is kept."""
        if content is None:
            return ""
        if not self.substitutes:
            return content
        escaped = {k: html.escape(str(v)) for k, v in self.values.items() if v is not None}
        return substitute(content, escaped)


def resolve_content(
    content: str | None,
    template: Template,
    mode: str = PREVIEW,
    values: dict[str, Any] | None = None,
    today: date | None = None,
) -> str:
    """One-shot convenience around VariableResolver."""
    if mode == AUTHORING:
        resolver = VariableResolver.authoring()
    elif mode == LIVE:
        resolver = VariableResolver.live(template, values or {}, today)
    else:
        resolver = VariableResolver.preview(template, today)
    return resolver.apply(content)


# ---------------------------------------------------------------------------
# Token inspection
# ---------------------------------------------------------------------------


def extract_tokens(content: str | None) -> list[str]:
    """Token names in order of first appearance."""
    seen: dict[str, None] = {}
    for name in TOKEN_PATTERN.findall(content or ""):
        seen.setdefault(name, None)
    return list(seen)


def content_strings(template: Template) -> list[str]:
    """Every authored string that may carry tokens."""
    strings: list[str] = []
    for page in ordered_pages(template):
        strings.append(page.content)
        for section in ordered_sections(template, page):
            if section.template_content:
                strings.append(section.template_content)
            for item in ordered_items(template, section):
                if item.type == "rich_text":
                    strings.append(item.rich_content or item.label)
                elif item.type == "instruction":
                    strings.append(item.label)
    return [s for s in strings if s]


def template_tokens(template: Template) -> list[str]:
    seen: dict[str, None] = {}
    for content in content_strings(template):
        for name in extract_tokens(content):
            seen.setdefault(name, None)
    return list(seen)


def undeclared_tokens(template: Template) -> list[str]:
    """Tokens used in content that neither the sample table nor a declaration resolves."""
    known = set(builtin_samples()) | {decl.name for decl in template.variables}
    return sorted(name for name in template_tokens(template) if name not in known)


def variable_metadata(template: Template) -> list[dict[str, Any]]:
    """Declarations only. Values are synthesized at render time and never persisted."""
    return [decl.to_dict() for decl in template.variables]
