"""
Template Composer Variables — Substitution Engine

Token grammar, the three contexts, totality (no declared or builtin token
survives a preview), and single-pass semantics.
"""

from datetime import date

import pytest

from composer.kernel.document import new_template
from composer.kernel.session import EditSession
from composer.kernel.types import VariableDeclaration
from composer.kernel.variables import (
    AUTHORING,
    LIVE,
    TOKEN_PATTERN,
    VariableResolver,
    builtin_samples,
    extract_tokens,
    format_currency,
    format_date,
    preview_values,
    resolve_content,
    sample_value,
    substitute,
    template_tokens,
    undeclared_tokens,
    variable_metadata,
)

TODAY = date(2026, 3, 14)


@pytest.fixture
def declared():
    s = EditSession(new_template(title="Vars"))
    s.declare_variable({"name": "site_location", "type": "text"})
    s.declare_variable({"name": "review_date", "type": "date"})
    s.declare_variable({"name": "fee", "type": "currency"})
    s.declare_variable({"name": "headcount", "type": "number"})
    s.declare_variable({"name": "project_code", "type": "text", "default": "PRJ-7"})
    return s.template


class TestGrammar:
    @pytest.mark.parametrize("token", ["{a}", "{client_name}", "{X9_}"])
    def test_matches(self, token):
        assert TOKEN_PATTERN.fullmatch(token)

    @pytest.mark.parametrize("text", ["{}", "{client name}", "{a-b}", "{{x}}", "client_name"])
    def test_does_not_match(self, text):
        assert not TOKEN_PATTERN.fullmatch(text)

    def test_extract_in_first_appearance_order(self):
        assert extract_tokens("{b} {a} {b} {c d} {c}") == ["b", "a", "c"]


class TestSubstitute:
    def test_every_occurrence_replaced(self):
        assert substitute("{x}-{x}-{x}", {"x": "1"}) == "1-1-1"

    def test_unknown_token_kept_literally(self):
        assert substitute("Hello {nobody}", {}) == "Hello {nobody}"

    def test_single_pass(self):
        values = {"a": "{b}", "b": "boom"}
        assert substitute("{a}", values) == "{b}"

    def test_empty_and_none_content(self):
        assert substitute("", {"a": "1"}) == ""
        assert substitute(None, {"a": "1"}) == ""

    def test_non_string_values_stringified(self):
        assert substitute("{n}", {"n": 3}) == "3"


class TestSamples:
    def test_builtin_table(self):
        samples = builtin_samples(TODAY)
        assert samples["client_name"] == "John Doe"
        assert samples["company_name"] == "ABC Corporation"
        assert samples["contract_amount"] == "$10,000"
        assert samples["contract_date"] == "3/14/2026"
        assert samples["end_date"] == "3/14/2027"

    def test_typed_samples(self):
        assert sample_value(VariableDeclaration("d", "date"), TODAY) == "3/14/2026"
        assert sample_value(VariableDeclaration("c", "currency")) == "$1,000"
        assert sample_value(VariableDeclaration("n", "number")) == "100"
        assert sample_value(VariableDeclaration("site_location", "text")) == "Sample site location"

    def test_formatters(self):
        assert format_date(date(2026, 1, 5)) == "1/5/2026"
        assert format_currency(1234567) == "$1,234,567"

    def test_builtin_wins_over_declaration(self):
        s = EditSession(new_template())
        s.declare_variable({"name": "client_name", "type": "text", "default": "Override"})
        assert preview_values(s.template, TODAY)["client_name"] == "John Doe"

    def test_declared_default_used(self, declared):
        assert preview_values(declared, TODAY)["project_code"] == "PRJ-7"


class TestContexts:
    def test_authoring_verbatim(self, declared):
        text = "Dear {client_name}, see {site_location}"
        assert resolve_content(text, declared, AUTHORING) == text

    def test_preview_totality(self, declared):
        names = list(builtin_samples(TODAY)) + [v.name for v in declared.variables]
        text = " ".join("{%s}" % n for n in names)
        out = VariableResolver.preview(declared, TODAY).apply(text)
        assert TOKEN_PATTERN.search(out) is None

    def test_live_values_win(self, declared):
        out = resolve_content("{client_name} @ {site_location}", declared, LIVE, {"client_name": "Acme Ltd"}, TODAY)
        assert out == "Acme Ltd @ Sample site location"

    def test_live_none_falls_back(self, declared):
        out = resolve_content("{client_name}", declared, LIVE, {"client_name": None}, TODAY)
        assert out == "John Doe"

    def test_unknown_context_rejected(self):
        with pytest.raises(ValueError):
            VariableResolver("draft")

    def test_apply_none(self):
        assert VariableResolver.authoring().apply(None) == ""


class TestInspection:
    def test_template_tokens_and_undeclared(self, contract):
        s = EditSession(contract)
        s.update_page({"content": "<p>{client_name} at {mystery_field}</p>"})
        tokens = template_tokens(s.template)
        assert "contract_date" in tokens
        assert undeclared_tokens(s.template) == ["mystery_field"]

    def test_metadata_holds_declarations_only(self, declared):
        meta = variable_metadata(declared)
        assert [m["name"] for m in meta] == ["site_location", "review_date", "fee", "headcount", "project_code"]
        assert "value" not in meta[0]
