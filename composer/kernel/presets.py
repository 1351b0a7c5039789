"""
Preset sections for contract templates.

Each preset is a section update plus an ordered list of (item_type, fields)
pairs. Numeric and long-form answers are plain text items; yes/no flags are
two-option multiple choice.
"""

from __future__ import annotations

from typing import Any

YES_NO = ["Yes", "No"]

POLICIES_LEGAL: dict[str, Any] = {
    "title": "Policies & Legal",
    "description": "Contract policies, cancellation, confidentiality, and data protection terms",
    "items": [
        ("text", {"label": "Cancellation Notice Days", "required": True, "placeholder": "e.g., 15"}),
        ("multiple_choice", {"label": "Cancellation Fee Applies", "options": YES_NO}),
        ("text", {"label": "Confidentiality Clause", "required": True,
                  "placeholder": "Enter confidentiality terms..."}),
        ("text", {"label": "Data Protection Compliance", "required": True,
                  "placeholder": "Enter data protection compliance requirements..."}),
    ],
}

TIMELINE_CERTIFICATION: dict[str, Any] = {
    "title": "Timeline & Certification Conditions",
    "description": "Audit timeline, certification process, and validity conditions",
    "items": [
        ("text", {"label": "Stage 1 Audit Days", "required": True, "placeholder": "e.g., 1"}),
        ("text", {"label": "Stage 1 Description",
                  "placeholder": "Reviews documentation, readiness, and preparedness."}),
        ("multiple_choice", {"label": "Stage 1 Remote Allowed", "options": YES_NO}),
        ("text", {"label": "Stage 2 Audit Days", "required": True, "placeholder": "e.g., 3"}),
        ("text", {"label": "Stage 2 Description",
                  "placeholder": "Full assessment of implementation and conformity..."}),
        ("text", {"label": "Surveillance Audit Frequency", "placeholder": "e.g., Annual"}),
        ("text", {"label": "Certificate Validity (Years)", "placeholder": "e.g., 3"}),
        ("text", {"label": "NC Closure Max Days", "placeholder": "e.g., 60"}),
    ],
}

SECTION_PRESETS: dict[str, dict[str, Any]] = {
    "policies_legal": POLICIES_LEGAL,
    "timeline_certification": TIMELINE_CERTIFICATION,
}
