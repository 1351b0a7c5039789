"""
Starter documents offered in the builder's template gallery.

Built through an EditSession, so every node gets a freshly minted id and
the result is an ordinary unsaved draft.
"""

from __future__ import annotations

from typing import Any

from composer.kernel.document import locate_section, new_template
from composer.kernel.session import EditSession
from composer.kernel.types import Template

SERVICE_AGREEMENT_TERMS = """
<h2>Service Agreement</h2>
<p>This Service Agreement ("Agreement") is entered into on <strong>{contract_date}</strong> between
<strong>{client_name}</strong> ("Client") and <strong>{company_name}</strong> ("Service Provider").</p>
<h3>1. Services</h3>
<p>The Service Provider agrees to provide the following services: <strong>{service_description}</strong></p>
<h3>2. Payment Terms</h3>
<p>Total contract value: <strong>{contract_amount}</strong></p>
<p>Payment schedule: <strong>{payment_schedule}</strong></p>
<h3>3. Duration</h3>
<p>This agreement shall commence on <strong>{start_date}</strong> and continue until <strong>{end_date}</strong>,
unless terminated earlier in accordance with the terms herein.</p>
""".strip()

SIGNATURE_BLOCK = """
<div class="signatures">
<div><p><strong>Client Signature:</strong></p><p>Name: {client_name}</p><p>Date: {signature_date}</p></div>
<div><p><strong>Service Provider Signature:</strong></p><p>Name: {company_name}</p><p>Date: {signature_date}</p></div>
</div>
""".strip()


def _build_section(session: EditSession, spec: dict[str, Any]) -> None:
    result = session.add_section()
    section_id = result.target_id
    _, section_index = locate_section(session.template, section_id)

    updates = {k: v for k, v in spec.items() if k != "items"}
    session.update_section(section_id, updates)

    for item_index, (item_type, fields) in enumerate(spec.get("items", [])):
        session.add_item(section_index, item_type)
        session.update_item(section_index, item_index, fields)


def _build(
    title: str,
    type: str,
    description: str,
    pages: list[dict[str, Any]],
    settings: dict[str, Any] | None = None,
    variables: list[dict[str, Any]] | None = None,
    metadata: dict[str, Any] | None = None,
) -> Template:
    """Each page spec holds page fields plus its "sections"; pages after the first are appended."""
    session = EditSession(new_template(title=title, type=type, description=description))
    if settings:
        session.update_settings(settings)
    for decl in variables or []:
        session.declare_variable(decl)
    if metadata:
        session.update_template({"metadata": metadata})

    for page_index, page in enumerate(pages):
        if page_index > 0:
            session.add_page()
        page_fields = {k: v for k, v in page.items() if k != "sections"}
        if page_fields:
            session.update_page(page_fields)
        for spec in page.get("sections", []):
            _build_section(session, spec)

    session.select(None)
    session.set_current_page(0)
    return session.template


def service_contract_template() -> Template:
    """Professional service agreement: terms, client details, signatures."""
    card = {
        "border_color": "#e2e8f0",
        "border_width": 1,
        "border_style": "solid",
        "border_radius": 12,
        "padding": 20,
        "shadow": "0 2px 8px rgba(0,0,0,0.1)",
    }
    sections = [
        {
            "title": "Service Agreement Terms",
            "description": "Main contract terms and conditions",
            "position": {"x": 50, "y": 50},
            "size": {"width": 700, "height": 400},
            "style": {**card, "background_color": "#ffffff"},
            "template_content": SERVICE_AGREEMENT_TERMS,
            "items": [
                ("text", {"label": "Service Description", "required": True,
                          "placeholder": "Describe the services to be provided..."}),
                ("multiple_choice", {"label": "Payment Schedule", "required": True,
                                     "options": ["Monthly installments", "Quarterly payments",
                                                 "Upon completion", "Custom schedule"]}),
                ("date", {"label": "Service Start Date", "required": True}),
                ("date", {"label": "Service End Date", "required": True}),
            ],
        },
        {
            "title": "Client Information",
            "description": "Client details and contact information",
            "position": {"x": 50, "y": 500},
            "size": {"width": 700, "height": 300},
            "style": {**card, "background_color": "#f8fafc", "border_color": "#cbd5e1"},
            "items": [
                ("text", {"label": "Client Name/Organization", "required": True,
                          "placeholder": "Enter client name or organization..."}),
                ("text", {"label": "Client Address", "required": True,
                          "placeholder": "Enter complete address..."}),
                ("text", {"label": "Primary Contact", "required": True,
                          "placeholder": "Contact person name and title..."}),
                ("text", {"label": "Email Address", "required": True, "placeholder": "primary@email.com"}),
                ("text", {"label": "Phone Number", "required": True, "placeholder": "+1 (555) 123-4567"}),
            ],
        },
        {
            "title": "Signatures",
            "description": "Contract execution signatures",
            "position": {"x": 50, "y": 850},
            "size": {"width": 700, "height": 200},
            "style": {**card, "background_color": "#ffffff", "border_width": 2},
            "template_content": SIGNATURE_BLOCK,
            "items": [
                ("multiple_choice", {"label": "Signature Method", "required": True,
                                     "options": ["Electronic signature", "Physical signature",
                                                 "Digital signature"]}),
                ("multiple_choice", {"label": "Witness Required?", "options": ["Yes", "No"]}),
            ],
        },
    ]
    variables = [
        {"name": "client_name", "type": "text", "description": "Client or organization name"},
        {"name": "company_name", "type": "text", "description": "Service provider company name"},
        {"name": "contract_date", "type": "date", "description": "Date of contract execution"},
        {"name": "contract_amount", "type": "currency", "description": "Total contract value"},
        {"name": "service_description", "type": "text", "description": "Description of services"},
        {"name": "payment_schedule", "type": "text", "description": "Payment schedule terms"},
        {"name": "start_date", "type": "date", "description": "Service start date"},
        {"name": "end_date", "type": "date", "description": "Service end date"},
        {"name": "signature_date", "type": "date", "description": "Date of signing"},
    ]
    return _build(
        "Professional Service Agreement",
        "contract",
        "A comprehensive service agreement template for professional services contracts",
        [{"title": "Service Agreement", "sections": sections}],
        settings={"page_size": "Letter", "orientation": "portrait",
                  "margins": {"top": 50, "right": 50, "bottom": 50, "left": 50}},
        variables=variables,
        metadata={"require_all": True, "show_progress": True, "auto_save": True},
    )


def audit_checklist_template() -> Template:
    """Site inspection checklist with a rating and yes/no checks."""
    sections = [
        {
            "title": "General Site Conditions",
            "description": "Overall assessment of site conditions and maintenance",
            "position": {"x": 50, "y": 50},
            "size": {"width": 700, "height": 350},
            "items": [
                ("rating", {"label": "How would you rate the overall cleanliness of the premises?",
                            "required": True, "rating_scale": 5}),
                ("multiple_choice", {"label": "Are safety signs clearly visible and unobstructed?",
                                     "required": True, "options": ["Yes", "No", "Partially"]}),
                ("multiple_choice", {"label": "Are all emergency exits clearly marked and accessible?",
                                     "required": True, "options": ["Yes", "No", "Some issues noted"]}),
                ("text", {"label": "Describe any maintenance issues observed",
                          "placeholder": "List any maintenance concerns or observations..."}),
            ],
        },
    ]
    return _build(
        "Site Audit Checklist",
        "audit",
        "Standard site inspection and audit checklist template",
        [
            {
                "title": "Site Audit Checklist",
                "content": "<h1>Site Inspection Audit</h1><p>Conducted on: {audit_date}</p><p>Inspector: {inspector_name}</p>",
                "sections": sections,
            }
        ],
        variables=[
            {"name": "audit_date", "type": "date", "description": "Date of audit"},
            {"name": "inspector_name", "type": "text", "description": "Name of inspector"},
            {"name": "site_location", "type": "text", "description": "Location being audited"},
        ],
    )


ISO_COVER_TEXT = """
<h2>ISO 9001:2015 CERTIFICATION CONTRACT</h2>
<p><strong>Contract Number:</strong> {contract_number}<br><strong>Date:</strong> {contract_date}<br>
<strong>Valid Until:</strong> {contract_end_date}</p>
<h3>Client Information</h3>
<p><strong>Company:</strong> {client_name}<br><strong>Contact:</strong> {client_contact}<br>
<strong>Email:</strong> {client_email}<br><strong>Phone:</strong> {client_phone}</p>
<h3>Certification Details</h3>
<p><strong>Standard:</strong> ISO 9001:2015<br><strong>Scope:</strong> {certification_scope}<br>
<strong>Sites:</strong> {number_of_sites}</p>
<p><strong>Total Investment:</strong> {total_contract_value}</p>
""".strip()

ISO_INTRODUCTION = """
<h2>1. INTRODUCTION</h2>
<p>This ISO 9001:2015 Quality Management System Certification Agreement ("Agreement") is entered into on
<strong>{contract_date}</strong> between <strong>{provider_company}</strong> ("Certification Body") and
<strong>{client_company}</strong> ("Organization").</p>
<p>The purpose of this agreement is to establish the terms and conditions under which the Certification Body
will provide ISO 9001:2015 Quality Management System certification services to the Organization.</p>
<h3>1.1 Scope of Certification</h3>
<p>The certification will cover the Organization's Quality Management System as it relates to:
<strong>{certification_scope}</strong></p>
<h3>1.2 Applicable Standards</h3>
<ul>
<li>ISO 9001:2015 - Quality Management Systems - Requirements</li>
<li>ISO/IEC 17021-1:2015 - Conformity assessment - Requirements for bodies providing audit and certification</li>
<li>IAF MD1:2018 - IAF Mandatory Document for the Application of ISO/IEC 17021-1</li>
</ul>
""".strip()

ISO_PROCESS = """
<h2>2. CERTIFICATION PROCESS</h2>
<p>The certification process will be conducted in accordance with ISO/IEC 17021-1:2015 and consists of the
following stages:</p>
<h3>2.1 Application Review</h3>
<ul><li>Review of application and supporting documentation</li><li>Confirmation of scope and applicable
standards</li><li>Assessment of audit time requirements</li><li>Assignment of audit team</li></ul>
<h3>2.2 Stage 1 Audit (Documentation Review)</h3>
<ul><li>Review of QMS documentation and procedures</li><li>Verification of readiness for Stage 2 audit</li></ul>
<h3>2.3 Stage 2 Audit (Implementation Assessment)</h3>
<ul><li>On-site assessment of QMS implementation</li><li>Verification of compliance with ISO 9001:2015</li></ul>
<h3>2.4 Certification Decision</h3>
<ul><li>Certification decision by independent certification committee</li><li>Certificate valid for 3 years</li></ul>
<h3>2.5 Surveillance Audits</h3>
<p>Annual surveillance audits will be conducted to verify continued compliance and effectiveness of the QMS.</p>
""".strip()

ISO_CONDITIONS = """
<h2>3. CERTIFICATION CONDITIONS</h2>
<h3>3.1 Certificate Validity and Maintenance</h3>
<ul><li>Certificate is valid for 3 years from the date of issue</li><li>Annual surveillance audits are mandatory
to maintain certification</li><li>Certificate may be suspended or withdrawn for non-compliance</li></ul>
<h3>3.2 Use of Certificate and Marks</h3>
<ul><li>Certificate and marks may only be used in accordance with certification body rules</li>
<li>Certificate applies only to the defined scope and locations</li></ul>
<h3>3.3 Changes to Certified Organization</h3>
<p>The Organization must notify the Certification Body of any changes that may affect the QMS or
certification.</p>
<h3>3.4 Complaints and Appeals</h3>
<p>Appeals and complaints must be submitted in writing within 30 days.</p>
""".strip()

ISO_LEGAL = """
<h2>4. LEGAL TERMS AND CONDITIONS</h2>
<h3>4.1 Confidentiality</h3>
<p>Both parties agree to keep confidential all information obtained from the other party that is designated
as confidential or which by its nature is confidential.</p>
<h3>4.2 Data Protection</h3>
<p>The Certification Body shall process personal data in accordance with applicable data protection laws.</p>
<h3>4.3 Responsibilities of the Client</h3>
<ul><li>Comply with certification requirements</li><li>Make all necessary arrangements for audits</li>
<li>Provide access to documentation and records</li></ul>
<h3>4.4 Cancellation and Termination</h3>
<p>Either party may terminate this Agreement by giving 30 days written notice. Cancellation fees may apply if
audits are cancelled within 14 days of the scheduled date.</p>
<h3>4.5 General Terms</h3>
<p>This Agreement constitutes the entire agreement between the parties.</p>
""".strip()


def certification_contract_template() -> Template:
    """Ten-page ISO 9001:2015 certification contract: cover, parties, terms, fees, signatures."""

    def card(background: str, border: str, width: int = 1, padding: int = 30) -> dict[str, Any]:
        return {
            "background_color": background,
            "border_color": border,
            "border_width": width,
            "border_style": "solid",
            "border_radius": 12,
            "padding": padding,
            "shadow": "0 2px 8px rgba(0,0,0,0.1)",
        }

    def full_page(title: str, description: str, style: dict[str, Any], height: int = 700, **fields: Any):
        return {
            "title": title,
            "description": description,
            "position": {"x": 50, "y": 50},
            "size": {"width": 800, "height": height},
            "style": style,
            **fields,
        }

    def choice(label: str, options: list[str]) -> tuple[str, dict[str, Any]]:
        return "dropdown", {"label": label, "required": True, "options": options}

    def field(label: str, placeholder: str = "", required: bool = True) -> tuple[str, dict[str, Any]]:
        return "text", {"label": label, "required": required, "placeholder": placeholder or None}

    def when(label: str, required: bool = True) -> tuple[str, dict[str, Any]]:
        return "date", {"label": label, "required": required}

    pages = [
        {
            "title": "Contract Cover Page",
            "sections": [
                {
                    "title": "Contract Cover Image",
                    "description": "Professional contract cover image",
                    "position": {"x": 50, "y": 50},
                    "size": {"width": 400, "height": 600},
                    "style": card("#f8fafc", "#e2e8f0", padding=20),
                    "template_content": "<h1>ISO 9001:2015 CERTIFICATION</h1>"
                    "<p>Professional Certification Services</p>"
                    "<p>Quality Management System Certification</p>",
                },
                {
                    "title": "Contract Information",
                    "description": "Contract title and basic information",
                    "position": {"x": 500, "y": 50},
                    "size": {"width": 400, "height": 600},
                    "style": card("#ffffff", "#e2e8f0", padding=20),
                    "template_content": ISO_COVER_TEXT,
                },
            ],
        },
        {
            "title": "Contract Parties & Timeline",
            "content": "<h1>CONTRACT PARTIES &amp; TIMELINE</h1>",
            "sections": [
                {
                    "title": "Service Provider Details",
                    "description": "Information about the certification body",
                    "position": {"x": 50, "y": 100},
                    "size": {"width": 400, "height": 350},
                    "style": card("#ffffff", "#3b82f6", 2, 20),
                    "items": [
                        field("Certification Body Name"),
                        field("Business Address"),
                        field("Primary Contact Person"),
                        field("Email Address"),
                        field("Phone Number"),
                    ],
                },
                {
                    "title": "Client Details",
                    "description": "Information about the client organization",
                    "position": {"x": 500, "y": 100},
                    "size": {"width": 400, "height": 350},
                    "style": card("#ffffff", "#10b981", 2, 20),
                    "items": [
                        field("Client Company Name"),
                        field("Industry/Sector"),
                        choice("Company Size", ["Small (1-50 employees)", "Medium (51-250 employees)",
                                                "Large (251-1000 employees)", "Enterprise (1000+ employees)"]),
                        field("Contact Person"),
                        field("Position/Title"),
                    ],
                },
                {
                    "title": "Contract Timeline",
                    "description": "Important dates and milestones",
                    "position": {"x": 275, "y": 500},
                    "size": {"width": 400, "height": 250},
                    "style": card("#fef3c7", "#f59e0b", 2, 20),
                    "items": [
                        when("Contract Start Date"),
                        when("Contract End Date"),
                        when("Initial Audit Date"),
                        when("Target Certification Date"),
                    ],
                },
            ],
        },
        {
            "title": "Introduction",
            "sections": [
                full_page("Introduction", "Contract introduction and overview", card("#ffffff", "#e2e8f0"),
                          height=600, template_content=ISO_INTRODUCTION),
            ],
        },
        {
            "title": "Client Details",
            "content": "<h1>CLIENT ORGANIZATION DETAILS</h1>",
            "sections": [
                full_page(
                    "Organization Information Form",
                    "Detailed client information collection",
                    card("#f9fafb", "#6366f1", 2),
                    items=[
                        field("Legal Organization Name"),
                        field("Trading/Brand Name (if different)", required=False),
                        field("Business Registration Number"),
                        field("Head Office Address"),
                        field("Website URL", required=False),
                        field("Total Number of Employees"),
                        choice("Annual Revenue Range", ["Under $1M", "$1M - $10M", "$10M - $50M",
                                                        "$50M - $100M", "Over $100M", "Prefer not to disclose"]),
                        field("Quality Manager/Representative Name"),
                        field("Quality Manager Email"),
                    ],
                ),
            ],
        },
        {
            "title": "Scope of Work",
            "content": "<h1>SCOPE OF WORK &amp; REQUIREMENTS</h1>",
            "sections": [
                full_page(
                    "Certification Scope Definition",
                    "Define the scope and requirements for certification",
                    card("#f0f9ff", "#0ea5e9", 2),
                    items=[
                        field("Business Activities to be Covered"),
                        field("Products and/or Services"),
                        field("Locations/Sites to be Certified"),
                        field("Exclusions (if any)", required=False),
                        choice("Current Certification Status", ["First-time certification",
                                                                "Transfer from another certification body",
                                                                "Upgrading from ISO 9001:2008", "Recertification"]),
                        when("QMS Implementation Date"),
                        choice("Internal Audit Status", ["Complete internal audit cycle completed",
                                                         "Partial internal audit completed",
                                                         "Internal audit planned", "No internal audit conducted"]),
                        choice("Management Review Status", ["Management review completed",
                                                            "Management review planned",
                                                            "No management review conducted"]),
                    ],
                ),
            ],
        },
        {
            "title": "Certification Process",
            "sections": [
                full_page("Certification Process", "Detailed certification process and methodology",
                          card("#ffffff", "#e2e8f0"), template_content=ISO_PROCESS),
            ],
        },
        {
            "title": "Certification Conditions",
            "sections": [
                full_page("Certification Conditions", "Certificate validity, use of marks and obligations",
                          card("#ffffff", "#e2e8f0"), template_content=ISO_CONDITIONS),
            ],
        },
        {
            "title": "Fee Structure",
            "sections": [
                full_page(
                    "Certification Fees",
                    "Detailed breakdown of certification costs",
                    card("#f0fdf4", "#16a34a", 2),
                    items=[
                        field("Initial Certification Cost", "Enter amount for initial certification"),
                        field("1st Surveillance Audit Cost", "Enter amount for 1st surveillance"),
                        field("2nd Surveillance Audit Cost", "Enter amount for 2nd surveillance"),
                        field("Recertification Cost", "Enter amount for recertification"),
                        choice("Currency", ["USD", "EUR", "GBP", "KES", "ZAR"]),
                        field("Payment Terms", "e.g., 50% advance, 50% upon completion"),
                    ],
                ),
            ],
        },
        {
            "title": "Legal Terms & Conditions",
            "sections": [
                full_page("Legal Terms", "Confidentiality, Data Protection, Responsibilities, and Terms",
                          card("#ffffff", "#e2e8f0"), height=900, template_content=ISO_LEGAL),
            ],
        },
        {
            "title": "Signatures",
            "content": "<h1>AGREEMENT SIGNATURES</h1>",
            "sections": [
                full_page(
                    "Signatures",
                    "Authorized signatures",
                    card("#ffffff", "#94a3b8", 2),
                    height=500,
                    items=[
                        ("instruction", {"label": "By signing below, the parties agree to the terms and "
                                                  "conditions of this Agreement."}),
                        field("For Certification Body (Name)", "Name of authorized signatory"),
                        field("Title", "Title"),
                        when("Date"),
                        field("For Client Organization (Name)", "Name of authorized signatory"),
                        field("Title", "Title"),
                        when("Date"),
                    ],
                ),
            ],
        },
    ]
    variables = [
        {"name": "contract_number", "type": "text", "description": "Contract reference number"},
        {"name": "contract_date", "type": "date", "description": "Date of contract execution"},
        {"name": "contract_end_date", "type": "date", "description": "Contract end date"},
        {"name": "client_name", "type": "text", "description": "Client or organization name"},
        {"name": "client_contact", "type": "text", "description": "Client contact person"},
        {"name": "client_email", "type": "text", "description": "Client email address"},
        {"name": "client_phone", "type": "text", "description": "Client phone number"},
        {"name": "client_company", "type": "text", "description": "Client company legal name"},
        {"name": "provider_company", "type": "text", "description": "Certification body name"},
        {"name": "certification_scope", "type": "text", "description": "Scope of certification"},
        {"name": "number_of_sites", "type": "number", "description": "Number of certified sites"},
        {"name": "total_contract_value", "type": "currency", "description": "Total contract value"},
    ]
    return _build(
        "ISO 9001:2015 Certification Contract",
        "contract",
        "Standard contract for ISO 9001:2015 Quality Management System certification services",
        pages,
        variables=variables,
    )


STARTERS = {
    "service_contract": service_contract_template,
    "audit_checklist": audit_checklist_template,
    "certification_contract": certification_contract_template,
}
