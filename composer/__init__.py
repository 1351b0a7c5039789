"""Template Composer — structured document builder for contracts, audits and certifications."""

__version__ = "0.1.0"
