"""
Template Composer configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Remote template store
    TEMPLATE_STORE_URL: str = os.environ.get("TEMPLATE_STORE_URL", "")
    TEMPLATE_STORE_TOKEN: str = os.environ.get("TEMPLATE_STORE_TOKEN", "")
    TEMPLATE_STORE_TIMEOUT: float = float(os.environ.get("TEMPLATE_STORE_TIMEOUT", "30"))

    # Preview sample values
    SAMPLE_DATE_FORMAT: str = os.environ.get("SAMPLE_DATE_FORMAT", "{month}/{day}/{year}")
    SAMPLE_CURRENCY_SYMBOL: str = os.environ.get("SAMPLE_CURRENCY_SYMBOL", "$")

    # PDF export
    PDF_FONT: str = os.environ.get("PDF_FONT", "Helvetica")
    PDF_BOLD_FONT: str = os.environ.get("PDF_BOLD_FONT", "Helvetica-Bold")


# Singleton instance
settings = Settings()
