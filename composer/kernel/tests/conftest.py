"""
Kernel test configuration.

Shared fixtures: a fixed calendar date, a fresh session, and documents
built through the public session API.
"""

from datetime import date

import pytest

from composer.kernel.document import new_template
from composer.kernel.session import EditSession
from composer.kernel.starters import service_contract_template
from composer.kernel.storage import MemoryTemplateStore
from composer.kernel.types import ITEM_TYPES

TODAY = date(2026, 3, 14)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def session():
    return EditSession(new_template(title="Site Audit", type="audit"))


@pytest.fixture
def contract():
    return service_contract_template()


@pytest.fixture
def every_type_session():
    """One section on page 0 holding one item of every type, in ITEM_TYPES order."""
    s = EditSession(new_template(title="Every Type", type="other"))
    for item_type in ITEM_TYPES:
        assert s.add_item_to_last_section(item_type).applied
    return s


@pytest.fixture
def store():
    return MemoryTemplateStore()
