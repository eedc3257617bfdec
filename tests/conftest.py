"""Shared fixtures for formrules tests."""

from pathlib import Path

import pytest

from formrules.canned import register_canned_rules
from formrules.registry import CustomRuleRegistry

EXAMPLE_SCHEMAS = Path(__file__).parent.parent / "schemas"


@pytest.fixture(autouse=True)
def setup_registry():
    """Start every test with only the canned rules registered."""
    CustomRuleRegistry.clear()
    register_canned_rules()
    yield
    CustomRuleRegistry.clear()


@pytest.fixture
def example_schemas() -> Path:
    return EXAMPLE_SCHEMAS
