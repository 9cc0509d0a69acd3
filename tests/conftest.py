# ===============================================================================
# PYTEST CONFIGURATION FOR THE SUBSCRIPTION MANAGER
# ===============================================================================
"""
Global test configuration.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- tests/factories/ holds plain factory functions shared across tests
- Naming convention: test_{app}_{feature}.py

Django settings come from config.settings.test (see pyproject.toml).
"""

import pytest

from tests.factories.subscriptions import create_plan, create_subscriber


@pytest.fixture
def subscriber(db):
    """User owning the subscriptions under test"""
    return create_subscriber()


@pytest.fixture
def plan(db):
    """Monthly plan with two features"""
    return create_plan(name='Pro', period='P1M', feature_codes=('reports', 'api-access'))
