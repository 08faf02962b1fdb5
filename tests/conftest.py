"""
Pytest configuration and shared fixtures for Trade Journal tests.

This file provides common test fixtures and configuration that can be used
across all test modules in the project.
"""

import os
from datetime import UTC, datetime
from decimal import Decimal

import django

import pytest

# Configure Django before any imports
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tradejournal.settings.test")
# Set test encryption key for encrypted fields
if "FIELD_ENCRYPTION_KEY" not in os.environ:
    from cryptography.fernet import Fernet

    os.environ["FIELD_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
django.setup()

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import Client

from accounts.models import ExchangeAccount
from trading.models import Trade

User = get_user_model()


@pytest.fixture
def clear_cache():
    """Clear Django cache before and after each test."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def test_user():
    """Create a test user for testing."""
    return User.objects.create_user(
        email="test@example.com", username="testuser", password="testpass123"
    )


@pytest.fixture
def other_user():
    """A second user for ownership checks."""
    return User.objects.create_user(
        email="other@example.com", username="otheruser", password="testpass123"
    )


@pytest.fixture
def exchange_account(test_user):
    """Create a Binance spot account with credentials."""
    return ExchangeAccount.objects.create(
        user=test_user,
        name="Main Binance",
        exchange="BINANCE",
        market="SPOT",
        api_key="test-api-key",
        api_secret="test-api-secret",
    )


@pytest.fixture
def make_trade(exchange_account):
    """Factory creating trades on ``exchange_account`` unless another account is given."""

    def _make_trade(**overrides):
        fields = {
            "account": exchange_account,
            "market": "SPOT",
            "symbol": "BTCBRL",
            "side": "BUY",
            "quantity": Decimal("1"),
            "price": Decimal("100"),
            "executed_at": datetime(2024, 1, 15, 12, 0, tzinfo=UTC),
        }
        fields.update(overrides)
        return Trade.objects.create(**fields)

    return _make_trade


@pytest.fixture
def api_client(test_user):
    """Django test client logged in as ``test_user``."""
    client = Client()
    client.force_login(test_user)
    return client
