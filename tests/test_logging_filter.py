"""
Tests for the SensitiveDataFilter logging filter.

This module tests that exchange credentials, signatures and bearer tokens are
redacted from log messages while safe content passes through unchanged.
"""

import logging
from unittest.mock import Mock

import pytest

from services.core.logging import SensitiveDataFilter


class TestSensitiveDataFilter:
    """Test suite for the SensitiveDataFilter class."""

    @pytest.fixture
    def filter(self):
        """Create a SensitiveDataFilter instance for testing."""
        return SensitiveDataFilter()

    @pytest.fixture
    def mock_record(self):
        """Create a mock LogRecord for testing."""
        record = Mock(spec=logging.LogRecord)
        record.msg = ""
        record.args = None
        return record

    def test_bearer_tokens_are_redacted(self, filter, mock_record):
        """Forwarded Authorization headers never reach the log."""
        mock_record.msg = "Forwarding header Bearer abc123.def456-ghi789"
        assert filter.filter(mock_record) is True
        assert mock_record.msg == "Forwarding header Bearer [REDACTED_TOKEN]"

        mock_record.msg = "authorization: bearer lowercasesecret"
        filter.filter(mock_record)
        assert mock_record.msg == "authorization: bearer [REDACTED_TOKEN]"

    def test_api_keys_and_secrets_are_redacted(self, filter, mock_record):
        """Test exchange API key and secret formats."""
        mock_record.msg = "api_key=AbCdEf123456 loaded"
        filter.filter(mock_record)
        assert mock_record.msg == "api_key=[REDACTED_API_KEY] loaded"

        mock_record.msg = 'Account {"api_secret": "s3cr3tValue"}'
        filter.filter(mock_record)
        assert mock_record.msg == 'Account {"api_secret": "[REDACTED_SECRET]"}'

        mock_record.msg = "headers X-MBX-APIKEY: keyvalue987"
        filter.filter(mock_record)
        assert mock_record.msg == "headers X-MBX-APIKEY: [REDACTED_API_KEY]"

    def test_signatures_are_redacted(self, filter, mock_record):
        """HMAC signatures in request URLs are replaced."""
        mock_record.msg = "GET /api/v3/myTrades?symbol=BTCBRL&timestamp=1&signature=deadbeef0123"
        filter.filter(mock_record)
        assert mock_record.msg == (
            "GET /api/v3/myTrades?symbol=BTCBRL&timestamp=1&signature=[REDACTED_SIGNATURE]"
        )

    def test_passwords_are_redacted(self, filter, mock_record):
        """Test that passwords are properly redacted."""
        mock_record.msg = "User login with password: MySecretPass123!"
        filter.filter(mock_record)
        assert mock_record.msg == "User login with password: [REDACTED_PASSWORD]"

    def test_safe_messages_unchanged(self, filter, mock_record):
        """Test that ordinary messages pass through untouched."""
        message = "Job tradejournal_1_abc completed: 3 inserted, 1 updated"
        mock_record.msg = message
        assert filter.filter(mock_record) is True
        assert mock_record.msg == message

    def test_tuple_args_are_filtered(self, filter, mock_record):
        """String args are redacted, other types are preserved."""
        mock_record.msg = "Header %s count %d"
        mock_record.args = ("Bearer topsecret", 5)
        filter.filter(mock_record)
        assert mock_record.args == ("Bearer [REDACTED_TOKEN]", 5)

    def test_dict_args_are_filtered(self, filter, mock_record):
        """Dict args keep their keys and non-string values."""
        mock_record.msg = "%(auth)s %(limit)s"
        mock_record.args = {"auth": "Bearer topsecret", "limit": 1000}
        filter.filter(mock_record)
        assert mock_record.args == {"auth": "Bearer [REDACTED_TOKEN]", "limit": 1000}
