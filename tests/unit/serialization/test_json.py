"""
Unit tests for JSON serialization utilities.

Tests cover:
- LedgerJSONEncoder handling of UUID, datetime, Enum and pydantic models
- Rejection of non-finite floats
- json_loads for str and bytes input
"""

import json
import math
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from ledgermigrate.migration.models import DataMode
from ledgermigrate.models import Account, AccountType
from ledgermigrate.serialization import LedgerJSONEncoder, json_dumps, json_loads


class TestLedgerJSONEncoder:
    """Tests for LedgerJSONEncoder."""

    def test_uuid(self) -> None:
        value = uuid4()
        assert json_loads(json_dumps({"id": value})) == {"id": str(value)}

    def test_datetime(self) -> None:
        now = datetime(2024, 6, 1, 12, 30, tzinfo=UTC)
        assert json_loads(json_dumps({"at": now})) == {"at": "2024-06-01T12:30:00+00:00"}

    def test_enum(self) -> None:
        assert json_dumps([DataMode.PRIVACY_FIRST, AccountType.CREDIT_CARD]) == (
            '["privacy_first", "Credit Card"]'
        )

    def test_pydantic_model(self) -> None:
        account = Account(name="Wallet", is_default=True)

        data = json_loads(json_dumps({"account": account}))

        assert data["account"]["id"] == str(account.id)
        assert data["account"]["type"] == "Personal"

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError):
            json.dumps({"value": object()}, cls=LedgerJSONEncoder)


class TestJsonDumps:
    """Tests for json_dumps()."""

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_rejected(self, value: float) -> None:
        with pytest.raises(ValueError):
            json_dumps({"amount": value})


class TestJsonLoads:
    """Tests for json_loads()."""

    def test_bytes_input(self) -> None:
        assert json_loads(b'{"balance": 120.5}') == {"balance": 120.5}
