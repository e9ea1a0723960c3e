"""
Unit tests for ValidationEngine.

Tests cover:
- Valid records produce no blocking issues
- Each CRITICAL rule (identity, duplicates, amounts, references, ownership)
- WARNING and INFO rules
- Rule ordering and determinism
- Post-migration verification
"""

import math
from uuid import uuid4

import pytest

from ledgermigrate.migration.executor import MigrationExecutor
from ledgermigrate.migration.models import ValidationSeverity, has_blocking_issues
from ledgermigrate.migration.validation import ValidationEngine
from ledgermigrate.observability import MockTracer
from tests.fixtures import make_account, make_legacy_record, make_transaction


@pytest.fixture
def engine() -> ValidationEngine:
    return ValidationEngine(enable_tracing=False)


def critical(issues):
    return [issue for issue in issues if issue.severity == ValidationSeverity.CRITICAL]


# =============================================================================
# Valid records
# =============================================================================


class TestValidRecords:
    """Records that are safe to migrate."""

    def test_clean_record_has_no_issues(self, engine: ValidationEngine) -> None:
        assert engine.validate(make_legacy_record()) == []

    def test_cloud_sync_is_only_a_warning(self, engine: ValidationEngine) -> None:
        issues = engine.validate(make_legacy_record(enable_firebase_sync=True))

        assert has_blocking_issues(issues) is False
        assert [issue.field for issue in issues] == ["enable_firebase_sync"]
        assert issues[0].severity == ValidationSeverity.WARNING

    def test_transactions_without_account_are_valid(self, engine: ValidationEngine) -> None:
        record = make_legacy_record(with_account=False)
        assert has_blocking_issues(engine.validate(record)) is False

    def test_validation_is_deterministic(self, engine: ValidationEngine) -> None:
        record = make_legacy_record(enable_firebase_sync=True, name="")
        assert engine.validate(record) == engine.validate(record)


# =============================================================================
# Critical rules
# =============================================================================


class TestCriticalRules:
    """Rules that block migration."""

    def test_empty_name_and_email(self, engine: ValidationEngine) -> None:
        issues = engine.validate(make_legacy_record(name="  ", email=""))

        assert [issue.description for issue in critical(issues)] == [
            "User name is empty",
            "User email is empty",
        ]

    def test_orphaned_account_reference(self, engine: ValidationEngine) -> None:
        """Exactly one critical issue is reported for orphaned references."""
        record = make_legacy_record()
        orphan = make_transaction(record.id, 10.0, account_id=uuid4())
        record = record.model_copy(update={"transactions": [*record.transactions, orphan]})

        issues = critical(engine.validate(record))

        assert len(issues) == 1
        assert issues[0].description == "Found 1 transaction(s) with invalid account references"
        assert issues[0].field == "transactions.account_id"

    def test_orphans_are_aggregated(self, engine: ValidationEngine) -> None:
        record = make_legacy_record()
        orphans = [make_transaction(record.id, 1.0, account_id=uuid4()) for _ in range(3)]
        record = record.model_copy(update={"transactions": orphans})

        issues = critical(engine.validate(record))

        assert [issue.description for issue in issues] == [
            "Found 3 transaction(s) with invalid account references"
        ]

    def test_non_finite_amounts(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([10.0, math.nan, math.inf])

        descriptions = [issue.description for issue in critical(engine.validate(record))]

        assert descriptions == [
            "Transaction 1 has invalid amount: nan",
            "Transaction 2 has invalid amount: inf",
        ]

    def test_duplicate_transaction_ids(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([10.0])
        txn = record.transactions[0]
        record = record.model_copy(update={"transactions": [txn, txn]})

        issues = critical(engine.validate(record))

        assert len(issues) == 1
        assert "appears 2 times" in issues[0].description

    def test_duplicate_account_ids(self, engine: ValidationEngine) -> None:
        record = make_legacy_record()
        account = record.accounts[0]
        record = record.model_copy(update={"accounts": [account, account]})

        issues = critical(engine.validate(record))

        assert len(issues) == 1
        assert issues[0].field == "accounts"

    def test_foreign_transactions(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([])
        foreign = make_transaction(uuid4(), 5.0, account_id=record.accounts[0].id)
        record = record.model_copy(update={"transactions": [foreign]})

        issues = critical(engine.validate(record))

        assert [issue.field for issue in issues] == ["transactions.user_id"]

    def test_rules_are_reported_in_order(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([math.nan], name="")
        orphan = make_transaction(uuid4(), 1.0, account_id=uuid4())
        record = record.model_copy(update={"transactions": [*record.transactions, orphan]})

        fields = [issue.field for issue in critical(engine.validate(record))]

        assert fields == [
            "name",
            "transactions[0].amount",
            "transactions.account_id",
            "transactions.user_id",
        ]


# =============================================================================
# Warnings and info
# =============================================================================


class TestNonBlockingRules:
    """Rules that are reported but do not block."""

    def test_empty_category_warning(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([])
        txn = make_transaction(record.id, 3.0, account_id=record.accounts[0].id, category=" ")
        record = record.model_copy(update={"transactions": [txn]})

        issues = engine.validate(record)

        assert [(i.severity, i.field) for i in issues] == [
            (ValidationSeverity.WARNING, "transactions[0].category")
        ]

    def test_unused_account_and_no_default(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([], with_account=False)
        record = record.model_copy(update={"accounts": [make_account("Savings", is_default=False)]})

        issues = engine.validate(record)

        assert all(issue.severity == ValidationSeverity.INFO for issue in issues)
        assert [issue.description for issue in issues] == [
            "Account 'Savings' has no transactions",
            "No default account is set",
        ]

    def test_empty_ledger(self, engine: ValidationEngine) -> None:
        issues = engine.validate(make_legacy_record([], with_account=False))

        assert len(issues) == 1
        assert issues[0].severity == ValidationSeverity.INFO

    def test_validation_is_traced(self) -> None:
        tracer = MockTracer()
        ValidationEngine(tracer=tracer).validate(make_legacy_record())
        assert tracer.span_names == ["ledgermigrate.validation.validate"]


# =============================================================================
# Post-migration verification
# =============================================================================


class TestPostMigration:
    """Tests for validate_post_migration()."""

    def test_faithful_copy_passes(self, engine: ValidationEngine) -> None:
        record = make_legacy_record()
        profile = MigrationExecutor.build_profile(record, record.updated_at)
        financial = MigrationExecutor.build_financial_data(record, record.updated_at)

        assert engine.validate_post_migration(record, profile, financial) == []

    def test_mismatches_are_critical(self, engine: ValidationEngine) -> None:
        record = make_legacy_record()
        profile = MigrationExecutor.build_profile(record, record.updated_at)
        financial = MigrationExecutor.build_financial_data(record, record.updated_at)
        profile = profile.model_copy(update={"email": "other@example.com"})
        financial = financial.model_copy(update={"transactions": financial.transactions[:1]})

        issues = engine.validate_post_migration(record, profile, financial)

        assert [issue.field for issue in issues] == ["email", "transactions", "total_balance"]
        assert has_blocking_issues(issues)

    def test_balance_within_tolerance(self, engine: ValidationEngine) -> None:
        record = make_legacy_record([10.0])
        profile = MigrationExecutor.build_profile(record, record.updated_at)
        txn = record.transactions[0].model_copy(update={"amount": 10.004})
        financial = MigrationExecutor.build_financial_data(record, record.updated_at)
        financial = financial.model_copy(update={"transactions": [txn]})

        assert engine.validate_post_migration(record, profile, financial, tolerance=0.01) == []
        assert len(engine.validate_post_migration(record, profile, financial, tolerance=0.001)) == 1
