"""
ValidationEngine - Checks whether a legacy record can be migrated safely.

Pre-migration rules are evaluated in a fixed order and depend only on the
record, so validating the same record twice yields the same issues.

Rules (in order):
    1. CRITICAL: empty name or email
    2. CRITICAL: duplicate account ids
    3. CRITICAL: duplicate transaction ids, non-finite amounts
    4. CRITICAL: transactions referencing accounts that do not exist
    5. CRITICAL: transactions owned by another user id
    6. WARNING: transactions with an empty category
    7. WARNING: legacy cloud sync enabled (reset to local-only)
    8. INFO: unused accounts, no default account, empty ledger

Post-migration checks compare the constructed privacy-first records with
the source record (identity, counts and totals).
"""

from __future__ import annotations

import logging
import math
from collections import Counter

from ledgermigrate.migration.models import (
    ValidationIssue,
    ValidationSeverity,
    has_blocking_issues,
)
from ledgermigrate.models import FinancialData, LegacyUserData, UserProfile
from ledgermigrate.observability import (
    ATTR_BLOCKING,
    ATTR_ISSUE_COUNT,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Produces ordered validation findings for legacy records.

    Example:
        >>> engine = ValidationEngine()
        >>> issues = engine.validate(legacy_record)
        >>> has_blocking_issues(issues)
        False
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    def validate(self, record: LegacyUserData) -> list[ValidationIssue]:
        """
        Validate a legacy record before migration.

        Args:
            record: The legacy aggregate record

        Returns:
            Issues in rule order. The list is blocking if any issue is
            CRITICAL.
        """
        with self._tracer.span(
            "ledgermigrate.validation.validate",
            {ATTR_USER_ID: str(record.id)},
        ) as span:
            issues: list[ValidationIssue] = []
            issues.extend(self._check_identity(record))
            issues.extend(self._check_duplicate_accounts(record))
            issues.extend(self._check_transactions(record))
            issues.extend(self._check_account_references(record))
            issues.extend(self._check_ownership(record))
            issues.extend(self._check_categories(record))
            issues.extend(self._check_sync_settings(record))
            issues.extend(self._check_ledger_shape(record))

            blocking = has_blocking_issues(issues)
            if span is not None:
                span.set_attribute(ATTR_ISSUE_COUNT, len(issues))
                span.set_attribute(ATTR_BLOCKING, blocking)

            logger.debug(
                "Validated legacy record %s: %d issue(s), blocking=%s",
                record.id,
                len(issues),
                blocking,
            )
            return issues

    def validate_post_migration(
        self,
        original: LegacyUserData,
        profile: UserProfile,
        financial: FinancialData,
        *,
        tolerance: float = 0.01,
    ) -> list[ValidationIssue]:
        """
        Compare migrated records with the legacy record they came from.

        Args:
            original: Source legacy record
            profile: Constructed user profile
            financial: Constructed financial data
            tolerance: Largest accepted balance difference

        Returns:
            CRITICAL issues for every mismatch (empty if the records agree)
        """
        issues: list[ValidationIssue] = []

        if profile.id != original.id or financial.user_id != original.id:
            issues.append(
                ValidationIssue(
                    "User id changed during migration",
                    ValidationSeverity.CRITICAL,
                    field="id",
                    suggestion="Profile and financial data must keep the legacy user id",
                )
            )

        if profile.name != original.name:
            issues.append(
                ValidationIssue(
                    "Profile name mismatch after migration",
                    ValidationSeverity.CRITICAL,
                    field="name",
                    suggestion="Verify migration preserved user name correctly",
                )
            )

        if profile.email != original.email:
            issues.append(
                ValidationIssue(
                    "Profile email mismatch after migration",
                    ValidationSeverity.CRITICAL,
                    field="email",
                    suggestion="Verify migration preserved user email correctly",
                )
            )

        if financial.transaction_count != original.transaction_count:
            issues.append(
                ValidationIssue(
                    f"Transaction count mismatch: {original.transaction_count} -> "
                    f"{financial.transaction_count}",
                    ValidationSeverity.CRITICAL,
                    field="transactions",
                )
            )

        if financial.account_count != original.account_count:
            issues.append(
                ValidationIssue(
                    f"Account count mismatch: {original.account_count} -> "
                    f"{financial.account_count}",
                    ValidationSeverity.CRITICAL,
                    field="accounts",
                )
            )

        if abs(original.total_balance - financial.total_balance) > tolerance:
            issues.append(
                ValidationIssue(
                    f"Total balance mismatch: {original.total_balance:.2f} -> "
                    f"{financial.total_balance:.2f}",
                    ValidationSeverity.CRITICAL,
                    field="total_balance",
                )
            )

        return issues

    # =========================================================================
    # Rules
    # =========================================================================

    def _check_identity(self, record: LegacyUserData) -> list[ValidationIssue]:
        issues = []
        if not record.name.strip():
            issues.append(
                ValidationIssue(
                    "User name is empty",
                    ValidationSeverity.CRITICAL,
                    field="name",
                    suggestion="User must provide a valid name",
                )
            )
        if not record.email.strip():
            issues.append(
                ValidationIssue(
                    "User email is empty",
                    ValidationSeverity.CRITICAL,
                    field="email",
                    suggestion="User must provide a valid email",
                )
            )
        return issues

    def _check_duplicate_accounts(self, record: LegacyUserData) -> list[ValidationIssue]:
        counts = Counter(account.id for account in record.accounts)
        return [
            ValidationIssue(
                f"Account id {account_id} appears {count} times",
                ValidationSeverity.CRITICAL,
                field="accounts",
                suggestion="Merge or re-key the duplicated accounts",
            )
            for account_id, count in counts.items()
            if count > 1
        ]

    def _check_transactions(self, record: LegacyUserData) -> list[ValidationIssue]:
        issues = []
        counts = Counter(txn.id for txn in record.transactions)
        for txn_id, count in counts.items():
            if count > 1:
                issues.append(
                    ValidationIssue(
                        f"Transaction id {txn_id} appears {count} times",
                        ValidationSeverity.CRITICAL,
                        field="transactions",
                        suggestion="Remove the duplicated transactions",
                    )
                )

        for index, txn in enumerate(record.transactions):
            if not math.isfinite(txn.amount):
                issues.append(
                    ValidationIssue(
                        f"Transaction {index} has invalid amount: {txn.amount}",
                        ValidationSeverity.CRITICAL,
                        field=f"transactions[{index}].amount",
                        suggestion="Remove or fix transaction with invalid amount",
                    )
                )
        return issues

    def _check_account_references(self, record: LegacyUserData) -> list[ValidationIssue]:
        account_ids = {account.id for account in record.accounts}
        orphaned = [
            txn
            for txn in record.transactions
            if txn.account_id is not None and txn.account_id not in account_ids
        ]
        if not orphaned:
            return []
        return [
            ValidationIssue(
                f"Found {len(orphaned)} transaction(s) with invalid account references",
                ValidationSeverity.CRITICAL,
                field="transactions.account_id",
                suggestion="Clean up orphaned transactions or reassign to valid accounts",
            )
        ]

    def _check_ownership(self, record: LegacyUserData) -> list[ValidationIssue]:
        foreign = [txn for txn in record.transactions if txn.user_id != record.id]
        if not foreign:
            return []
        return [
            ValidationIssue(
                f"Found {len(foreign)} transaction(s) owned by another user id",
                ValidationSeverity.CRITICAL,
                field="transactions.user_id",
                suggestion="Reassign the transactions to the record owner before migrating",
            )
        ]

    def _check_categories(self, record: LegacyUserData) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                f"Transaction {index} has empty category",
                ValidationSeverity.WARNING,
                field=f"transactions[{index}].category",
                suggestion="Assign a default category",
            )
            for index, txn in enumerate(record.transactions)
            if not txn.category.strip()
        ]

    def _check_sync_settings(self, record: LegacyUserData) -> list[ValidationIssue]:
        if not record.enable_firebase_sync:
            return []
        return [
            ValidationIssue(
                "Cloud sync is enabled; privacy-first storage starts with cloud backup off",
                ValidationSeverity.WARNING,
                field="enable_firebase_sync",
                suggestion="Re-enable cloud backup after migration if it is still wanted",
            )
        ]

    def _check_ledger_shape(self, record: LegacyUserData) -> list[ValidationIssue]:
        issues = []
        used = {txn.account_id for txn in record.transactions}
        for account in record.accounts:
            if account.id not in used:
                issues.append(
                    ValidationIssue(
                        f"Account {account.name!r} has no transactions",
                        ValidationSeverity.INFO,
                        field="accounts",
                    )
                )

        if record.accounts and not any(account.is_default for account in record.accounts):
            issues.append(
                ValidationIssue(
                    "No default account is set",
                    ValidationSeverity.INFO,
                    field="accounts",
                    suggestion="Mark one account as default",
                )
            )

        if not record.transactions and not record.accounts:
            issues.append(
                ValidationIssue(
                    "Ledger is empty; only the profile will be migrated",
                    ValidationSeverity.INFO,
                )
            )
        return issues


__all__ = [
    "ValidationEngine",
]
