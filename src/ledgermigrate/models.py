"""
Domain records for the two storage schemas.

Legacy schema:
    - LegacyUserData: one aggregate record holding identity, transactions
      and accounts under a single storage key.

Privacy-first schema:
    - UserProfile: identity and preferences.
    - FinancialData: transactions and accounts, stored separately from
      the profile.

All records are immutable pydantic models. Mutation helpers return new
instances so that a record loaded from a store is never changed in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from ledgermigrate.exceptions import RecordNotFoundError


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AccountType(Enum):
    """Kind of wallet an account represents."""

    PERSONAL = "Personal"
    BUSINESS = "Business"
    SAVINGS = "Savings"
    INVESTMENT = "Investment"
    WALLET = "Wallet"
    CREDIT_CARD = "Credit Card"


class Account(BaseModel):
    """
    A wallet that transactions can be booked against.

    Attributes:
        id: Unique account identifier
        name: Display name
        type: Kind of account
        currency: ISO currency code
        is_default: Whether new transactions go here by default
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    type: AccountType = AccountType.PERSONAL
    currency: str = "PHP"
    is_default: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Transaction(BaseModel):
    """
    A single income (positive) or expense (negative) entry.

    Attributes:
        id: Unique transaction identifier
        user_id: Owner of the transaction
        account_id: Account the transaction is booked against (optional)
        category: Category label
        amount: Signed amount in the primary currency
        date: When the transaction happened
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    account_id: UUID | None = None
    category: str
    amount: float
    date: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    merchant_name: str | None = None
    note: str | None = None


class LedgerRecord(BaseModel):
    """
    Shared shape of every record that owns transactions and accounts.

    Both schemas keep the ledger part identical, which is what lets the
    data-mode router treat them symmetrically.
    """

    model_config = ConfigDict(frozen=True)

    transactions: list[Transaction] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def total_balance(self) -> float:
        """Sum of all transaction amounts (income minus expenses)."""
        return sum(txn.amount for txn in self.transactions)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def account_count(self) -> int:
        return len(self.accounts)

    def find_transaction(self, transaction_id: UUID) -> Transaction | None:
        for txn in self.transactions:
            if txn.id == transaction_id:
                return txn
        return None

    def with_transaction_added(self, transaction: Transaction) -> Self:
        """
        Return a copy with the transaction appended.

        Raises:
            ValueError: If a transaction with the same id already exists
        """
        if self.find_transaction(transaction.id) is not None:
            raise ValueError(f"Transaction {transaction.id} already exists")
        return self.model_copy(
            update={
                "transactions": [*self.transactions, transaction],
                "updated_at": _utcnow(),
            }
        )

    def with_transaction_updated(self, transaction: Transaction) -> Self:
        """
        Return a copy with the matching transaction replaced in place.

        Raises:
            RecordNotFoundError: If no transaction has the same id
        """
        if self.find_transaction(transaction.id) is None:
            raise RecordNotFoundError("Transaction", str(transaction.id))
        return self.model_copy(
            update={
                "transactions": [
                    transaction if txn.id == transaction.id else txn for txn in self.transactions
                ],
                "updated_at": _utcnow(),
            }
        )

    def with_transaction_removed(self, transaction_id: UUID) -> Self:
        """
        Return a copy without the given transaction.

        Raises:
            RecordNotFoundError: If no transaction has the id
        """
        if self.find_transaction(transaction_id) is None:
            raise RecordNotFoundError("Transaction", str(transaction_id))
        return self.model_copy(
            update={
                "transactions": [txn for txn in self.transactions if txn.id != transaction_id],
                "updated_at": _utcnow(),
            }
        )


class LegacyUserData(LedgerRecord):
    """
    The legacy aggregate record: identity and ledger in one document.

    Attributes:
        id: User identifier
        name: Display name
        email: Contact email
        goals: Onboarding goals (comma-separated)
        enable_firebase_sync: Legacy cloud sync preference
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    email: str
    goals: str | None = None
    enable_firebase_sync: bool = True

    @property
    def balance(self) -> float:
        """Legacy name for the ledger balance."""
        return self.total_balance


class UserProfile(BaseModel):
    """
    Identity half of the privacy-first schema.

    Cloud backup is off by default; financial data stays local unless the
    user opts in.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    email: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    goals: str | None = None
    preferred_currency: str = "PHP"
    enable_cloud_backup: bool = False


class FinancialData(LedgerRecord):
    """
    Financial half of the privacy-first schema.

    Attributes:
        user_id: Links the record to its UserProfile
        data_version: Schema version of the stored record
        backup_enabled: Whether optional cloud backup is active
    """

    user_id: UUID
    data_version: str = "1.0.0"
    backup_enabled: bool = False


__all__ = [
    "AccountType",
    "Account",
    "Transaction",
    "LedgerRecord",
    "LegacyUserData",
    "UserProfile",
    "FinancialData",
]
