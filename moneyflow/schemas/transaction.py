from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import field_validator

from moneyflow.schemas.base import CamelModel, blank_to_none, money

TxType = Literal[
    "income",
    "expense",
    "transfer",
    "transfer_own_accounts",
    "transfer_third_party",
    "withdrawal",
    "deposit",
    "saving",
]

TxCategory = Literal[
    "salary",
    "freelance",
    "investment",
    "gift",
    "food",
    "transportation",
    "entertainment",
    "utilities",
    "health",
    "education",
    "shopping",
    "rent",
    "taxes",
    "insurance",
    "subscription",
    "transfer",
    "savings",
    "other",
]

PaymentMethod = Literal[
    "bank_transfer",
    "debit_card",
    "credit_card",
    "cash",
    "wallet",
    "check",
    "cryptocurrency",
    "other",
]

TxState = Literal["DRAFT", "PENDING", "CONFIRMED", "FAILED", "CANCELLED", "RECONCILED"]
TxEvent = Literal["submit", "confirm", "reject", "cancel", "reconcile"]

SortField = Literal["date", "amount", "description", "type", "category"]


class TxDraft(CamelModel):
    """Everything a client may send; type and category are detected when absent."""

    type: TxType | None = None
    category: TxCategory | None = None
    amount: Decimal
    description: str
    date: datetime | None = None
    currency: str | None = None
    payment_method: PaymentMethod | None = None

    from_account_id: str | None = None
    to_account_id: str | None = None
    from_bank_account_id: str | None = None
    to_bank_account_id: str | None = None
    from_wallet_id: str | None = None
    to_wallet_id: str | None = None

    contact_id: str | None = None
    goal_id: str | None = None
    transfer_recipient: str | None = None
    transfer_sender: str | None = None

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: Decimal) -> Decimal:
        if v.is_finite() and v <= 0:
            raise ValueError("amount must be greater than 0")
        return money(v)

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("description is required")
        return v

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return v

    @field_validator(
        "from_account_id",
        "to_account_id",
        "from_bank_account_id",
        "to_bank_account_id",
        "from_wallet_id",
        "to_wallet_id",
        "contact_id",
        "goal_id",
        "transfer_recipient",
        "transfer_sender",
        mode="before",
    )
    @classmethod
    def _blank_ids(cls, v):
        return blank_to_none(v)


class TxCreate(TxDraft):
    type: TxType
    category: TxCategory


class TxOut(CamelModel):
    id: str
    state: str
    type: str
    category: str
    amount: Decimal
    currency: str
    description: str
    date: datetime

    from_account_id: str | None = None
    to_account_id: str | None = None
    from_bank_account_id: str | None = None
    to_bank_account_id: str | None = None
    from_wallet_id: str | None = None
    to_wallet_id: str | None = None

    contact_id: str | None = None
    goal_id: str | None = None
    transfer_recipient: str | None = None
    transfer_sender: str | None = None
    payment_method: str | None = None

    is_transfer_between_own_accounts: bool
    is_transfer_to_third_party: bool
    is_cash_withdrawal: bool
    is_cash_deposit: bool

    created_at: datetime | None = None


class ClassificationOut(CamelModel):
    type: str
    is_transfer_between_own_accounts: bool = False
    is_transfer_to_third_party: bool = False
    is_cash_withdrawal: bool = False
    is_cash_deposit: bool = False
    confidence: str = "medium"
    suggested_category: str | None = None
    is_suspicious: bool = False
    suspicious_reasons: list[str] = []


class TxAutoOut(CamelModel):
    transaction: TxOut
    classification: ClassificationOut | None = None


class FlagIn(CamelModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def _reason_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("reason is required")
        return v[:256]


class FlaggedTxOut(CamelModel):
    transaction: TxOut
    flag_reason: str | None = None
    flagged_at: datetime | None = None
