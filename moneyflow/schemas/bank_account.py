import re
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import field_validator

from moneyflow.schemas.account import currency_code
from moneyflow.schemas.base import CamelModel, blank_to_none, money

BankAccountType = Literal["checking", "savings", "money_market", "other"]

_CBU = re.compile(r"^\d{22}$")
_IBAN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{1,30}$")


class BankAccountCreate(CamelModel):
    account_name: str
    bank: str
    account_type: BankAccountType = "checking"
    account_number: str
    cbu: str | None = None
    alias: str | None = None
    iban: str | None = None
    currency: str = "ARS"
    balance: Decimal = Decimal("0")
    owner_name: str
    owner_document: str | None = None
    notes: str | None = None
    idempotency_key: str | None = None

    @field_validator("cbu", "alias", "iban", "owner_document", "notes", mode="before")
    @classmethod
    def _blank(cls, v):
        return blank_to_none(v)

    @field_validator("cbu")
    @classmethod
    def _cbu(cls, v: str | None) -> str | None:
        if v is not None and not _CBU.match(v):
            raise ValueError("CBU must contain 22 digits")
        return v

    @field_validator("iban")
    @classmethod
    def _iban(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.replace(" ", "").upper()
        if not _IBAN.match(v):
            raise ValueError("Please enter a valid IBAN")
        return v

    @field_validator("alias")
    @classmethod
    def _alias(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        return currency_code(v)

    @field_validator("balance")
    @classmethod
    def _balance(cls, v: Decimal) -> Decimal:
        if v.is_finite() and v < 0:
            raise ValueError("balance must be a non-negative number")
        return money(v, "balance")


class BankAccountUpdate(CamelModel):
    account_name: str | None = None
    alias: str | None = None
    owner_name: str | None = None
    owner_document: str | None = None
    is_active: bool | None = None
    notes: str | None = None


class BankAccountOut(CamelModel):
    id: str
    account_name: str
    bank: str
    account_type: str
    account_number: str
    cbu: str | None = None
    alias: str | None = None
    iban: str | None = None
    currency: str
    balance: Decimal
    owner_name: str
    owner_document: str | None = None
    is_active: bool
    notes: str | None = None
    created_at: datetime | None = None
