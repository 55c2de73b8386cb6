from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import field_validator

from moneyflow.schemas.base import CamelModel, money

AccountType = Literal["cash", "bank", "credit_card", "investment", "savings", "other"]


def currency_code(v: str) -> str:
    v = (v or "").strip().upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("currency must be a 3-letter code")
    return v


class AccountCreate(CamelModel):
    name: str
    type: AccountType = "other"
    balance: Decimal = Decimal("0")
    currency: str = "ARS"
    color: str | None = None
    icon: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        return currency_code(v)

    @field_validator("balance")
    @classmethod
    def _balance(cls, v: Decimal) -> Decimal:
        return money(v, "balance")


class AccountUpdate(CamelModel):
    name: str | None = None
    type: AccountType | None = None
    color: str | None = None
    icon: str | None = None


class AccountOut(CamelModel):
    id: str
    name: str
    type: str
    balance: Decimal
    currency: str
    color: str | None = None
    icon: str | None = None
    created_at: datetime | None = None


class BalanceIn(CamelModel):
    balance: Decimal

    @field_validator("balance")
    @classmethod
    def _balance(cls, v: Decimal) -> Decimal:
        return money(v, "balance")
