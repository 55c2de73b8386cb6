from datetime import datetime
from decimal import Decimal

from pydantic import field_validator

from moneyflow.schemas.account import currency_code
from moneyflow.schemas.base import CamelModel, blank_to_none, money


class WalletCreate(CamelModel):
    wallet_name: str
    provider: str
    email: str | None = None
    phone_number: str | None = None
    username: str | None = None
    currency: str = "ARS"
    balance: Decimal = Decimal("0")
    linked_bank_account_id: str | None = None

    @field_validator("email", "phone_number", "username", "linked_bank_account_id", mode="before")
    @classmethod
    def _blank(cls, v):
        return blank_to_none(v)

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        return currency_code(v)

    @field_validator("balance")
    @classmethod
    def _balance(cls, v: Decimal) -> Decimal:
        return money(v, "balance")


class WalletUpdate(CamelModel):
    wallet_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    username: str | None = None
    linked_bank_account_id: str | None = None
    is_active: bool | None = None


class WalletOut(CamelModel):
    id: str
    wallet_name: str
    provider: str
    email: str | None = None
    phone_number: str | None = None
    username: str | None = None
    currency: str
    balance: Decimal
    linked_bank_account_id: str | None = None
    is_active: bool
    created_at: datetime | None = None
