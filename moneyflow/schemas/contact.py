from datetime import datetime

from pydantic import field_validator

from moneyflow.schemas.base import CamelModel, blank_to_none


class ContactCreate(CamelModel):
    name: str
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    document: str | None = None
    cbu: str | None = None
    alias: str | None = None
    iban: str | None = None
    bank: str | None = None
    account_number: str | None = None
    bank_account_type: str | None = None
    is_favorite: bool = False
    notes: str | None = None
    idempotency_key: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator(
        "first_name", "last_name", "display_name", "email", "phone_number", "document",
        "cbu", "alias", "iban", "bank", "account_number", "bank_account_type", "notes",
        mode="before",
    )
    @classmethod
    def _blank(cls, v):
        return blank_to_none(v)


class ContactUpdate(CamelModel):
    name: str | None = None
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    cbu: str | None = None
    alias: str | None = None
    bank: str | None = None
    is_favorite: bool | None = None
    notes: str | None = None


class ContactOut(CamelModel):
    id: str
    name: str
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    document: str | None = None
    cbu: str | None = None
    alias: str | None = None
    iban: str | None = None
    bank: str | None = None
    account_number: str | None = None
    bank_account_type: str | None = None
    is_favorite: bool
    notes: str | None = None
    created_at: datetime | None = None


class FolderCreate(CamelModel):
    name: str
    color: str | None = None
    icon: str | None = None


class FolderOut(CamelModel):
    id: str
    name: str
    color: str | None = None
    icon: str | None = None
    contact_ids: list[str] = []
