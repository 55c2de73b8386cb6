from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, Numeric, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.db.base import Base, new_id

class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    account_name: Mapped[str] = mapped_column(String(128))
    bank: Mapped[str] = mapped_column(String(32))
    account_type: Mapped[str] = mapped_column(String(16))
    account_number: Mapped[str] = mapped_column(String(64))
    cbu: Mapped[str | None] = mapped_column(String(22), unique=True, nullable=True)
    alias: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    iban: Mapped[str | None] = mapped_column(String(34), unique=True, nullable=True)

    currency: Mapped[str] = mapped_column(String(3), default="ARS")
    balance: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))

    owner_name: Mapped[str] = mapped_column(String(128))
    owner_document: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_bank_accounts_user_idempotency"),
    )
