from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, Numeric, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.db.base import Base, new_id

class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    idempotency_key: Mapped[str] = mapped_column(String(128))
    state: Mapped[str] = mapped_column(String(16), default="DRAFT")

    type: Mapped[str] = mapped_column(String(32), index=True)
    category: Mapped[str] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2))
    currency: Mapped[str] = mapped_column(String(3), default="ARS")
    description: Mapped[str] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(DateTime, index=True)

    from_account_id: Mapped[str | None] = mapped_column(ForeignKey("financial_accounts.id", ondelete="SET NULL"), nullable=True)
    to_account_id: Mapped[str | None] = mapped_column(ForeignKey("financial_accounts.id", ondelete="SET NULL"), nullable=True)
    from_bank_account_id: Mapped[str | None] = mapped_column(ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True)
    to_bank_account_id: Mapped[str | None] = mapped_column(ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True)
    from_wallet_id: Mapped[str | None] = mapped_column(ForeignKey("digital_wallets.id", ondelete="SET NULL"), nullable=True)
    to_wallet_id: Mapped[str | None] = mapped_column(ForeignKey("digital_wallets.id", ondelete="SET NULL"), nullable=True)

    contact_id: Mapped[str | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    transfer_recipient: Mapped[str | None] = mapped_column(String(128), nullable=True)
    transfer_sender: Mapped[str | None] = mapped_column(String(128), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(16), nullable=True)
    goal_id: Mapped[str | None] = mapped_column(ForeignKey("savings_goals.id", ondelete="SET NULL"), nullable=True)

    is_transfer_between_own_accounts: Mapped[bool] = mapped_column(Boolean, default=False)
    is_transfer_to_third_party: Mapped[bool] = mapped_column(Boolean, default=False)
    is_cash_withdrawal: Mapped[bool] = mapped_column(Boolean, default=False)
    is_cash_deposit: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_transactions_user_idempotency"),
    )
