from datetime import datetime

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from moneyflow.db.base import Base, new_id

class TransactionMetadata(Base):
    __tablename__ = "transaction_metadata"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), unique=True, index=True
    )
    reference_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    merchant_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_reconciled: Mapped[bool] = mapped_column(Boolean, default=False)
    reconciliation_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    flag_reason: Mapped[str | None] = mapped_column(String(256), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
