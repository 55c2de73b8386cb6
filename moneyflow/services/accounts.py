"""Helpers shared by the account, bank account and wallet routes."""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from moneyflow.core.errors import ConflictError, InvalidInput, NotFoundError, StorageError
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.transaction import Transaction
from moneyflow.schemas.bank_account import BankAccountCreate
from moneyflow.services.audit import log_event
from moneyflow.services.idempotency import make_key

logger = logging.getLogger(__name__)

BANK_ACCOUNT_SCOPE = "bank-accounts:create"


def get_owned(s: Session, model, user_id: str, entity_id: str, resource: str):
    row = s.execute(select(model).where(model.id == entity_id, model.user_id == user_id)).scalar_one_or_none()
    if row is None:
        raise NotFoundError(resource, entity_id)
    return row


def ensure_not_source(s: Session, user_id: str, column, entity_id: str, resource: str) -> None:
    used = s.execute(
        select(Transaction.id).where(Transaction.user_id == user_id, column == entity_id).limit(1)
    ).scalar_one_or_none()
    if used is not None:
        raise InvalidInput(f"{resource} has transactions and cannot be deleted")


def commit_or_raise(s: Session, operation: str, message: str) -> None:
    try:
        s.commit()
    except IntegrityError:
        s.rollback()
        logger.warning("%s rejected by a unique constraint", operation)
        raise ConflictError(message)
    except SQLAlchemyError:
        s.rollback()
        logger.exception("%s failed", operation)
        raise StorageError(operation, message)


def set_balance(s: Session, model, user_id: str, entity_id: str, balance: Decimal, resource: str):
    """Administrative overwrite used for onboarding; transactions never go through here."""
    row = get_owned(s, model, user_id, entity_id, resource)
    previous = row.balance
    row.balance = balance
    commit_or_raise(s, "update", f"could not update {resource} balance")
    s.refresh(row)
    log_event(
        s,
        user_id=user_id,
        action=f"{resource}.set_balance",
        entity_type=resource,
        entity_id=row.id,
        details={"from": str(previous), "to": str(balance)},
    )
    return row


def delete_owned(s: Session, model, user_id: str, entity_id: str, resource: str, source_column=None) -> None:
    row = get_owned(s, model, user_id, entity_id, resource)
    if source_column is not None:
        ensure_not_source(s, user_id, source_column, entity_id, resource)
    s.delete(row)
    commit_or_raise(s, "delete", f"could not delete {resource}")
    log_event(s, user_id=user_id, action=f"{resource}.delete", entity_type=resource, entity_id=entity_id)


def create_bank_account(
    s: Session,
    user_id: str,
    body: BankAccountCreate,
    idempotency_key: str | None = None,
) -> tuple[BankAccount, bool]:
    key = make_key(
        BANK_ACCOUNT_SCOPE,
        user_id,
        [
            body.account_name,
            body.bank,
            body.account_type,
            body.account_number,
            body.cbu,
            body.alias,
            body.iban,
            body.currency,
            body.owner_name,
            body.owner_document,
        ],
        provided=idempotency_key or body.idempotency_key,
    )
    existing = s.execute(
        select(BankAccount).where(BankAccount.user_id == user_id, BankAccount.idempotency_key == key)
    ).scalar_one_or_none()
    if existing is not None:
        return existing, False

    row = BankAccount(user_id=user_id, idempotency_key=key, **body.model_dump(exclude={"idempotency_key"}))
    s.add(row)
    commit_or_raise(s, "insert", "bank account already exists")
    s.refresh(row)
    log_event(
        s,
        user_id=user_id,
        action="bank_account.create",
        entity_type="bank_account",
        entity_id=row.id,
        details={"bank": row.bank, "currency": row.currency},
    )
    return row, True


def find_bank_account(s: Session, user_id: str, cbu: str | None = None, alias: str | None = None) -> BankAccount:
    if not cbu and not alias:
        raise InvalidInput("cbu or alias is required")
    conds = []
    if cbu:
        conds.append(BankAccount.cbu == cbu.strip())
    if alias:
        conds.append(BankAccount.alias == alias.strip().lower())
    row = s.execute(
        select(BankAccount).where(BankAccount.user_id == user_id, or_(*conds))
    ).scalars().first()
    if row is None:
        raise NotFoundError("bank_account", cbu or alias)
    return row
