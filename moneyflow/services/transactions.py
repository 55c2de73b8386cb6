"""Transaction use cases.

Every mutating function here is one unit of work: the transaction row, the
balance deltas and the goal delta are committed together or rolled back
together. Audit rows are written after the commit, as everywhere else.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from moneyflow.core.config import settings
from moneyflow.core.errors import AuthorizationError, InvalidInput, NotFoundError, StorageError
from moneyflow.models.account import FinancialAccount
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.contact import Contact
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.models.transaction import Transaction
from moneyflow.models.transaction_metadata import TransactionMetadata
from moneyflow.models.wallet import DigitalWallet
from moneyflow.schemas.transaction import TxDraft
from moneyflow.services import reconciler
from moneyflow.services.account_refs import AccountRef, BankRef, GenericRef, endpoint_columns, ref_from_ids
from moneyflow.services.audit import log_event
from moneyflow.services.classifier import (
    Classification,
    ClassificationInput,
    OwnedAccounts,
    SuspiciousActivity,
    classify,
    detect_category,
    detect_suspicious_activity,
)
from moneyflow.services.idempotency import make_key
from moneyflow.services.transaction_state import INITIAL_STATE, next_state
from moneyflow.utils.timezone import to_utc_naive, utcnow

logger = logging.getLogger(__name__)

CREATE_SCOPE = "transactions:create"

# types that move money between places rather than spend or earn it
NEUTRAL_TYPES = frozenset({"transfer", "transfer_own_accounts", "transfer_third_party", "withdrawal", "deposit"})

SORT_COLUMNS = {
    "date": Transaction.date,
    "amount": Transaction.amount,
    "description": Transaction.description,
    "type": Transaction.type,
    "category": Transaction.category,
}


@dataclass(frozen=True)
class CreateResult:
    transaction: Transaction
    classification: Classification | None
    created: bool


@dataclass(frozen=True)
class TxFilters:
    type: str | None = None
    category: str | None = None
    currency: str | None = None
    search: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    sort_by: str = "date"
    sort_order: str = "desc"
    limit: int | None = None


def _require_user(user_id: str | None, resource: str) -> str:
    if not user_id:
        raise AuthorizationError(resource)
    return user_id


def _split(v: str | None) -> list[str]:
    return [p.strip() for p in (v or "").split(",") if p.strip()]


def owned_accounts(s: Session, user_id: str) -> OwnedAccounts:
    def ids(model) -> frozenset[str]:
        return frozenset(s.execute(select(model.id).where(model.user_id == user_id)).scalars().all())

    return OwnedAccounts(
        account_ids=ids(FinancialAccount),
        bank_account_ids=ids(BankAccount),
        wallet_ids=ids(DigitalWallet),
    )


def _owned_endpoint(s: Session, user_id: str, ref: AccountRef | None):
    if ref is None:
        return None
    if isinstance(ref, GenericRef):
        model = FinancialAccount
    elif isinstance(ref, BankRef):
        model = BankAccount
    else:
        model = DigitalWallet
    return s.execute(select(model).where(model.id == ref.id, model.user_id == user_id)).scalar_one_or_none()


def _owned_id(s: Session, user_id: str, model, entity_id: str | None) -> str | None:
    if not entity_id:
        return None
    return s.execute(select(model.id).where(model.id == entity_id, model.user_id == user_id)).scalar_one_or_none()


def _find_by_key(s: Session, user_id: str, key: str) -> Transaction | None:
    return s.execute(
        select(Transaction).where(Transaction.user_id == user_id, Transaction.idempotency_key == key)
    ).scalar_one_or_none()


def _get_owned(s: Session, user_id: str, tx_id: str) -> Transaction:
    tx = s.execute(
        select(Transaction).where(Transaction.id == tx_id, Transaction.user_id == user_id)
    ).scalar_one_or_none()
    if tx is None:
        raise NotFoundError("transaction", tx_id)
    return tx


def classification_input(s: Session, user_id: str, body: TxDraft) -> ClassificationInput:
    return ClassificationInput(
        amount=body.amount,
        description=body.description,
        source=ref_from_ids(body.from_account_id, body.from_bank_account_id, body.from_wallet_id, side="from"),
        destination=ref_from_ids(body.to_account_id, body.to_bank_account_id, body.to_wallet_id, side="to"),
        contact_id=body.contact_id,
        payment_method=body.payment_method,
        owned=owned_accounts(s, user_id),
    )


def resolve_category(tx_type: str, explicit: str | None, description: str) -> str:
    if explicit:
        return explicit
    if tx_type in NEUTRAL_TYPES:
        return "other"
    return detect_category(description) or "other"


def assess_activity(s: Session, user_id: str, amount: Decimal, now: datetime | None = None) -> SuspiciousActivity:
    now = now or utcnow()
    recent = s.execute(
        select(Transaction.created_at).where(
            Transaction.user_id == user_id,
            Transaction.created_at >= now - timedelta(hours=24),
        )
    ).scalars().all()
    average = s.execute(
        select(func.coalesce(func.avg(Transaction.amount), 0)).where(Transaction.user_id == user_id)
    ).scalar_one()
    return detect_suspicious_activity(amount, recent, Decimal(str(average)), now=now)


def create_transaction(
    s: Session,
    user_id: str | None,
    body: TxDraft,
    idempotency_key: str | None = None,
) -> CreateResult:
    """Create a transaction whose type and category are chosen by the client."""
    user_id = _require_user(user_id, "transaction")
    for name in ("type", "category"):
        if not getattr(body, name):
            raise InvalidInput(f"{name} is required", field=name)
    return create_transaction_with_detection(s, user_id, body, idempotency_key)


def create_transaction_with_detection(
    s: Session,
    user_id: str | None,
    body: TxDraft,
    idempotency_key: str | None = None,
) -> CreateResult:
    """Classify, persist and reconcile one transaction.

    Missing ``type`` and ``category`` are detected. A repeated
    ``idempotency_key`` for the same user returns the stored row and applies
    no deltas. Without a key one is derived from the request's semantic
    fields.
    """
    user_id = _require_user(user_id, "transaction")

    inp = classification_input(s, user_id, body)
    currency = body.currency or settings.base_currency.upper()

    source_row = _owned_endpoint(s, user_id, inp.source)
    dest_row = _owned_endpoint(s, user_id, inp.destination)
    for row, side in ((source_row, "source"), (dest_row, "destination")):
        if row is not None and row.currency != currency:
            raise InvalidInput(
                f"currency {currency} does not match the {side} account currency {row.currency}",
                field="currency",
            )

    when = to_utc_naive(body.date) if body.date else utcnow()
    key = make_key(
        CREATE_SCOPE,
        user_id,
        [
            body.type,
            body.category,
            body.amount,
            currency,
            body.description,
            when.isoformat(),
            inp.source,
            inp.destination,
            body.goal_id,
            body.transfer_recipient,
            body.transfer_sender,
        ],
        provided=idempotency_key,
    )

    existing = _find_by_key(s, user_id, key)
    if existing is not None:
        logger.info("idempotent replay of transaction %s for user %s", existing.id, user_id)
        return CreateResult(existing, None, False)

    classification = classify(inp)
    tx_type = body.type or classification.type

    tx = Transaction(
        user_id=user_id,
        idempotency_key=key,
        state=INITIAL_STATE,
        type=tx_type,
        category=resolve_category(tx_type, body.category, body.description),
        amount=body.amount,
        currency=currency,
        description=body.description,
        date=when,
        contact_id=_owned_id(s, user_id, Contact, body.contact_id),
        goal_id=_owned_id(s, user_id, SavingsGoal, body.goal_id),
        transfer_recipient=body.transfer_recipient,
        transfer_sender=body.transfer_sender,
        payment_method=body.payment_method,
        **endpoint_columns("from", inp.source if source_row is not None else None),
        **endpoint_columns("to", inp.destination if dest_row is not None else None),
        **classification.flags(),
    )

    try:
        s.add(tx)
        s.flush()
        reconciler.apply_create(s, tx)
        s.commit()
    except IntegrityError:
        s.rollback()
        # lost a race against a request carrying the same key
        existing = _find_by_key(s, user_id, key)
        if existing is not None:
            return CreateResult(existing, None, False)
        logger.exception("transaction insert failed for user %s", user_id)
        raise StorageError("create", "could not create transaction")
    except SQLAlchemyError:
        s.rollback()
        logger.exception("transaction insert failed for user %s", user_id)
        raise StorageError("create", "could not create transaction")

    s.refresh(tx)
    log_event(
        s,
        user_id=user_id,
        action="tx.create",
        entity_type="transaction",
        entity_id=tx.id,
        details={
            "type": tx.type,
            "category": tx.category,
            "amount": str(tx.amount),
            "currency": tx.currency,
            "confidence": classification.confidence,
        },
    )
    return CreateResult(tx, classification, True)


def delete_transaction(s: Session, user_id: str | None, tx_id: str) -> None:
    user_id = _require_user(user_id, "transaction")
    tx = _get_owned(s, user_id, tx_id)
    details = {
        "type": tx.type,
        "category": tx.category,
        "amount": str(tx.amount),
        "currency": tx.currency,
        "date": str(tx.date),
    }

    try:
        reconciler.apply_delete(s, tx)
        s.execute(delete(TransactionMetadata).where(TransactionMetadata.transaction_id == tx.id))
        s.delete(tx)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("transaction delete failed for %s", tx_id)
        raise StorageError("delete", "could not delete transaction")

    log_event(s, user_id=user_id, action="tx.delete", entity_type="transaction", entity_id=tx_id, details=details)


def list_transactions(s: Session, user_id: str | None, filters: TxFilters | None = None) -> list[Transaction]:
    user_id = _require_user(user_id, "transaction")
    f = filters or TxFilters()

    q = select(Transaction).where(Transaction.user_id == user_id)

    types = _split(f.type)
    if types:
        q = q.where(Transaction.type.in_(types))
    categories = _split(f.category)
    if categories:
        q = q.where(Transaction.category.in_(categories))
    currencies = [c.upper() for c in _split(f.currency)]
    if currencies:
        q = q.where(Transaction.currency.in_(currencies))

    term = (f.search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.where(
            Transaction.description.ilike(like)
            | Transaction.transfer_recipient.ilike(like)
            | Transaction.transfer_sender.ilike(like)
        )

    if f.start is not None:
        q = q.where(Transaction.date >= to_utc_naive(f.start))
    if f.end is not None:
        q = q.where(Transaction.date <= to_utc_naive(f.end))

    col = SORT_COLUMNS.get(f.sort_by)
    if col is None:
        raise InvalidInput(f"cannot sort by {f.sort_by}", field="sortBy")
    if f.sort_order == "asc":
        q = q.order_by(col.asc(), Transaction.id.asc())
    else:
        q = q.order_by(col.desc(), Transaction.id.desc())

    if f.limit:
        q = q.limit(f.limit)
    return list(s.execute(q).scalars().all())


def apply_event(s: Session, user_id: str | None, tx_id: str, event: str) -> Transaction:
    user_id = _require_user(user_id, "transaction")
    tx = _get_owned(s, user_id, tx_id)

    previous = tx.state
    target = next_state(previous, event)
    if target is None:
        raise InvalidInput(f"cannot {event} a transaction in state {previous}", field="state")

    try:
        tx.state = target
        if target == "RECONCILED":
            meta = _metadata_for(s, tx.id)
            meta.is_reconciled = True
            meta.reconciliation_date = utcnow()
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("state change %s failed for %s", event, tx_id)
        raise StorageError("update", "could not update transaction state")

    s.refresh(tx)
    log_event(
        s,
        user_id=user_id,
        action=f"tx.{event}",
        entity_type="transaction",
        entity_id=tx.id,
        details={"from": previous, "to": target},
    )
    return tx


def _metadata_for(s: Session, tx_id: str) -> TransactionMetadata:
    meta = s.execute(
        select(TransactionMetadata).where(TransactionMetadata.transaction_id == tx_id)
    ).scalar_one_or_none()
    if meta is None:
        meta = TransactionMetadata(transaction_id=tx_id)
        s.add(meta)
    return meta


def flag_transaction(s: Session, user_id: str | None, tx_id: str, reason: str) -> TransactionMetadata:
    user_id = _require_user(user_id, "transaction")
    tx = _get_owned(s, user_id, tx_id)

    try:
        meta = _metadata_for(s, tx.id)
        meta.is_flagged = True
        meta.flag_reason = reason
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("flagging failed for %s", tx_id)
        raise StorageError("update", "could not flag transaction")

    s.refresh(meta)
    log_event(
        s,
        user_id=user_id,
        action="tx.flag",
        entity_type="transaction",
        entity_id=tx.id,
        details={"reason": reason},
    )
    return meta


def list_flagged(s: Session, user_id: str | None) -> list[tuple[Transaction, TransactionMetadata]]:
    user_id = _require_user(user_id, "transaction")
    rows = s.execute(
        select(Transaction, TransactionMetadata)
        .join(TransactionMetadata, TransactionMetadata.transaction_id == Transaction.id)
        .where(Transaction.user_id == user_id, TransactionMetadata.is_flagged.is_(True))
        .order_by(TransactionMetadata.updated_at.desc(), Transaction.id.desc())
    ).all()
    return [(t, m) for (t, m) in rows]
