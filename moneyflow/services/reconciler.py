"""Balance side effects of creating and deleting a transaction.

Both functions only stage UPDATE statements on the given session; the caller
owns the unit of work and commits (or rolls back) the transaction row
together with every balance and goal change.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from moneyflow.models.account import FinancialAccount
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.models.transaction import Transaction
from moneyflow.models.wallet import DigitalWallet
from moneyflow.services.account_refs import AccountRef, BankRef, GenericRef, WalletRef, destination_of, source_of

logger = logging.getLogger(__name__)

_MODELS = {
    GenericRef: FinancialAccount,
    BankRef: BankAccount,
    WalletRef: DigitalWallet,
}


def _to_dec(v) -> Decimal:
    return Decimal(str(v))


def _shift_balance(s: Session, user_id: str, ref: AccountRef | None, delta: Decimal) -> bool:
    if ref is None:
        return False
    model = _MODELS[type(ref)]
    res = s.execute(
        update(model)
        .where(model.id == ref.id, model.user_id == user_id)
        .values(balance=model.balance + delta)
        .execution_options(synchronize_session=False)
    )
    # legs that do not resolve to an owned row are skipped
    return res.rowcount > 0


def _shift_goal(s: Session, tx: Transaction, delta: Decimal) -> bool:
    if not tx.goal_id or tx.type != "saving":
        return False
    res = s.execute(
        update(SavingsGoal)
        .where(SavingsGoal.id == tx.goal_id, SavingsGoal.user_id == tx.user_id)
        .values(current_amount=SavingsGoal.current_amount + delta)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount > 0


def apply_create(s: Session, tx: Transaction) -> None:
    amount = _to_dec(tx.amount)
    _shift_balance(s, tx.user_id, source_of(tx), -amount)
    _shift_balance(s, tx.user_id, destination_of(tx), amount)
    _shift_goal(s, tx, amount)
    logger.debug("applied create deltas for transaction %s", tx.id)


def apply_delete(s: Session, tx: Transaction) -> None:
    amount = _to_dec(tx.amount)
    _shift_balance(s, tx.user_id, source_of(tx), amount)
    _shift_balance(s, tx.user_id, destination_of(tx), -amount)
    _shift_goal(s, tx, -amount)
    logger.debug("applied delete deltas for transaction %s", tx.id)
