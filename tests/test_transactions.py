from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from moneyflow.core.errors import AuthorizationError, InvalidInput, NotFoundError, StorageError
from moneyflow.models.account import FinancialAccount
from moneyflow.models.audit_log import AuditLog
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.models.transaction import Transaction
from moneyflow.models.wallet import DigitalWallet
from moneyflow.schemas.transaction import TxCreate, TxDraft
from moneyflow.services import reconciler
from moneyflow.services import transactions as tx_service
from moneyflow.services.idempotency import MAX_KEY_LENGTH, make_key, normalize_key


def _body(**kw):
    data = {
        "type": "expense",
        "category": "other",
        "amount": Decimal("100"),
        "description": "Movimiento",
        "date": datetime(2025, 3, 1, 10, 0),
    }
    data.update(kw)
    return TxCreate(**data)


def _balance(session, model, entity_id) -> Decimal:
    session.expire_all()
    return session.execute(select(model.balance).where(model.id == entity_id)).scalar_one()


def _tx_count(session) -> int:
    return session.execute(select(func.count()).select_from(Transaction)).scalar_one()


def test_balance_round_trip(session, user, make_account):
    a = make_account(user, "500")
    b = make_account(user, "200", name="Savings")

    res = tx_service.create_transaction(
        session, user.id, _body(type="transfer", from_account_id=a.id, to_account_id=b.id), "k-1"
    )
    assert res.created is True
    assert _balance(session, FinancialAccount, a.id) == Decimal("400")
    assert _balance(session, FinancialAccount, b.id) == Decimal("300")

    tx_service.delete_transaction(session, user.id, res.transaction.id)
    assert _balance(session, FinancialAccount, a.id) == Decimal("500")
    assert _balance(session, FinancialAccount, b.id) == Decimal("200")
    assert _tx_count(session) == 0


def test_round_trip_across_namespaces(session, user, make_account):
    bank = make_account(user, "1000", model=BankAccount)
    wallet = make_account(user, "0", model=DigitalWallet)

    res = tx_service.create_transaction(
        session,
        user.id,
        _body(type="transfer", amount=Decimal("250.50"), from_bank_account_id=bank.id, to_wallet_id=wallet.id),
        "k-ns",
    )
    assert _balance(session, BankAccount, bank.id) == Decimal("749.50")
    assert _balance(session, DigitalWallet, wallet.id) == Decimal("250.50")

    tx_service.delete_transaction(session, user.id, res.transaction.id)
    assert _balance(session, BankAccount, bank.id) == Decimal("1000")
    assert _balance(session, DigitalWallet, wallet.id) == Decimal("0")


def test_saving_goal_accumulation(session, user, make_goal):
    g = make_goal(user, current="100")

    res = tx_service.create_transaction(
        session, user.id, _body(type="saving", category="savings", amount=Decimal("50"), goal_id=g.id), "k-goal"
    )
    session.expire_all()
    assert session.get(SavingsGoal, g.id).current_amount == Decimal("150")

    tx_service.delete_transaction(session, user.id, res.transaction.id)
    session.expire_all()
    assert session.get(SavingsGoal, g.id).current_amount == Decimal("100")


def test_goal_ignored_for_non_saving_types(session, user, make_goal):
    g = make_goal(user, current="100")
    tx_service.create_transaction(session, user.id, _body(type="expense", goal_id=g.id), "k-goal-exp")
    session.expire_all()
    assert session.get(SavingsGoal, g.id).current_amount == Decimal("100")


def test_idempotent_creation_applies_deltas_once(session, user, make_account):
    a = make_account(user, "500")
    body = _body(from_account_id=a.id)

    first = tx_service.create_transaction(session, user.id, body, "same-key")
    second = tx_service.create_transaction(session, user.id, body, "  same-key  ")

    assert second.created is False
    assert second.transaction.id == first.transaction.id
    assert _tx_count(session) == 1
    assert _balance(session, FinancialAccount, a.id) == Decimal("400")


def test_derived_key_deduplicates_identical_requests(session, user, make_account):
    a = make_account(user, "500")
    body = _body(from_account_id=a.id)

    first = tx_service.create_transaction(session, user.id, body)
    second = tx_service.create_transaction(session, user.id, body)

    assert second.transaction.id == first.transaction.id
    assert first.transaction.idempotency_key.startswith("transactions:create:")
    assert _balance(session, FinancialAccount, a.id) == Decimal("400")


def test_same_key_for_other_user_creates_separate_row(session, user, other_user):
    tx_service.create_transaction(session, user.id, _body(), "shared")
    tx_service.create_transaction(session, other_user.id, _body(), "shared")
    assert _tx_count(session) == 2


def test_make_key_is_scoped():
    k1 = make_key("transactions:create", "u1", ["a", None, 1])
    k2 = make_key("transactions:create", "u2", ["a", None, 1])
    assert k1 != k2
    assert k1 == make_key("transactions:create", "u1", ["a", None, 1])
    assert make_key("x", "u1", [], provided="  given ") == "given"


def test_currency_mismatch_is_rejected_before_mutation(session, user, make_account):
    a = make_account(user, "500", currency="ARS")

    with pytest.raises(InvalidInput) as exc:
        tx_service.create_transaction(session, user.id, _body(currency="USD", from_account_id=a.id), "k-usd")

    assert exc.value.field == "currency"
    assert _balance(session, FinancialAccount, a.id) == Decimal("500")
    assert _tx_count(session) == 0


def test_currency_mismatch_on_destination_wallet(session, user, make_account):
    w = make_account(user, "0", currency="USD", model=DigitalWallet)
    with pytest.raises(InvalidInput):
        tx_service.create_transaction(session, user.id, _body(type="income", to_wallet_id=w.id), "k-w")
    assert _tx_count(session) == 0


def test_currency_defaults_to_base_currency(session, user):
    res = tx_service.create_transaction(session, user.id, _body(), "k-cur")
    assert res.transaction.currency == "ARS"


def test_missing_user_is_an_authorization_error(session, user, make_account):
    a = make_account(user, "500", currency="ARS")
    with pytest.raises(AuthorizationError):
        tx_service.create_transaction(session, None, _body(currency="USD", from_account_id=a.id), "k")
    with pytest.raises(AuthorizationError):
        tx_service.delete_transaction(session, "", "missing")


def test_missing_type_is_rejected_on_explicit_path(session, user):
    body = TxDraft(amount=Decimal("10"), description="x", category="food")
    with pytest.raises(InvalidInput) as exc:
        tx_service.create_transaction(session, user.id, body, "k")
    assert exc.value.field == "type"
    assert _tx_count(session) == 0


def test_delete_not_found_mutates_nothing(session, user, other_user, make_account):
    a = make_account(other_user, "500")
    res = tx_service.create_transaction(session, other_user.id, _body(from_account_id=a.id), "k")

    with pytest.raises(NotFoundError):
        tx_service.delete_transaction(session, user.id, res.transaction.id)
    with pytest.raises(NotFoundError):
        tx_service.delete_transaction(session, user.id, "does-not-exist")

    assert _tx_count(session) == 1
    assert _balance(session, FinancialAccount, a.id) == Decimal("400")


def test_storage_failure_rolls_back_everything(session, user, make_account, monkeypatch):
    a = make_account(user, "500")
    real = reconciler.apply_create

    def failing(s, tx):
        real(s, tx)
        raise OperationalError("UPDATE financial_accounts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(reconciler, "apply_create", failing)

    with pytest.raises(StorageError):
        tx_service.create_transaction(session, user.id, _body(from_account_id=a.id), "k-fail")

    assert _tx_count(session) == 0
    assert _balance(session, FinancialAccount, a.id) == Decimal("500")


def test_explicit_type_wins_but_flags_come_from_classifier(session, user, make_account):
    a = make_account(user, "500")
    b = make_account(user, "0", name="Other")

    res = tx_service.create_transaction(
        session, user.id, _body(type="expense", from_account_id=a.id, to_account_id=b.id), "k-flags"
    )
    t = res.transaction
    assert t.type == "expense"
    assert t.is_transfer_between_own_accounts is True
    assert res.classification.type == "transfer_own_accounts"


def test_foreign_endpoint_is_classified_but_not_touched(session, user, other_user, make_account):
    mine = make_account(user, "500", model=BankAccount)
    theirs = make_account(other_user, "0", model=BankAccount, account_number="999")

    res = tx_service.create_transaction_with_detection(
        session,
        user.id,
        TxDraft(amount=Decimal("100"), description="Transferencia", from_bank_account_id=mine.id, to_bank_account_id=theirs.id),
        "k-3p",
    )
    t = res.transaction
    assert t.type == "transfer_third_party"
    assert t.is_transfer_to_third_party is True
    assert t.category == "other"
    assert t.to_bank_account_id is None
    assert _balance(session, BankAccount, mine.id) == Decimal("400")
    assert _balance(session, BankAccount, theirs.id) == Decimal("0")


def test_detection_fills_type_and_category(session, user, make_account):
    a = make_account(user, "0")
    res = tx_service.create_transaction_with_detection(
        session, user.id, TxDraft(amount=Decimal("45"), description="Uber al aeropuerto", from_account_id=a.id)
    )
    t = res.transaction
    assert (t.type, t.category) == ("expense", "transportation")
    assert t.state == "DRAFT"
    assert _balance(session, FinancialAccount, a.id) == Decimal("-45")


def test_detection_keeps_given_category(session, user):
    res = tx_service.create_transaction_with_detection(
        session, user.id, TxDraft(amount=Decimal("10"), description="cash", category="gift", payment_method="cash")
    )
    assert res.transaction.category == "gift"


def test_create_and_delete_are_audited(session, user):
    res = tx_service.create_transaction(session, user.id, _body(), "k-audit")
    tx_service.delete_transaction(session, user.id, res.transaction.id)
    actions = session.execute(
        select(AuditLog.action).where(AuditLog.entity_id == res.transaction.id).order_by(AuditLog.id.asc())
    ).scalars().all()
    assert actions == ["tx.create", "tx.delete"]


def test_list_filters_search_and_sort(session, user):
    tx_service.create_transaction(session, user.id, _body(type="income", category="salary", amount=Decimal("900"), description="Sueldo"), "1")
    tx_service.create_transaction(session, user.id, _body(category="food", amount=Decimal("30"), description="Pizza", transfer_recipient="Don Luigi"), "2")
    tx_service.create_transaction(session, user.id, _body(category="rent", amount=Decimal("400"), description="Alquiler", currency="USD"), "3")

    rows = tx_service.list_transactions(session, user.id, tx_service.TxFilters(type="expense", sort_by="amount", sort_order="asc"))
    assert [r.description for r in rows] == ["Pizza", "Alquiler"]

    rows = tx_service.list_transactions(session, user.id, tx_service.TxFilters(category="food,salary"))
    assert {r.description for r in rows} == {"Pizza", "Sueldo"}

    rows = tx_service.list_transactions(session, user.id, tx_service.TxFilters(currency="usd"))
    assert [r.description for r in rows] == ["Alquiler"]

    rows = tx_service.list_transactions(session, user.id, tx_service.TxFilters(search="luigi"))
    assert [r.description for r in rows] == ["Pizza"]

    with pytest.raises(InvalidInput):
        tx_service.list_transactions(session, user.id, tx_service.TxFilters(sort_by="state"))


def test_list_is_scoped_to_user(session, user, other_user):
    tx_service.create_transaction(session, other_user.id, _body(), "k")
    assert tx_service.list_transactions(session, user.id) == []


def test_lifecycle_events(session, user, make_account):
    a = make_account(user, "500")
    res = tx_service.create_transaction(session, user.id, _body(from_account_id=a.id), "k-life")
    tx_id = res.transaction.id

    assert tx_service.apply_event(session, user.id, tx_id, "submit").state == "PENDING"
    assert tx_service.apply_event(session, user.id, tx_id, "confirm").state == "CONFIRMED"
    t = tx_service.apply_event(session, user.id, tx_id, "reconcile")
    assert t.state == "RECONCILED"

    with pytest.raises(InvalidInput):
        tx_service.apply_event(session, user.id, tx_id, "cancel")

    # state never moves money
    assert _balance(session, FinancialAccount, a.id) == Decimal("400")


def test_invalid_transition_from_draft(session, user):
    res = tx_service.create_transaction(session, user.id, _body(), "k")
    with pytest.raises(InvalidInput):
        tx_service.apply_event(session, user.id, res.transaction.id, "confirm")
    with pytest.raises(InvalidInput):
        tx_service.apply_event(session, user.id, res.transaction.id, "explode")


def test_flag_and_list_flagged(session, user):
    a = tx_service.create_transaction(session, user.id, _body(description="one"), "a").transaction
    tx_service.create_transaction(session, user.id, _body(description="two"), "b")

    meta = tx_service.flag_transaction(session, user.id, a.id, "looks odd")
    assert meta.is_flagged is True

    # flagging again updates the same row
    tx_service.flag_transaction(session, user.id, a.id, "still odd")

    flagged = tx_service.list_flagged(session, user.id)
    assert len(flagged) == 1
    t, m = flagged[0]
    assert t.id == a.id
    assert m.flag_reason == "still odd"


def test_delete_removes_metadata(session, user):
    a = tx_service.create_transaction(session, user.id, _body(), "a").transaction
    tx_service.flag_transaction(session, user.id, a.id, "x")
    tx_service.delete_transaction(session, user.id, a.id)
    assert tx_service.list_flagged(session, user.id) == []


@pytest.mark.parametrize("amount", ["0.004", "10.005"])
def test_sub_cent_amounts_are_rejected(session, user, make_account, amount):
    a = make_account(user, "500")
    with pytest.raises(ValidationError, match="at most 2 decimal places"):
        _body(amount=Decimal(amount), from_account_id=a.id)
    assert _tx_count(session) == 0
    assert _balance(session, FinancialAccount, a.id) == Decimal("500")


def test_amounts_beyond_column_range_are_rejected():
    with pytest.raises(ValidationError, match="too large"):
        _body(amount=Decimal("10000000000000"))


def test_cent_amounts_round_trip_exactly(session, user, make_account):
    a = make_account(user, "500")
    body = _body(amount=Decimal("10.500"), from_account_id=a.id)
    assert body.amount == Decimal("10.50")

    res = tx_service.create_transaction(session, user.id, body, "k-cents")
    assert res.transaction.amount == Decimal("10.50")
    assert _balance(session, FinancialAccount, a.id) == Decimal("489.50")

    tx_service.delete_transaction(session, user.id, res.transaction.id)
    assert _balance(session, FinancialAccount, a.id) == Decimal("500")


def test_oversized_idempotency_key_is_invalid_input(session, user):
    assert normalize_key("k" * MAX_KEY_LENGTH) == "k" * MAX_KEY_LENGTH
    with pytest.raises(InvalidInput) as exc:
        tx_service.create_transaction(session, user.id, _body(), "k" * (MAX_KEY_LENGTH + 1))
    assert exc.value.field == "idempotency_key"
    assert _tx_count(session) == 0
