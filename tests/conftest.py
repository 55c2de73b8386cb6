import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from moneyflow.db.base import Base
from moneyflow.models.user import User
from moneyflow.models.account import FinancialAccount
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.wallet import DigitalWallet
from moneyflow.models.contact import Contact, ContactFolder, ContactFolderMember
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.models.transaction import Transaction
from moneyflow.models.transaction_metadata import TransactionMetadata
from moneyflow.models.audit_log import AuditLog
from moneyflow.core.security import create_access_token


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def user(session):
    u = User(email="ana@example.com", name="Ana", password_hash="!")
    session.add(u)
    session.commit()
    return u


@pytest.fixture()
def other_user(session):
    u = User(email="bruno@example.com", name="Bruno", password_hash="!")
    session.add(u)
    session.commit()
    return u


@pytest.fixture()
def make_account(session):
    def _make(owner, balance="0", currency="ARS", model=FinancialAccount, **kw):
        if model is FinancialAccount:
            row = FinancialAccount(user_id=owner.id, name=kw.pop("name", "Main"), type="bank", **kw)
        elif model is BankAccount:
            row = BankAccount(
                user_id=owner.id,
                account_name=kw.pop("account_name", "Sueldo"),
                bank="galicia",
                account_type="checking",
                account_number=kw.pop("account_number", "123"),
                owner_name=owner.name,
                **kw,
            )
        else:
            row = DigitalWallet(user_id=owner.id, wallet_name=kw.pop("wallet_name", "MP"), provider="mercadopago", **kw)
        row.balance = Decimal(balance)
        row.currency = currency
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture()
def make_goal(session):
    def _make(owner, current="0", target="1000"):
        g = SavingsGoal(user_id=owner.id, name="Trip", target_amount=Decimal(target), current_amount=Decimal(current))
        session.add(g)
        session.commit()
        return g

    return _make


@pytest.fixture()
def client(session_factory):
    from moneyflow.api.deps import db
    from moneyflow.main import app

    def _db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[db] = _db
    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(sub=user.id, email=user.email)}"}
