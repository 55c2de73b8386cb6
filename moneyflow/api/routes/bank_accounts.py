from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session
from sqlalchemy import select

from moneyflow.api.deps import db, current_user
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.transaction import Transaction
from moneyflow.schemas.account import BalanceIn
from moneyflow.schemas.bank_account import BankAccountCreate, BankAccountOut, BankAccountUpdate
from moneyflow.services.accounts import (
    commit_or_raise,
    create_bank_account,
    delete_owned,
    find_bank_account,
    get_owned,
    set_balance,
)

router = APIRouter(prefix="/bank-accounts", tags=["bank-accounts"])


@router.get("", response_model=list[BankAccountOut])
def list_bank_accounts(s: Session = Depends(db), u=Depends(current_user)):
    q = select(BankAccount).where(BankAccount.user_id == u["sub"]).order_by(BankAccount.account_name.asc())
    return s.execute(q).scalars().all()


@router.get("/lookup", response_model=BankAccountOut)
def lookup_bank_account(
    cbu: str | None = Query(None),
    alias: str | None = Query(None),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    return find_bank_account(s, u["sub"], cbu=cbu, alias=alias)


@router.post("", response_model=BankAccountOut, status_code=201)
def create(
    body: BankAccountCreate,
    response: Response,
    u=Depends(current_user),
    key: str | None = Header(default=None, alias="Idempotency-Key"),
    s: Session = Depends(db),
):
    row, created = create_bank_account(s, u["sub"], body, idempotency_key=key)
    if not created:
        response.status_code = 200
    return row


@router.patch("/{account_id}", response_model=BankAccountOut)
def update(account_id: str, body: BankAccountUpdate, u=Depends(current_user), s: Session = Depends(db)):
    row = get_owned(s, BankAccount, u["sub"], account_id, "bank_account")
    data = body.model_dump(exclude_unset=True)
    if data.get("alias"):
        data["alias"] = data["alias"].strip().lower()
    for k, v in data.items():
        setattr(row, k, v)
    commit_or_raise(s, "update", "alias already in use")
    s.refresh(row)
    return row


@router.put("/{account_id}/balance", response_model=BankAccountOut)
def put_balance(account_id: str, body: BalanceIn, u=Depends(current_user), s: Session = Depends(db)):
    return set_balance(s, BankAccount, u["sub"], account_id, body.balance, "bank_account")


@router.delete("/{account_id}")
def delete(account_id: str, s: Session = Depends(db), u=Depends(current_user)):
    delete_owned(s, BankAccount, u["sub"], account_id, "bank_account", source_column=Transaction.from_bank_account_id)
    return {"ok": True}
