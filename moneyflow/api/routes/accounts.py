from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import select

from moneyflow.api.deps import db, current_user
from moneyflow.models.account import FinancialAccount
from moneyflow.schemas.account import AccountCreate, AccountOut, AccountUpdate, BalanceIn
from moneyflow.services.accounts import commit_or_raise, delete_owned, get_owned, set_balance
from moneyflow.services.audit import log_event

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountOut])
def list_accounts(s: Session = Depends(db), u=Depends(current_user)):
    q = select(FinancialAccount).where(FinancialAccount.user_id == u["sub"]).order_by(FinancialAccount.name.asc())
    return s.execute(q).scalars().all()


@router.post("", response_model=AccountOut, status_code=201)
def create_account(body: AccountCreate, u=Depends(current_user), s: Session = Depends(db)):
    a = FinancialAccount(user_id=u["sub"], **body.model_dump())
    s.add(a)
    commit_or_raise(s, "insert", "could not create account")
    s.refresh(a)
    log_event(
        s,
        user_id=u["sub"],
        action="account.create",
        entity_type="account",
        entity_id=a.id,
        details={"name": a.name, "currency": a.currency, "balance": str(a.balance)},
    )
    return a


@router.patch("/{account_id}", response_model=AccountOut)
def update_account(account_id: str, body: AccountUpdate, u=Depends(current_user), s: Session = Depends(db)):
    a = get_owned(s, FinancialAccount, u["sub"], account_id, "account")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(a, k, v)
    commit_or_raise(s, "update", "could not update account")
    s.refresh(a)
    return a


@router.put("/{account_id}/balance", response_model=AccountOut)
def put_balance(account_id: str, body: BalanceIn, u=Depends(current_user), s: Session = Depends(db)):
    return set_balance(s, FinancialAccount, u["sub"], account_id, body.balance, "account")


@router.delete("/{account_id}")
def delete_account(account_id: str, s: Session = Depends(db), u=Depends(current_user)):
    delete_owned(s, FinancialAccount, u["sub"], account_id, "account")
    return {"ok": True}
