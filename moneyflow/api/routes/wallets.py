from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import select

from moneyflow.api.deps import db, current_user
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.transaction import Transaction
from moneyflow.models.wallet import DigitalWallet
from moneyflow.schemas.account import BalanceIn
from moneyflow.schemas.wallet import WalletCreate, WalletOut, WalletUpdate
from moneyflow.services.accounts import commit_or_raise, delete_owned, get_owned, set_balance
from moneyflow.services.audit import log_event

router = APIRouter(prefix="/wallets", tags=["wallets"])


def _check_link(s: Session, user_id: str, bank_account_id: str | None) -> None:
    if bank_account_id:
        get_owned(s, BankAccount, user_id, bank_account_id, "bank_account")


@router.get("", response_model=list[WalletOut])
def list_wallets(s: Session = Depends(db), u=Depends(current_user)):
    q = select(DigitalWallet).where(DigitalWallet.user_id == u["sub"]).order_by(DigitalWallet.wallet_name.asc())
    return s.execute(q).scalars().all()


@router.post("", response_model=WalletOut, status_code=201)
def create_wallet(body: WalletCreate, u=Depends(current_user), s: Session = Depends(db)):
    _check_link(s, u["sub"], body.linked_bank_account_id)
    w = DigitalWallet(user_id=u["sub"], **body.model_dump())
    s.add(w)
    commit_or_raise(s, "insert", "could not create wallet")
    s.refresh(w)
    log_event(
        s,
        user_id=u["sub"],
        action="wallet.create",
        entity_type="wallet",
        entity_id=w.id,
        details={"provider": w.provider, "currency": w.currency},
    )
    return w


@router.patch("/{wallet_id}", response_model=WalletOut)
def update_wallet(wallet_id: str, body: WalletUpdate, u=Depends(current_user), s: Session = Depends(db)):
    w = get_owned(s, DigitalWallet, u["sub"], wallet_id, "wallet")
    data = body.model_dump(exclude_unset=True)
    _check_link(s, u["sub"], data.get("linked_bank_account_id"))
    for k, v in data.items():
        setattr(w, k, v)
    commit_or_raise(s, "update", "could not update wallet")
    s.refresh(w)
    return w


@router.put("/{wallet_id}/balance", response_model=WalletOut)
def put_balance(wallet_id: str, body: BalanceIn, u=Depends(current_user), s: Session = Depends(db)):
    return set_balance(s, DigitalWallet, u["sub"], wallet_id, body.balance, "wallet")


@router.delete("/{wallet_id}")
def delete_wallet(wallet_id: str, s: Session = Depends(db), u=Depends(current_user)):
    delete_owned(s, DigitalWallet, u["sub"], wallet_id, "wallet", source_column=Transaction.from_wallet_id)
    return {"ok": True}
