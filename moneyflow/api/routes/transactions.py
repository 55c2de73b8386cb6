from datetime import datetime

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from moneyflow.api.deps import db, current_user
from moneyflow.core.errors import InvalidInput
from moneyflow.schemas.transaction import (
    ClassificationOut,
    FlaggedTxOut,
    FlagIn,
    SortField,
    TxAutoOut,
    TxCreate,
    TxDraft,
    TxEvent,
    TxOut,
)
from moneyflow.services import transactions as tx_service
from moneyflow.services.classifier import classify
from moneyflow.services.idempotency import normalize_key

router = APIRouter(prefix="/transactions", tags=["transactions"])


def require_idempotency_key(key: str | None = Header(default=None, alias="Idempotency-Key")) -> str:
    key = normalize_key(key)
    if not key:
        raise InvalidInput("Idempotency-Key header required")
    return key


@router.post("", status_code=201)
def create_tx(
    body: TxCreate,
    u=Depends(current_user),
    key: str = Depends(require_idempotency_key),
    s: Session = Depends(db),
):
    tx_service.create_transaction(s, u["sub"], body, idempotency_key=key)
    return {"ok": True}


@router.post("/auto", response_model=TxAutoOut, status_code=201)
def create_tx_auto(
    body: TxDraft,
    u=Depends(current_user),
    key: str | None = Header(default=None, alias="Idempotency-Key"),
    s: Session = Depends(db),
):
    activity = tx_service.assess_activity(s, u["sub"], body.amount)
    res = tx_service.create_transaction_with_detection(s, u["sub"], body, idempotency_key=key)
    t = res.transaction
    classification = None
    if res.classification is not None:
        classification = ClassificationOut(
            type=t.type,
            confidence=res.classification.confidence,
            suggested_category=t.category,
            is_suspicious=activity.is_suspicious,
            suspicious_reasons=list(activity.reasons),
            **res.classification.flags(),
        )
    return TxAutoOut(transaction=TxOut.model_validate(t), classification=classification)


@router.post("/classify", response_model=ClassificationOut)
def classify_preview(body: TxDraft, u=Depends(current_user), s: Session = Depends(db)):
    c = classify(tx_service.classification_input(s, u["sub"], body))
    tx_type = body.type or c.type
    activity = tx_service.assess_activity(s, u["sub"], body.amount)
    return ClassificationOut(
        type=tx_type,
        confidence=c.confidence,
        suggested_category=tx_service.resolve_category(tx_type, body.category, body.description),
        is_suspicious=activity.is_suspicious,
        suspicious_reasons=list(activity.reasons),
        **c.flags(),
    )


@router.get("", response_model=list[TxOut])
def list_txs(
    type: str | None = Query(None),
    category: str | None = Query(None),
    currency: str | None = Query(None),
    search: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    sort_by: SortField = Query("date", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    limit: int | None = Query(None, ge=1, le=1000),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    filters = tx_service.TxFilters(
        type=type,
        category=category,
        currency=currency,
        search=search,
        start=start,
        end=end,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
    )
    return tx_service.list_transactions(s, u["sub"], filters)


@router.get("/flagged", response_model=list[FlaggedTxOut])
def list_flagged(s: Session = Depends(db), u=Depends(current_user)):
    return [
        FlaggedTxOut(transaction=TxOut.model_validate(t), flag_reason=m.flag_reason, flagged_at=m.updated_at)
        for (t, m) in tx_service.list_flagged(s, u["sub"])
    ]


@router.delete("/{tx_id}")
def delete_tx(tx_id: str, s: Session = Depends(db), u=Depends(current_user)):
    tx_service.delete_transaction(s, u["sub"], tx_id)
    return {"ok": True}


@router.post("/{tx_id}/flag")
def flag_tx(tx_id: str, body: FlagIn, u=Depends(current_user), s: Session = Depends(db)):
    tx_service.flag_transaction(s, u["sub"], tx_id, body.reason)
    return {"ok": True}


@router.post("/{tx_id}/{event}", response_model=TxOut)
def change_state(tx_id: str, event: TxEvent, u=Depends(current_user), s: Session = Depends(db)):
    return tx_service.apply_event(s, u["sub"], tx_id, event)
