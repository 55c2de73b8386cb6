from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from moneyflow.api.deps import db, current_user
from moneyflow.schemas.dashboard import DashboardOut, Period
from moneyflow.services.reports import dashboard_summary

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardOut)
def summary(period: Period = Query("month"), s: Session = Depends(db), u=Depends(current_user)):
    return dashboard_summary(s, u["sub"], period)
