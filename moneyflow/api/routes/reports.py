from datetime import date, datetime, time
from io import BytesIO

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from moneyflow.api.deps import db, current_user
from moneyflow.core.errors import InvalidInput
from moneyflow.services.reports import build_transactions_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/transactions.xlsx")
def transactions_report(
    start: date = Query(...),
    end: date = Query(...),
    s: Session = Depends(db),
    u=Depends(current_user),
):
    if end < start:
        raise InvalidInput("end must not be before start", field="end")

    buf = BytesIO()
    build_transactions_report(s, u["sub"], datetime.combine(start, time.min), datetime.combine(end, time.max), buf)
    buf.seek(0)

    filename = f"transactions_{start}_to_{end}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
