import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from moneyflow.core.config import settings
from moneyflow.core.errors import MoneyflowError, StorageError
from moneyflow.core.logging import setup_logging
from moneyflow.api.routes.auth import router as auth_router
from moneyflow.api.routes.transactions import router as tx_router
from moneyflow.api.routes.accounts import router as accounts_router
from moneyflow.api.routes.bank_accounts import router as bank_accounts_router
from moneyflow.api.routes.wallets import router as wallets_router
from moneyflow.api.routes.contacts import router as contacts_router, folders_router
from moneyflow.api.routes.goals import router as goals_router
from moneyflow.api.routes.dashboard import router as dashboard_router
from moneyflow.api.routes.reports import router as reports_router
from moneyflow.api.routes.audit import router as audit_router

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"

app = FastAPI(title="moneyflow")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MoneyflowError)
async def moneyflow_error(request: Request, exc: MoneyflowError):
    if isinstance(exc, StorageError):
        logger.error("storage failure during %s: %s", exc.operation, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": INTERNAL_ERROR})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "invalid request"})
    first = errors[0]
    msg = str(first.get("msg", "invalid request")).removeprefix("Value error, ")
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "header", "path")]
    if loc:
        msg = f"{loc[-1]}: {msg}"
    return JSONResponse(status_code=400, content={"error": msg})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR})


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(tx_router)
app.include_router(accounts_router)
app.include_router(bank_accounts_router)
app.include_router(wallets_router)
app.include_router(contacts_router)
app.include_router(folders_router)
app.include_router(goals_router)
app.include_router(dashboard_router)
app.include_router(reports_router)
app.include_router(audit_router)
