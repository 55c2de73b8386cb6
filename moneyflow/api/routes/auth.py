from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import select
from moneyflow.api.deps import db
from moneyflow.core.errors import AuthorizationError, ConflictError
from moneyflow.schemas.auth import LoginIn, RegisterIn, TokenOut
from moneyflow.models.user import User
from moneyflow.core.security import hash_password, verify_password, create_access_token
from moneyflow.services.accounts import commit_or_raise
from moneyflow.services.audit import log_event

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenOut, status_code=201)
def register(body: RegisterIn, s: Session = Depends(db)):
    exists = s.execute(select(User).where(User.email == body.email)).scalar_one_or_none()
    if exists:
        raise ConflictError("email already registered", field="email")
    u = User(email=body.email, name=body.name, password_hash=hash_password(body.password))
    s.add(u)
    commit_or_raise(s, "insert", "email already registered")
    s.refresh(u)
    log_event(s, user_id=u.id, action="user.register", entity_type="user", entity_id=u.id)
    return {"access_token": create_access_token(sub=u.id, email=u.email), "user_id": u.id, "name": u.name}


@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, s: Session = Depends(db)):
    u = s.execute(select(User).where(User.email == body.email.strip().lower())).scalar_one_or_none()
    if not u or not verify_password(body.password, u.password_hash):
        raise AuthorizationError("session")
    return {"access_token": create_access_token(sub=u.id, email=u.email), "user_id": u.id, "name": u.name}
