import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from moneyflow.core.errors import AuthorizationError
from moneyflow.core.security import decode_token
from moneyflow.db.session import SessionLocal

bearer = HTTPBearer(auto_error=False)


def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def current_user(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> dict:
    if creds is None:
        raise AuthorizationError()
    try:
        claims = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise AuthorizationError()
    if not claims.get("sub"):
        raise AuthorizationError()
    return claims
