import os
from decimal import Decimal
from sqlalchemy import select
from moneyflow.db.session import SessionLocal
from moneyflow.models.account import FinancialAccount
from moneyflow.models.user import User
from moneyflow.core.config import settings
from moneyflow.core.security import hash_password

def main():
    email = os.environ.get("SEED_USER_EMAIL", "demo@moneyflow.local")
    password = os.environ.get("SEED_USER_PASS", "demo12345")

    db = SessionLocal()
    try:
        existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing:
            return
        u = User(email=email, name="Demo", password_hash=hash_password(password))
        db.add(u)
        db.flush()
        db.add(FinancialAccount(user_id=u.id, name="Cash", type="cash", balance=Decimal("0"), currency=settings.base_currency))
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    main()
