from pydantic import BaseModel
from datetime import datetime


class AuditOut(BaseModel):
    id: int
    created_at: datetime
    user_id: str
    action: str
    entity_type: str
    entity_id: str | None
    details: dict | None

    class Config:
        from_attributes = True
