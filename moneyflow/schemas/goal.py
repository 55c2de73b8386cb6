from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import field_validator

from moneyflow.schemas.base import CamelModel, money

GoalStatus = Literal["active", "completed", "paused"]
GoalPriority = Literal["low", "medium", "high"]


class GoalCreate(CamelModel):
    name: str
    description: str | None = None
    target_amount: Decimal
    deadline: datetime | None = None
    priority: GoalPriority = "medium"

    @field_validator("target_amount")
    @classmethod
    def _target(cls, v: Decimal) -> Decimal:
        if v.is_finite() and v <= 0:
            raise ValueError("target amount must be greater than 0")
        return money(v, "target amount")


class GoalStatusIn(CamelModel):
    status: GoalStatus

    @field_validator("status", mode="before")
    @classmethod
    def _closed_is_completed(cls, v):
        # "closed" is the older name for a finished goal
        return "completed" if v == "closed" else v


class GoalOut(CamelModel):
    id: str
    name: str
    description: str | None = None
    target_amount: Decimal
    current_amount: Decimal
    deadline: datetime | None = None
    priority: str
    status: str
    created_at: datetime | None = None
