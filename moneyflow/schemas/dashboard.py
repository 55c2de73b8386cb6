from decimal import Decimal
from typing import Literal

from moneyflow.schemas.base import CamelModel

Period = Literal["today", "week", "month", "all"]


class StatsOut(CamelModel):
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = 0


class GoalProgressOut(CamelModel):
    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    percent: float


class DashboardOut(CamelModel):
    period: str
    stats: dict[str, StatsOut] = {}
    balances_by_currency: dict[str, Decimal] = {}
    goals: list[GoalProgressOut] = []
