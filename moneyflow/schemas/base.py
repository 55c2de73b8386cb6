from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")
# Numeric(15, 2) holds 13 integer digits
MONEY_LIMIT = Decimal("10000000000000")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def money(v: Decimal, name: str = "amount") -> Decimal:
    """Reject values the money columns would round or overflow, return them in cents."""
    if not v.is_finite():
        raise ValueError(f"{name} must be a number")
    if abs(v) >= MONEY_LIMIT:
        raise ValueError(f"{name} is too large")
    if v != v.quantize(CENT):
        raise ValueError(f"{name} must have at most 2 decimal places")
    return v.quantize(CENT)
