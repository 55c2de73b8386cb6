"""Rule-based transaction classification.

``classify`` turns weak signals (which accounts are involved and whether the
user owns them, payment method, free-text description, amount) into a
transaction type plus four mutually exclusive flags. Rules are evaluated in a
fixed priority order and the first one that applies wins; when none applies a
fallback picks ``expense`` or ``income`` with medium confidence.

Nothing here touches the database and nothing here raises.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Literal, Sequence

from moneyflow.services.account_refs import AccountRef, BankRef, GenericRef, WalletRef

Confidence = Literal["high", "medium", "low"]

TRANSFER_KEYWORDS = ("transfer", "pago", "envío")
INCOME_KEYWORDS = ("salary", "ingreso", "pago recibido", "freelance", "bonus")

CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("food", ("restaurant", "café", "pizzeria", "burger", "food", "mercado", "supermercado")),
    (
        "transportation",
        ("uber", "taxi", "colectivo", "subte", "transporte", "combustible", "nafta", "estacionamiento"),
    ),
    ("utilities", ("internet", "electricidad", "agua", "gas", "teléfono", "utilitie")),
    ("health", ("farmacia", "doctor", "médico", "hospital", "salud", "health")),
    ("entertainment", ("cinema", "cine", "spotify", "netflix", "steam", "game")),
    ("shopping", ("amazon", "mercadolibre", "shein", "shopping")),
    ("rent", ("rent", "alquiler", "inmobiliario")),
    ("taxes", ("impuesto", "tax")),
    ("subscription", ("subscription", "suscripción")),
)

SUSPICIOUS_AVERAGE_MULTIPLIER = 5
SUSPICIOUS_DAILY_COUNT = 10


@dataclass(frozen=True)
class OwnedAccounts:
    """Ids the acting user owns, one set per namespace."""

    account_ids: frozenset[str] = frozenset()
    bank_account_ids: frozenset[str] = frozenset()
    wallet_ids: frozenset[str] = frozenset()

    def owns(self, ref: AccountRef) -> bool:
        if isinstance(ref, GenericRef):
            return ref.id in self.account_ids
        if isinstance(ref, BankRef):
            return ref.id in self.bank_account_ids
        return ref.id in self.wallet_ids


@dataclass(frozen=True)
class ClassificationInput:
    amount: Decimal | float | int
    description: str
    source: AccountRef | None = None
    destination: AccountRef | None = None
    contact_id: str | None = None
    payment_method: str | None = None
    owned: OwnedAccounts = field(default_factory=OwnedAccounts)

    @property
    def text(self) -> str:
        return (self.description or "").lower()

    @property
    def is_cash(self) -> bool:
        return self.payment_method == "cash"


@dataclass(frozen=True)
class Classification:
    type: str = "expense"
    is_transfer_between_own_accounts: bool = False
    is_transfer_to_third_party: bool = False
    is_cash_withdrawal: bool = False
    is_cash_deposit: bool = False
    confidence: Confidence = "medium"

    def flags(self) -> dict[str, bool]:
        return {
            "is_transfer_between_own_accounts": self.is_transfer_between_own_accounts,
            "is_transfer_to_third_party": self.is_transfer_to_third_party,
            "is_cash_withdrawal": self.is_cash_withdrawal,
            "is_cash_deposit": self.is_cash_deposit,
        }


@dataclass(frozen=True)
class Rule:
    name: str
    applies: Callable[[ClassificationInput], bool]
    result: Classification


def _same_namespace(a: AccountRef | None, b: AccountRef | None) -> bool:
    return a is not None and b is not None and type(a) is type(b)


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


def _positive(amount) -> bool:
    try:
        return amount > 0
    except TypeError:
        return False


def _own_transfer(inp: ClassificationInput) -> bool:
    return (
        _same_namespace(inp.source, inp.destination)
        and inp.owned.owns(inp.source)
        and inp.owned.owns(inp.destination)
    )


def _cash_withdrawal(inp: ClassificationInput) -> bool:
    return inp.is_cash and inp.source is not None and inp.destination is None


def _cash_deposit(inp: ClassificationInput) -> bool:
    return inp.is_cash and inp.source is None and inp.destination is not None


def _third_party_transfer(inp: ClassificationInput) -> bool:
    src, dst = inp.source, inp.destination
    triggered = (
        (isinstance(src, BankRef) and isinstance(dst, BankRef))
        # a source whose namespace has no matching destination
        or (src is not None and not _same_namespace(src, dst))
        or bool(inp.contact_id)
        or _contains_any(inp.text, TRANSFER_KEYWORDS)
    )
    if not triggered:
        return False
    # absent endpoints count as "mine"
    is_from_mine = src is None or inp.owned.owns(src)
    is_to_mine = dst is None or inp.owned.owns(dst)
    return is_from_mine and not is_to_mine


def _keyword_income(inp: ClassificationInput) -> bool:
    return (
        not isinstance(inp.source, (BankRef, WalletRef))
        and _positive(inp.amount)
        and _contains_any(inp.text, INCOME_KEYWORDS)
    )


RULES: tuple[Rule, ...] = (
    Rule(
        "own_transfer",
        _own_transfer,
        Classification("transfer_own_accounts", is_transfer_between_own_accounts=True, confidence="high"),
    ),
    Rule("cash_withdrawal", _cash_withdrawal, Classification("withdrawal", is_cash_withdrawal=True, confidence="high")),
    Rule("cash_deposit", _cash_deposit, Classification("deposit", is_cash_deposit=True, confidence="high")),
    Rule(
        "third_party_transfer",
        _third_party_transfer,
        Classification("transfer_third_party", is_transfer_to_third_party=True, confidence="high"),
    ),
    Rule("keyword_income", _keyword_income, Classification("income", confidence="high")),
)


def _fallback(inp: ClassificationInput) -> Classification:
    if inp.source is not None and inp.destination is None:
        return Classification("expense")
    if _positive(inp.amount) and inp.source is None:
        return Classification("income")
    return Classification("expense")


def classify(inp: ClassificationInput) -> Classification:
    for rule in RULES:
        if rule.applies(inp):
            return rule.result
    return _fallback(inp)


def detect_category(description: str | None) -> str | None:
    """First category whose keywords appear in the description, if any."""
    text = (description or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if _contains_any(text, keywords):
            return category
    return None


@dataclass(frozen=True)
class SuspiciousActivity:
    is_suspicious: bool
    reasons: tuple[str, ...] = ()


def detect_suspicious_activity(
    amount: Decimal | float | int,
    previous: Sequence[datetime] = (),
    average_amount: Decimal | float | int = 0,
    now: datetime | None = None,
) -> SuspiciousActivity:
    """Advisory check; the result is displayed, never enforced.

    ``previous`` holds the dates of the user's earlier transactions.
    """
    reasons: list[str] = []

    if average_amount > 0 and abs(amount) > average_amount * SUSPICIOUS_AVERAGE_MULTIPLIER:
        reasons.append("amount is well above the historical average")

    if previous:
        cutoff = (now or datetime.now(timezone.utc).replace(tzinfo=None)) - timedelta(hours=24)
        recent = sum(1 for d in previous if d > cutoff)
        if recent > SUSPICIOUS_DAILY_COUNT:
            reasons.append("too many transactions in the last 24 hours")

    return SuspiciousActivity(is_suspicious=bool(reasons), reasons=tuple(reasons))
