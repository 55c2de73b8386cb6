"""References into the three account namespaces.

A transaction side (source or destination) points at no account or at exactly
one of a generic account, a bank account or a digital wallet. The side is
modelled as ``AccountRef | None`` so two namespaces can never be mixed on it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from moneyflow.core.errors import InvalidInput


@dataclass(frozen=True)
class GenericRef:
    id: str


@dataclass(frozen=True)
class BankRef:
    id: str


@dataclass(frozen=True)
class WalletRef:
    id: str


AccountRef = Union[GenericRef, BankRef, WalletRef]

# column suffix used on the transactions table for each namespace
_COLUMNS: dict[type, str] = {
    GenericRef: "account_id",
    BankRef: "bank_account_id",
    WalletRef: "wallet_id",
}


def ref_from_ids(
    account_id: str | None = None,
    bank_account_id: str | None = None,
    wallet_id: str | None = None,
    side: str = "from",
) -> AccountRef | None:
    given = [
        cls(v)
        for cls, v in ((GenericRef, account_id), (BankRef, bank_account_id), (WalletRef, wallet_id))
        if v
    ]
    if len(given) > 1:
        raise InvalidInput(f"only one {side} account may be given", field=side)
    return given[0] if given else None


def endpoint_columns(side: str, ref: AccountRef | None) -> dict[str, str | None]:
    """Column values for one side of a transaction row, e.g. ``from_wallet_id``."""
    out: dict[str, str | None] = {f"{side}_{suffix}": None for suffix in _COLUMNS.values()}
    if ref is not None:
        out[f"{side}_{_COLUMNS[type(ref)]}"] = ref.id
    return out


def source_of(tx) -> AccountRef | None:
    return ref_from_ids(tx.from_account_id, tx.from_bank_account_id, tx.from_wallet_id, side="from")


def destination_of(tx) -> AccountRef | None:
    return ref_from_ids(tx.to_account_id, tx.to_bank_account_id, tx.to_wallet_id, side="to")
