import hashlib
from typing import Any, Iterable

from moneyflow.core.errors import InvalidInput

# width of the idempotency_key columns
MAX_KEY_LENGTH = 128


def normalize_key(key: str | None) -> str | None:
    k = (key or "").strip()
    if len(k) > MAX_KEY_LENGTH:
        raise InvalidInput(f"Idempotency-Key must be at most {MAX_KEY_LENGTH} characters", field="idempotency_key")
    return k or None


def make_key(scope: str, user_id: str, parts: Iterable[Any], provided: str | None = None) -> str:
    """Client supplied key if present, else a digest of the request's semantic fields."""
    k = normalize_key(provided)
    if k is not None:
        return k
    joined = "|".join("" if p is None else str(p) for p in parts)
    digest = hashlib.sha256(f"{scope}|{user_id}|{joined}".encode("utf-8")).hexdigest()
    return f"{scope}:{digest}"
