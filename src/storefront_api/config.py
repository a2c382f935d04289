from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int) -> int:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_decimal(*keys: str, default: str) -> Decimal:
    return Decimal(_get_env(*keys, default=default) or default)


def _get_set(*keys: str) -> frozenset[str]:
    raw = _get_env(*keys, default="") or ""
    return frozenset(x.strip() for x in raw.split(",") if x.strip())


@dataclass(frozen=True)
class Settings:
    db_path: str | None  # None -> in-memory adapters
    currency: str = "ZMW"
    admin_accounts: frozenset[str] = field(default_factory=frozenset)
    payment_delay_seconds: Decimal = Decimal("0")
    declined_contacts: frozenset[str] = field(default_factory=frozenset)
    max_merge_attempts: int = 3
    log_level: str = "INFO"
    log_format: str = "console"  # console | json


def load_settings() -> Settings:
    settings = Settings(
        db_path=_get_env("STOREFRONT_DB_PATH", "DB_PATH"),
        currency=_get_env("STOREFRONT_CURRENCY", "CURRENCY", default="ZMW") or "ZMW",
        admin_accounts=_get_set("STOREFRONT_ADMIN_ACCOUNTS", "ADMIN_ACCOUNTS"),
        payment_delay_seconds=_get_decimal("STOREFRONT_PAYMENT_DELAY", default="0"),
        declined_contacts=_get_set("STOREFRONT_DECLINED_CONTACTS"),
        max_merge_attempts=_get_int("STOREFRONT_MAX_MERGE_ATTEMPTS", default=3),
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
        log_format=(_get_env("LOG_FORMAT", default="console") or "console").lower(),
    )

    if settings.max_merge_attempts < 1:
        raise RuntimeError("STOREFRONT_MAX_MERGE_ATTEMPTS must be >= 1")
    if settings.payment_delay_seconds < 0:
        raise RuntimeError("STOREFRONT_PAYMENT_DELAY must be >= 0")
    return settings
