"""Settings from the environment."""

from decimal import Decimal

import pytest

from storefront_api.config import load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "STOREFRONT_DB_PATH",
        "DB_PATH",
        "STOREFRONT_CURRENCY",
        "CURRENCY",
        "STOREFRONT_ADMIN_ACCOUNTS",
        "ADMIN_ACCOUNTS",
        "STOREFRONT_PAYMENT_DELAY",
        "STOREFRONT_DECLINED_CONTACTS",
        "STOREFRONT_MAX_MERGE_ATTEMPTS",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.db_path is None
    assert settings.currency == "ZMW"
    assert settings.max_merge_attempts == 3
    assert settings.payment_delay_seconds == Decimal("0")
    assert settings.log_format == "console"


def test_values_are_read_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("STOREFRONT_DB_PATH", str(tmp_path / "shop.db"))
    monkeypatch.setenv("STOREFRONT_ADMIN_ACCOUNTS", "root, ops ,")
    monkeypatch.setenv("STOREFRONT_PAYMENT_DELAY", "0.25")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "JSON")

    settings = load_settings()

    assert settings.db_path.endswith("shop.db")
    assert settings.admin_accounts == frozenset({"root", "ops"})
    assert settings.payment_delay_seconds == Decimal("0.25")
    assert (settings.log_level, settings.log_format) == ("DEBUG", "json")


@pytest.mark.parametrize(
    "key,value",
    [("STOREFRONT_MAX_MERGE_ATTEMPTS", "0"), ("STOREFRONT_PAYMENT_DELAY", "-1")],
)
def test_bad_values_fail_fast(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        load_settings()
