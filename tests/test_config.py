"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from finance_ledger.config import get_settings, validate_all_settings
from finance_ledger.config.settings import LedgerSettings, StoreSettings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestStoreSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORE_BASE_URL", raising=False)
        settings = StoreSettings()
        assert settings.base_url == "http://localhost:8080"
        assert settings.user_id == 1

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORE_BASE_URL", "https://ledger.example.com/api/")
        monkeypatch.setenv("LEDGER_STORE_USER_ID", "7")

        settings = get_settings().store

        assert settings.base_url == "https://ledger.example.com/api"
        assert settings.user_id == 7

    def test_rejects_non_http_url(self):
        with pytest.raises(ValidationError):
            StoreSettings(base_url="ftp://ledger.example.com")


class TestLedgerSettings:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BALANCE_HISTORY_POINTS", "24")
        assert LedgerSettings().balance_history_points == 24

    def test_window_must_be_positive(self):
        with pytest.raises(ValidationError):
            LedgerSettings(balance_history_points=0)


class TestValidateAllSettings:

    def test_all_sections_load(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORE_BASE_URL", raising=False)
        assert validate_all_settings() == {"store": True, "ledger": True}

    def test_reports_broken_section(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORE_BASE_URL", "not-a-url")

        results = validate_all_settings()

        assert results["store"] is False
        assert "store_error" in results
        assert results["ledger"] is True
