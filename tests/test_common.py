"""Tests for shared common modules — config, logging, errors."""

import logging

import pytest

from src.common.config import Settings, get_supabase_credentials
from src.common.errors import (
    AuthError,
    FieldError,
    StoreError,
    ValidationError,
    WorkflowStepError,
)
from src.common.logging import log_error, log_info, setup_logging


class TestErrors:
    def test_plain_message(self):
        assert str(StoreError("boom", code="42501")) == "boom"

    def test_operation_prefix(self):
        error = AuthError("User not authenticated").for_operation("create_quote")
        assert str(error) == "create_quote failed: User not authenticated"

    def test_first_operation_wins(self):
        error = StoreError("boom").for_operation("create_order")
        error.for_operation("create_order_from_quote")
        assert error.operation == "create_order"

    def test_validation_error_lists_fields(self):
        error = ValidationError([
            FieldError("email", "value is not a valid email address"),
            FieldError("total", "Input should be greater than 0"),
        ])
        assert error.fields == ["email", "total"]
        assert "email: value is not a valid email address" in str(error)
        assert "total: Input should be greater than 0" in str(error)

    def test_workflow_step_error_keeps_step(self):
        error = WorkflowStepError("insert_space[1]: fk violation", step="insert_space[1]")
        assert error.step == "insert_space[1]"
        assert error.rolled_back is False
        assert error.rollback_error is None


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.auth.allowed_roles == ["admin", "sales"]
        assert s.log_level == "INFO"

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "log_level: DEBUG\nauth:\n  allowed_roles: [admin]\n", encoding="utf-8"
        )
        s = Settings.load(path)
        assert s.log_level == "DEBUG"
        assert s.auth.allowed_roles == ["admin"]

    def test_missing_yaml_falls_back(self, tmp_path):
        s = Settings.load(tmp_path / "missing.yaml")
        assert s == Settings()

    def test_supabase_key_fallback(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        assert get_supabase_credentials() == ("https://x.supabase.co", "anon-key")

    def test_missing_credentials_raise(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "")
        monkeypatch.setenv("SUPABASE_KEY", "")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "")
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            get_supabase_credentials()


class TestLogging:
    def test_setup_logging_is_idempotent(self):
        logger = setup_logging(module_name="quoting.test_setup")
        handlers = list(logger.handlers)
        assert setup_logging(module_name="quoting.test_setup") is logger
        assert logger.handlers == handlers

    def test_log_error_returns_details(self, caplog):
        with caplog.at_level(logging.ERROR, logger="quoting"):
            details = log_error("create_quote", StoreError("duplicate key"), {"table": "quotes"})
        assert details["context"] == "create_quote"
        assert details["message"] == "duplicate key"
        assert details["type"] == "StoreError"
        assert details["table"] == "quotes"
        assert "[create_quote] duplicate key" in caplog.text

    def test_log_error_accepts_plain_message(self):
        details = log_error("verify_auth_role", "session expired")
        assert details["message"] == "session expired"
        assert details["type"] == "str"

    def test_log_info_includes_payload(self, caplog):
        with caplog.at_level(logging.INFO, logger="quoting"):
            log_info("create_quote", "Quote created successfully", {"quote_id": "q-1"})
        assert '"quote_id": "q-1"' in caplog.text
