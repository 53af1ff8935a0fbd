"""Tests for the notification sink."""

import logging

from src.common.errors import StoreError
from src.quoting.notifications import set_notifier, show_error


class TestShowError:
    def test_default_sink_logs(self, caplog):
        with caplog.at_level(logging.WARNING, logger="src.quoting.notifications"):
            show_error("email: value is not a valid email address")
        assert "email: value is not a valid email address" in caplog.text

    def test_installed_sink(self):
        messages = []
        set_notifier(messages.append)
        try:
            show_error(StoreError("denied").for_operation("create_order"))
        finally:
            set_notifier(None)
        assert messages == ["create_order failed: denied"]

    def test_explicit_sink_wins(self):
        messages = []
        show_error("boom", notifier=messages.append)
        assert messages == ["boom"]
