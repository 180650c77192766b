"""Tests for session resolution and notifiers."""

import pytest

from tallybook.auth import resolve_session
from tallybook.config import load_config
from tallybook.errors import NotAuthenticated
from tallybook.notify import ConsoleNotifier


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("TALLYBOOK_USER_ID", raising=False)


def test_explicit_user_wins():
    config = load_config()
    config.user.user_id = "configured"
    assert resolve_session(config, "explicit").user_id == "explicit"


def test_configured_user():
    config = load_config()
    config.user.user_id = "configured"
    config.user.access_token = "jwt"
    session = resolve_session(config)
    assert session.user_id == "configured"
    assert session.access_token == "jwt"


def test_no_user():
    with pytest.raises(NotAuthenticated):
        resolve_session(load_config())


def test_console_notifier(capsys):
    notifier = ConsoleNotifier()
    notifier.success("Receipt processed successfully!")
    notifier.error("Could not process receipt. Please try again.")

    captured = capsys.readouterr()
    assert "✅ Receipt processed successfully!" in captured.out
    assert "❌ Could not process receipt." in captured.err
