# tests/test_mailer.py
from portal.services import mailer as mailer_mod
from portal.services.mailer import LogMailer, password_reset_message, redact_link


def test_redact_link_hides_token():
    assert redact_link("http://x/site/reset-password?token=abc_123") == "http://x/site/reset-password?token=***"
    assert redact_link("http://x/site/login") == "http://x/site/login"


def test_log_mailer_never_logs_token(monkeypatch):
    events = []
    monkeypatch.setattr(mailer_mod, "emit", lambda event, **kw: events.append((event, kw)))

    msg = password_reset_message("http://localhost:8000", "Portal", "alice@example.com", "alice", "secret-tok_123")
    assert LogMailer(sender="support@example.com").send(msg) is True

    assert [e for e, _ in events] == ["mail_send"]
    logged = events[0][1]
    assert logged["to"] == "alice@example.com"
    assert "secret-tok_123" not in repr(logged)
