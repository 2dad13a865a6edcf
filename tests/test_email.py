import smtplib

import pytest

import mailer
from models import EmailLog

MESSAGE = {"to": "friend@example.com", "subject": "Eid is coming", "html": "<p>Only <b>3</b> days left</p>"}


class FakeSMTP:
    sent = []
    logins = []
    fail = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        FakeSMTP.logins.append((username, password))

    def send_message(self, msg):
        if FakeSMTP.fail:
            raise smtplib.SMTPException("relay refused")
        FakeSMTP.sent.append(msg)


@pytest.fixture
def smtp(app, monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.logins = []
    FakeSMTP.fail = False
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    app.config["MAIL_HOST"] = "smtp.example.com"
    return FakeSMTP


def test_admin_sends_email(app, admin_client, smtp):
    resp = admin_client.post("/api/send-email", json=MESSAGE)
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    msg = smtp.sent[0]
    assert msg["To"] == "friend@example.com"
    assert msg["Subject"] == "Eid is coming"
    assert "Only 3 days left" in msg.get_body(("plain",)).get_content()
    with app.app_context():
        assert EmailLog.query.filter_by(status="sent").count() == 1


def test_non_admin_cannot_send(user_client, smtp):
    assert user_client.post("/api/send-email", json=MESSAGE).status_code == 403
    assert smtp.sent == []


def test_send_email_validation(admin_client, smtp):
    assert admin_client.post("/api/send-email", json={**MESSAGE, "html": ""}).status_code == 400
    resp = admin_client.post("/api/send-email", json={**MESSAGE, "to": "not-an-email"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid email address."}
    assert smtp.sent == []


def test_smtp_failure_is_an_upstream_error(app, admin_client, smtp):
    smtp.fail = True
    resp = admin_client.post("/api/send-email", json=MESSAGE)
    assert resp.status_code == 502
    with app.app_context():
        assert EmailLog.query.filter_by(status="failed").count() == 1


def test_mail_not_configured(app, admin_client):
    app.config["MAIL_HOST"] = ""
    resp = admin_client.post("/api/send-email", json=MESSAGE)
    assert resp.status_code == 502
    assert resp.get_json() == {"error": "Email service is not configured."}
    with app.app_context():
        assert EmailLog.query.filter_by(status="failed", error_message="mail disabled").count() == 1


def test_relay_credentials_are_used_when_configured(app, admin_client, smtp):
    app.config["MAIL_USERNAME"] = "mailer"
    app.config["MAIL_PASSWORD"] = "hunter2"
    assert admin_client.post("/api/send-email", json=MESSAGE).status_code == 200
    assert smtp.logins == [("mailer", "hunter2")]


def test_build_message_has_plain_and_html_parts():
    settings = mailer.MailSettings("smtp.example.com", 587, "", "", True, False, "team@example.com", 10)
    msg = mailer.build_message(settings, "a@example.com", "Hi", "<p>Hello <i>there</i></p>")
    assert msg["From"] == "team@example.com"
    assert msg.get_body(("plain",)).get_content().strip() == "Hello there"
    assert "<i>there</i>" in msg.get_body(("html",)).get_content()
