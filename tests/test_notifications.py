from types import SimpleNamespace

import pytest
from sqlalchemy import select

from app.concierge.db.models import EmailLog
from app.concierge.repos.settings import SettingsRepository
from app.concierge.services.mailer import MailDeliveryError, MailService
from app.concierge.services.notifications import (
    ADMIN_NOTIFY_EMAILS_KEY,
    NotificationDispatcher,
    NotificationEvent,
    parse_admin_emails,
    parse_email_list,
    recipients,
    render_notification,
)
from tests.factories import make_location, make_shipment, receive_payload


def _shipment(**overrides):
    values = {"notify_emails": [], "sender_email": "sender@example.com"}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_created_recipients_union_trimmed_and_deduplicated():
    shipment = _shipment(notify_emails=[" watcher@example.com ", ""])
    destination = SimpleNamespace(recipient_emails=["office@example.com", "admin@example.com"])

    result = recipients(
        NotificationEvent.SHIPMENT_CREATED,
        shipment,
        destination,
        admin_emails=["admin@example.com ", "  "],
        requested_emails=["extra@example.com", "watcher@example.com"],
    )

    assert result == {"admin@example.com", "office@example.com", "watcher@example.com", "extra@example.com"}


def test_created_recipients_exclude_sender():
    result = recipients(NotificationEvent.SHIPMENT_CREATED, _shipment(), None, admin_emails=[])
    assert result == set()


def test_received_recipients_include_sender_not_requested():
    shipment = _shipment(notify_emails=["watcher@example.com"])
    destination = SimpleNamespace(recipient_emails=["office@example.com"])

    result = recipients(
        NotificationEvent.SHIPMENT_RECEIVED,
        shipment,
        destination,
        admin_emails=["admin@example.com"],
        requested_emails=["ignored@example.com"],
    )

    assert result == {"admin@example.com", "office@example.com", "sender@example.com"}


def test_dedup_is_exact_match_only():
    result = recipients(
        NotificationEvent.SHIPMENT_RECEIVED,
        _shipment(sender_email="Admin@Example.com"),
        None,
        admin_emails=["admin@example.com"],
    )
    assert result == {"admin@example.com", "Admin@Example.com"}


def test_parse_email_lists():
    assert parse_admin_emails("a@example.com, b@example.com ,,a@example.com") == ["a@example.com", "b@example.com"]
    assert parse_email_list(["x@example.com", " ", 3]) == ["x@example.com"]
    assert parse_email_list(None) == []


class FakeResponse:
    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text


class FakeHttp:
    def __init__(self, response=None):
        self.calls = []
        self.response = response or FakeResponse()

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def _enabled_mail(db_session, http, monkeypatch):
    monkeypatch.setattr("app.concierge.services.mailer.settings.MAIL_API_KEY", "re_test")
    monkeypatch.setattr("app.concierge.services.mailer.settings.MAIL_FROM", "concierge@example.com")
    return MailService(db_session, http=http)


def test_dispatcher_sends_and_logs_each_recipient(db_session, monkeypatch):
    location = make_location(db_session, recipient_emails=["office@example.com"])
    shipment = make_shipment(db_session, location=location, notify_emails=["watcher@example.com"])
    http = FakeHttp()
    monkeypatch.setattr("app.concierge.services.notifications.settings.ADMIN_NOTIFY_EMAILS", "admin@example.com")

    sent = NotificationDispatcher(db_session, mail=_enabled_mail(db_session, http, monkeypatch)).dispatch(
        NotificationEvent.SHIPMENT_CREATED, shipment
    )

    assert sent is True
    url, kwargs = http.calls[0]
    assert kwargs["json"]["subject"] == "New Shipment Created: ABCDEF"
    assert kwargs["json"]["to"] == ["admin@example.com", "office@example.com", "watcher@example.com"]
    assert kwargs["headers"]["Authorization"] == "Bearer re_test"
    logs = db_session.execute(select(EmailLog)).scalars().all()
    assert sorted(log.recipient for log in logs) == ["admin@example.com", "office@example.com", "watcher@example.com"]
    assert {log.shipment_id for log in logs} == {shipment.id}


def test_mail_rejection_raises_and_logs_nothing(db_session, monkeypatch):
    mail = _enabled_mail(db_session, FakeHttp(FakeResponse(status_code=422, text="bad from")), monkeypatch)
    with pytest.raises(MailDeliveryError):
        mail.send(["a@example.com"], "subject", "<p>x</p>", email_type="shipment_created")
    assert db_session.execute(select(EmailLog)).scalars().all() == []


def test_mail_disabled_without_credentials(db_session):
    http = FakeHttp()
    assert MailService(db_session, http=http).send(["a@example.com"], "s", "b", email_type="t") is False
    assert http.calls == []


def test_received_notification_subject():
    shipment = SimpleNamespace(
        short_code="ABCDEF",
        sender_name="IT",
        recipient_name="Jane",
        received_at=None,
        devices=[],
    )
    subject, body = render_notification(NotificationEvent.SHIPMENT_RECEIVED, shipment, None)
    assert subject == "Shipment Received: ABCDEF"
    assert "Jane" in body


def test_notification_failure_does_not_affect_receipt(client, db_session, monkeypatch, caplog):
    make_shipment(db_session)

    def broken_dispatch(self, event, shipment, **kwargs):
        raise RuntimeError("mail api down")

    monkeypatch.setattr(NotificationDispatcher, "dispatch", broken_dispatch)
    caplog.set_level("ERROR")

    response = client.put("/api/public/shipments/ABCDEF", json=receive_payload())

    assert response.status_code == 200
    assert response.json()["status"] == "RECEIVED"
    assert "Failed to send shipment notification" in caplog.text


def test_view_logged_email(client, db_session, admin_headers):
    shipment = make_shipment(db_session)
    log = EmailLog(
        shipment_id=shipment.id,
        email_type="shipment_created",
        recipient="a@example.com",
        subject="New Shipment Created: ABCDEF",
        html_content="<p>hi</p>",
    )
    db_session.add(log)
    db_session.commit()

    response = client.get(f"/api/emails/{log.id}", headers=admin_headers)
    missing = client.get("/api/emails/not-a-uuid", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["subject"] == "New Shipment Created: ABCDEF"
    assert missing.status_code == 404
    assert missing.json()["code"] == "EMAIL_LOG_NOT_FOUND"


def test_dispatcher_prefers_stored_admin_list(db_session, monkeypatch):
    shipment = make_shipment(db_session, location=make_location(db_session, recipient_emails=[]))
    monkeypatch.setattr("app.concierge.services.notifications.settings.ADMIN_NOTIFY_EMAILS", "env@example.com")
    SettingsRepository(db_session).upsert(ADMIN_NOTIFY_EMAILS_KEY, "stored@example.com,second@example.com")
    http = FakeHttp()

    NotificationDispatcher(db_session, mail=_enabled_mail(db_session, http, monkeypatch)).dispatch(
        NotificationEvent.SHIPMENT_CREATED, shipment
    )

    assert http.calls[0][1]["json"]["to"] == ["second@example.com", "stored@example.com"]
