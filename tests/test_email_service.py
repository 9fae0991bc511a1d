from datetime import date

from app.core.config import settings
from app.models.customer_booking import CustomerBooking
from app.models.email_log import EmailLog
from app.services import email_service
from app.services.email_service import (
    process_pending_emails, queue_email, render_booking_confirmed, send_booking_confirmation_email,
    send_booking_received_emails,
)


def test_failed_send_is_kept_for_retry(db, monkeypatch):
    def refuse(*args):
        raise OSError("smtp down")

    monkeypatch.setattr(email_service, "send_email", refuse)
    eid = queue_email(db, "client@example.com", "Sujet", "<p>x</p>", kind="booking_received")
    log = db.get(EmailLog, eid)
    assert (log.status, log.attempts) == ("failed", 1)
    assert "smtp down" in log.last_error

    sent = []
    monkeypatch.setattr(email_service, "send_email", lambda *args: sent.append(args))
    assert process_pending_emails(db) == {"processed": 1, "sent": 1, "failed": 0}
    db.refresh(log)
    assert (log.status, log.attempts) == ("sent", 2)
    assert sent == [("client@example.com", "Sujet", "<p>x</p>")]


def test_retries_stop_after_max_attempts(db, monkeypatch):
    def refuse(*args):
        raise OSError("smtp down")

    monkeypatch.setattr(email_service, "send_email", refuse)
    queue_email(db, "client@example.com", "Sujet", "<p>x</p>")
    for _ in range(email_service.MAX_ATTEMPTS):
        process_pending_emails(db)
    assert process_pending_emails(db)["processed"] == 0


def test_booking_received_copies_staff(db, monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: sent.append((to, subject)))
    monkeypatch.setattr(settings, "ADMIN_NOTIFY_EMAIL", "ops@happydays.local")
    db.add(CustomerBooking(id="c1", booking_reference="HD-2024-07-0001", departure_date="2024-07-01T10:00",
                           return_date="2024-07-04T10:00", rental_days=3, vehicle_id=4, vehicle_name="Clio",
                           first_name="Amina", last_name="Haddad", email="amina@example.com", total_price=12000))
    db.commit()

    result = send_booking_received_emails(db, "HD-2024-07-0001")
    assert len(result["queued"]) == 2
    assert sent[0] == ("amina@example.com", "Demande de réservation reçue - HD-2024-07-0001")
    assert sent[1][0] == "ops@happydays.local"
    assert send_booking_received_emails(db, "HD-2024-07-9999") == {"skipped": True, "reason": "booking_not_found"}


def test_confirmation_needs_an_email(db, monkeypatch, make_vehicle, make_booking):
    monkeypatch.setattr(email_service, "send_email", lambda *args: None)
    make_vehicle(4)
    without = make_booking(4, date(2024, 7, 1), date(2024, 7, 3))
    assert send_booking_confirmation_email(db, without.id)["skipped"]

    with_email = make_booking(4, date(2024, 7, 1), date(2024, 7, 3), email="c@example.com", client_name="<Ali>")
    assert len(send_booking_confirmation_email(db, with_email.id)["queued"]) == 1
    subject, body = render_booking_confirmed(with_email)
    assert subject.startswith("Réservation confirmée")
    assert "&lt;Ali&gt;" in body
    assert "01/07/2024" in body
