import logging
from datetime import datetime, timezone
import smtplib
from email.message import EmailMessage
from html import escape
from sqlalchemy.orm import Session
import uuid
import requests

from app.core.config import settings
from app.models.booking import AdminBooking
from app.models.customer_booking import CustomerBooking
from app.models.email_log import EmailLog

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BRAND = "Happy Days Location"


def queue_email(db: Session, to_email: str, subject: str, body_html: str, kind: str = "generic", booking_reference: str = "") -> str:
    """Queue and attempt immediate send. Body is stored so the worker can retry on failure."""
    eid = str(uuid.uuid4())
    db.add(
        EmailLog(
            id=eid,
            kind=kind,
            to_email=to_email,
            subject=subject,
            body_html=body_html,
            status="queued",
            booking_reference=booking_reference or "",
        )
    )
    db.commit()

    log = db.get(EmailLog, eid)
    try:
        log.attempts = (log.attempts or 0) + 1
        send_email(to_email, subject, body_html)
        log.status = "sent"
        log.sent_at = datetime.now(timezone.utc)
    except Exception as e:
        # Worker will retry via process_email_queue
        logger.warning("email %s to %s failed, left for retry: %s", kind, to_email, e)
        log.status = "failed"
        log.last_error = str(e)[:500]
    db.commit()
    return eid


def send_email(to_email: str, subject: str, body_html: str):
    """Send email via SendGrid if configured, otherwise SMTP (MailHog recommended for local)."""

    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(to_email, subject, body_html)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("Ce message est au format HTML.")
    msg.add_alternative(body_html, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(to_email: str, subject: str, body_html: str):
    from_email = settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM
    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email, "name": BRAND},
        "subject": subject,
        "content": [{"type": "text/html", "value": body_html}],
    }
    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json=payload,
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Process up to `limit` queued or failed emails; retry send and update status. Returns counts."""
    pending = (
        db.query(EmailLog)
        .filter(
            EmailLog.status.in_(["queued", "failed"]),
            EmailLog.attempts < MAX_ATTEMPTS,
            EmailLog.body_html.isnot(None),
            EmailLog.body_html != "",
        )
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent, failed = 0, 0
    for log in pending:
        log.attempts = (log.attempts or 0) + 1
        try:
            send_email(log.to_email, log.subject, log.body_html)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            sent += 1
        except Exception as e:
            log.status = "failed"
            log.last_error = str(e)[:500]
            failed += 1
    if pending:
        db.commit()
    if failed:
        logger.warning("email queue: %s of %s sends failed", failed, len(pending))
    return {"processed": len(pending), "sent": sent, "failed": failed}


# --- templates -------------------------------------------------------------

def _fr_date(value) -> str:
    raw = str(value)[:10]
    y, m, d = raw.split("-")
    return f"{d}/{m}/{y}"


def _layout(title: str, rows: list[tuple[str, str]], intro: str, reference: str) -> str:
    cells = "".join(
        f'<tr><td style="padding:6px 0;color:#666">{escape(k)}</td>'
        f'<td style="padding:6px 0;font-weight:600">{escape(str(v))}</td></tr>'
        for k, v in rows
    )
    return (
        f'<!DOCTYPE html><html lang="fr"><body style="font-family:Arial,sans-serif">'
        f"<h1>{escape(title)}</h1>"
        f"<p>{intro}</p>"
        f'<p>Référence de réservation : <strong>{escape(reference)}</strong></p>'
        f'<table cellpadding="0" cellspacing="0">{cells}</table>'
        f'<p style="color:#999;font-size:12px">{BRAND}. Cet email a été envoyé automatiquement.</p>'
        f"</body></html>"
    )


def render_booking_received(cb: CustomerBooking) -> tuple[str, str]:
    name = f"{cb.first_name} {cb.last_name}".strip()
    rows = [
        ("Dates", f"Du {_fr_date(cb.departure_date)} au {_fr_date(cb.return_date)}"),
        ("Durée", f"{cb.rental_days} jour(s)"),
        ("Véhicule", cb.vehicle_name),
        ("Prise en charge", cb.custom_pickup_location or cb.pickup_location),
        ("Total", f"{cb.total_price}€"),
    ]
    intro = (
        f"Bonjour <strong>{escape(name)}</strong>, nous avons bien reçu votre demande de réservation. "
        "Notre équipe va vérifier la disponibilité et vous contactera très prochainement."
    )
    return f"Demande de réservation reçue - {cb.booking_reference}", _layout("Réservation en traitement", rows, intro, cb.booking_reference)


def render_admin_notification(cb: CustomerBooking) -> tuple[str, str]:
    rows = [
        ("Client", f"{cb.first_name} {cb.last_name}"),
        ("Téléphone", cb.phone),
        ("Email", cb.email),
        ("Permis", cb.license_number),
        ("Dates", f"Du {_fr_date(cb.departure_date)} au {_fr_date(cb.return_date)}"),
        ("Véhicule", cb.vehicle_name),
        ("Suppléments", ", ".join(s.get("name", "") for s in (cb.supplements or [])) or "-"),
        ("Conducteur additionnel", "Oui" if cb.additional_driver else "Non"),
        ("Paiement", cb.payment_method),
        ("Total", f"{cb.total_price}€"),
    ]
    return f"Nouvelle réservation {cb.booking_reference}", _layout("Nouvelle réservation", rows, "Une nouvelle demande est arrivée depuis le site.", cb.booking_reference)


def render_booking_confirmed(b: AdminBooking) -> tuple[str, str]:
    rows = [
        ("Dates", f"Du {_fr_date(b.departure_date)} au {_fr_date(b.return_date)}"),
        ("Heure de prise en charge", b.pickup_time or "-"),
        ("Véhicule", b.vehicle_name),
        ("Total", f"{b.total_price}€"),
    ]
    intro = f"Bonjour <strong>{escape(b.client_name)}</strong>, votre réservation est confirmée."
    return f"Réservation confirmée - {b.booking_reference}", _layout("Réservation confirmée", rows, intro, b.booking_reference)


# --- senders used by the worker --------------------------------------------

def send_booking_received_emails(db: Session, reference: str) -> dict:
    cb = db.query(CustomerBooking).filter(CustomerBooking.booking_reference == reference).first()
    if not cb:
        return {"skipped": True, "reason": "booking_not_found"}
    queued = []
    subject, body = render_booking_received(cb)
    queued.append(queue_email(db, cb.email, subject, body, kind="booking_received", booking_reference=reference))
    if settings.ADMIN_NOTIFY_EMAIL:
        subject, body = render_admin_notification(cb)
        queued.append(queue_email(db, settings.ADMIN_NOTIFY_EMAIL, subject, body, kind="admin_copy", booking_reference=reference))
    return {"queued": queued}


def send_booking_confirmation_email(db: Session, booking_id: str) -> dict:
    b = db.get(AdminBooking, booking_id)
    if not b or not b.client_email:
        return {"skipped": True, "reason": "no_recipient"}
    subject, body = render_booking_confirmed(b)
    return {"queued": [queue_email(db, b.client_email, subject, body, kind="booking_confirmed", booking_reference=b.booking_reference)]}


# --- fire-and-forget dispatch ----------------------------------------------

def dispatch_booking_received(reference: str) -> bool:
    """Hand the received email to the worker. Never raises; a False return was logged."""
    from app.tasks.jobs import send_booking_received
    try:
        send_booking_received.delay(reference)
        return True
    except Exception:
        logger.exception("could not dispatch booking-received email for %s", reference)
        return False


def dispatch_booking_confirmation(booking_id: str) -> bool:
    from app.tasks.jobs import send_booking_confirmation
    try:
        send_booking_confirmation.delay(booking_id)
        return True
    except Exception:
        logger.exception("could not dispatch confirmation email for booking %s", booking_id)
        return False
