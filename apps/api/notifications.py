from __future__ import annotations

import os
import smtplib
from email.message import EmailMessage

import httpx

from packages.scheduling.destination import Destination

__all__ = ["DeliveryError", "Destination", "deliver"]


class DeliveryError(RuntimeError):
    """Raised when a notification could not be handed to any channel."""


def _smtp_config() -> dict:
    return {
        "host": os.getenv("SMTP_HOST", ""),
        "port": int(os.getenv("SMTP_PORT", "587")),
        "user": os.getenv("SMTP_USER", ""),
        "password": os.getenv("SMTP_PASSWORD", ""),
        "from_email": os.getenv("SMTP_FROM", ""),
        "use_tls": os.getenv("SMTP_USE_TLS", "true").lower() == "true",
    }


def _webhook_timeout() -> float:
    return float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))


def send_email(to_email: str, subject: str, body: str) -> None:
    config = _smtp_config()
    if not config["host"] or not config["from_email"]:
        raise DeliveryError("SMTP is not configured. Set SMTP_HOST and SMTP_FROM.")

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config["from_email"]
    message["To"] = to_email
    message.set_content(body)

    with smtplib.SMTP(config["host"], config["port"]) as server:
        if config["use_tls"]:
            server.starttls()
        if config["user"]:
            server.login(config["user"], config["password"])
        server.send_message(message)


def send_sms_via_email(
    phone: str, gateway_domain: str, subject: str, body: str
) -> None:
    send_email(f"{phone}@{gateway_domain}", subject, body)


def send_webhook(url: str, subject: str, body: str) -> None:
    # Discord reads "content", Slack reads "text".
    response = httpx.post(
        url,
        json={"content": f"{subject}\n{body}", "text": f"{subject}\n{body}"},
        timeout=_webhook_timeout(),
    )
    response.raise_for_status()


def deliver(destination: Destination, subject: str, body: str) -> None:
    """Send one notification to every channel configured on ``destination``.

    All channels are attempted; any failure is raised afterwards as a single
    DeliveryError.
    """
    if destination.is_empty():
        raise DeliveryError("No delivery destination configured")

    errors = []
    if destination.email:
        try:
            send_email(destination.email, subject, body)
        except (DeliveryError, smtplib.SMTPException, OSError) as exc:
            errors.append(f"email: {exc}")
    if destination.sms_phone and destination.sms_gateway_domain:
        try:
            send_sms_via_email(
                destination.sms_phone, destination.sms_gateway_domain, subject, body
            )
        except (DeliveryError, smtplib.SMTPException, OSError) as exc:
            errors.append(f"sms: {exc}")
    if destination.webhook_url:
        try:
            send_webhook(destination.webhook_url, subject, body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            errors.append(f"webhook: {exc}")

    if errors:
        raise DeliveryError("; ".join(errors))
