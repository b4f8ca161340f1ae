"""Email delivery for contact submissions.

Transports share one capability, ``send(email) -> DeliveryResult``, and never
raise for delivery problems. ``DeliveryChain`` tries them in order and stops
at the first success.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import List, Optional, Sequence

import requests

from src.shared.contact.config import ContactSettings
from src.shared.contact.errors import DeliveryError
from src.shared.contact.schemas import ContactSubmission


RESEND_API_URL = "https://api.resend.com/emails"
SMTP_SSL_PORT = 465


@dataclass(frozen=True)
class ContactEmail:
    from_address: str
    to_address: str
    reply_to: str
    subject: str
    text: str


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    transport: str
    error: Optional[str] = None

    @classmethod
    def success(cls, transport: str) -> "DeliveryResult":
        return cls(ok=True, transport=transport)

    @classmethod
    def failure(cls, transport: str, error: str) -> "DeliveryResult":
        return cls(ok=False, transport=transport, error=error)


def build_text_body(submission: ContactSubmission, client_ip: str) -> str:
    """Plain-text notification sent to the site owner."""
    return "\n".join([
        "Nuova richiesta informazioni:",
        "",
        f"Nome: {submission.name}",
        f"Email: {submission.email}",
        "",
        "Messaggio:",
        submission.message,
        "",
        f"IP: {client_ip}",
    ])


def compose_contact_email(submission: ContactSubmission, client_ip: str, settings: ContactSettings) -> ContactEmail:
    return ContactEmail(
        from_address=settings.from_email,
        to_address=settings.to_email,
        reply_to=submission.email,  # Allow the owner to reply directly to the submitter
        subject=settings.subject,
        text=build_text_body(submission, client_ip),
    )


class DeliveryTransport:
    """A way of sending a ContactEmail."""

    name = "transport"

    def send(self, email: ContactEmail) -> DeliveryResult:
        raise NotImplementedError


class ResendTransport(DeliveryTransport):
    """Transactional email through the Resend HTTP API."""

    name = "resend"

    def __init__(self, api_key: Optional[str], timeout: float = 10.0, api_url: str = RESEND_API_URL):
        self.api_key = api_key
        self.timeout = timeout
        self.api_url = api_url

    def send(self, email: ContactEmail) -> DeliveryResult:
        if not self.api_key:
            return DeliveryResult.failure(self.name, "RESEND_API_KEY non configurata")

        payload = {
            "from": email.from_address,
            "to": email.to_address,
            "subject": email.subject,
            "text": email.text,
            "reply_to": email.reply_to,
        }
        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except Exception as e:
            return DeliveryResult.failure(self.name, f"Resend request failed: {str(e)}")

        if not response.ok:
            return DeliveryResult.failure(
                self.name,
                f"Resend API error {response.status_code}: {response.text[:500]}",
            )
        return DeliveryResult.success(self.name)


class SmtpTransport(DeliveryTransport):
    """
    Direct SMTP submission. Port 465 uses implicit TLS; other ports upgrade
    with STARTTLS when the server offers it.
    """

    name = "smtp"

    def __init__(
        self,
        host: Optional[str],
        port: Optional[int],
        user: Optional[str],
        password: Optional[str],
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def _build_message(self, email: ContactEmail) -> MIMEText:
        msg = MIMEText(email.text, "plain", "utf-8")
        msg["From"] = email.from_address
        msg["To"] = email.to_address
        msg["Reply-To"] = email.reply_to
        msg["Subject"] = email.subject
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.port == SMTP_SSL_PORT:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send(self, email: ContactEmail) -> DeliveryResult:
        if not (self.host and self.port and self.user and self.password):
            return DeliveryResult.failure(self.name, "Credenziali SMTP mancanti")

        msg = self._build_message(email)
        try:
            with self._connect() as server:
                if self.port != SMTP_SSL_PORT:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls()
                        server.ehlo()
                server.login(self.user, self.password)
                server.send_message(msg)
        except Exception as e:
            # Covers smtplib and socket errors as well as non-ASCII credentials or hosts
            return DeliveryResult.failure(self.name, f"SMTP error: {str(e)}")
        return DeliveryResult.success(self.name)


class DeliveryChain:
    """Ordered transports, tried until one succeeds."""

    def __init__(self, transports: Sequence[DeliveryTransport]):
        self.transports = list(transports)

    def deliver(self, email: ContactEmail) -> DeliveryResult:
        failures: List[str] = []
        for transport in self.transports:
            result = transport.send(email)
            if result.ok:
                logging.info(f"Contact form email sent via {result.transport}")
                return result
            logging.error(f"Contact email delivery via {result.transport} failed: {result.error}")
            failures.append(f"{result.transport}: {result.error}")
        raise DeliveryError(failures)


def build_delivery_chain(settings: ContactSettings) -> DeliveryChain:
    """Resend first, SMTP as fallback."""
    return DeliveryChain([
        ResendTransport(settings.resend_api_key, timeout=settings.resend_timeout_seconds),
        SmtpTransport(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_user,
            settings.smtp_password,
            timeout=settings.smtp_timeout_seconds,
        ),
    ])
