"""
Outbound email over SMTP.

A single ``Mailer`` is created when the application starts and closed
when it stops (see ``app.main.lifespan``); request handlers receive it
through the ``get_mailer`` dependency instead of importing a global.
"""

import logging
import smtplib
import threading
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from ..auth.jwt import VERIFICATION_TOKEN_EXPIRE_SECONDS
from ..config import settings
from ..templates_config import templates

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Verify Your Email"


class Mailer:
    """An SMTP connection shared by all requests, opened on demand."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "",
        sender_name: str = "",
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._sender = sender
        self._sender_name = sender_name
        self._timeout = timeout
        self._conn: Optional[smtplib.SMTP] = None
        self._lock = threading.Lock()

    def _new_connection(self) -> smtplib.SMTP:
        conn = smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout)
        try:
            if self._use_tls:
                conn.starttls()
            if self._username:
                conn.login(self._username, self._password)
        except (smtplib.SMTPException, OSError):
            conn.close()
            raise
        logger.info("Connected to SMTP server %s:%s", self._host, self._port)
        return conn

    def _is_connected(self) -> bool:
        if self._conn is None:
            return False
        try:
            status, _ = self._conn.noop()
        except smtplib.SMTPServerDisconnected:
            return False
        return status == 250

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.quit()
            except smtplib.SMTPException:
                logger.warning("SMTP connection did not close cleanly")
            finally:
                self._conn = None

    def send(self, to: str, subject: str, html: str) -> None:
        """
        Send an HTML message.

        Raises:
            smtplib.SMTPException or OSError if delivery fails
        """
        message = EmailMessage()
        message["From"] = formataddr((self._sender_name, self._sender))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        with self._lock:
            # Idle connections get dropped by most servers; reconnect first.
            if not self._is_connected():
                self._conn = self._new_connection()
            self._conn.send_message(message)


def build_mailer() -> Mailer:
    return Mailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        sender=settings.MAIL_FROM,
        sender_name=settings.MAIL_SENDER_NAME,
    )


def describe_lifetime(seconds: int) -> str:
    """Human wording for a link lifetime, e.g. ``"1 hour"`` or ``"30 minutes"``."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    minutes = max(seconds // 60, 1)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def render_verification_email(full_name: str, verification_url: str) -> str:
    template = templates.get_template("email/verify_email.html")
    return template.render(
        full_name=full_name,
        verification_url=verification_url,
        expires_in=describe_lifetime(VERIFICATION_TOKEN_EXPIRE_SECONDS),
    )


def send_verification_email(
    mailer: Mailer, to: str, full_name: str, verification_url: str
) -> None:
    mailer.send(
        to=to,
        subject=VERIFICATION_SUBJECT,
        html=render_verification_email(full_name, verification_url),
    )
