"""
SMTP email provider.

use_tls selects implicit TLS (SMTPS). Otherwise the connection is plain and
is upgraded with STARTTLS when the server advertises it. Credentials are
only sent when both username and password are configured.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr

from src.components.email.models import DEFAULT_TIMEOUT_SECONDS
from src.domain.errors import EmailNotConfiguredError, ProviderError

logger = logging.getLogger(__name__)


class SMTPProvider:
    name = "smtp"

    def __init__(
        self,
        server: str,
        port: int,
        from_email: str,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not server:
            raise EmailNotConfiguredError("SMTP server is required")
        if not from_email:
            raise EmailNotConfiguredError("from email is required for SMTP")
        self.server = server
        self.port = port
        self.from_email = from_email
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout_seconds = timeout_seconds

    def build_message(
        self,
        to: str,
        from_: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_
        msg["To"] = to
        # Last part is the preferred alternative
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.use_tls:
            return smtplib.SMTP_SSL(self.server, self.port, timeout=self.timeout_seconds)

        conn = smtplib.SMTP(self.server, self.port, timeout=self.timeout_seconds)
        try:
            conn.ehlo()
            if conn.has_extn("starttls"):
                conn.starttls()
                conn.ehlo()
        except BaseException:
            # Caller's with-block never sees this connection
            conn.close()
            raise
        return conn

    def send_email(
        self,
        to: str,
        from_: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        msg = self.build_message(to, from_, subject, html_body, text_body)
        envelope_from = parseaddr(from_)[1] or self.from_email

        try:
            with self._connect() as conn:
                if self.username and self.password:
                    conn.login(self.username, self.password)
                conn.sendmail(envelope_from, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise ProviderError(
                f"SMTP delivery to {self.server}:{self.port} failed: {e}",
                provider=self.name,
            ) from e

        logger.debug("SMTP accepted message to %s via %s:%s", to, self.server, self.port)
