"""Envío de la contraseña generada por correo (SMTP)."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Sends generated passwords over implicit-TLS SMTP."""

    def __init__(self, host: str, port: int, user: Optional[str], password: Optional[str], timeout: float = 30.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)

    def build_password_message(self, to_email: str, password: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = "This is your password"
        msg["From"] = self.user or "no-reply@localhost"
        msg["To"] = to_email
        msg.set_content(f"Your password is below\n\n{password}\n")
        msg.add_alternative(f"<html><p>Your password is below</p><b>{password}</b></html>", subtype="html")
        return msg

    def send_password(self, to_email: str, password: str) -> bool:
        """
        Delivers the password to ``to_email``.
        Runs as a background task: failures are logged and reported as False, never raised.
        """
        if not self.configured:
            logger.warning(f"SMTP not configured; password email to {to_email} was not sent.")
            return False

        msg = self.build_password_message(to_email, password)
        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send password email to {to_email}: {e}", exc_info=True)
            return False

        logger.info(f"Password email sent to {to_email}")
        return True
