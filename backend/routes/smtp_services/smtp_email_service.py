# backend/routes/smtp_services/smtp_email_service.py
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from .base_email_service import BaseEmailService, EmailResult
from models.notification_model import MailContent, MailEnvelope

logger = logging.getLogger(__name__)


class SMTPEmailService(BaseEmailService):
    def __init__(self, smtp_server: str, smtp_port: int, username: str, password: str,
                 use_tls: bool = True, timeout: int = 30):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, envelope: MailEnvelope, content: MailContent) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = envelope.sender.formatted()
        msg["To"] = envelope.to.formatted()
        msg["Subject"] = envelope.subject
        msg["Message-ID"] = make_msgid()

        msg.attach(MIMEText(content.text, "plain", "utf-8"))
        msg.attach(MIMEText(content.html, "html", "utf-8"))
        return msg

    def send_email(self, envelope: MailEnvelope, content: MailContent) -> EmailResult:
        recipient = envelope.to.address
        if envelope.encryption_keys:
            # PGP encryption is done by the relay for these recipients
            logger.info(f"Message to {recipient} carries {len(envelope.encryption_keys)} encryption key(s)")

        try:
            msg = self.build_message(envelope, content)
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(envelope.sender.address, [recipient], msg.as_string())

            return EmailResult(success=True, message_id=msg["Message-ID"], recipient=recipient,
                               encryption_keys=list(envelope.encryption_keys))

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {recipient} failed: {e}")
            return EmailResult(success=False, error=str(e), recipient=recipient)
