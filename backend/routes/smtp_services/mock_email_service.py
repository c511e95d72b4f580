# backend/routes/smtp_services/mock_email_service.py
import logging
import uuid
from typing import List, Tuple
from .base_email_service import BaseEmailService, EmailResult
from models.notification_model import MailContent, MailEnvelope

logger = logging.getLogger(__name__)


class MockEmailService(BaseEmailService):
    """Keeps messages in memory instead of sending them (MOCK_EMAIL_SENDING)"""

    def __init__(self):
        self.sent: List[Tuple[MailEnvelope, MailContent]] = []

    def send_email(self, envelope: MailEnvelope, content: MailContent) -> EmailResult:
        self.sent.append((envelope, content))
        logger.info(f"[mock] {envelope.subject!r} -> {envelope.to.address}")
        return EmailResult(success=True, message_id=f"<{uuid.uuid4().hex}@mock>",
                           recipient=envelope.to.address,
                           encryption_keys=list(envelope.encryption_keys))
