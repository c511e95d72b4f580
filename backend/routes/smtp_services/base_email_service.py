# backend/routes/smtp_services/base_email_service.py
from typing import List, Optional
from dataclasses import dataclass, field

from models.notification_model import MailContent, MailEnvelope


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    recipient: Optional[str] = None
    encryption_keys: List[str] = field(default_factory=list)


class BaseEmailService:
    def send_email(self, envelope: MailEnvelope, content: MailContent) -> EmailResult:
        raise NotImplementedError("send_email must be implemented by subclasses")
