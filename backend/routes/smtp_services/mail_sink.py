# backend/routes/smtp_services/mail_sink.py
import asyncio
import logging
from typing import Optional, Protocol

from core.errors import DeliveryError
from models.notification_model import MailContent, MailEnvelope
from .base_email_service import BaseEmailService, EmailResult
from .email_service_factory import get_email_service

logger = logging.getLogger(__name__)


class MailSink(Protocol):
    async def send(self, envelope: MailEnvelope, content: MailContent) -> None:
        ...


class DirectMailSink:
    """Sends through an email service in a worker thread"""

    def __init__(self, service: Optional[BaseEmailService] = None):
        self.service = service

    async def send(self, envelope: MailEnvelope, content: MailContent) -> EmailResult:
        service = self.service or get_email_service()
        result = await asyncio.to_thread(service.send_email, envelope, content)
        if not result.success:
            raise DeliveryError(result.error or f"delivery to {envelope.to.address} failed")
        return result
