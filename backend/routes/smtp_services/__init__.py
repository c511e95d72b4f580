# backend/routes/smtp_services/__init__.py
from .base_email_service import BaseEmailService, EmailResult
from .mock_email_service import MockEmailService
from .smtp_email_service import SMTPEmailService
from .email_service_factory import get_email_service
from .mail_sink import DirectMailSink, MailSink

__all__ = [
    'BaseEmailService',
    'EmailResult',
    'MockEmailService',
    'SMTPEmailService',
    'get_email_service',
    'DirectMailSink',
    'MailSink',
]
