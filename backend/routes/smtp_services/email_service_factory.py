from core.config import settings as app_settings
from core.security import decrypt_password
from .base_email_service import BaseEmailService
from .mock_email_service import MockEmailService
from .smtp_email_service import SMTPEmailService


def get_email_service(config=None) -> BaseEmailService:
    """
    Returns the email service configured for outgoing subscription mail.
    """
    config = config or app_settings

    if config.MOCK_EMAIL_SENDING:
        return MockEmailService()

    if not config.SMTP_SERVER:
        raise ValueError("SMTP_SERVER is not configured")

    encrypted_password = config.SMTP_PASSWORD
    password = decrypt_password(encrypted_password) if encrypted_password else None
    return SMTPEmailService(
        smtp_server=config.SMTP_SERVER,
        smtp_port=config.SMTP_PORT,
        username=config.SMTP_USERNAME,
        password=password,
        use_tls=config.SMTP_USE_TLS,
        timeout=config.EMAIL_SEND_TIMEOUT_SECONDS,
    )
