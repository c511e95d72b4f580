# core/security.py
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from core.config import settings

logger = logging.getLogger(__name__)


def get_cipher(master_key: Optional[str] = None) -> Fernet:
    master_key = master_key or settings.MASTER_ENCRYPTION_KEY
    if not master_key:
        raise ValueError("MASTER_ENCRYPTION_KEY required")
    return Fernet(master_key.encode())


def encrypt_password(password: str, master_key: Optional[str] = None) -> str:
    """Utility function to encrypt password"""
    if not password:
        return ""
    return get_cipher(master_key).encrypt(password.encode()).decode()


def decrypt_password(encrypted_password: str, master_key: Optional[str] = None) -> str:
    """Utility function to decrypt password, empty string if the token is not valid"""
    if not encrypted_password:
        return ""
    try:
        return get_cipher(master_key).decrypt(encrypted_password.encode()).decode()
    except InvalidToken:
        logger.error("Stored SMTP password cannot be decrypted with MASTER_ENCRYPTION_KEY")
        return ""
