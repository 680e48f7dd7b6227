"""
Fernet encryption for personal data stored on leads.
The key comes from ENCRYPTION_KEY; without it values pass through untouched
so local development works without secrets.
"""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class DecryptionError(Exception):
    """Raised when a token cannot be decrypted with the configured key."""


def _get_fernet() -> Optional[Fernet]:
    from leadgate.config import get_settings
    key = get_settings().encryption_key
    if not key:
        return None
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string. Returns the Fernet token, or the plaintext when no key is configured."""
    if not plaintext:
        return plaintext

    fernet = _get_fernet()
    if fernet is None:
        logger.warning("ENCRYPTION_KEY not configured - storing value as-is")
        return plaintext

    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_value(token: str) -> str:
    """
    Decrypt a token produced by encrypt_value.
    Raises DecryptionError if the key does not match.
    """
    if not token:
        return token

    fernet = _get_fernet()
    if fernet is None:
        return token

    try:
        return fernet.decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise DecryptionError("Invalid encryption token") from e
