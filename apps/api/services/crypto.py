"""
Provider token encryption at rest using Fernet symmetric encryption.
"""

import base64
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import settings


@lru_cache(maxsize=4)
def _fernet_for(key: str) -> Fernet:
    # Keys that are not exactly 32 bytes are stretched with PBKDF2.
    if len(key) != 32:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b"socialsync_connection_token_salt",
            iterations=100000,
        )
        return Fernet(base64.urlsafe_b64encode(kdf.derive(key.encode())))
    return Fernet(base64.urlsafe_b64encode(key.encode()))


def _get_fernet() -> Fernet:
    return _fernet_for(settings.ENCRYPTION_KEY)


def encrypt_token(token: str) -> str:
    """
    Encrypt a provider token for storage.

    Args:
        token: Plain text access or refresh token

    Returns:
        Fernet token as text
    """
    return _get_fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """
    Decrypt a stored provider token.

    Raises:
        ValueError: if the value was not produced with the current key
    """
    try:
        return _get_fernet().decrypt(encrypted_token.encode()).decode()
    except InvalidToken as exc:
        raise ValueError("Stored token could not be decrypted with the configured key.") from exc


def encrypt_optional(token: Optional[str]) -> Optional[str]:
    return encrypt_token(token) if token else None


def decrypt_optional(encrypted_token: Optional[str]) -> Optional[str]:
    return decrypt_token(encrypted_token) if encrypted_token else None
