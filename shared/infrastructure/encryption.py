"""
Encryption utilities

Symmetric encryption (Fernet) for secrets kept in the local booking mirror,
such as the arrival verification code issued once a booking is paid, and
for customer credentials handed to Celery tasks through the broker.
"""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings

__all__ = ['InvalidToken', 'decrypt_string', 'encrypt_string', 'get_fernet']


def get_fernet() -> Fernet:
    """
    Build a Fernet instance from ``settings.ENCRYPTION_KEY``

    Any string is accepted; it is hashed down to the 32-byte urlsafe key
    Fernet expects.
    """
    key = getattr(settings, 'ENCRYPTION_KEY', None)
    if not key:
        raise ValueError(
            "ENCRYPTION_KEY not configured in settings. "
            "Generate one with: python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
        )
    if isinstance(key, str):
        key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())
    return Fernet(key)


def encrypt_string(plaintext: str) -> str:
    if not plaintext:
        return ''
    return get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_string(encrypted: str) -> str:
    if not encrypted:
        return ''
    return get_fernet().decrypt(encrypted.encode()).decode()
