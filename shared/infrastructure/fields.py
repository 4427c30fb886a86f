"""
Custom Django model fields for sensitive data.
"""

import logging

from django.db import models

from .encryption import InvalidToken, decrypt_string, encrypt_string

logger = logging.getLogger(__name__)


class EncryptedCharField(models.TextField):
    """
    Text column encrypted at rest

    Values are encrypted on save and decrypted on load. A value that cannot
    be decrypted (rotated key) loads as an empty string so the booking can
    be re-synced from the backend.
    """

    description = "Encrypted text field"

    def from_db_value(self, value, expression, connection):
        if value is None:
            return value
        try:
            return decrypt_string(value)
        except InvalidToken:
            logger.warning("Could not decrypt stored value; ENCRYPTION_KEY may have been rotated")
            return ''

    def get_prep_value(self, value):
        if value is None or value == '':
            return ''
        return encrypt_string(str(value))

    def to_python(self, value):
        if value is None:
            return value
        return str(value)
