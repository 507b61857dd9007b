#!/usr/bin/env python3
"""
Field Encryption - at-rest encryption of archived text fields

The v4 storage layer keeps ticket topics, close reasons and the archived
transcript (channel/role/user names, message content) encrypted. The pipeline
hands plaintext to the target store, which encrypts the configured columns on
write and decrypts them on read using a key derived from the operator's
encryption key.
"""

import base64
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from core.errors import EncryptionError

logger = logging.getLogger(__name__)

KDF_SALT = b'ticket_migrate_field_salt'
KDF_ITERATIONS = 100000

# table -> encrypted columns
ENCRYPTED_FIELDS: Dict[str, tuple] = {
    'tickets': ('topic', 'closed_reason'),
    'archived_channels': ('name',),
    'archived_roles': ('name',),
    'archived_users': ('username', 'display_name', 'avatar'),
    'archived_messages': ('content',),
}


class FieldCipher:
    """Encrypts and decrypts individual column values"""

    def __init__(self, encryption_key: str, fields: Optional[Mapping[str, Iterable[str]]] = None):
        if not encryption_key:
            raise EncryptionError("An encryption key is required for field encryption")
        self.fields = {table: tuple(columns) for table, columns in (fields or ENCRYPTED_FIELDS).items()}
        self._fernet = self._initialize_encryption(encryption_key)

    def _initialize_encryption(self, encryption_key: str) -> Fernet:
        """Derive the Fernet key from the operator-supplied key"""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=KDF_SALT,
            iterations=KDF_ITERATIONS,
        )
        key = base64.urlsafe_b64encode(kdf.derive(encryption_key.encode()))
        return Fernet(key)

    def encrypt(self, value: Any) -> Any:
        if value is None:
            return None
        return self._fernet.encrypt(str(value).encode('utf-8')).decode('ascii')

    def decrypt(self, value: Any) -> Any:
        if value is None:
            return None
        try:
            return self._fernet.decrypt(str(value).encode('ascii')).decode('utf-8')
        except (InvalidToken, UnicodeError) as e:
            raise EncryptionError("Stored value could not be decrypted with the configured key") from e

    def encrypt_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``row`` with the table's encrypted columns encrypted"""
        columns = self.fields.get(table)
        if not columns:
            return row
        encrypted = dict(row)
        for column in columns:
            if column in encrypted:
                encrypted[column] = self.encrypt(encrypted[column])
        return encrypted

    def decrypt_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        columns = self.fields.get(table)
        if not columns:
            return row
        decrypted = dict(row)
        for column in columns:
            if column in decrypted:
                decrypted[column] = self.decrypt(decrypted[column])
        return decrypted
