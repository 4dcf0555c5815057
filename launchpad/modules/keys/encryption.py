"""
AES-256-GCM encryption for stored tenant credentials.

Stored format: base64(iv) + ":" + base64(ciphertext) + ":" + base64(tag),
with a 12-byte random IV per value. The tenant site decrypts with the same
secret, so the format must not change.
"""
import base64
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from launchpad.config import settings
from launchpad.core.exceptions import EncryptionError

IV_LENGTH = 12
TAG_LENGTH = 16


def _get_key(secret: Optional[str] = None) -> bytes:
    secret = secret if secret is not None else settings.key_encryption_secret
    if not secret or len(secret) != 64:
        raise EncryptionError(
            "KEY_ENCRYPTION_SECRET must be a 64-character hex string (32 bytes). "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
        )
    try:
        return bytes.fromhex(secret)
    except ValueError:
        raise EncryptionError("KEY_ENCRYPTION_SECRET is not valid hex")


def encrypt(plaintext: str, secret: Optional[str] = None) -> str:
    key = _get_key(secret)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return ":".join(base64.b64encode(part).decode("ascii") for part in (iv, ciphertext, tag))


def decrypt(encoded: str, secret: Optional[str] = None) -> str:
    key = _get_key(secret)
    parts = encoded.split(":") if encoded else []
    if len(parts) != 3 or not parts[0] or not parts[2]:
        raise EncryptionError("Invalid encrypted key format")

    try:
        iv, ciphertext, tag = (base64.b64decode(part, validate=True) for part in parts)
    except ValueError:
        raise EncryptionError("Invalid encrypted key format")

    try:
        return AESGCM(key).decrypt(iv, ciphertext + tag, None).decode("utf-8")
    except InvalidTag:
        raise EncryptionError("Encrypted value failed authentication")
