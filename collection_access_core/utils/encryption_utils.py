"""
Authenticated encryption for stored OAuth credentials.

Blobs are ``base64(nonce || tag || ciphertext)`` produced by AES-256-GCM with a
fresh 16-byte nonce per call. The master key is base64 of exactly 32 bytes.
"""

import base64
import binascii
import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import SecretStr

from ..config import get_config
from ..exceptions import DecryptionError, EncryptionKeyError
from ..schemas.connection_schemas import CredentialPair

KEY_LENGTH = 32
NONCE_LENGTH = 16
TAG_LENGTH = 16


class CredentialVault:
    """
    Encrypts and decrypts credential strings with a single master key.

    The key is validated on first use and the cipher is kept for the vault's
    lifetime. Plaintext is never cached.
    """

    def __init__(self, master_key: Optional[str] = None):
        """
        Args:
            master_key: base64 master key; defaults to ``SecurityConfig.encryption_key``
        """
        self._master_key = master_key if master_key is not None else get_config().security.encryption_key
        self._cipher: Optional[AESGCM] = None

    def __repr__(self) -> str:
        return "CredentialVault(master_key=***)"

    def _get_cipher(self) -> AESGCM:
        if self._cipher is not None:
            return self._cipher

        if not self._master_key:
            raise EncryptionKeyError("ENCRYPTION_KEY environment variable is not set")

        try:
            key = base64.b64decode(self._master_key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionKeyError("Encryption key is not valid base64", cause=e)

        if len(key) != KEY_LENGTH:
            raise EncryptionKeyError(
                f"Encryption key must be {KEY_LENGTH} bytes", key_length=len(key)
            )

        self._cipher = AESGCM(key)
        return self._cipher

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` into a self-contained base64 blob."""
        cipher = self._get_cipher()
        nonce = os.urandom(NONCE_LENGTH)
        sealed = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag; stored layout puts it right after the nonce
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a blob produced by ``encrypt``.

        Raises:
            DecryptionError: Malformed blob or failed authentication
            EncryptionKeyError: Missing or invalid master key
        """
        cipher = self._get_cipher()

        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError("Credential blob is not valid base64", cause=e)

        if len(raw) < NONCE_LENGTH + TAG_LENGTH:
            raise DecryptionError("Credential blob is truncated", blob_length=len(raw))

        nonce = raw[:NONCE_LENGTH]
        tag = raw[NONCE_LENGTH : NONCE_LENGTH + TAG_LENGTH]
        ciphertext = raw[NONCE_LENGTH + TAG_LENGTH :]

        try:
            plaintext = cipher.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError("Credential blob failed authentication", cause=e)

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted credential is not valid UTF-8", cause=e)

    def encrypt_pair(self, credentials: CredentialPair) -> Tuple[str, str]:
        """Encrypt both halves of a credential pair."""
        return (
            self.encrypt(credentials.access_token.get_secret_value()),
            self.encrypt(credentials.access_token_secret.get_secret_value()),
        )

    def decrypt_pair(self, token_blob: str, secret_blob: str) -> CredentialPair:
        """Decrypt a stored pair back into a ``CredentialPair``."""
        return CredentialPair(
            access_token=SecretStr(self.decrypt(token_blob)),
            access_token_secret=SecretStr(self.decrypt(secret_blob)),
        )


def generate_key() -> str:
    """Generate a fresh base64 master key suitable for ``ENCRYPTION_KEY``."""
    return base64.b64encode(AESGCM.generate_key(bit_length=KEY_LENGTH * 8)).decode("ascii")
