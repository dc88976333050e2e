"""
Value pipeline: JSON serialization and optional Fernet encryption of cached payloads.
"""

import base64
import json
from typing import Any, Dict, Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import CallConfiguration
from .errors import ConfigurationError, SerializationError
from .logging import get_logger

KDF_SALT = b"greencache"
KDF_ITERATIONS = 100000


class ValuePipeline:
    """
    Converts values to stored payloads and back.

    Write side: ``serialize`` then ``encrypt``. Read side: ``decrypt`` then
    ``deserialize``. With encryption disabled the stored payload is the
    plain JSON text.
    """

    def __init__(self, salt: bytes = KDF_SALT, iterations: int = KDF_ITERATIONS):
        self.salt = salt
        self.iterations = iterations
        self.logger = get_logger("greencache.pipeline")
        self._ciphers: Dict[str, Fernet] = {}

    def serialize(self, value: Any) -> str:
        """
        Encode a value as JSON text.

        Raises:
            SerializationError: if the value is not JSON-encodable
        """
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Cannot serialize value of type {type(value).__name__}",
                {"error": str(e)},
            ) from e

    def deserialize(self, text: str) -> Any:
        """
        Decode JSON text back into a value.

        Raises:
            SerializationError: if the payload is not valid JSON
        """
        try:
            return json.loads(text)
        except (TypeError, ValueError) as e:
            raise SerializationError("Cannot deserialize cached payload", {"error": str(e)}) from e

    def encrypt(self, text: str, config: CallConfiguration) -> str:
        """
        Encrypt serialized text when encryption is enabled.

        Args:
            text: Serialized payload
            config: Call configuration providing ``encrypt`` and ``secret``

        Returns:
            A Fernet token, or ``text`` unchanged when encryption is off
        """
        if not config.encrypt:
            return text

        cipher = self._cipher(config)
        return cipher.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, token: Optional[Union[str, bytes]], config: CallConfiguration) -> Optional[str]:
        """
        Recover serialized text from a stored payload.

        Returns ``None`` for a missing payload, and for a token that fails
        verification (tampered, truncated or encrypted under another secret),
        so the caller recomputes instead of failing.

        Args:
            token: Payload read from the store
            config: Call configuration providing ``encrypt`` and ``secret``

        Returns:
            Serialized text, or ``None``
        """
        if token is None:
            return None

        if not config.encrypt:
            if not isinstance(token, bytes):
                return token
            try:
                return token.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SerializationError("Cached payload is not UTF-8 text", {"error": str(e)}) from e

        cipher = self._cipher(config)
        try:
            # No TTL: expiry is enforced by the store
            plaintext = cipher.decrypt(token)
        except (InvalidToken, ValueError):
            # base64 rejects non-ASCII str tokens with ValueError, not InvalidToken
            self.logger.debug("Discarding cached payload that failed verification")
            return None

        return plaintext.decode("utf-8")

    def _cipher(self, config: CallConfiguration) -> Fernet:
        """Fernet cipher for the configured secret."""
        secret = config.secret
        if not secret:
            raise ConfigurationError("A secret is required when encryption is enabled")

        cipher = self._ciphers.get(secret)
        if cipher is None:
            cipher = self._create_fernet(secret)
            self._ciphers[secret] = cipher
        return cipher

    def _create_fernet(self, secret: str) -> Fernet:
        """Derive a Fernet key from an arbitrary secret string."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.salt,
            iterations=self.iterations,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))
        return Fernet(key)
