"""
recordstore.crypto
------------------
Whole-record encryption for values handed to the backing store.

- CipherCodec: JSON -> AES-256-CBC (PKCS7) -> base64 token, and back
- hmac_sign(): base64 HMAC-SHA256 for signing messages with a shared secret

Key and IV are hex strings (32 and 16 bytes). The IV is fixed per codec, so
equal records always produce equal tokens.
"""

from __future__ import annotations
from typing import Any
import binascii, json
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from .errors import ConfigurationError, DecodeError
from .utils import b64e, b64d, compact_json, hex_bytes

KEY_BYTES = 32  # 256 bits
IV_BYTES = 16   # 128 bits


class CipherCodec:
    def __init__(self, secret_key: str, iv: str):
        if not secret_key or not iv:
            raise ConfigurationError("Secret key and IV must be provided!")
        try:
            self._key = hex_bytes(secret_key, KEY_BYTES)
            self._iv = hex_bytes(iv, IV_BYTES)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"Invalid secret key or IV: {e}") from e

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def encode(self, value: Any) -> str:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(compact_json(value).encode("utf-8")) + padder.finalize()
        enc = self._cipher().encryptor()
        return b64e(enc.update(data) + enc.finalize())

    def decode(self, token: str) -> Any:
        try:
            ct = b64d(token)
            dec = self._cipher().decryptor()
            padded = dec.update(ct) + dec.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return json.loads(plaintext.decode("utf-8"))
        except (TypeError, AttributeError, ValueError) as e:
            # binascii.Error, UnicodeDecodeError and JSONDecodeError are ValueErrors
            raise DecodeError(f"Could not decode token: {e}") from e


def hmac_sign(message: str, secret: str) -> str:
    h = hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())
    h.update(message.encode("utf-8"))
    return b64e(h.finalize())
