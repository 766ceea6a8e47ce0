# recordstore/config.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import os
from .errors import ConfigurationError


@dataclass(frozen=True)
class EncryptionConfig:
    secret: str   # hex, 32 bytes
    iv: str       # hex, 16 bytes


@dataclass(frozen=True)
class CollectionConfig:
    """
    Construction-time settings of a Collection.

    Frozen: a Collection never changes its prefix, TTL, or cipher once built.
    """
    key_prefix: str = ""
    default_ttl: Optional[int] = None
    encryption: Optional[EncryptionConfig] = None
    primary_key: str = "id"

    @classmethod
    def from_env(cls, key_prefix: str = "", primary_key: str = "id") -> "CollectionConfig":
        """
        Read TTL and encryption settings from the environment.

        RECORDSTORE_DEFAULT_TTL        seconds; empty or 0 disables
        RECORDSTORE_ENCRYPTION_SECRET  hex key; needs the IV as well
        RECORDSTORE_ENCRYPTION_IV      hex IV; needs the secret as well
        """
        raw_ttl = os.getenv("RECORDSTORE_DEFAULT_TTL", "").strip()
        try:
            default_ttl = int(raw_ttl) if raw_ttl else None
        except ValueError as e:
            raise ConfigurationError(f"RECORDSTORE_DEFAULT_TTL must be an integer, got {raw_ttl!r}") from e
        if default_ttl is not None and default_ttl < 0:
            raise ConfigurationError(f"RECORDSTORE_DEFAULT_TTL must be >= 0, got {default_ttl}")

        secret = os.getenv("RECORDSTORE_ENCRYPTION_SECRET", "")
        iv = os.getenv("RECORDSTORE_ENCRYPTION_IV", "")
        if bool(secret) != bool(iv):
            raise ConfigurationError(
                "RECORDSTORE_ENCRYPTION_SECRET and RECORDSTORE_ENCRYPTION_IV must be set together"
            )

        return cls(
            key_prefix=key_prefix,
            default_ttl=default_ttl or None,
            encryption=EncryptionConfig(secret=secret, iv=iv) if secret else None,
            primary_key=primary_key,
        )
