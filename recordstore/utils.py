"""
recordstore.utils
-----------------
Lightweight helpers for base64 text, hex key material, and canonical JSON.
Everything the store sees passes through one of these, so the encodings stay stable.
"""

from __future__ import annotations
import base64, binascii, json
from typing import Any


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def hex_bytes(s: str, length: int) -> bytes:
    raw = binascii.unhexlify(s)
    if len(raw) != length:
        raise ValueError(f"expected {length} bytes, got {len(raw)}")
    return raw

def compact_json(obj: Any) -> str:
    # Same shape as JSON.stringify: no whitespace, key order preserved
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)

def canonical_json(obj: Any) -> str:
    # Deterministic form for index keys
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)

def json_copy(obj: Any) -> Any:
    return json.loads(json.dumps(obj))
