from __future__ import annotations
from typing import Any, List, Optional


class RecordStoreError(Exception):
    pass


class ConfigurationError(RecordStoreError):
    pass


class ConcurrentUpdateError(RecordStoreError):
    """
    The value replaced by a write did not match the caller's snapshot.

    Raised after the new value is already in the store: the write happened,
    the caller has to reconcile.
    """
    def __init__(self, key: str, expected: Any = None, actual: Any = None):
        super().__init__(
            f"Expected old data at {key} does not match the actual data. Concurrent update detected."
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class UpdateRetriesExhaustedError(RecordStoreError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class DecodeError(RecordStoreError):
    """
    A stored token could not be decrypted or parsed.

    Batch reads decode every element before raising; `partial` holds the
    aligned results (None where absent or undecodable) and `failed_ids` the
    ids that failed.
    """
    def __init__(self, message: str, partial: Optional[List[Any]] = None, failed_ids: Optional[List[Any]] = None):
        super().__init__(message)
        self.partial = partial
        self.failed_ids = failed_ids or []
