"""Record store interface and the in-memory reference implementation."""

from __future__ import annotations

from .base import ApplicantNotFound, ClaimResult, RecordStore, StoreError
from .memory import InMemoryRecordStore

__all__ = [
    "ApplicantNotFound",
    "ClaimResult",
    "InMemoryRecordStore",
    "RecordStore",
    "StoreError",
]
