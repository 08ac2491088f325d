"""Record store interface shared by the orchestrator, pipeline and sync engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection, Iterable, Mapping, Protocol

from ..schemas import Applicant, CandidateCacheEntry, ProcessingStatus


class StoreError(RuntimeError):
    """The backing store rejected or failed a write."""


class ApplicantNotFound(StoreError, LookupError):
    def __init__(self, applicant_id: str):
        super().__init__(f"Applicant {applicant_id!r} does not exist")
        self.applicant_id = applicant_id


@dataclass(slots=True)
class ClaimResult:
    """Outcome of a conditional status update.

    ``ok`` is true when exactly one row was changed. ``applicant`` is the row
    after the update, or ``None`` when nothing matched.
    """

    ok: bool
    applicant: Applicant | None = None


class RecordStore(Protocol):
    """Persistence contract. Every method is atomic with respect to the others."""

    async def get_applicant(self, applicant_id: str) -> Applicant | None: ...

    async def create_applicant(self, applicant: Applicant) -> Applicant: ...

    async def conditional_update_status(
        self,
        applicant_id: str,
        field: str,
        *,
        expected_not: Collection[ProcessingStatus],
        new_value: ProcessingStatus,
    ) -> ClaimResult: ...

    async def update_applicant(
        self, applicant_id: str, fields: Mapping[str, Any]
    ) -> Applicant: ...

    async def upsert_cache_entries(
        self,
        entries: Iterable[CandidateCacheEntry],
        conflict_key: str = "external_id",
    ) -> int: ...

    async def delete_cache_entries(self, user_id: str) -> int: ...

    async def list_cache_entries(self, user_id: str) -> list[CandidateCacheEntry]: ...

    async def link_cache_entry(
        self, user_id: str, external_id: str, applicant_id: str
    ) -> CandidateCacheEntry | None: ...

    async def try_claim_sync(self, user_id: str) -> bool: ...

    async def release_sync(self, user_id: str) -> None: ...


__all__ = ["ApplicantNotFound", "ClaimResult", "RecordStore", "StoreError"]
