"""In-memory record store used by the CLI and the test-suite."""

from __future__ import annotations

from typing import Any, Callable, Collection, Iterable, Mapping

import pendulum
import structlog
from pydantic import BaseModel, ValidationError

from ..core.errors import InvalidTransitionError
from ..core.scoring import derive_score
from ..core.status import derive_overall_status, validate_transitions
from ..schemas import Applicant, CandidateCacheEntry, ProcessingStatus
from .base import ApplicantNotFound, ClaimResult, StoreError

DERIVED_FIELDS = frozenset({"status", "score"})


def _with_derived(applicant: Applicant) -> Applicant:
    applicant = applicant.model_copy(update={"status": derive_overall_status(applicant)})
    return applicant.model_copy(update={"score": derive_score(applicant)})


class InMemoryRecordStore:
    """Dictionary-backed :class:`~unmask.store.base.RecordStore`.

    No method awaits between reading and writing, so each call is atomic with
    respect to every other coroutine on the loop. Overall ``status`` and
    ``score`` are recomputed on every write and cannot be set by callers.
    """

    def __init__(self, *, now_provider: Callable[[], Any] = pendulum.now) -> None:
        self._applicants: dict[str, Applicant] = {}
        self._cache: dict[tuple[str, str], CandidateCacheEntry] = {}
        self._sync_claims: set[str] = set()
        self._now = now_provider
        self._logger = structlog.get_logger(__name__)

    # applicants -----------------------------------------------------------

    async def get_applicant(self, applicant_id: str) -> Applicant | None:
        applicant = self._applicants.get(applicant_id)
        return applicant.model_copy(deep=True) if applicant else None

    async def create_applicant(self, applicant: Applicant) -> Applicant:
        if applicant.id in self._applicants:
            raise StoreError(f"Applicant {applicant.id!r} already exists")
        if applicant.created_at is None:
            applicant = applicant.model_copy(
                update={"created_at": self._now().to_iso8601_string()}
            )
        stored = _with_derived(applicant)
        self._applicants[stored.id] = stored
        self._logger.debug("store.applicant_created", applicant_id=stored.id)
        return stored.model_copy(deep=True)

    async def conditional_update_status(
        self,
        applicant_id: str,
        field: str,
        *,
        expected_not: Collection[ProcessingStatus],
        new_value: ProcessingStatus,
    ) -> ClaimResult:
        current = self._applicants.get(applicant_id)
        if current is None:
            return ClaimResult(ok=False)
        value = getattr(current, field, None)
        if not isinstance(value, ProcessingStatus):
            raise StoreError(f"{field!r} is not a status field")
        if value in expected_not:
            return ClaimResult(ok=False, applicant=current.model_copy(deep=True))
        try:
            updated = self._write(current, {field: new_value})
        except InvalidTransitionError:
            return ClaimResult(ok=False, applicant=current.model_copy(deep=True))
        return ClaimResult(ok=True, applicant=updated)

    async def update_applicant(
        self, applicant_id: str, fields: Mapping[str, Any]
    ) -> Applicant:
        current = self._applicants.get(applicant_id)
        if current is None:
            raise ApplicantNotFound(applicant_id)
        return self._write(current, fields)

    def _write(self, current: Applicant, fields: Mapping[str, Any]) -> Applicant:
        derived = DERIVED_FIELDS.intersection(fields)
        if derived:
            raise StoreError(f"Derived fields cannot be written: {sorted(derived)}")
        validate_transitions(current, fields)

        merged = current.model_dump()
        for key, value in fields.items():
            merged[key] = value.model_dump() if isinstance(value, BaseModel) else value
        try:
            updated = Applicant.model_validate(merged)
        except ValidationError as exc:
            raise StoreError(f"Invalid applicant update: {exc}") from exc

        stored = _with_derived(updated)
        self._applicants[stored.id] = stored
        return stored.model_copy(deep=True)

    # directory cache ------------------------------------------------------

    async def upsert_cache_entries(
        self,
        entries: Iterable[CandidateCacheEntry],
        conflict_key: str = "external_id",
    ) -> int:
        """Insert or replace entries keyed by ``(user_id, conflict_key)``.

        Incoming values win, except that an existing ``applicant_id``
        back-reference is kept when the incoming entry carries none.
        """
        if conflict_key != "external_id":
            raise StoreError(f"Unsupported conflict key {conflict_key!r}")
        count = 0
        for entry in entries:
            key = (entry.user_id, entry.external_id)
            existing = self._cache.get(key)
            if existing and existing.applicant_id and not entry.applicant_id:
                entry = entry.model_copy(update={"applicant_id": existing.applicant_id})
            self._cache[key] = entry.model_copy(deep=True)
            count += 1
        return count

    async def delete_cache_entries(self, user_id: str) -> int:
        keys = [key for key in self._cache if key[0] == user_id]
        for key in keys:
            del self._cache[key]
        return len(keys)

    async def list_cache_entries(self, user_id: str) -> list[CandidateCacheEntry]:
        """Entries for one user, newest directory record first."""
        entries = [entry for (owner, _), entry in self._cache.items() if owner == user_id]
        entries.sort(key=lambda entry: entry.directory_created_at or "", reverse=True)
        return [entry.model_copy(deep=True) for entry in entries]

    async def link_cache_entry(
        self, user_id: str, external_id: str, applicant_id: str
    ) -> CandidateCacheEntry | None:
        entry = self._cache.get((user_id, external_id))
        if entry is None:
            return None
        entry = entry.model_copy(update={"applicant_id": applicant_id})
        self._cache[(user_id, external_id)] = entry
        return entry.model_copy(deep=True)

    # sync claims ----------------------------------------------------------

    async def try_claim_sync(self, user_id: str) -> bool:
        if user_id in self._sync_claims:
            return False
        self._sync_claims.add(user_id)
        return True

    async def release_sync(self, user_id: str) -> None:
        self._sync_claims.discard(user_id)


__all__ = ["InMemoryRecordStore"]
