"""Mirror an external candidate directory into the per-user cache."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

import pendulum
import structlog

from ..schemas import CandidateCacheEntry, DirectoryCandidate
from ..store.base import RecordStore
from .errors import SyncInProgressError

if TYPE_CHECKING:
    from ..adapters import DirectoryClient


class SyncMode(str, Enum):
    INCREMENTAL = "incremental"
    FULL = "full"


@dataclass(slots=True)
class SyncReport:
    user_id: str
    mode: SyncMode
    fetched: int = 0
    stored: int = 0
    skipped_existing: int = 0
    pages: int = 0
    truncated: bool = False
    resume_failures: int = 0
    synced_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "mode": self.mode.value,
            "fetched": self.fetched,
            "stored": self.stored,
            "skipped_existing": self.skipped_existing,
            "pages": self.pages,
            "truncated": self.truncated,
            "resume_failures": self.resume_failures,
            "synced_at": self.synced_at,
        }


@dataclass(slots=True)
class SyncSummary:
    """Per-user results of :meth:`DirectorySyncEngine.sync_all`."""

    reports: dict[str, SyncReport] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total_stored(self) -> int:
        return sum(report.stored for report in self.reports.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "users_processed": len(self.reports) + len(self.errors),
            "successful_syncs": len(self.reports),
            "failed_syncs": len(self.errors),
            "total_candidates_synced": self.total_stored,
            "reports": {user: report.to_dict() for user, report in self.reports.items()},
            "errors": dict(self.errors),
        }


class DirectorySyncEngine:
    """Incremental and full synchronisation of the candidate cache.

    Only one sync per user runs at a time; the claim lives in the store so
    that it holds across processes sharing it.
    """

    def __init__(
        self,
        store: RecordStore,
        client: "DirectoryClient",
        *,
        incremental_limit: int = 50,
        page_size: int = 100,
        max_candidates: int = 500,
        freshness_minutes: float = 60.0,
        include_archived: bool = False,
        resume_concurrency: int = 5,
        now_provider: Callable[[], Any] = pendulum.now,
    ) -> None:
        self._store = store
        self._client = client
        self._incremental_limit = incremental_limit
        self._page_size = page_size
        self._max_candidates = max_candidates
        self._freshness = pendulum.duration(minutes=freshness_minutes)
        self._include_archived = include_archived
        self._resume_concurrency = resume_concurrency
        self._now = now_provider
        self._logger = structlog.get_logger(__name__)

    async def sync(self, user_id: str, mode: SyncMode | str = SyncMode.INCREMENTAL) -> SyncReport:
        mode = SyncMode(mode)
        if not await self._store.try_claim_sync(user_id):
            self._logger.info("sync.already_running", user_id=user_id, mode=mode.value)
            raise SyncInProgressError(user_id)
        try:
            if mode is SyncMode.FULL:
                report = await self._full(user_id)
            else:
                report = await self._incremental(user_id)
        finally:
            await self._store.release_sync(user_id)
        self._logger.info("sync.completed", **report.to_dict())
        return report

    async def needs_sync(self, user_id: str) -> bool:
        """True when the cache is empty or any entry is older than the freshness window."""
        entries = await self._store.list_cache_entries(user_id)
        if not entries:
            return True
        cutoff = self._now() - self._freshness
        return any(pendulum.parse(entry.last_synced_at) < cutoff for entry in entries)

    async def auto_sync(self, user_id: str, *, force: bool = False) -> list[CandidateCacheEntry]:
        """Return cached entries, refreshing them first when forced or stale."""
        try:
            if force:
                await self.sync(user_id, SyncMode.FULL)
            elif await self.needs_sync(user_id):
                await self.sync(user_id, SyncMode.INCREMENTAL)
        except SyncInProgressError:
            self._logger.info("sync.auto_skipped", user_id=user_id)
        return await self._store.list_cache_entries(user_id)

    async def sync_all(self, user_ids: Iterable[str]) -> SyncSummary:
        """Full sync for every user; one user's failure never stops the others."""
        summary = SyncSummary()
        for user_id in user_ids:
            try:
                summary.reports[user_id] = await self.sync(user_id, SyncMode.FULL)
            except Exception as exc:  # noqa: BLE001 - isolate per-user failures
                self._logger.warning("sync.user_failed", user_id=user_id, error=str(exc))
                summary.errors[user_id] = str(exc) or exc.__class__.__name__
        self._logger.info(
            "sync.all_completed",
            successful_syncs=len(summary.reports),
            failed_syncs=len(summary.errors),
            total_candidates_synced=summary.total_stored,
        )
        return summary

    async def _incremental(self, user_id: str) -> SyncReport:
        report = SyncReport(user_id=user_id, mode=SyncMode.INCREMENTAL)
        existing = {entry.external_id for entry in await self._store.list_cache_entries(user_id)}

        page = await self._client.list_candidates(
            limit=self._incremental_limit,
            cursor=None,
            include_archived=self._include_archived,
        )
        report.pages = 1
        report.fetched = len(page.results)

        fresh: dict[str, DirectoryCandidate] = {}
        for candidate in page.results:
            if candidate.external_id in existing:
                report.skipped_existing += 1
                continue
            fresh.setdefault(candidate.external_id, candidate)

        report.synced_at = self._now().to_iso8601_string()
        entries = await self._build_entries(user_id, fresh.values(), report, {})
        if entries:
            report.stored = await self._store.upsert_cache_entries(entries)
        return report

    async def _full(self, user_id: str) -> SyncReport:
        report = SyncReport(user_id=user_id, mode=SyncMode.FULL)
        collected: dict[str, DirectoryCandidate] = {}
        cursor: str | None = None

        while True:
            page = await self._client.list_candidates(
                limit=min(self._page_size, self._max_candidates - len(collected)),
                cursor=cursor,
                include_archived=self._include_archived,
            )
            report.pages += 1
            report.fetched += len(page.results)
            for candidate in page.results:
                if len(collected) >= self._max_candidates:
                    report.truncated = True
                    break
                collected.setdefault(candidate.external_id, candidate)

            if not page.more_data_available or not page.next_cursor:
                break
            if len(collected) >= self._max_candidates:
                report.truncated = True
                break
            if page.next_cursor == cursor:
                self._logger.warning("sync.cursor_repeated", user_id=user_id, cursor=cursor)
                break
            cursor = page.next_cursor

        links = {
            entry.external_id: entry.applicant_id
            for entry in await self._store.list_cache_entries(user_id)
            if entry.applicant_id
        }
        report.synced_at = self._now().to_iso8601_string()
        entries = await self._build_entries(user_id, collected.values(), report, links)

        await self._store.delete_cache_entries(user_id)
        report.stored = await self._store.upsert_cache_entries(entries) if entries else 0
        return report

    async def _build_entries(
        self,
        user_id: str,
        candidates: Iterable[DirectoryCandidate],
        report: SyncReport,
        links: dict[str, str],
    ) -> list[CandidateCacheEntry]:
        semaphore = asyncio.Semaphore(self._resume_concurrency)

        async def _resume_url(candidate: DirectoryCandidate) -> str | None:
            if not candidate.resume_file_handle:
                return None
            try:
                async with semaphore:
                    return await self._client.get_resume_url(candidate.resume_file_handle)
            except Exception as exc:  # noqa: BLE001 - a missing resume link is not fatal
                report.resume_failures += 1
                self._logger.warning(
                    "sync.resume_url_failed",
                    user_id=user_id,
                    external_id=candidate.external_id,
                    error=str(exc),
                )
                return None

        candidates = list(candidates)
        urls = await asyncio.gather(*(_resume_url(candidate) for candidate in candidates))
        return [
            CandidateCacheEntry(
                user_id=user_id,
                external_id=candidate.external_id,
                name=candidate.name or "Unknown",
                email=candidate.email,
                phone=candidate.phone,
                position=candidate.position,
                company=candidate.company,
                linkedin_url=candidate.linkedin_url,
                github_url=candidate.github_url,
                has_resume=bool(candidate.resume_file_handle),
                resume_file_handle=candidate.resume_file_handle,
                resume_url=url,
                tags=list(candidate.tags),
                directory_created_at=candidate.created_at,
                profile_url=candidate.profile_url,
                applicant_id=links.get(candidate.external_id),
                last_synced_at=report.synced_at,
            )
            for candidate, url in zip(candidates, urls)
        ]


__all__ = ["DirectorySyncEngine", "SyncMode", "SyncReport", "SyncSummary"]
