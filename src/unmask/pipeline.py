"""Applicant ingestion: fan out to the source processors, then analyze."""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping

import pendulum
import structlog

from . import __version__
from .adapters import Analyzer, CvProcessor, GithubProcessor, LinkedInProcessor
from .core.errors import NotFoundError, PreconditionError
from .core.orchestrator import OutcomeCode, ProcessingOrchestrator, ProcessingOutcome
from .core.scoring import (
    NEUTRAL_SCORE,
    available_sources,
    base_score,
    degraded_analysis,
    insufficient_data_analysis,
)
from .core.status import initial_statuses
from .schemas import (
    Applicant,
    CandidateCacheEntry,
    OverallStatus,
    ProcessingStatus,
    Source,
)
from .store.base import RecordStore

# Identity fields and the payload key each source provides them under.
IDENTITY_KEYS: dict[str, dict[Source, str]] = {
    "name": {Source.CV: "name", Source.LINKEDIN: "name", Source.GITHUB: "name"},
    "email": {Source.CV: "email", Source.GITHUB: "email"},
    "role": {Source.CV: "job_title", Source.LINKEDIN: "position"},
}


@dataclass(slots=True)
class IngestionSources:
    cv_path: str | None
    linkedin_url: str | None = None
    github_url: str | None = None

    def input_for(self, source: Source) -> str | None:
        return {
            Source.CV: self.cv_path,
            Source.LINKEDIN: self.linkedin_url,
            Source.GITHUB: self.github_url,
        }.get(source)


@dataclass(slots=True)
class PartialFailure:
    """An optional source that did not produce data. Ingestion continued."""

    source: Source
    status: ProcessingStatus | None
    error: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "status": self.status.value if self.status else None,
            "error": self.error,
        }


@dataclass(slots=True)
class IngestionReport:
    applicant_id: str
    status: OverallStatus
    outcomes: dict[Source, ProcessingOutcome] = field(default_factory=dict)
    partial_failures: list[PartialFailure] = field(default_factory=list)
    analysis_degraded: bool = False
    score: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "applicant_id": self.applicant_id,
            "status": self.status.value,
            "score": self.score,
            "error": self.error,
            "analysis_degraded": self.analysis_degraded,
            "outcomes": {source.value: outcome.to_dict() for source, outcome in self.outcomes.items()},
            "partial_failures": [failure.to_dict() for failure in self.partial_failures],
        }


class OutputWriter:
    """Persist ingestion results."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False))
            handle.write("\n")


class IngestionPipeline:
    """Create applicants and run every evidence source through the orchestrator.

    Present sources run concurrently and settle independently. The CV is
    mandatory: when it fails the applicant ends ``failed`` and no analysis
    runs. LinkedIn and GitHub failures are recorded per source and ingestion
    continues to the analysis step, which never surfaces an error.
    """

    def __init__(
        self,
        *,
        store: RecordStore,
        orchestrator: ProcessingOrchestrator,
        cv_processor: CvProcessor,
        linkedin_processor: LinkedInProcessor,
        github_processor: GithubProcessor,
        analyzer: Analyzer,
        priority_threshold: int = 30,
        fallback_score: int = NEUTRAL_SCORE,
        github_options: Mapping[str, Any] | None = None,
        audit_logger: AuditLogger | None = None,
        now_provider: Callable[[], Any] = pendulum.now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._cv = cv_processor
        self._linkedin = linkedin_processor
        self._github = github_processor
        self._analyzer = analyzer
        self._priority_threshold = priority_threshold
        self._fallback_score = fallback_score
        self._github_options = dict(github_options or {})
        self._audit_logger = audit_logger
        self._now = now_provider
        self._new_id = id_factory
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> RecordStore:
        return self._store

    def with_audit_logger(self, audit_logger: AuditLogger | None) -> "IngestionPipeline":
        self._audit_logger = audit_logger
        return self

    async def create_applicant(
        self,
        *,
        cv_path: str | None = None,
        linkedin_url: str | None = None,
        github_url: str | None = None,
        name: str | None = None,
        email: str | None = None,
        role: str | None = None,
        user_id: str | None = None,
        external_id: str | None = None,
        skip: bool = False,
    ) -> Applicant:
        statuses = initial_statuses(
            has_cv=bool(cv_path),
            has_linkedin=bool(linkedin_url),
            has_github=bool(github_url),
            skip=skip,
        )
        applicant = Applicant(
            id=self._new_id(),
            user_id=user_id,
            external_id=external_id,
            name=name,
            email=email,
            role=role,
            cv_path=cv_path,
            linkedin_url=linkedin_url,
            github_url=github_url,
            **statuses,
        )
        created = await self._store.create_applicant(applicant)
        self._logger.info(
            "ingestion.applicant_created",
            applicant_id=created.id,
            status=created.status.value,
            score=created.score,
            skipped=skip,
        )
        return created

    async def promote(self, entry: CandidateCacheEntry, *, cv_path: str | None = None) -> Applicant:
        """Create an applicant from a cached directory candidate.

        Candidates whose data-completeness score is below the priority
        threshold are created with every source ``skipped``. Promoting an
        already linked entry returns the existing applicant.
        """
        if entry.applicant_id:
            existing = await self._store.get_applicant(entry.applicant_id)
            if existing is not None:
                return existing

        priority = base_score(
            has_linkedin=bool(entry.linkedin_url),
            has_cv=bool(cv_path or entry.has_resume),
        )
        applicant = await self.create_applicant(
            cv_path=cv_path,
            linkedin_url=entry.linkedin_url,
            github_url=entry.github_url,
            name=entry.name,
            email=entry.email,
            role=entry.position,
            user_id=entry.user_id,
            external_id=entry.external_id,
            skip=priority < self._priority_threshold,
        )
        await self._store.link_cache_entry(entry.user_id, entry.external_id, applicant.id)
        return applicant

    async def ingest(self, applicant_id: str, sources: IngestionSources) -> IngestionReport:
        if not sources.cv_path:
            raise PreconditionError("A CV file is required")
        applicant = await self._store.get_applicant(applicant_id)
        if applicant is None:
            raise NotFoundError(f"Applicant {applicant_id!r} not found")

        log = self._logger.bind(applicant_id=applicant_id)
        await self._prepare(applicant, sources)

        present = [source for source in (Source.CV, Source.LINKEDIN, Source.GITHUB) if sources.input_for(source)]
        log.info("ingestion.started", sources=[source.value for source in present])

        settled = await asyncio.gather(
            *(self._run(applicant_id, source, sources.input_for(source)) for source in present),
            return_exceptions=True,
        )

        report = IngestionReport(applicant_id=applicant_id, status=OverallStatus.PROCESSING)
        for source, result in zip(present, settled):
            if isinstance(result, BaseException):
                log.error("ingestion.source_crashed", source=source.value, error=str(result))
                result = ProcessingOutcome(
                    OutcomeCode.PROCESSING_FAILURE, applicant_id, source, error=str(result)
                )
            report.outcomes[source] = result

        cv_outcome = report.outcomes[Source.CV]
        if not cv_outcome.ok:
            report.error = cv_outcome.error or "CV processing failed"
            return await self._finish(report, log)

        for source in (Source.LINKEDIN, Source.GITHUB):
            outcome = report.outcomes.get(source)
            if outcome is not None and not outcome.ok:
                report.partial_failures.append(PartialFailure(source, outcome.status, outcome.error))

        await self._update_identity(applicant_id)

        analysis = await self.run_source(applicant_id, Source.ANALYSIS)
        report.outcomes[Source.ANALYSIS] = analysis
        report.analysis_degraded = bool(analysis.data and analysis.data.get("degraded"))
        return await self._finish(report, log)

    async def run_source(self, applicant_id: str, source: Source) -> ProcessingOutcome:
        """Process one source from the inputs already stored on the applicant."""
        if source is Source.ANALYSIS:
            return await self._orchestrator.claim_and_process(applicant_id, source, self._analyze)
        applicant = await self._store.get_applicant(applicant_id)
        value = getattr(applicant, _INPUT_FIELDS[source], None) if applicant else None
        return await self._run(applicant_id, source, value)

    async def _prepare(self, applicant: Applicant, sources: IngestionSources) -> None:
        fields: dict[str, Any] = {}
        for source, attr in _INPUT_FIELDS.items():
            value = sources.input_for(source)
            if value:
                if getattr(applicant, attr) != value:
                    fields[attr] = value
            elif applicant.status_of(source) is ProcessingStatus.PENDING:
                fields[source.status_field] = ProcessingStatus.NOT_PROVIDED
        if fields:
            await self._store.update_applicant(applicant.id, fields)

    def _run(self, applicant_id: str, source: Source, value: str | None) -> Awaitable[ProcessingOutcome]:
        processors: dict[Source, Callable[[Applicant], Awaitable[dict[str, Any]]]] = {
            Source.CV: lambda _: self._cv.process(value),
            Source.LINKEDIN: lambda _: self._linkedin.process(value),
            Source.GITHUB: lambda _: self._github.process(value, self._github_options),
        }
        return self._orchestrator.claim_and_process(applicant_id, source, processors[source])

    async def _analyze(self, applicant: Applicant) -> dict[str, Any]:
        available = available_sources(applicant)
        if not available:
            return insufficient_data_analysis(0, score=self._fallback_score, now_provider=self._now)
        try:
            return await self._analyzer.analyze(applicant)
        except Exception as exc:  # noqa: BLE001 - analysis degrades instead of failing
            self._logger.warning(
                "ingestion.analysis_degraded", applicant_id=applicant.id, error=str(exc)
            )
            return degraded_analysis(str(exc), score=self._fallback_score, now_provider=self._now)

    async def _update_identity(self, applicant_id: str) -> None:
        applicant = await self._store.get_applicant(applicant_id)
        if applicant is None:
            return
        fields: dict[str, Any] = {}
        for attr, keys in IDENTITY_KEYS.items():
            value = _first_value(applicant, keys) or getattr(applicant, attr)
            if value != getattr(applicant, attr):
                fields[attr] = value
        if fields:
            await self._store.update_applicant(applicant_id, fields)

    async def _finish(self, report: IngestionReport, log: Any) -> IngestionReport:
        applicant = await self._store.get_applicant(report.applicant_id)
        if applicant is not None:
            report.status = applicant.status
            report.score = applicant.score

        if self._audit_logger:
            self._audit_logger.append(
                {
                    **report.to_dict(),
                    "timestamp": self._now().to_iso8601_string(),
                    "app_version": __version__,
                }
            )
        log.info(
            "ingestion.completed",
            status=report.status.value,
            score=report.score,
            error=report.error,
            partial_failures=[failure.source.value for failure in report.partial_failures],
            analysis_degraded=report.analysis_degraded,
        )
        return report


_INPUT_FIELDS = {
    Source.CV: "cv_path",
    Source.LINKEDIN: "linkedin_url",
    Source.GITHUB: "github_url",
}


def _first_value(applicant: Applicant, keys: Mapping[Source, str]) -> str | None:
    for source in (Source.CV, Source.LINKEDIN, Source.GITHUB):
        key = keys.get(source)
        payload = applicant.payload_of(source) if key else None
        value = payload.get(key) if payload else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


__all__ = [
    "AuditLogger",
    "IngestionPipeline",
    "IngestionReport",
    "IngestionSources",
    "OutputWriter",
    "PartialFailure",
]
