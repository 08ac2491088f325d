"""Dependency injection container for the ingestion service."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .adapters import (
    AshbyDirectoryClient,
    BrightDataLinkedInClient,
    GitHubClient,
    HeuristicAnalyzer,
    LinkedInSource,
    PdfCvProcessor,
)
from .core import (
    DirectorySyncEngine,
    IngestionQueue,
    JobPoller,
    ProcessingOrchestrator,
    RetryPolicy,
)
from .llm import HTTPAnalysisClient
from .pipeline import IngestionPipeline
from .schemas.config import load_config
from .store import InMemoryRecordStore


class UnmaskContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    store = providers.Singleton(InMemoryRecordStore)

    orchestrator = providers.Singleton(ProcessingOrchestrator, store=store)

    retry_policy = providers.Factory(
        RetryPolicy,
        max_attempts=config.poller.max_attempts,
        interval=config.poller.interval_seconds,
        backoff=config.poller.backoff,
        max_interval=config.poller.max_interval_seconds,
        deadline=config.poller.deadline_seconds,
    )
    poller = providers.Singleton(JobPoller, policy=retry_policy)

    cv_processor = providers.Singleton(PdfCvProcessor)

    linkedin_client = providers.Singleton(
        BrightDataLinkedInClient,
        api_key=config.linkedin.api_key,
        dataset_id=config.linkedin.dataset_id,
        base_url=config.linkedin.base_url,
    )
    linkedin_processor = providers.Singleton(
        LinkedInSource,
        client=linkedin_client,
        poller=poller,
    )

    github_processor = providers.Singleton(
        GitHubClient,
        token=config.github.token,
        base_url=config.github.base_url,
        max_repos=config.github.max_repos,
        include_organizations=config.github.include_organizations,
    )

    heuristic_analyzer = providers.Singleton(HeuristicAnalyzer)
    http_analyzer = providers.Singleton(
        HTTPAnalysisClient,
        endpoint=config.analysis.endpoint,
        api_key=config.analysis.api_key,
    )
    analyzer = providers.Selector(
        config.analysis["provider"],
        heuristic=heuristic_analyzer,
        http=http_analyzer,
    )

    directory_client = providers.Singleton(
        AshbyDirectoryClient,
        api_key=config.directory.api_key,
        base_url=config.directory.base_url,
    )

    sync_engine = providers.Singleton(
        DirectorySyncEngine,
        store=store,
        client=directory_client,
        incremental_limit=config.sync.incremental_limit,
        page_size=config.sync.page_size,
        max_candidates=config.sync.max_candidates,
        freshness_minutes=config.sync.freshness_minutes,
        include_archived=config.sync.include_archived,
        resume_concurrency=config.sync.resume_concurrency,
    )

    pipeline = providers.Singleton(
        IngestionPipeline,
        store=store,
        orchestrator=orchestrator,
        cv_processor=cv_processor,
        linkedin_processor=linkedin_processor,
        github_processor=github_processor,
        analyzer=analyzer,
        priority_threshold=config.ingestion.priority_threshold,
        fallback_score=config.ingestion.fallback_score,
    )

    ingestion_queue = providers.Factory(
        IngestionQueue,
        ingest=pipeline.provided.ingest,
        workers=config.ingestion.workers,
        max_attempts=config.ingestion.max_attempts,
        retry_interval=config.ingestion.retry_interval_seconds,
    )


def create_container(*, settings: dict[str, Any] | None = None) -> UnmaskContainer:
    """Instantiate container with validated settings applied over the defaults."""

    container = UnmaskContainer()
    app_config = load_config(settings or None)
    container.config.from_dict(app_config.to_settings())
    return container


__all__ = ["UnmaskContainer", "create_container"]
