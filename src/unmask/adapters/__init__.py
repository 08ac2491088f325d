"""Source processor and directory client adapters."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from ..core.poller import JobHandle, JobStatus
from ..schemas import Applicant, CandidatePage
from .analysis import HeuristicAnalyzer
from .cv import PdfCvProcessor
from .directory import AshbyDirectoryClient
from .github import GitHubClient
from .linkedin import BrightDataLinkedInClient, LinkedInSource


@runtime_checkable
class CvProcessor(Protocol):
    """Turns a stored resume file into a structured payload."""

    async def process(self, file_path: str) -> dict[str, Any]:
        """Return extracted CV data or raise."""


@runtime_checkable
class GithubProcessor(Protocol):
    async def process(self, url: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Return account data for a GitHub profile URL."""


@runtime_checkable
class LinkedInJobClient(Protocol):
    """Asynchronous scrape job API used through :class:`~unmask.core.poller.JobPoller`."""

    async def start_job(self, url: str) -> JobHandle:
        """Start (or reuse) a scrape for the profile URL."""

    async def check_job(self, job_id: str, existing_only: bool = False) -> JobStatus:
        """Report ``running``, ``completed`` (with data) or ``failed``."""


@runtime_checkable
class LinkedInProcessor(Protocol):
    async def process(self, url: str) -> dict[str, Any]:
        """Return the normalized profile or raise."""


@runtime_checkable
class Analyzer(Protocol):
    async def analyze(self, applicant: Applicant) -> dict[str, Any]:
        """Return an ``AnalysisResult`` payload for the applicant."""


@runtime_checkable
class DirectoryClient(Protocol):
    async def list_candidates(
        self,
        *,
        limit: int,
        cursor: str | None = None,
        include_archived: bool = False,
    ) -> CandidatePage:
        """Return one page of candidates."""

    async def get_resume_url(self, file_handle: str) -> str | None:
        """Resolve a resume file handle to a download URL."""


__all__ = [
    "Analyzer",
    "AshbyDirectoryClient",
    "BrightDataLinkedInClient",
    "CvProcessor",
    "DirectoryClient",
    "GitHubClient",
    "GithubProcessor",
    "HeuristicAnalyzer",
    "LinkedInJobClient",
    "LinkedInProcessor",
    "LinkedInSource",
    "PdfCvProcessor",
]
