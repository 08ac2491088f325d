"""LinkedIn profile scraping through an asynchronous dataset-job API."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any

import structlog

from ..core.errors import JobTimeoutError, NotAccessibleError, PreconditionError, ProcessorError
from ..core.poller import JobHandle, JobPoller, JobStatus, PollOutcome, has_payload
from .http import HttpError, build_url, request_json

if TYPE_CHECKING:
    from . import LinkedInJobClient

RUNNING_STATES = frozenset({"running", "processing", "building", "in_progress"})
FAILED_STATES = frozenset({"failed", "error", "cancelled"})


def normalize_url(url: str) -> str:
    """Canonical form used to match a profile URL against earlier snapshots."""
    url = url.strip().lower()
    url = re.sub(r"^https?://", "", url)
    url = re.sub(r"^www\.", "", url)
    url = re.sub(r"/+", "/", url)
    return url.rstrip("/")


def _is_empty_snapshot(exc: HttpError) -> bool:
    return "empty" in exc.body.lower()


def normalize_profile(raw: Any) -> dict[str, Any]:
    """Convert a raw scraper record (or list of records) into the LinkedIn payload."""
    record = raw[0] if isinstance(raw, list) else raw
    if not isinstance(record, dict) or not record:
        raise ProcessorError("No LinkedIn data to process")

    first_name = record.get("first_name") or ""
    last_name = record.get("last_name") or ""
    name = record.get("name") or f"{first_name} {last_name}".strip()
    current_company = record.get("current_company") or {}

    experience = [
        {
            "company": item.get("company") or "",
            "title": item.get("title") or "",
            "duration": f"{item.get('start_date') or ''} - {item.get('end_date') or ''}",
            "location": item.get("location") or "",
            "description": item.get("description_html") or item.get("description") or "",
        }
        for item in record.get("experience") or []
    ]
    education = [
        {
            "school": item.get("title") or item.get("school") or "",
            "degree": item.get("degree") or "",
            "years": f"{item.get('start_year') or ''} - {item.get('end_year') or ''}".strip(" -"),
        }
        for item in record.get("education") or []
    ]
    skills = [record["position"]] if record.get("position") else []

    return {
        "name": name,
        "headline": record.get("about") or record.get("position") or "",
        "position": record.get("position") or current_company.get("title") or "",
        "current_company": current_company.get("name") or "",
        "location": record.get("city") or "",
        "connections": record.get("connections") or 0,
        "followers": record.get("followers") or 0,
        "profile_url": record.get("url") or record.get("input_url") or "",
        "experience": experience,
        "education": education,
        "skills": skills,
        "languages": [lang.get("title") or "" for lang in record.get("languages") or []],
        "activity": {"posts": 0, "likes": 0, "comments": 0, "shares": 0},
    }


class BrightDataLinkedInClient:
    """Dataset-job client: trigger a scrape, check its progress, download the snapshot."""

    def __init__(
        self,
        api_key: str | None,
        *,
        dataset_id: str = "gd_l1viktl72bvl7bjuj0",
        base_url: str = "https://api.brightdata.com/datasets/v3",
        timeout: float = 30.0,
        reuse_snapshots: bool = True,
    ):
        self._api_key = api_key
        self._dataset_id = dataset_id
        self._base_url = base_url
        self._timeout = timeout
        self._reuse_snapshots = reuse_snapshots
        self._logger = structlog.get_logger(__name__)

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise PreconditionError("LinkedIn API key is not configured")
        return {"Authorization": f"Bearer {self._api_key}"}

    def _get(self, path: str, **query: Any) -> Any:
        return request_json(
            build_url(self._base_url, path, query),
            headers=self._headers(),
            timeout=self._timeout,
        )

    async def start_job(self, url: str) -> JobHandle:
        return await asyncio.to_thread(self.start_job_sync, url)

    async def check_job(self, job_id: str, existing_only: bool = False) -> JobStatus:
        return await asyncio.to_thread(self.check_job_sync, job_id, existing_only)

    def start_job_sync(self, url: str) -> JobHandle:
        if self._reuse_snapshots:
            existing = self.find_existing_snapshot(url)
            if existing:
                self._logger.info("linkedin.snapshot_reused", job_id=existing)
                return JobHandle(job_id=existing, is_existing=True)

        response = request_json(
            build_url(
                self._base_url,
                "trigger",
                {"dataset_id": self._dataset_id, "format": "json", "uncompressed_webhook": "true"},
            ),
            method="POST",
            payload=[{"url": url}],
            headers=self._headers(),
            timeout=self._timeout,
        )
        job_id = (response or {}).get("snapshot_id")
        if not job_id:
            raise ProcessorError("No snapshot_id returned from LinkedIn API")
        self._logger.info("linkedin.job_started", job_id=job_id)
        return JobHandle(job_id=job_id, is_existing=False)

    def check_job_sync(self, job_id: str, existing_only: bool = False) -> JobStatus:
        if not existing_only:
            progress = self._get(f"progress/{job_id}") or {}
            state = progress.get("status") or progress.get("state") or progress.get("job_status")
            if state in FAILED_STATES:
                return JobStatus("failed")
            if state in RUNNING_STATES:
                return JobStatus("running")
        return self._download(job_id)

    def _download(self, job_id: str) -> JobStatus:
        try:
            data = self._get(f"snapshot/{job_id}", format="json")
        except HttpError as exc:
            if _is_empty_snapshot(exc):
                self._logger.warning("linkedin.snapshot_empty", job_id=job_id)
            return JobStatus("failed")
        if has_payload(data):
            return JobStatus("completed", data)
        return JobStatus("failed")

    def find_existing_snapshot(self, url: str) -> str | None:
        """Oldest ready snapshot whose input URL matches ``url``.

        Lookup failures fall through to a new job.
        """
        target = normalize_url(url)
        try:
            snapshots = self._get("snapshots", status="ready", dataset_id=self._dataset_id)
        except HttpError as exc:
            self._logger.warning("linkedin.snapshot_lookup_failed", error=str(exc))
            return None
        if not isinstance(snapshots, list):
            return None

        matches: list[tuple[str, str]] = []
        for snapshot in snapshots:
            snapshot_id = snapshot.get("id")
            if not snapshot_id:
                continue
            try:
                details = self._get(f"snapshot/{snapshot_id}") or {}
            except HttpError:
                continue
            inputs = details.get("input") if isinstance(details, dict) else None
            input_url = (inputs[0] or {}).get("url") or "" if inputs else ""
            if input_url and normalize_url(input_url) == target:
                created = snapshot.get("created_at") or snapshot.get("createdAt") or ""
                matches.append((created, snapshot_id))

        if not matches:
            return None
        return min(matches)[1]


class LinkedInSource:
    """LinkedIn processor: one poller-backed job per profile URL."""

    def __init__(
        self,
        client: LinkedInJobClient,
        poller: JobPoller,
        *,
        max_attempts: int | None = None,
        interval: float | None = None,
    ):
        self._client = client
        self._poller = poller
        self._max_attempts = max_attempts
        self._interval = interval

    async def process(self, url: str) -> dict[str, Any]:
        if not url:
            raise PreconditionError("LinkedIn URL is required")

        result = await self._poller.run_to_completion(
            lambda: self._client.start_job(url),
            self._client.check_job,
            max_attempts=self._max_attempts,
            interval=self._interval,
        )
        if result.outcome is PollOutcome.COMPLETED:
            return normalize_profile(result.data)
        if result.outcome is PollOutcome.EMPTY_SNAPSHOT:
            raise ProcessorError(
                f"No data available from existing snapshot {result.job.job_id}"
            )
        if result.outcome is PollOutcome.NOT_ACCESSIBLE:
            raise NotAccessibleError("LinkedIn profile not accessible - snapshot empty or blocked")
        if result.outcome is PollOutcome.TIMEOUT:
            raise JobTimeoutError(
                f"LinkedIn job {result.job.job_id} did not finish after {result.job.attempts} checks"
            )
        raise ProcessorError(f"LinkedIn job {result.job.job_id} was cancelled")


__all__ = ["BrightDataLinkedInClient", "LinkedInSource", "normalize_profile", "normalize_url"]
