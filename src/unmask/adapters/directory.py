"""Ashby candidate directory client."""

from __future__ import annotations

import asyncio
import base64
from typing import Any

import structlog

from ..core.errors import PreconditionError, ProcessorError
from ..schemas import CandidatePage, DirectoryCandidate
from .http import build_url, request_json


def _social_link(links: list[dict[str, Any]], kind: str, domain: str) -> str | None:
    for link in links:
        url = link.get("url") or ""
        if link.get("type") == kind or domain in url:
            return url or None
    return None


def _resume_handle(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("handle") or value.get("id")
    return value or None


def _tags(values: Any) -> list[str]:
    tags: list[str] = []
    for value in values or []:
        title = value.get("title") if isinstance(value, dict) else value
        if title:
            tags.append(str(title))
    return tags


def normalize_candidate(raw: dict[str, Any]) -> DirectoryCandidate:
    """Map an Ashby candidate record to the provider-neutral shape."""
    links = raw.get("socialLinks") or []
    return DirectoryCandidate(
        external_id=raw["id"],
        name=raw.get("name"),
        email=(raw.get("primaryEmailAddress") or {}).get("value"),
        phone=(raw.get("primaryPhoneNumber") or {}).get("value"),
        position=raw.get("position"),
        company=raw.get("company"),
        linkedin_url=_social_link(links, "LinkedIn", "linkedin.com"),
        github_url=_social_link(links, "GitHub", "github.com"),
        resume_file_handle=_resume_handle(raw.get("resumeFileHandle")),
        tags=_tags(raw.get("tags")),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
        profile_url=raw.get("profileUrl"),
    )


class AshbyDirectoryClient:
    """Cursor-paginated candidate listing plus resume link lookup."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.ashbyhq.com",
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise PreconditionError("Directory API key is not configured")
        token = base64.b64encode(f"{self._api_key}:".encode("utf-8")).decode("ascii")
        response = request_json(
            build_url(self._base_url, endpoint),
            method="POST",
            payload=body,
            headers={
                "Authorization": f"Basic {token}",
                "Accept": "application/json; version=1",
            },
            timeout=self._timeout,
        ) or {}
        if response.get("success") is False:
            errors = response.get("errors") or response.get("error") or "unknown error"
            raise ProcessorError(f"{endpoint} failed: {errors}")
        return response

    async def list_candidates(
        self,
        *,
        limit: int,
        cursor: str | None = None,
        include_archived: bool = False,
    ) -> CandidatePage:
        return await asyncio.to_thread(self.list_candidates_sync, limit, cursor, include_archived)

    async def get_resume_url(self, file_handle: str) -> str | None:
        return await asyncio.to_thread(self.get_resume_url_sync, file_handle)

    def list_candidates_sync(
        self, limit: int, cursor: str | None = None, include_archived: bool = False
    ) -> CandidatePage:
        body: dict[str, Any] = {"limit": limit, "includeArchived": include_archived}
        if cursor:
            body["cursor"] = cursor
        response = self._post("candidate.list", body)

        results = response.get("results", [])
        if isinstance(results, dict):
            results = results.get("results") or results.get("candidates") or []
        page = CandidatePage(
            results=[normalize_candidate(item) for item in results if item.get("id")],
            next_cursor=response.get("nextCursor") or response.get("cursor"),
            more_data_available=bool(response.get("moreDataAvailable")),
        )
        self._logger.debug(
            "directory.page_fetched",
            count=len(page.results),
            more_data_available=page.more_data_available,
        )
        return page

    def get_resume_url_sync(self, file_handle: str) -> str | None:
        response = self._post("file.info", {"fileHandle": file_handle})
        results = response.get("results") or {}
        return results.get("downloadUrl") or results.get("url")


__all__ = ["AshbyDirectoryClient", "normalize_candidate"]
