"""External candidate directory and cache schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DirectoryCandidate(BaseModel):
    """Provider-neutral candidate as returned by a directory client."""

    external_id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    company: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    resume_file_handle: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    profile_url: str | None = None

    model_config = ConfigDict(extra="forbid")


class CandidatePage(BaseModel):
    """One cursor-paginated page of directory candidates."""

    results: list[DirectoryCandidate] = Field(default_factory=list)
    next_cursor: str | None = None
    more_data_available: bool = False

    model_config = ConfigDict(extra="forbid")


class CandidateCacheEntry(BaseModel):
    """Mirrored directory record owned by one user."""

    user_id: str
    external_id: str
    name: str = "Unknown"
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    company: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    has_resume: bool = False
    resume_file_handle: str | None = None
    resume_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    directory_created_at: str | None = None
    profile_url: str | None = None
    applicant_id: str | None = None
    last_synced_at: str

    model_config = ConfigDict(extra="forbid")

    def comparable(self) -> dict[str, Any]:
        """Content of the entry without the sync timestamp."""
        return self.model_dump(mode="json", exclude={"last_synced_at"})
