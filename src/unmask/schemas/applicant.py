"""Applicant record and per-source status schema."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStatus(str, Enum):
    """Status of one evidence source for one applicant."""

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"
    NOT_PROVIDED = "not_provided"
    SKIPPED = "skipped"


class OverallStatus(str, Enum):
    """Applicant-level status derived from the source statuses."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class Source(str, Enum):
    """Evidence channel. The value is the column prefix."""

    CV = "cv"
    LINKEDIN = "li"
    GITHUB = "gh"
    ANALYSIS = "ai"

    @property
    def status_field(self) -> str:
        return f"{self.value}_status"

    @property
    def data_field(self) -> str:
        return f"{self.value}_data"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    Source.CV: "CV",
    Source.LINKEDIN: "LinkedIn",
    Source.GITHUB: "GitHub",
    Source.ANALYSIS: "Analysis",
}

DATA_SOURCES: tuple[Source, ...] = (Source.CV, Source.LINKEDIN, Source.GITHUB)


class SourceData(BaseModel):
    """Structured output of a source processor."""

    kind: Literal["data"] = "data"
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class SourceFailure(BaseModel):
    """Error payload recorded when a source processor fails."""

    kind: Literal["error"] = "error"
    error: str
    processed_at: str

    model_config = ConfigDict(extra="forbid")


SourceResult = Annotated[Union[SourceData, SourceFailure], Field(discriminator="kind")]


class Applicant(BaseModel):
    """One candidate under evaluation."""

    id: str
    user_id: str | None = None
    external_id: str | None = None
    name: str | None = None
    email: str | None = None
    role: str | None = None
    cv_path: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None

    cv_status: ProcessingStatus = ProcessingStatus.PENDING
    li_status: ProcessingStatus = ProcessingStatus.PENDING
    gh_status: ProcessingStatus = ProcessingStatus.PENDING
    ai_status: ProcessingStatus = ProcessingStatus.PENDING

    cv_data: SourceResult | None = None
    li_data: SourceResult | None = None
    gh_data: SourceResult | None = None
    ai_data: SourceResult | None = None

    status: OverallStatus = OverallStatus.UPLOADING
    score: int | None = Field(default=None, ge=0, le=100)
    created_at: str | None = None

    model_config = ConfigDict(extra="forbid")

    def status_of(self, source: Source) -> ProcessingStatus:
        return getattr(self, source.status_field)

    def result_of(self, source: Source) -> SourceData | SourceFailure | None:
        return getattr(self, source.data_field)

    def payload_of(self, source: Source) -> dict[str, Any] | None:
        """Return the structured payload for a source, or None when it failed or is absent."""
        result = self.result_of(source)
        if isinstance(result, SourceData):
            return result.payload
        return None
