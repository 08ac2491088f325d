"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class PollerConfig(BaseModel):
    max_attempts: int = Field(default=36, ge=1)
    interval_seconds: float = Field(default=5.0, ge=0)
    backoff: Literal["fixed", "exponential"] = "fixed"
    max_interval_seconds: float = Field(default=60.0, ge=0)
    deadline_seconds: float | None = None

    model_config = ConfigDict(extra="forbid")


class SyncConfig(BaseModel):
    incremental_limit: int = Field(default=50, ge=1)
    page_size: int = Field(default=100, ge=1)
    max_candidates: int = Field(default=500, ge=1)
    freshness_minutes: float = Field(default=60.0, gt=0)
    include_archived: bool = False
    resume_concurrency: int = Field(default=5, ge=1)

    model_config = ConfigDict(extra="forbid")


class IngestionConfig(BaseModel):
    priority_threshold: int = Field(default=30, ge=0, le=100)
    fallback_score: int = Field(default=50, ge=0, le=100)
    workers: int = Field(default=2, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_interval_seconds: float = Field(default=1.0, ge=0)

    model_config = ConfigDict(extra="forbid")


class GitHubConfig(BaseModel):
    token: str | None = None
    base_url: str = "https://api.github.com"
    max_repos: int = Field(default=50, ge=1)
    include_organizations: bool = True

    model_config = ConfigDict(extra="forbid")


class LinkedInConfig(BaseModel):
    api_key: str | None = None
    dataset_id: str = "gd_l1viktl72bvl7bjuj0"
    base_url: str = "https://api.brightdata.com/datasets/v3"

    model_config = ConfigDict(extra="forbid")


class DirectoryConfig(BaseModel):
    api_key: str | None = None
    base_url: str = "https://api.ashbyhq.com"

    model_config = ConfigDict(extra="forbid")


class AnalysisConfig(BaseModel):
    provider: Literal["heuristic", "http"] = "heuristic"
    endpoint: str | None = None
    api_key: str | None = None

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    poller: PollerConfig = Field(default_factory=PollerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
