"""Credibility analysis payload schema."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FlagType = Literal["red", "yellow", "green"]


class AnalysisFlag(BaseModel):
    """Single credibility concern or confirmation."""

    type: FlagType = "yellow"
    category: str = "verification"
    message: str
    severity: int = Field(default=5, ge=1, le=10)

    model_config = ConfigDict(extra="forbid")


class AnalysisResult(BaseModel):
    """Normalized analysis outcome stored in ``ai_data``."""

    score: int = Field(ge=0, le=100)
    summary: str = ""
    flags: list[AnalysisFlag] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    analysis_date: str | None = None
    sources: list[dict[str, Any]] = Field(default_factory=list)
    degraded: bool = False
    error: str | None = None

    model_config = ConfigDict(extra="forbid")
