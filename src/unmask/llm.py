"""Helpers for constructing credibility-analysis payloads and clients."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pendulum
import structlog

from .adapters.http import HttpError, request_json
from .core.errors import AnalysisUnavailableError
from .schemas import AnalysisFlag, AnalysisResult, Applicant, Source


def build_analysis_payload(applicant: Applicant) -> dict[str, Any]:
    """Construct payload expected by the external scoring endpoint."""

    sources = {
        source.label.lower(): applicant.payload_of(source)
        for source in (Source.CV, Source.LINKEDIN, Source.GITHUB)
    }
    return {
        "applicant_id": applicant.id,
        "candidate": {
            "name": applicant.name,
            "email": applicant.email,
            "role": applicant.role,
        },
        "available_sources": [name for name, data in sources.items() if data],
        "data": {name: data for name, data in sources.items() if data},
    }


def normalize_analysis(
    raw: dict[str, Any],
    *,
    now_provider: Callable[[], Any] = pendulum.now,
) -> dict[str, Any]:
    """Clamp and default a remote response into an ``AnalysisResult`` payload."""

    flags = []
    for flag in raw.get("flags") or []:
        severity = flag.get("severity")
        flags.append(
            AnalysisFlag(
                type=flag.get("type") if flag.get("type") in ("red", "yellow", "green") else "yellow",
                category=flag.get("category") or "verification",
                message=flag.get("message") or "Analysis concern detected",
                severity=max(1, min(10, int(severity))) if isinstance(severity, (int, float)) else 5,
            )
        )
    score = raw.get("score")
    result = AnalysisResult(
        score=max(0, min(100, int(score))) if isinstance(score, (int, float)) else 50,
        summary=raw.get("summary") or "Analysis completed with available data.",
        flags=flags,
        suggested_questions=list(raw.get("suggested_questions") or raw.get("suggestedQuestions") or []),
        analysis_date=now_provider().to_iso8601_string(),
        sources=list(raw.get("sources") or []),
    )
    return result.model_dump(mode="json")


class HTTPAnalysisClient:
    """Simple HTTP client for a remote credibility-scoring API."""

    def __init__(
        self,
        endpoint: str | None,
        api_key: str | None = None,
        *,
        timeout: float = 60.0,
        now_provider: Callable[[], Any] = pendulum.now,
    ):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._now = now_provider
        self._logger = structlog.get_logger(__name__)

    async def analyze(self, applicant: Applicant) -> dict[str, Any]:
        raw = await asyncio.to_thread(self.score, build_analysis_payload(applicant))
        return normalize_analysis(raw, now_provider=self._now)

    def score(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._endpoint:
            raise AnalysisUnavailableError("Analysis endpoint is not configured")
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        try:
            parsed = request_json(
                self._endpoint, method="POST", payload=payload, headers=headers, timeout=self._timeout
            )
        except HttpError as exc:
            self._logger.warning("analysis.request_failed", status=exc.status, error=str(exc))
            raise AnalysisUnavailableError(f"Analysis request failed: {exc}") from exc
        if not isinstance(parsed, dict):
            raise AnalysisUnavailableError("Analysis endpoint returned an unexpected payload")
        return parsed


__all__ = ["HTTPAnalysisClient", "build_analysis_payload", "normalize_analysis"]
