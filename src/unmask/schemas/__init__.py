"""Pydantic schema definitions for applicants, the directory cache and analysis."""

from __future__ import annotations

from .analysis import AnalysisFlag, AnalysisResult
from .applicant import (
    DATA_SOURCES,
    Applicant,
    OverallStatus,
    ProcessingStatus,
    Source,
    SourceData,
    SourceFailure,
    SourceResult,
)
from .directory import CandidateCacheEntry, CandidatePage, DirectoryCandidate

__all__ = [
    "AnalysisFlag",
    "AnalysisResult",
    "Applicant",
    "CandidateCacheEntry",
    "CandidatePage",
    "DATA_SOURCES",
    "DirectoryCandidate",
    "OverallStatus",
    "ProcessingStatus",
    "Source",
    "SourceData",
    "SourceFailure",
    "SourceResult",
]
