"""Per-source status state machine and overall status derivation."""

from __future__ import annotations

from typing import Any, Mapping

from ..schemas import DATA_SOURCES, Applicant, OverallStatus, ProcessingStatus, Source
from .errors import InvalidTransitionError

P = ProcessingStatus

TERMINAL_STATUSES: frozenset[ProcessingStatus] = frozenset(
    {P.READY, P.ERROR, P.NOT_PROVIDED, P.SKIPPED}
)

# A claim may only start from these. A ``ready`` source is returned as-is.
CLAIMABLE_STATUSES: frozenset[ProcessingStatus] = frozenset(
    {P.PENDING, P.ERROR, P.NOT_PROVIDED, P.SKIPPED}
)

ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    P.PENDING: frozenset({P.PROCESSING, P.NOT_PROVIDED, P.SKIPPED}),
    P.PROCESSING: frozenset({P.READY, P.ERROR, P.NOT_PROVIDED}),
    P.READY: frozenset(),
    P.ERROR: frozenset({P.PROCESSING}),
    P.NOT_PROVIDED: frozenset({P.PROCESSING}),
    P.SKIPPED: frozenset({P.PROCESSING}),
}

_STATUS_FIELDS = {source.status_field: source for source in Source}


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def validate_transitions(applicant: Applicant, fields: Mapping[str, Any]) -> None:
    """Raise when ``fields`` would move any status field along a forbidden edge."""
    for field, value in fields.items():
        source = _STATUS_FIELDS.get(field)
        if source is None:
            continue
        current = applicant.status_of(source)
        target = ProcessingStatus(value)
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"{field}: {current.value} -> {target.value} is not allowed"
            )


def derive_overall_status(applicant: Applicant) -> OverallStatus:
    """Compute the applicant-level status from the four source statuses."""
    data_statuses = [applicant.status_of(source) for source in DATA_SOURCES]
    ai_status = applicant.ai_status

    if applicant.cv_status == P.ERROR:
        return OverallStatus.FAILED
    if ai_status == P.PROCESSING:
        return OverallStatus.ANALYZING
    if any(status == P.PROCESSING for status in data_statuses):
        return OverallStatus.PROCESSING
    if all(status in TERMINAL_STATUSES for status in data_statuses):
        if ai_status in (P.READY, P.SKIPPED, P.ERROR):
            return OverallStatus.COMPLETED
        return OverallStatus.ANALYZING
    return OverallStatus.UPLOADING


def initial_statuses(
    *,
    has_cv: bool,
    has_linkedin: bool,
    has_github: bool,
    skip: bool = False,
) -> dict[str, ProcessingStatus]:
    """Status fields for a freshly created applicant."""
    if skip:
        return {source.status_field: P.SKIPPED for source in Source}

    def _present(flag: bool) -> ProcessingStatus:
        return P.PENDING if flag else P.NOT_PROVIDED

    return {
        Source.CV.status_field: _present(has_cv),
        Source.LINKEDIN.status_field: _present(has_linkedin),
        Source.GITHUB.status_field: _present(has_github),
        Source.ANALYSIS.status_field: P.PENDING,
    }


__all__ = [
    "ALLOWED_TRANSITIONS",
    "CLAIMABLE_STATUSES",
    "TERMINAL_STATUSES",
    "can_transition",
    "derive_overall_status",
    "initial_statuses",
    "validate_transitions",
]
