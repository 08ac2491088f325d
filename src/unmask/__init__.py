"""Multi-source applicant processing orchestrator."""

__version__ = "0.1.0"
