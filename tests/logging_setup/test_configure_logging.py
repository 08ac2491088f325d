from __future__ import annotations

import io
import json

import pytest
import structlog

from unmask.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_events_go_to_stream() -> None:
    stream = io.StringIO()
    configure_logging("info", stream=stream)

    structlog.get_logger("test").info("orchestrator.claimed", applicant_id="app-1")

    event = json.loads(stream.getvalue().strip())
    assert event["event"] == "orchestrator.claimed"
    assert event["applicant_id"] == "app-1"
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_threshold_filters_debug() -> None:
    stream = io.StringIO()
    configure_logging("WARNING", stream=stream)

    log = structlog.get_logger("test")
    log.info("poller.status_changed")
    log.warning("poller.timeout", job_id="s-1")

    lines = stream.getvalue().strip().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["event"] == "poller.timeout"
