"""Tests for the Observatory header/grade scanner."""

import pytest
import respx
from httpx import Response

from secscan.scanners.observatory import ObservatoryScanner

API = "https://observatory.test/api/v1"


def _result(grade: str, score: int = 50, state: str = "FINISHED") -> dict:
    return {
        "state": state,
        "grade": grade,
        "score": score,
        "tests_passed": 7,
        "tests_failed": 4,
        "tests_quantity": 11,
    }


def _scanner(max_attempts: int = 5) -> ObservatoryScanner:
    return ObservatoryScanner(api_url=API, poll_interval=0, max_attempts=max_attempts)


def _analyze(method: str):
    return respx.route(method=method, host="observatory.test", path="/api/v1/analyze")


@respx.mock
async def test_polls_until_finished_and_maps_grade() -> None:
    _analyze("POST").mock(return_value=Response(200, json={"state": "PENDING"}))
    poll = _analyze("GET").mock(side_effect=[
        Response(200, json={"state": "RUNNING"}),
        Response(200, json=_result("D", score=35)),
    ])

    outcome = await _scanner().probe("https://www.example.com/login")

    assert outcome.succeeded
    assert poll.call_count == 2
    assert poll.calls.last.request.url.params["host"] == "www.example.com"
    assert [(f.title, f.severity) for f in outcome.findings] == [("Weak Security Headers", "high")]
    assert outcome.metadata["grade"] == "D"
    assert outcome.metadata["score"] == 35


@pytest.mark.parametrize(
    "grade,severity,title",
    [
        ("F", "critical", "Poor Security Headers"),
        ("E", "high", "Weak Security Headers"),
        ("C", "medium", "Moderate Security Headers"),
        ("B", "low", "Good Security Headers"),
        ("A+", "info", "Excellent Security Headers"),
    ],
)
@respx.mock
async def test_grade_bands(grade: str, severity: str, title: str) -> None:
    _analyze("POST").mock(return_value=Response(200, json={"state": "PENDING"}))
    _analyze("GET").mock(return_value=Response(200, json=_result(grade)))

    outcome = await _scanner().probe("example.com")

    assert [(f.title, f.severity) for f in outcome.findings] == [(title, severity)]
    assert outcome.findings[0].evidence == f"Grade: {grade}, Score: 50/100"


@respx.mock
async def test_times_out_after_max_attempts() -> None:
    _analyze("POST").mock(return_value=Response(200, json={"state": "PENDING"}))
    poll = _analyze("GET").mock(return_value=Response(200, json={"state": "RUNNING"}))

    outcome = await _scanner(max_attempts=3).probe("example.com")

    assert poll.call_count == 3
    assert not outcome.succeeded
    assert outcome.error == "Observatory scan timed out"
    assert [(f.title, f.severity) for f in outcome.findings] == [("Observatory Scan Error", "medium")]
    assert "timed out" in outcome.findings[0].description


@respx.mock
async def test_failed_state_is_error() -> None:
    _analyze("POST").mock(return_value=Response(200, json={"state": "PENDING"}))
    _analyze("GET").mock(return_value=Response(200, json={"state": "FAILED"}))

    outcome = await _scanner().probe("example.com")

    assert not outcome.succeeded
    assert outcome.error == "Observatory scan failed"


@respx.mock
async def test_service_error_status_is_error() -> None:
    _analyze("POST").mock(return_value=Response(503))

    outcome = await _scanner().probe("example.com")

    assert not outcome.succeeded
    assert "503" in outcome.error
    assert outcome.findings[0].severity == "medium"


@respx.mock
async def test_error_field_in_body_is_error() -> None:
    _analyze("POST").mock(return_value=Response(200, json={"error": "invalid-hostname"}))

    outcome = await _scanner().probe("localhost")

    assert not outcome.succeeded
    assert outcome.error == "invalid-hostname"


@respx.mock
async def test_deadline_ends_polling_with_error_finding() -> None:
    _analyze("POST").mock(return_value=Response(200, json={"state": "PENDING"}))
    poll = _analyze("GET").mock(return_value=Response(200, json={"state": "RUNNING"}))
    scanner = ObservatoryScanner(api_url=API, poll_interval=0.05, max_attempts=1000, deadline=0.3)

    outcome = await scanner.probe("example.com")

    assert 0 < poll.call_count < 1000
    assert outcome.duration_seconds < 1
    assert outcome.error == "Observatory scan timed out"
    assert [(f.title, f.severity) for f in outcome.findings] == [("Observatory Scan Error", "medium")]
    assert poll.calls.last.request.extensions["timeout"]["read"] <= 0.3
