"""Tests for the Safe Browsing threat-list checker."""

import json

import respx
from httpx import Response

from secscan.scanners.safe_browsing import THREAT_TYPES, SafeBrowsingScanner


def _find():
    return respx.route(method="POST", host="safebrowsing.googleapis.com", path="/v4/threatMatches:find")


async def test_missing_key_is_not_configured_success() -> None:
    scanner = SafeBrowsingScanner(api_key=None)

    outcome = await scanner.probe("example.com")

    assert not scanner.available
    assert outcome.succeeded
    assert [(f.title, f.severity) for f in outcome.findings] == [("Safe Browsing Not Configured", "info")]


@respx.mock
async def test_matches_become_findings() -> None:
    route = _find().mock(return_value=Response(200, json={"matches": [
        {"threatType": "MALWARE", "platformType": "ANY_PLATFORM", "threat": {"url": "https://example.com"}},
        {"threatType": "SOCIAL_ENGINEERING", "platformType": "ANY_PLATFORM", "threat": {"url": "https://example.com"}},
    ]}))

    outcome = await SafeBrowsingScanner(api_key="k").probe("example.com")

    assert outcome.succeeded
    assert [(f.title, f.severity) for f in outcome.findings] == [
        ("Safe Browsing Threat Detected: MALWARE", "critical"),
        ("Safe Browsing Threat Detected: SOCIAL_ENGINEERING", "high"),
    ]
    request = route.calls.last.request
    assert request.url.params["key"] == "k"
    body = json.loads(request.content)
    assert body["threatInfo"]["threatTypes"] == THREAT_TYPES
    assert body["threatInfo"]["threatEntries"] == [{"url": "https://example.com"}]


@respx.mock
async def test_no_matches_is_clean() -> None:
    _find().mock(return_value=Response(200, json={}))

    outcome = await SafeBrowsingScanner(api_key="k").probe("https://example.com")

    assert [(f.title, f.severity) for f in outcome.findings] == [("No Safe Browsing Threats Detected", "info")]


@respx.mock
async def test_api_error_is_failed_outcome() -> None:
    _find().mock(return_value=Response(400, text="API key not valid"))

    outcome = await SafeBrowsingScanner(api_key="bad").probe("example.com")

    assert not outcome.succeeded
    assert "400" in outcome.error
    assert [(f.title, f.severity) for f in outcome.findings] == [("Safe Browsing Scan Error", "medium")]
