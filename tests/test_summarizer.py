"""Tests for report generation."""

from types import SimpleNamespace

from secscan.ai.summarizer import (
    SYSTEM_PROMPT,
    FallbackSummarizer,
    OpenAISummarizer,
    build_summarizer,
    outcomes_payload,
)
from secscan.config import Settings
from secscan.models.schemas import ScannerOutcome


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _outcome(name, findings, succeeded=True):
    return ScannerOutcome(scanner_name=name, succeeded=succeeded, findings=findings, duration_seconds=1.234)


def test_fallback_report_is_deterministic(fallback_summarizer, finding) -> None:
    outcomes = [_outcome("ssl", [finding("critical", "SSL Certificate Expired"), finding("info")])]

    first = fallback_summarizer.render("example.com", outcomes)
    second = fallback_summarizer.render("example.com", outcomes)

    assert first == second
    assert first.startswith("# Security Scan Report for example.com")
    assert "*Generated on 2026-01-15*" in first


def test_critical_findings_are_listed_in_detail(fallback_summarizer, finding) -> None:
    report = fallback_summarizer.render("example.com", [
        _outcome("ssl", [finding("critical", "SSL Certificate Expired")]),
        _outcome("crawler", [finding("high", "Insecure Form Submission")]),
    ])

    assert "**Critical issues detected!**" in report
    assert "1 critical security issue that require" in report
    assert "## Critical Findings" in report
    assert "### 1. SSL Certificate Expired" in report
    assert "**What to do:** Fix SSL Certificate Expired" in report
    assert "**Affected:** https://example.com" in report
    assert "## High Priority Findings" in report
    assert "**Immediately address all critical findings**" in report
    assert "prioritizing the critical and high-priority findings" in report


def test_high_without_critical(fallback_summarizer, finding) -> None:
    report = fallback_summarizer.render("example.com", [
        _outcome("crawler", [finding("high", "a"), finding("high", "b")]),
    ])

    assert "This website has 2 high-priority security issues" in report
    assert "## Critical Findings" not in report
    assert "1. Address high-priority issues within the next 1-2 weeks." in report


def test_medium_list_is_capped(fallback_summarizer, finding) -> None:
    mediums = [finding("medium", f"Issue {i}") for i in range(13)]

    report = fallback_summarizer.render("example.com", [_outcome("observatory", mediums)])

    assert "there are 13 medium-priority items to address" in report
    assert "- **Issue 9**" in report
    assert "- **Issue 10**" not in report
    assert "*... and 3 more medium-priority items.*" in report


def test_clean_scan_is_good_news(fallback_summarizer, finding) -> None:
    report = fallback_summarizer.render("example.com", [
        _outcome("ssl", [finding("info")]),
        _outcome("crawler", [finding("low")]),
    ])

    assert "Good news!" in report
    assert "examined 2 security aspects across 2 different scanning tools" in report
    assert "Found 1 low-priority and 1 informational items." in report
    assert "Your site is in good shape!" in report
    assert report.rstrip().endswith("set OPENAI_API_KEY in the service environment.*")


def test_payload_carries_scanner_results(finding) -> None:
    payload = outcomes_payload([
        _outcome("ssl", [finding("high", "x")]),
        ScannerOutcome.failed("crawler", "timeout"),
    ])

    assert payload[0]["scanner"] == "ssl"
    assert payload[0]["success"] is True
    assert payload[0]["duration"] == 1.23
    assert payload[0]["findings"][0]["title"] == "x"
    assert payload[1] == {"scanner": "crawler", "success": False, "error": "timeout",
                          "findings": [], "duration": 0.0}


async def test_openai_report_is_returned(fallback_summarizer, finding) -> None:
    completions = FakeCompletions(content="  ## Executive Summary\nAll good.  ")
    summarizer = OpenAISummarizer(_client(completions), model="gpt-test", fallback=fallback_summarizer)

    report = await summarizer.summarize("example.com", [_outcome("ssl", [finding("info")])])

    assert report == "## Executive Summary\nAll good."
    call = completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["temperature"] == 0.3
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert call["messages"][1]["content"].startswith("Analyze this security scan for example.com:")


async def test_openai_error_falls_back(fallback_summarizer, finding) -> None:
    summarizer = OpenAISummarizer(_client(FakeCompletions(error=RuntimeError("rate limited"))),
                                  fallback=fallback_summarizer)

    report = await summarizer.summarize("example.com", [_outcome("ssl", [finding("info")])])

    assert report.startswith("# Security Scan Report for example.com")


async def test_openai_empty_output_falls_back(fallback_summarizer) -> None:
    summarizer = OpenAISummarizer(_client(FakeCompletions(content="   ")), fallback=fallback_summarizer)

    report = await summarizer.summarize("example.com", [])

    assert report.startswith("# Security Scan Report for example.com")


def test_build_summarizer_selects_by_key() -> None:
    assert isinstance(build_summarizer(Settings(openai_api_key=None)), FallbackSummarizer)
    summarizer = build_summarizer(Settings(openai_api_key="sk-test", openai_model="gpt-x"))
    assert isinstance(summarizer, OpenAISummarizer)
    assert summarizer.model == "gpt-x"
