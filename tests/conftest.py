"""Test configuration and fixtures for SecScan."""

from datetime import date
from typing import Any, Dict, List, Optional

import pytest

from secscan.ai.summarizer import FallbackSummarizer
from secscan.config import Settings
from secscan.core.engine import ScanOrchestrator
from secscan.core.jobs import JobTracker
from secscan.models.schemas import Finding, Job, ScannerOutcome, Site
from secscan.scanners.base import RunResult, Scanner, make_finding
from secscan.scanners.registry import ScannerRegistry
from secscan.store.memory import InMemoryFindingStore, InMemoryJobStore, InMemorySiteStore


class StaticScanner(Scanner):
    """Scanner returning canned findings."""

    def __init__(self, name: str, findings: List[Finding], metadata: Optional[Dict[str, Any]] = None):
        self.name = name
        self.label = name
        self.description = f"static {name}"
        self._findings = findings
        self._metadata = metadata or {}
        self.calls: List[str] = []

    async def _run(self, target: str) -> RunResult:
        self.calls.append(target)
        return list(self._findings), dict(self._metadata)

    def _on_error(self, target, exc, error):
        return []


class ExplodingScanner(Scanner):
    """Scanner whose probe raises past its own boundary."""

    def __init__(self, name: str, message: str = "boom"):
        self.name = name
        self.label = name
        self.description = "always raises"
        self._message = message

    async def probe(self, target: str) -> ScannerOutcome:
        raise RuntimeError(self._message)

    async def _run(self, target: str) -> RunResult:
        raise AssertionError("not reached")

    def _on_error(self, target, exc, error):
        return []


class RecordingJobStore(InMemoryJobStore):
    """Job store that keeps a snapshot of every write."""

    def __init__(self):
        super().__init__()
        self.snapshots: List[Job] = []

    def update(self, job_id, changes):
        job = super().update(job_id, changes)
        self.snapshots.append(job)
        return job


def _finding(severity: str = "info", title: str = "Test Finding") -> Finding:
    return make_finding(title, severity, f"{title} description", f"Fix {title}", "https://example.com")


@pytest.fixture
def finding():
    """Factory: finding(severity, title) -> Finding."""
    return _finding


@pytest.fixture
def static_scanner():
    """Factory: static_scanner(name, findings, metadata=None) -> Scanner."""
    return StaticScanner


@pytest.fixture
def exploding_scanner():
    """Factory: exploding_scanner(name, message) -> Scanner that raises."""
    return ExplodingScanner


@pytest.fixture
def settings() -> Settings:
    return Settings(observatory_poll_interval=0, crawler_delay=0, scanner_timeout=5)


@pytest.fixture
def job_store() -> RecordingJobStore:
    return RecordingJobStore()


@pytest.fixture
def site_store() -> InMemorySiteStore:
    return InMemorySiteStore()


@pytest.fixture
def finding_store() -> InMemoryFindingStore:
    return InMemoryFindingStore()


@pytest.fixture
def tracker(job_store: RecordingJobStore) -> JobTracker:
    return JobTracker(job_store)


@pytest.fixture
def sample_site(site_store: InMemorySiteStore) -> Site:
    return site_store.create(Site(url="example.com", company_id="acme", default_scanners=["ssl", "crawler"]))


@pytest.fixture
def fallback_summarizer() -> FallbackSummarizer:
    return FallbackSummarizer(today=lambda: date(2026, 1, 15))


@pytest.fixture
def make_orchestrator(tracker, site_store, finding_store, fallback_summarizer, settings):
    def _make(*scanners: Scanner, summarizer=None) -> ScanOrchestrator:
        return ScanOrchestrator(
            registry=ScannerRegistry(scanners),
            tracker=tracker,
            sites=site_store,
            findings=finding_store,
            summarizer=summarizer or fallback_summarizer,
            settings=settings,
        )

    return _make
