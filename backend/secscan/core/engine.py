import asyncio
import logging
import math
import time
from typing import List, Optional, Set

from fastapi import BackgroundTasks

from secscan.ai.summarizer import Summarizer
from secscan.config import Settings
from secscan.core.errors import SiteNotFoundError
from secscan.core.jobs import JobTracker
from secscan.core.severity import collect_findings, count_severities
from secscan.models.schemas import FindingRecord, Job, LastScanSummary, ScannerOutcome, utcnow
from secscan.scanners.registry import ScannerRegistry
from secscan.store.base import FindingStore, SiteStore

logger = logging.getLogger(__name__)

SCANNING_SHARE = 90  # top 10% of the bar is reserved for summarization
SUMMARY_FAILED_TEXT = "AI analysis failed. See results below for details."
CANCELLED_TEXT = "Scan cancelled before completion"
GRADE_SCANNER = "observatory"


def scan_progress(completed: int, total: int) -> int:
    if total <= 0:
        return SCANNING_SHARE
    return math.floor(SCANNING_SHARE * completed / total)


def _score(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class ScanOrchestrator:
    """Runs one job's scanners in order and drives it to a terminal state."""

    def __init__(self, registry: ScannerRegistry, tracker: JobTracker, sites: SiteStore,
                 findings: FindingStore, summarizer: Summarizer, settings: Optional[Settings] = None):
        self.registry = registry
        self.tracker = tracker
        self.sites = sites
        self.findings = findings
        self.summarizer = summarizer
        self.settings = settings or Settings()
        self._active: Set[str] = set()

    def dispatch(self, background: BackgroundTasks, job_id: str) -> None:
        """Schedule ``run`` to start after the response has been sent."""
        background.add_task(self.run, job_id)

    def is_active(self, job_id: str) -> bool:
        return job_id in self._active

    async def run(self, job_id: str) -> None:
        if job_id in self._active:
            logger.warning("job %s is already running; ignoring second run", job_id)
            return
        self._active.add(job_id)
        started = time.perf_counter()
        try:
            job = self.tracker.claim(job_id)
            if job is None:
                return
            await self._execute(job, started)
        except asyncio.CancelledError:
            logger.warning("job %s cancelled", job_id)
            self._mark_failed(job_id, CANCELLED_TEXT, started)
            raise
        except Exception as e:
            logger.exception("job %s failed", job_id)
            self._mark_failed(job_id, str(e) or e.__class__.__name__, started)
        finally:
            self._active.discard(job_id)

    async def _probe(self, name: str, target: str) -> ScannerOutcome:
        started = time.perf_counter()
        try:
            scanner = self.registry.get(name)
            outcome = await asyncio.wait_for(scanner.probe(target), timeout=self.settings.scanner_timeout)
        except asyncio.TimeoutError:
            outcome = ScannerOutcome.failed(name, f"Scanner timed out after {self.settings.scanner_timeout:g}s")
        except Exception as e:
            outcome = ScannerOutcome.failed(name, str(e) or e.__class__.__name__)
        elapsed = time.perf_counter() - started
        return outcome.model_copy(update={"duration_seconds": elapsed})

    async def _execute(self, job: Job, started: float) -> None:
        target = job.target_url
        names = job.requested_scanners
        outcomes: List[ScannerOutcome] = []
        progress = job.progress

        for name in names:
            self.tracker.update(job.id, current_scanner=name)
            logger.info("job %s: running %s against %s", job.id, name, target)
            outcome = await self._probe(name, target)
            if not outcome.succeeded:
                logger.warning("job %s: %s failed: %s", job.id, name, outcome.error)
            outcomes.append(outcome)

            findings = collect_findings(outcomes)
            progress = max(progress, scan_progress(len(outcomes), len(names)))
            self.tracker.update(
                job.id,
                per_scanner_results=list(outcomes),
                aggregated_findings=findings,
                severity_counts=count_severities(findings),
                total_findings=len(findings),
                progress=progress,
            )

        findings = collect_findings(outcomes)
        counts = count_severities(findings)

        summary_text: Optional[str] = None
        if not job.skip_summary:
            self.tracker.transition(job.id, "summarizing", current_scanner=None,
                                    progress=max(progress, SCANNING_SHARE))
            try:
                summary_text = await self.summarizer.summarize(target, outcomes)
            except Exception:
                logger.exception("job %s: summarizer failed", job.id)
                summary_text = SUMMARY_FAILED_TEXT

        grade_meta = next((o.metadata for o in outcomes if o.scanner_name == GRADE_SCANNER), {})
        grade = grade_meta.get("grade") or None
        score = _score(grade_meta.get("score"))

        completed_at = utcnow()
        job = self.tracker.transition(
            job.id, "complete",
            progress=100,
            current_scanner=None,
            summary_text=summary_text,
            grade=grade,
            score=score,
            severity_counts=counts,
            total_findings=len(findings),
            completed_at=completed_at,
            duration_seconds=time.perf_counter() - started,
        )
        logger.info("job %s complete: %d findings %s", job.id, len(findings), counts)

        self._store_findings(job, outcomes)
        if job.site_id:
            try:
                self.sites.update_last_scan_summary(job.site_id, LastScanSummary(
                    job_id=job.id, grade=grade, score=score, severity_counts=counts, timestamp=completed_at,
                ))
            except SiteNotFoundError:
                logger.warning("job %s: site %s was removed during the scan", job.id, job.site_id)

    def _store_findings(self, job: Job, outcomes: List[ScannerOutcome]) -> None:
        records = [
            FindingRecord(
                job_id=job.id,
                site_id=job.site_id,
                company_id=job.company_id,
                scanner=o.scanner_name,
                **f.model_dump(),
            )
            for o in outcomes for f in o.findings
        ]
        if records:
            self.findings.bulk_insert(records)

    def _mark_failed(self, job_id: str, error: str, started: float) -> None:
        changes = {
            "status": "failed",
            "error": error,
            "current_scanner": None,
            "completed_at": utcnow(),
            "duration_seconds": time.perf_counter() - started,
        }
        try:
            # Straight to the store: a failed job must get a terminal state whatever it was doing.
            self.tracker.store.update(job_id, changes)
        except Exception:
            logger.exception("job %s: could not record failure", job_id)
