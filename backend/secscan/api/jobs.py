from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response

from secscan.api.deps import get_findings, get_orchestrator, get_registry, get_sites, get_tracker
from secscan.core.engine import ScanOrchestrator
from secscan.core.errors import JobNotFoundError, UnknownScannerError
from secscan.core.jobs import JobTracker
from secscan.core.severity import sort_findings, worst_severity
from secscan.models.schemas import FindingRecord, Job, JobCreateRequest, JobCreateResponse, JobSummary
from secscan.scanners.registry import DEFAULT_SCANNERS, ScannerRegistry
from secscan.store.base import FindingStore, SiteStore

router = APIRouter(prefix="/jobs", tags=["jobs"])

# Suggested client poll interval (seconds) while a job is running or summarizing.
POLL_INTERVAL_SECONDS = 3


@router.post("", response_model=JobCreateResponse, status_code=201)
def create_job(
    body: JobCreateRequest,
    background: BackgroundTasks,
    tracker: JobTracker = Depends(get_tracker),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
    registry: ScannerRegistry = Depends(get_registry),
    sites: SiteStore = Depends(get_sites),
):
    """
    Validate, persist a queued job and hand it to the orchestrator.
    Returns before any scanner runs; poll GET /jobs/{id} for progress.
    """
    site = sites.read(body.target_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")

    scanners = body.scanners or site.default_scanners or DEFAULT_SCANNERS
    try:
        registry.resolve(scanners)
    except UnknownScannerError as e:
        raise HTTPException(status_code=400, detail=str(e))

    job = tracker.create(site, scanners, skip_summary=body.skip_summary)
    orchestrator.dispatch(background, job.id)
    return JobCreateResponse(id=job.id, status=job.status)


@router.get("", response_model=List[JobSummary])
def list_jobs(
    site_id: Optional[str] = None,
    company_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    tracker: JobTracker = Depends(get_tracker),
):
    jobs = tracker.list(site_id=site_id, company_id=company_id, limit=limit)
    return [JobSummary.from_job(j, worst=worst_severity(j.severity_counts)) for j in jobs]


def _read(tracker: JobTracker, job_id: str) -> Job:
    try:
        return tracker.read(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")


@router.get("/{job_id}", response_model=Job)
def get_job(job_id: str, response: Response, tracker: JobTracker = Depends(get_tracker)):
    job = _read(tracker, job_id)
    if job.is_active:
        response.headers["X-Poll-Interval"] = str(POLL_INTERVAL_SECONDS)
    return job


@router.get("/{job_id}/findings", response_model=List[FindingRecord])
def get_job_findings(job_id: str, tracker: JobTracker = Depends(get_tracker),
                     findings: FindingStore = Depends(get_findings)):
    """Stored findings for the job, critical first."""
    _read(tracker, job_id)
    return sort_findings(findings.list(job_id=job_id))


@router.delete("/{job_id}")
def delete_job(job_id: str, tracker: JobTracker = Depends(get_tracker),
               findings: FindingStore = Depends(get_findings)):
    """Delete the job and the findings it produced."""
    try:
        tracker.delete(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    findings.delete_for_job(job_id)
    return {"success": True}
