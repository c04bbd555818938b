"""Job lifecycle on top of the job store.

    queued -> running -> summarizing -> complete
                  \\           \\
                   -> complete  -> failed
    queued | running -> failed

``claim`` is the only way into ``running`` and only succeeds from ``queued``;
that is what keeps a job from being run twice.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from secscan.core.errors import InvalidTransitionError, JobNotFoundError
from secscan.core.severity import empty_counts
from secscan.models.schemas import Job, JobStatus, Site, utcnow
from secscan.store.base import JobStore

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[str, tuple] = {
    "queued": ("running", "failed"),
    "running": ("summarizing", "complete", "failed"),
    "summarizing": ("complete", "failed"),
    "complete": (),
    "failed": (),
}

MAX_LIST_LIMIT = 200


class JobTracker:
    def __init__(self, store: JobStore):
        self.store = store

    def create(self, site: Site, scanners: Sequence[str], skip_summary: bool = False) -> Job:
        job = Job(
            site_id=site.id,
            company_id=site.company_id,
            target_url=site.url,
            requested_scanners=list(scanners),
            skip_summary=skip_summary,
            severity_counts=empty_counts(),
        )
        job = self.store.create(job)
        logger.info("job %s queued for %s with scanners %s", job.id, job.target_url, job.requested_scanners)
        return job

    def read(self, job_id: str) -> Job:
        job = self.store.read(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list(self, site_id: Optional[str] = None, company_id: Optional[str] = None,
             limit: int = 50) -> List[Job]:
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        return self.store.list(site_id=site_id, company_id=company_id, limit=limit)

    def update(self, job_id: str, **changes: Any) -> Job:
        """In-place update that does not touch ``status``."""
        if "status" in changes:
            raise ValueError("use transition() to change job status")
        return self.store.update(job_id, changes)

    def transition(self, job_id: str, status: JobStatus, **changes: Any) -> Job:
        current = self.read(job_id)
        if status not in TRANSITIONS[current.status]:
            raise InvalidTransitionError(job_id, current.status, status)
        job = self.store.update(job_id, {**changes, "status": status})
        logger.info("job %s: %s -> %s", job_id, current.status, status)
        return job

    def claim(self, job_id: str) -> Optional[Job]:
        """Move a queued job to running; None when it is not queued."""
        try:
            return self.transition(job_id, "running", started_at=utcnow(), progress=0)
        except InvalidTransitionError as e:
            logger.warning("job %s not claimed: %s", job_id, e)
            return None

    def delete(self, job_id: str) -> None:
        if not self.store.delete(job_id):
            raise JobNotFoundError(job_id)
