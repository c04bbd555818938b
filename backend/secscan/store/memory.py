import itertools
import threading
from typing import Any, Dict, List, Optional

from secscan.core.errors import JobNotFoundError, SiteNotFoundError
from secscan.models.schemas import Company, FindingRecord, Job, LastScanSummary, Site
from secscan.scanners.base import normalize_url

# ---- Simple in-memory stores (MVP). Each returns copies so callers never share state.


class InMemoryJobStore:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._order: Dict[str, int] = {}  # insertion sequence, breaks created_at ties
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def create(self, job: Job) -> Job:
        with self._lock:
            self._order[job.id] = next(self._seq)
            self._jobs[job.id] = job.model_copy(deep=True)
        return job.model_copy(deep=True)

    def read(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def update(self, job_id: str, changes: Dict[str, Any]) -> Job:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            merged = Job.model_validate({**current.model_dump(), **changes})
            self._jobs[job_id] = merged
            return merged.model_copy(deep=True)

    def delete(self, job_id: str) -> bool:
        with self._lock:
            self._order.pop(job_id, None)
            return self._jobs.pop(job_id, None) is not None

    def list(self, site_id: Optional[str] = None, company_id: Optional[str] = None,
             limit: int = 50) -> List[Job]:
        with self._lock:
            jobs = [
                j for j in self._jobs.values()
                if (site_id is None or j.site_id == site_id)
                and (company_id is None or j.company_id == company_id)
            ]
            jobs.sort(key=lambda j: (j.created_at, self._order.get(j.id, 0)), reverse=True)
            return [j.model_copy(deep=True) for j in jobs[:limit]]


class InMemorySiteStore:
    def __init__(self):
        self._sites: Dict[str, Site] = {}
        self._lock = threading.Lock()

    def create(self, site: Site) -> Site:
        with self._lock:
            self._sites[site.id] = site.model_copy(deep=True)
        return site.model_copy(deep=True)

    def read(self, site_id: str) -> Optional[Site]:
        with self._lock:
            site = self._sites.get(site_id)
            return site.model_copy(deep=True) if site else None

    def find_by_url(self, url: str, company_id: Optional[str] = None) -> Optional[Site]:
        wanted = normalize_url(url)
        with self._lock:
            for site in self._sites.values():
                if normalize_url(site.url) == wanted and site.company_id == company_id:
                    return site.model_copy(deep=True)
        return None

    def list(self, company_id: Optional[str] = None) -> List[Site]:
        with self._lock:
            sites = [s for s in self._sites.values() if company_id is None or s.company_id == company_id]
            sites.sort(key=lambda s: s.created_at, reverse=True)
            return [s.model_copy(deep=True) for s in sites]

    def update(self, site_id: str, changes: Dict[str, Any]) -> Site:
        with self._lock:
            current = self._sites.get(site_id)
            if current is None:
                raise SiteNotFoundError(site_id)
            updated = Site.model_validate({**current.model_dump(), **changes})
            self._sites[site_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, site_id: str) -> bool:
        with self._lock:
            return self._sites.pop(site_id, None) is not None

    def update_last_scan_summary(self, site_id: str, summary: LastScanSummary) -> Site:
        with self._lock:
            site = self._sites.get(site_id)
            if site is None:
                raise SiteNotFoundError(site_id)
            updated = site.model_copy(update={
                "last_scan_id": summary.job_id,
                "last_scan_at": summary.timestamp,
                "last_scan_grade": summary.grade,
                "last_scan_score": summary.score,
                "last_scan_findings": dict(summary.severity_counts),
            })
            self._sites[site_id] = updated
            return updated.model_copy(deep=True)


class InMemoryFindingStore:
    def __init__(self):
        self._records: List[FindingRecord] = []
        self._lock = threading.Lock()

    def bulk_insert(self, records: List[FindingRecord]) -> int:
        with self._lock:
            self._records.extend(r.model_copy(deep=True) for r in records)
        return len(records)

    def list(self, job_id: Optional[str] = None, site_id: Optional[str] = None,
             company_id: Optional[str] = None) -> List[FindingRecord]:
        with self._lock:
            return [
                r.model_copy(deep=True) for r in self._records
                if (job_id is None or r.job_id == job_id)
                and (site_id is None or r.site_id == site_id)
                and (company_id is None or r.company_id == company_id)
            ]

    def delete_for_job(self, job_id: str) -> int:
        with self._lock:
            kept = [r for r in self._records if r.job_id != job_id]
            removed = len(self._records) - len(kept)
            self._records = kept
        return removed


DEFAULT_COMPANY_NAME = "My Agency"
DEFAULT_COMPANY_SLUG = "my-agency"


class InMemoryCompanyStore:
    def __init__(self):
        self._companies: Dict[str, Company] = {}  # insertion ordered
        self._lock = threading.Lock()

    def create(self, company: Company) -> Company:
        with self._lock:
            self._companies[company.id] = company.model_copy(deep=True)
        return company.model_copy(deep=True)

    def read(self, company_id: str) -> Optional[Company]:
        with self._lock:
            company = self._companies.get(company_id)
            return company.model_copy(deep=True) if company else None

    def find_by_slug(self, slug: str) -> Optional[Company]:
        with self._lock:
            for company in self._companies.values():
                if company.slug == slug:
                    return company.model_copy(deep=True)
        return None

    def list(self) -> List[Company]:
        with self._lock:
            return sorted((c.model_copy(deep=True) for c in self._companies.values()), key=lambda c: c.name.lower())

    def get_or_create_default(self) -> Company:
        """Oldest company, or a fresh "My Agency" when there is none yet."""
        with self._lock:
            if self._companies:
                return next(iter(self._companies.values())).model_copy(deep=True)
            company = Company(name=DEFAULT_COMPANY_NAME, slug=DEFAULT_COMPANY_SLUG)
            self._companies[company.id] = company
            return company.model_copy(deep=True)
