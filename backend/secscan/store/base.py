"""Storage collaborators.

The scan engine only talks to these protocols. A relational adapter can
implement them; ``secscan.store.memory`` is the in-process implementation.
"""

from typing import Any, Dict, List, Optional, Protocol

from secscan.models.schemas import Company, FindingRecord, Job, LastScanSummary, Site


class JobStore(Protocol):
    def create(self, job: Job) -> Job: ...

    def read(self, job_id: str) -> Optional[Job]: ...

    def update(self, job_id: str, changes: Dict[str, Any]) -> Job: ...

    def delete(self, job_id: str) -> bool: ...

    def list(self, site_id: Optional[str] = None, company_id: Optional[str] = None,
             limit: int = 50) -> List[Job]: ...


class SiteStore(Protocol):
    def create(self, site: Site) -> Site: ...

    def read(self, site_id: str) -> Optional[Site]: ...

    def find_by_url(self, url: str, company_id: Optional[str] = None) -> Optional[Site]: ...

    def list(self, company_id: Optional[str] = None) -> List[Site]: ...

    def update(self, site_id: str, changes: Dict[str, Any]) -> Site: ...

    def delete(self, site_id: str) -> bool: ...

    def update_last_scan_summary(self, site_id: str, summary: LastScanSummary) -> Site: ...


class FindingStore(Protocol):
    def bulk_insert(self, records: List[FindingRecord]) -> int: ...

    def list(self, job_id: Optional[str] = None, site_id: Optional[str] = None,
             company_id: Optional[str] = None) -> List[FindingRecord]: ...

    def delete_for_job(self, job_id: str) -> int: ...


class CompanyStore(Protocol):
    def create(self, company: Company) -> Company: ...

    def read(self, company_id: str) -> Optional[Company]: ...

    def find_by_slug(self, slug: str) -> Optional[Company]: ...

    def list(self) -> List[Company]: ...

    def get_or_create_default(self) -> Company: ...
