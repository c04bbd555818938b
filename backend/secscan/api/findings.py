from typing import List, Optional

from fastapi import APIRouter, Depends

from secscan.api.deps import get_findings
from secscan.core.severity import sort_findings
from secscan.models.schemas import FindingRecord
from secscan.store.base import FindingStore

router = APIRouter(prefix="/findings", tags=["findings"])


@router.get("", response_model=List[FindingRecord])
def list_findings(
    job_id: Optional[str] = None,
    site_id: Optional[str] = None,
    company_id: Optional[str] = None,
    findings: FindingStore = Depends(get_findings),
):
    """Stored findings across jobs, filtered by any of job, site or company; critical first."""
    return sort_findings(findings.list(job_id=job_id, site_id=site_id, company_id=company_id))
