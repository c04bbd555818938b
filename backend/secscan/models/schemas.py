import uuid
from datetime import datetime, timezone
from typing import Literal, List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["critical", "high", "medium", "low", "info"]
JobStatus = Literal["queued", "running", "summarizing", "complete", "failed"]
FindingStatus = Literal["open", "acknowledged", "resolved", "false_positive"]

ACTIVE_STATUSES = ("queued", "running", "summarizing")


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    severity: Severity
    description: str
    recommendation: str
    affected_target: str
    evidence: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)  # header, path, technologies, issuer...


class ScannerOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    scanner_name: str
    succeeded: bool
    findings: List[Finding] = Field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failed(cls, scanner_name: str, error: str, duration_seconds: float = 0.0) -> "ScannerOutcome":
        return cls(scanner_name=scanner_name, succeeded=False, error=error,
                   duration_seconds=duration_seconds)


class Company(BaseModel):
    """A client organisation; sites, jobs and findings are grouped under one."""
    id: str = Field(default_factory=_new_id)
    name: str
    slug: str
    website: Optional[str] = None
    notes: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Site(BaseModel):
    id: str = Field(default_factory=_new_id)
    company_id: Optional[str] = None
    url: str
    name: Optional[str] = None
    notes: str = ""
    default_scanners: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    # cached summary of the most recent completed job
    last_scan_id: Optional[str] = None
    last_scan_at: Optional[datetime] = None
    last_scan_grade: Optional[str] = None
    last_scan_score: Optional[int] = None
    last_scan_findings: Optional[Dict[str, int]] = None


class Job(BaseModel):
    id: str = Field(default_factory=_new_id)
    site_id: Optional[str] = None
    company_id: Optional[str] = None
    target_url: str
    requested_scanners: List[str]
    skip_summary: bool = False
    status: JobStatus = "queued"
    progress: int = Field(default=0, ge=0, le=100)
    current_scanner: Optional[str] = None
    per_scanner_results: List[ScannerOutcome] = Field(default_factory=list)
    aggregated_findings: List[Finding] = Field(default_factory=list)
    severity_counts: Dict[str, int] = Field(default_factory=dict)
    total_findings: int = 0
    grade: Optional[str] = None
    score: Optional[int] = None
    summary_text: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class JobSummary(BaseModel):
    """List projection of a job, without results, findings or report."""
    id: str
    site_id: Optional[str] = None
    company_id: Optional[str] = None
    target_url: str
    requested_scanners: List[str]
    status: JobStatus
    progress: int
    current_scanner: Optional[str] = None
    total_findings: int = 0
    severity_counts: Dict[str, int] = Field(default_factory=dict)
    worst_severity: Severity = "info"
    grade: Optional[str] = None
    score: Optional[int] = None
    error: Optional[str] = None
    duration_seconds: Optional[float] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: Job, worst: Severity = "info") -> "JobSummary":
        return cls.model_validate({**job.model_dump(include=set(cls.model_fields)), "worst_severity": worst})


class FindingRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    job_id: str
    site_id: Optional[str] = None
    company_id: Optional[str] = None
    scanner: str
    title: str
    severity: Severity
    description: str
    recommendation: str
    affected_target: str
    evidence: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: FindingStatus = "open"
    created_at: datetime = Field(default_factory=utcnow)


class LastScanSummary(BaseModel):
    job_id: str
    grade: Optional[str] = None
    score: Optional[int] = None
    severity_counts: Dict[str, int]
    timestamp: datetime


class JobCreateRequest(BaseModel):
    target_id: str = Field(min_length=1)
    scanners: Optional[List[str]] = None
    skip_summary: bool = False


class JobCreateResponse(BaseModel):
    id: str
    status: JobStatus


class SiteCreateRequest(BaseModel):
    url: str = Field(min_length=1)
    name: Optional[str] = None
    notes: str = ""
    company_id: Optional[str] = None
    default_scanners: Optional[List[str]] = None


class SiteUpdateRequest(BaseModel):
    name: Optional[str] = None
    notes: Optional[str] = None
    default_scanners: Optional[List[str]] = None
    is_active: Optional[bool] = None


class CompanyCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1, pattern=r"^[a-z0-9][a-z0-9-]*$")
    website: Optional[str] = None
    notes: str = ""


class ScannerInfo(BaseModel):
    name: str
    label: str
    description: str
    available: bool
