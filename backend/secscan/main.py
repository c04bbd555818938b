from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from secscan.ai.summarizer import Summarizer, build_summarizer
from secscan.api.companies import router as companies_router
from secscan.api.findings import router as findings_router
from secscan.api.jobs import router as jobs_router
from secscan.api.sites import router as sites_router
from secscan.config import Settings
from secscan.core.engine import ScanOrchestrator
from secscan.core.jobs import JobTracker
from secscan.core.log import configure_logging
from secscan.models.schemas import ScannerInfo
from secscan.scanners.registry import ScannerRegistry, build_registry
from secscan.store.base import CompanyStore, FindingStore, JobStore, SiteStore
from secscan.store.memory import InMemoryCompanyStore, InMemoryFindingStore, InMemoryJobStore, InMemorySiteStore


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ScannerRegistry] = None,
    summarizer: Optional[Summarizer] = None,
    jobs: Optional[JobStore] = None,
    sites: Optional[SiteStore] = None,
    findings: Optional[FindingStore] = None,
    companies: Optional[CompanyStore] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="SecScan API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Built once per process and shared through app.state.
    registry = registry or build_registry(settings)
    tracker = JobTracker(jobs or InMemoryJobStore())
    sites = sites or InMemorySiteStore()
    findings = findings or InMemoryFindingStore()
    companies = companies or InMemoryCompanyStore()
    app.state.settings = settings
    app.state.registry = registry
    app.state.tracker = tracker
    app.state.sites = sites
    app.state.findings = findings
    app.state.companies = companies
    app.state.orchestrator = ScanOrchestrator(
        registry=registry,
        tracker=tracker,
        sites=sites,
        findings=findings,
        summarizer=summarizer or build_summarizer(settings),
        settings=settings,
    )

    @app.get("/health")
    def health(request: Request):
        state = request.app.state
        return {
            "status": "ok",
            "scanners": state.registry.availability(),
            "ai_summary": bool(state.settings.openai_api_key),
            "recent_jobs": len(state.tracker.list(limit=200)),
            "total_sites": len(state.sites.list()),
            "total_companies": len(state.companies.list()),
        }

    @app.get("/scanners", response_model=List[ScannerInfo])
    def list_scanners(request: Request):
        return [
            ScannerInfo(name=s.name, label=s.label, description=s.description, available=s.available)
            for s in request.app.state.registry
        ]

    app.include_router(jobs_router)
    app.include_router(sites_router)
    app.include_router(companies_router)
    app.include_router(findings_router)
    return app


app = create_app()
