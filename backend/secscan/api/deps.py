from fastapi import Request

from secscan.core.engine import ScanOrchestrator
from secscan.core.jobs import JobTracker
from secscan.scanners.registry import ScannerRegistry
from secscan.store.base import CompanyStore, FindingStore, SiteStore


def get_tracker(request: Request) -> JobTracker:
    return request.app.state.tracker


def get_orchestrator(request: Request) -> ScanOrchestrator:
    return request.app.state.orchestrator


def get_registry(request: Request) -> ScannerRegistry:
    return request.app.state.registry


def get_sites(request: Request) -> SiteStore:
    return request.app.state.sites


def get_findings(request: Request) -> FindingStore:
    return request.app.state.findings


def get_companies(request: Request) -> CompanyStore:
    return request.app.state.companies
