from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from secscan.api.deps import get_companies, get_registry, get_sites, get_tracker
from secscan.core.errors import UnknownScannerError
from secscan.core.jobs import MAX_LIST_LIMIT, JobTracker
from secscan.models.schemas import Site, SiteCreateRequest, SiteUpdateRequest
from secscan.scanners.registry import DEFAULT_SCANNERS, ScannerRegistry
from secscan.store.base import CompanyStore, SiteStore

router = APIRouter(prefix="/sites", tags=["sites"])


def _check_scanners(registry: ScannerRegistry, scanners: List[str]) -> None:
    try:
        registry.resolve(scanners)
    except UnknownScannerError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _read(sites: SiteStore, site_id: str) -> Site:
    site = sites.read(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


@router.post("", response_model=Site, status_code=201)
def create_site(body: SiteCreateRequest, sites: SiteStore = Depends(get_sites),
                companies: CompanyStore = Depends(get_companies),
                registry: ScannerRegistry = Depends(get_registry)):
    """
    Register a site. Without ``company_id`` the site goes to the default
    company, which is created on first use.
    """
    url = body.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    scanners = body.default_scanners or list(DEFAULT_SCANNERS)
    _check_scanners(registry, scanners)

    if body.company_id:
        if companies.read(body.company_id) is None:
            raise HTTPException(status_code=404, detail="Company not found")
        company_id = body.company_id
    else:
        company_id = companies.get_or_create_default().id

    existing = sites.find_by_url(url, company_id=company_id)
    if existing is not None:
        raise HTTPException(status_code=409, detail=f"Site already registered: {existing.id}")

    return sites.create(Site(
        url=url,
        name=body.name,
        notes=body.notes,
        company_id=company_id,
        default_scanners=scanners,
    ))


@router.get("", response_model=List[Site])
def list_sites(company_id: Optional[str] = None, sites: SiteStore = Depends(get_sites)):
    return sites.list(company_id=company_id)


@router.get("/{site_id}", response_model=Site)
def get_site(site_id: str, sites: SiteStore = Depends(get_sites)):
    return _read(sites, site_id)


@router.patch("/{site_id}", response_model=Site)
def update_site(site_id: str, body: SiteUpdateRequest, sites: SiteStore = Depends(get_sites),
                registry: ScannerRegistry = Depends(get_registry)):
    _read(sites, site_id)
    changes = body.model_dump(exclude_none=True)
    if "default_scanners" in changes:
        if not changes["default_scanners"]:
            raise HTTPException(status_code=400, detail="default_scanners must not be empty")
        _check_scanners(registry, changes["default_scanners"])
    return sites.update(site_id, changes)


@router.delete("/{site_id}")
def delete_site(site_id: str, sites: SiteStore = Depends(get_sites), tracker: JobTracker = Depends(get_tracker)):
    """Remove a site. Past jobs and findings stay; a site with a scan in flight cannot be removed."""
    _read(sites, site_id)
    if any(j.is_active for j in tracker.list(site_id=site_id, limit=MAX_LIST_LIMIT)):
        raise HTTPException(status_code=409, detail="Site has a scan in progress")
    sites.delete(site_id)
    return {"success": True}
