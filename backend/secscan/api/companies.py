from typing import List

from fastapi import APIRouter, Depends, HTTPException

from secscan.api.deps import get_companies
from secscan.models.schemas import Company, CompanyCreateRequest
from secscan.store.base import CompanyStore

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=List[Company])
def list_companies(companies: CompanyStore = Depends(get_companies)):
    return companies.list()


@router.post("", response_model=Company, status_code=201)
def create_company(body: CompanyCreateRequest, companies: CompanyStore = Depends(get_companies)):
    if companies.find_by_slug(body.slug) is not None:
        raise HTTPException(status_code=409, detail=f"Slug already in use: {body.slug}")
    return companies.create(Company(
        name=body.name.strip(),
        slug=body.slug,
        website=body.website or None,
        notes=body.notes,
    ))


@router.get("/{company_id}", response_model=Company)
def get_company(company_id: str, companies: CompanyStore = Depends(get_companies)):
    company = companies.read(company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company
