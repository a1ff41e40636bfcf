"""
Companies API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
import uuid

from housekeeping.api.deps import get_company_service
from housekeeping.core.dependencies import require_permission
from housekeeping.core.pagination import PageParams, page_params
from housekeeping.core.permissions import Actor, Permission
from housekeeping.models.company import CompanyPlan
from housekeeping.schemas.common import Page
from housekeeping.schemas.company import CompanyCreate, CompanyResponse, CompanyStats, CompanyUpdate
from housekeeping.services.companies import CompanyService

router = APIRouter()


@router.post("/", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    company_data: CompanyCreate,
    actor: Actor = Depends(require_permission(Permission.COMPANY_CREATE)),
    companies: CompanyService = Depends(get_company_service),
):
    """Create a new company"""
    return await companies.create(company_data, actor)


@router.get("/", response_model=Page[CompanyResponse])
async def list_companies(
    plan: Optional[CompanyPlan] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(require_permission(Permission.COMPANY_LIST)),
    companies: CompanyService = Depends(get_company_service),
):
    """List companies"""
    items, total = await companies.list(actor, params, plan=plan, is_active=is_active, search=search)
    return Page.build(
        [CompanyResponse.model_validate(c) for c in items], total, params.page, params.limit
    )


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.COMPANY_VIEW)),
    companies: CompanyService = Depends(get_company_service),
):
    """Get company by ID"""
    return await companies.get(company_id, actor)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: uuid.UUID,
    company_data: CompanyUpdate,
    actor: Actor = Depends(require_permission(Permission.COMPANY_EDIT)),
    companies: CompanyService = Depends(get_company_service),
):
    """Update company"""
    return await companies.update(company_id, company_data, actor)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.COMPANY_DELETE)),
    companies: CompanyService = Depends(get_company_service),
):
    """Soft delete a company without active buildings"""
    await companies.remove(company_id, actor)


@router.get("/{company_id}/stats", response_model=CompanyStats)
async def get_company_stats(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.COMPANY_STATS)),
    companies: CompanyService = Depends(get_company_service),
):
    """Buildings, rooms, users and recent task figures of a company"""
    return await companies.stats(company_id, actor)
