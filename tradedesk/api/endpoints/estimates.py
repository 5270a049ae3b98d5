# File: tradedesk/api/endpoints/estimates.py
"""
Estimate API endpoints for TradeDesk.

Estimate CRUD, kit and scoping insertion, and conversion of an estimate into a job.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from tradedesk.api.deps import (
    CurrentUser,
    get_conversion_service,
    get_current_user,
    get_estimate_service,
    to_http_exception,
)
from tradedesk.core.exceptions import TradeDeskException
from tradedesk.db.models.enums import EstimateStatus
from tradedesk.schemas.estimate import (
    AddKitRequest,
    AddScopingItemRequest,
    ConvertEstimateRequest,
    ConvertEstimateResponse,
    EstimateCreate,
    EstimateResponse,
    EstimateUpdate,
)
from tradedesk.services.conversion_service import ConversionService
from tradedesk.services.estimate_service import EstimateService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/convert", response_model=ConvertEstimateResponse, response_model_exclude_none=True)
def convert_estimate(
    *,
    request: ConvertEstimateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    conversion_service: ConversionService = Depends(get_conversion_service),
):
    """
    Convert an estimate into a job and deduct its stocked materials.

    The job is created even when some deductions fail; each failed line is
    reported in ``deductions`` with an ``error``.
    """
    logger.info(f"User {current_user.id} converting estimate {request.estimate_id}")
    try:
        result = conversion_service.convert_to_job(request.estimate_id, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)

    return {
        "job_id": result.job.id,
        "message": result.message,
        "batch_id": result.batch_id,
        "deductions": result.deductions,
    }


@router.get("", response_model=List[EstimateResponse])
def list_estimates(
    *,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[EstimateStatus] = Query(None, alias="status"),
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    try:
        return estimate_service.list_estimates(skip=skip, limit=limit, status=status_filter)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("", response_model=EstimateResponse, status_code=status.HTTP_201_CREATED)
def create_estimate(
    *,
    estimate_in: EstimateCreate,
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    """Create an estimate. Line totals and the total amount are computed."""
    data = estimate_in.model_dump()
    data["items"] = [item.model_dump(exclude_none=True) for item in estimate_in.items]
    try:
        return estimate_service.create_estimate(data, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/{estimate_id}", response_model=EstimateResponse)
def get_estimate(
    *,
    estimate_id: str = Path(..., description="Estimate ID"),
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    try:
        return estimate_service.get_estimate(estimate_id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.patch("/{estimate_id}", response_model=EstimateResponse)
def update_estimate(
    *,
    estimate_id: str = Path(..., description="Estimate ID"),
    estimate_in: EstimateUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    """
    Update an estimate. Converted estimates cannot be changed and the status
    cannot be set to converted here.
    """
    data = estimate_in.model_dump(exclude_unset=True)
    if estimate_in.items is not None:
        data["items"] = [item.model_dump(exclude_none=True) for item in estimate_in.items]
    try:
        return estimate_service.update_estimate(estimate_id, data, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/{estimate_id}/kits", response_model=EstimateResponse)
def add_kit_to_estimate(
    *,
    estimate_id: str = Path(..., description="Estimate ID"),
    request: AddKitRequest,
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    """Append the priced lines of a material kit to an estimate."""
    try:
        return estimate_service.add_kit(estimate_id, request.kit_id, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/{estimate_id}/scoping-items", response_model=EstimateResponse)
def add_scoping_item_to_estimate(
    *,
    estimate_id: str = Path(..., description="Estimate ID"),
    request: AddScopingItemRequest,
    current_user: CurrentUser = Depends(get_current_user),
    estimate_service: EstimateService = Depends(get_estimate_service),
):
    """Append a library material priced from its supplier's range."""
    try:
        return estimate_service.add_scoping_item(
            estimate_id, request.material_id, request.supplier_id, performed_by=current_user.id
        )
    except TradeDeskException as e:
        raise to_http_exception(e)
