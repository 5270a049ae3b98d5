# File: tradedesk/api/endpoints/jobs.py
"""
Job API endpoints for TradeDesk.
"""

import logging

from fastapi import APIRouter, Depends, Path

from tradedesk.api.deps import (
    CurrentUser,
    get_conversion_service,
    get_current_user,
    get_job_service,
    to_http_exception,
)
from tradedesk.core.exceptions import TradeDeskException
from tradedesk.schemas.job import ChangeOrderCreate, JobResponse, RetryDeductionsResponse
from tradedesk.services.conversion_service import ConversionService
from tradedesk.services.job_service import JobService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    *,
    job_id: str = Path(..., description="Job ID"),
    current_user: CurrentUser = Depends(get_current_user),
    job_service: JobService = Depends(get_job_service),
):
    try:
        return job_service.get_job(job_id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/{job_id}/change-orders", response_model=JobResponse)
def add_change_order(
    *,
    job_id: str = Path(..., description="Job ID"),
    change_order: ChangeOrderCreate,
    current_user: CurrentUser = Depends(get_current_user),
    job_service: JobService = Depends(get_job_service),
):
    """Append a change order to the job's materials and add its total to the budget."""
    try:
        return job_service.add_change_order(job_id, change_order.model_dump(), performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/{job_id}/retry-deductions", response_model=RetryDeductionsResponse, response_model_exclude_none=True)
def retry_deductions(
    *,
    job_id: str = Path(..., description="Job ID"),
    current_user: CurrentUser = Depends(get_current_user),
    conversion_service: ConversionService = Depends(get_conversion_service),
):
    """
    Re-run the stock deductions of a converted job.

    Lines already deducted are not deducted again.
    """
    try:
        result = conversion_service.retry_deductions(job_id, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)
    return {"job_id": result.job.id, "batch_id": result.batch_id, "deductions": result.deductions}
