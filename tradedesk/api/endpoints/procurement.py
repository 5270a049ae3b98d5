# File: tradedesk/api/endpoints/procurement.py
"""
Procurement API endpoints for TradeDesk.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from tradedesk.api.deps import (
    CurrentUser,
    get_current_user,
    get_procurement_service,
    to_http_exception,
)
from tradedesk.core.exceptions import TradeDeskException
from tradedesk.schemas.procurement import SupplierGroup
from tradedesk.services.procurement_service import ProcurementService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=List[SupplierGroup])
def procurement_summary(
    *,
    estimate_ids: Optional[List[str]] = Query(
        None, description="Estimates to include (default: all approved estimates)"
    ),
    current_user: CurrentUser = Depends(get_current_user),
    procurement_service: ProcurementService = Depends(get_procurement_service),
):
    """Line items of open estimates grouped by supplier."""
    try:
        return procurement_service.summarize(estimate_ids)
    except TradeDeskException as e:
        raise to_http_exception(e)
