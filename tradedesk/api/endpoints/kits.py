# File: tradedesk/api/endpoints/kits.py
"""
Material kit API endpoints for TradeDesk.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from tradedesk.api.deps import CurrentUser, get_current_user, get_kit_service, to_http_exception
from tradedesk.core.exceptions import TradeDeskException
from tradedesk.schemas.kit import KitExpandRequest, KitLineItem, MaterialKitResponse
from tradedesk.services.kit_service import KitService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[MaterialKitResponse])
def list_kits(
    *,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    kit_service: KitService = Depends(get_kit_service),
):
    try:
        return kit_service.list_kits(skip=skip, limit=limit)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/expand", response_model=List[KitLineItem])
def expand_kit(
    *,
    request: KitExpandRequest,
    current_user: CurrentUser = Depends(get_current_user),
    kit_service: KitService = Depends(get_kit_service),
):
    """
    Price a kit into estimate line items (waste factor, then markup).
    """
    try:
        return kit_service.expand_kit(request.kit_id)
    except TradeDeskException as e:
        raise to_http_exception(e)
