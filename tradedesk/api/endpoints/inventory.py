# File: tradedesk/api/endpoints/inventory.py
"""
Inventory API endpoints for TradeDesk.

Catalogue management, stock adjustments, stock history, ledger
reconciliation and batch reversal.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from tradedesk.api.deps import (
    CurrentUser,
    get_current_user,
    get_inventory_service,
    get_procurement_service,
    get_stock_ledger_service,
    to_http_exception,
)
from tradedesk.core.exceptions import TradeDeskException
from tradedesk.schemas.inventory import (
    BatchReversalRequest,
    BatchReversalResponse,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    LedgerReconciliationResponse,
    ReorderRequestResponse,
    StockAdjustmentRequest,
    StockAdjustmentResponse,
    StockTransactionResponse,
)
from tradedesk.services.inventory_service import InventoryService
from tradedesk.services.procurement_service import ProcurementService
from tradedesk.services.stock_ledger_service import StockLedgerService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/adjust", response_model=StockAdjustmentResponse)
def adjust_stock(
    *,
    adjustment: StockAdjustmentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
):
    """
    Apply a signed quantity change to an item and record it in the stock ledger.

    The balance never drops below zero.
    """
    try:
        result = ledger_service.adjust(
            adjustment.inventory_id,
            adjustment.quantity_change,
            adjustment.transaction_type,
            note=adjustment.reference_note,
            performed_by=current_user.id,
        )
    except TradeDeskException as e:
        raise to_http_exception(e)
    return result.to_dict()


@router.get("/low-stock", response_model=List[InventoryItemResponse])
def list_low_stock(
    *,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Items at or below their reorder point."""
    try:
        return inventory_service.get_low_stock_items(skip=skip, limit=limit)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/batches/{batch_id}", response_model=List[StockTransactionResponse])
def get_batch(
    *,
    batch_id: str = Path(..., description="Stock batch ID"),
    current_user: CurrentUser = Depends(get_current_user),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
):
    """All transactions written under one batch, in write order."""
    try:
        return ledger_service.get_batch(batch_id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("/batches/{batch_id}/reverse", response_model=BatchReversalResponse, response_model_exclude_none=True)
def reverse_batch(
    *,
    batch_id: str = Path(..., description="Stock batch ID"),
    request: Optional[BatchReversalRequest] = Body(None),
    current_user: CurrentUser = Depends(get_current_user),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
):
    """
    Compensate every transaction of a batch with an opposite return.

    Lines that cannot be restored are reported individually.
    """
    note = request.reference_note if request else None
    try:
        return ledger_service.reverse_batch(batch_id, note=note, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("", response_model=List[InventoryItemResponse])
def list_inventory(
    *,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    search: Optional[str] = Query(None, description="Filter by item name"),
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    try:
        return inventory_service.list_items(skip=skip, limit=limit, search=search)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def create_inventory_item(
    *,
    item_in: InventoryItemCreate,
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Create an inventory item; its quantity becomes the initial balance."""
    try:
        return inventory_service.create_item(item_in.model_dump(), performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_inventory_item(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    try:
        return inventory_service.get_item(item_id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.patch("/{item_id}", response_model=InventoryItemResponse)
def update_inventory_item(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    item_in: InventoryItemUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """
    Update catalogue fields. A new quantity is recorded as a manual adjustment.
    """
    try:
        return inventory_service.update_item(
            item_id, item_in.model_dump(exclude_unset=True), performed_by=current_user.id
        )
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory_item(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    current_user: CurrentUser = Depends(get_current_user),
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Delete an item. Its stock history is kept."""
    try:
        inventory_service.delete_item(item_id, performed_by=current_user.id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/{item_id}/transactions", response_model=List[StockTransactionResponse])
def get_stock_history(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
):
    """Stock history of an item, newest first."""
    try:
        return ledger_service.get_history(item_id, limit=limit)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/{item_id}/reconcile", response_model=LedgerReconciliationResponse)
def reconcile_item(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    current_user: CurrentUser = Depends(get_current_user),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
):
    """Compare the stored balance with the replay of the item's stock history."""
    try:
        return ledger_service.reconcile(item_id)
    except TradeDeskException as e:
        raise to_http_exception(e)


@router.get("/{item_id}/reorder-request", response_model=ReorderRequestResponse)
def get_reorder_request(
    *,
    item_id: str = Path(..., description="Inventory item ID"),
    current_user: CurrentUser = Depends(get_current_user),
    procurement_service: ProcurementService = Depends(get_procurement_service),
):
    """Order message addressed to the item's supplier."""
    try:
        return procurement_service.build_reorder_request(item_id)
    except TradeDeskException as e:
        raise to_http_exception(e)
