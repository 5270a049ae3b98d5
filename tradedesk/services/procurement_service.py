# File: tradedesk/services/procurement_service.py
"""
Procurement aggregation.

Groups the line items of open estimates by supplier so one order per
supplier can be placed, and builds reorder messages for low inventory.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from sqlalchemy.orm import Session

from tradedesk.core.exceptions import BusinessRuleException, EntityNotFoundException
from tradedesk.db.models.enums import EstimateStatus
from tradedesk.db.models.supplier import Supplier
from tradedesk.repositories.estimate_repository import EstimateRepository
from tradedesk.repositories.inventory_repository import InventoryRepository
from tradedesk.repositories.supplier_repository import SupplierRepository
from tradedesk.services.base_service import BaseService

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"
UNKNOWN_SUPPLIER = "Unknown Supplier"


def _get(source: Any, name: str, default: Any = None) -> Any:
    if isinstance(source, dict):
        return source.get(name, default)
    return getattr(source, name, default)


def _line_total(item: Dict[str, Any]) -> float:
    try:
        return float(item.get("total") or 0)
    except (TypeError, ValueError):
        return 0.0


def group_by_supplier(estimates: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Group every estimate line item by supplier.

    Items without a supplier_id fall into the "unassigned" group. Each item
    is tagged with the estimate it came from; non-numeric totals count as 0.
    Groups are returned in the order their supplier is first seen.

    Args:
        estimates: Estimates (models or dicts with id, title, items,
            client_profile_id)

    Returns:
        List of groups: {supplier_id, supplier_name, items, item_count,
        total_cost, estimates}
    """
    groups: Dict[str, Dict[str, Any]] = {}

    for estimate in estimates:
        estimate_id = _get(estimate, "id")
        title = _get(estimate, "title")
        for item in _get(estimate, "items") or []:
            supplier_id = item.get("supplier_id") or UNASSIGNED
            group = groups.get(supplier_id)
            if group is None:
                group = groups[supplier_id] = {
                    "supplier_id": supplier_id,
                    "supplier_name": None,
                    "items": [],
                    "item_count": 0,
                    "total_cost": 0.0,
                    "_by_estimate": {},
                }
            if not group["supplier_name"] and item.get("supplier_name"):
                group["supplier_name"] = item["supplier_name"]

            tagged = dict(item)
            tagged.update(
                {
                    "estimate_id": estimate_id,
                    "estimate_title": title,
                    "client_profile_id": _get(estimate, "client_profile_id"),
                }
            )
            total = _line_total(item)
            group["items"].append(tagged)
            group["item_count"] += 1
            group["total_cost"] += total

            per_estimate = group["_by_estimate"].setdefault(
                estimate_id,
                {"estimate_id": estimate_id, "title": title, "items": [], "subtotal": 0.0},
            )
            per_estimate["items"].append(tagged)
            per_estimate["subtotal"] += total

    result = []
    for group in groups.values():
        group["supplier_name"] = group["supplier_name"] or UNKNOWN_SUPPLIER
        group["total_cost"] = round(group["total_cost"], 2)
        group["estimates"] = [
            dict(entry, subtotal=round(entry["subtotal"], 2))
            for entry in group.pop("_by_estimate").values()
        ]
        result.append(group)
    return result


class ProcurementService(BaseService[Supplier]):
    """
    Service for supplier-grouped purchasing views.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[SupplierRepository] = None,
        estimate_repository: Optional[EstimateRepository] = None,
        inventory_repository: Optional[InventoryRepository] = None,
    ):
        super().__init__(session, repository=repository or SupplierRepository(session))
        self.estimate_repository = estimate_repository or EstimateRepository(session)
        self.inventory_repository = inventory_repository or InventoryRepository(session)

    def summarize(self, estimate_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Supplier groups for approved estimates.

        When estimate_ids is given only those estimates are read, and the ones
        that are not approved are left out.

        Each group is enriched with the supplier's store name, phone and
        address when the supplier exists.

        Args:
            estimate_ids: Approved estimates to include (default: all approved estimates)

        Returns:
            Supplier groups as produced by group_by_supplier()
        """
        if estimate_ids:
            estimates = self._guard_read(
                "procurement summary", self.estimate_repository.get_by_ids, estimate_ids
            )
            estimates = [e for e in estimates if e.status == EstimateStatus.APPROVED]
        else:
            estimates = self._guard_read(
                "procurement summary",
                self.estimate_repository.list_by_status,
                EstimateStatus.APPROVED,
            )

        groups = group_by_supplier(estimates)
        supplier_ids = [g["supplier_id"] for g in groups if g["supplier_id"] != UNASSIGNED]
        suppliers = {
            s.id: s
            for s in self._guard_read("procurement summary", self.repository.get_by_ids, supplier_ids)
        }

        for group in groups:
            supplier = suppliers.get(group["supplier_id"])
            group["store_name"] = supplier.store_name if supplier else None
            group["phone"] = supplier.phone if supplier else None
            group["address"] = supplier.address if supplier else None
            if supplier and group["supplier_name"] == UNKNOWN_SUPPLIER:
                group["supplier_name"] = supplier.store_name

        logger.info(f"Procurement summary: {len(estimates)} estimates, {len(groups)} supplier groups")
        return groups

    def build_reorder_request(self, item_id: str) -> Dict[str, Any]:
        """
        Compose an order message to an item's supplier.

        E-mail is preferred; a supplier with only a phone number gets an SMS.

        Returns:
            {inventory_id, supplier_id, channel, recipient, subject, body, uri}

        Raises:
            EntityNotFoundException: If the item does not exist
            BusinessRuleException: If the item has no supplier, or the supplier
                has neither e-mail nor phone
        """
        item = self.inventory_repository.get_by_id(item_id)
        if not item:
            raise EntityNotFoundException("InventoryItem", item_id)

        supplier = self.repository.get_by_id(item.supplier_id) if item.supplier_id else None
        if not supplier:
            raise BusinessRuleException(
                "No supplier linked to this item", "NO_SUPPLIER", {"inventory_id": item_id}
            )

        subject = f"Order: {item.item_name}"
        body = (
            f"Hi {supplier.contact_person or 'there'},\n\n"
            f"I need to order more {item.item_name}.\n"
            f"My current stock is {item.quantity:g} {item.unit}.\n\n"
            "Please let me know availability and pricing.\n\n"
            "Thanks,"
        )

        if supplier.email:
            channel, recipient = "email", supplier.email
            uri = f"mailto:{supplier.email}?subject={quote(subject)}&body={quote(body)}"
        elif supplier.phone:
            channel, recipient = "sms", supplier.phone
            uri = f"sms:{supplier.phone}?body={quote(body)}"
        else:
            raise BusinessRuleException(
                "Supplier has no email or phone number",
                "SUPPLIER_UNREACHABLE",
                {"supplier_id": supplier.id},
            )

        logger.info(f"Reorder request for {item.item_name} via {channel} to supplier {supplier.id}")
        return {
            "inventory_id": item_id,
            "supplier_id": supplier.id,
            "channel": channel,
            "recipient": recipient,
            "subject": subject,
            "body": body,
            "uri": uri,
        }
