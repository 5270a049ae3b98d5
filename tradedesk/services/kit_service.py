# File: tradedesk/services/kit_service.py
"""
Kit pricing for TradeDesk estimates.

The module-level functions are pure: they turn kits, materials and pricing
records into estimate line items and never touch the database. KitService
resolves the records a kit refers to and feeds them through those functions.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tradedesk.core.exceptions import EntityNotFoundException
from tradedesk.db.models.material import MaterialKit
from tradedesk.repositories.material_repository import (
    MaterialKitRepository,
    MaterialLibraryRepository,
    MaterialPricingRepository,
)
from tradedesk.services.base_service import BaseService

logger = logging.getLogger(__name__)

UNKNOWN_MATERIAL = "Unknown Material"


def _value(source: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a dict or an object."""
    if source is None:
        return default
    if isinstance(source, dict):
        value = source.get(name, default)
    else:
        value = getattr(source, name, default)
    return default if value is None else value


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def calculate_unit_cost(
    base_cost: float,
    waste_factor_percentage: Optional[float] = None,
    markup_percentage: Optional[float] = None,
) -> float:
    """
    Price one unit of a kit material.

    The waste factor is applied to the base cost first, then the markup is
    applied to the result. The final figure is rounded to cents.

    Args:
        base_cost: Supplier price for one unit
        waste_factor_percentage: Extra material lost to offcuts, in percent
        markup_percentage: Markup on the wasted cost, in percent

    Returns:
        Unit cost rounded to two decimals
    """
    waste = _number(waste_factor_percentage)
    markup = _number(markup_percentage)
    cost_with_waste = _number(base_cost) * (1 + waste / 100)
    return round(cost_with_waste * (1 + markup / 100), 2)


def build_kit_line_item(
    kit_item: Dict[str, Any],
    material_name: Optional[str],
    pricing: Any = None,
) -> Dict[str, Any]:
    """
    Turn one kit entry into an estimate line item.

    Missing data never raises: an unknown material gets a placeholder
    description, a material without pricing costs 0 and a missing quantity
    counts as 1.

    Args:
        kit_item: Kit entry ({material_id, quantity, waste_factor_percentage,
            default_markup_percentage})
        material_name: Name of the library material, if found
        pricing: Pricing record (object or dict with max_price/supplier_id), if any

    Returns:
        Line item dictionary ready to append to an estimate
    """
    base_cost = _number(_value(pricing, "max_price")) if pricing is not None else 0.0
    unit_cost = calculate_unit_cost(
        base_cost,
        _value(kit_item, "waste_factor_percentage"),
        _value(kit_item, "default_markup_percentage"),
    )
    quantity = _number(_value(kit_item, "quantity")) or 1

    line = {
        "description": material_name or UNKNOWN_MATERIAL,
        "quantity": quantity,
        "unit_cost": unit_cost,
        "total": round(quantity * unit_cost, 2),
        "material_id": _value(kit_item, "material_id"),
    }
    supplier_id = _value(pricing, "supplier_id")
    if supplier_id:
        line["supplier_id"] = supplier_id
    return line


def build_scoping_line_item(
    material: Any,
    pricing: Any = None,
    supplier_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Line item for a material picked in the scoping wizard.

    Priced at the midpoint of the supplier's range, quantity 1.
    """
    if pricing is not None:
        unit_cost = round(
            (_number(_value(pricing, "min_price")) + _number(_value(pricing, "max_price"))) / 2,
            2,
        )
    else:
        unit_cost = 0.0
    return {
        "description": _value(material, "item_name", UNKNOWN_MATERIAL),
        "quantity": 1,
        "unit_cost": unit_cost,
        "total": unit_cost,
        "material_id": _value(material, "id"),
        "supplier_id": supplier_id or _value(pricing, "supplier_id"),
    }


def calculate_estimate_totals(
    items: List[Dict[str, Any]], tax_rate: Optional[float] = 0
) -> Dict[str, Any]:
    """
    Recompute line totals and the estimate total.

    Args:
        items: Estimate line items
        tax_rate: Tax percentage applied to the subtotal

    Returns:
        Dictionary with new ``items`` (copies), ``subtotal``, ``tax_amount``
        and ``total_amount``
    """
    priced = []
    subtotal = 0.0
    for item in items or []:
        line = dict(item)
        quantity = _number(line.get("quantity"))
        unit_cost = _number(line.get("unit_cost"))
        line["total"] = round(quantity * unit_cost, 2)
        subtotal += line["total"]
        priced.append(line)

    subtotal = round(subtotal, 2)
    tax_amount = round(subtotal * _number(tax_rate) / 100, 2)
    return {
        "items": priced,
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "total_amount": round(subtotal + tax_amount, 2),
    }


class KitService(BaseService[MaterialKit]):
    """
    Service for material kits.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[MaterialKitRepository] = None,
        material_repository: Optional[MaterialLibraryRepository] = None,
        pricing_repository: Optional[MaterialPricingRepository] = None,
    ):
        super().__init__(session, repository=repository or MaterialKitRepository(session))
        self.material_repository = material_repository or MaterialLibraryRepository(session)
        self.pricing_repository = pricing_repository or MaterialPricingRepository(session)

    def list_kits(self, skip: int = 0, limit: int = 100) -> List[MaterialKit]:
        return self._guard_read("list kits", self.repository.list, skip=skip, limit=limit)

    def expand_kit(self, kit_id: str) -> List[Dict[str, Any]]:
        """
        Price every entry of a kit.

        For each entry the material is looked up in the library and the
        first pricing record that names a supplier is used.

        Args:
            kit_id: Material kit ID

        Returns:
            List of line items in kit order

        Raises:
            EntityNotFoundException: If the kit does not exist
        """
        kit = self._guard_read("expand kit", self.repository.get_by_id, kit_id)
        if not kit:
            raise EntityNotFoundException("MaterialKit", kit_id)

        lines = []
        for kit_item in kit.items or []:
            material_id = _value(kit_item, "material_id")
            material = self.material_repository.get_by_id(material_id) if material_id else None
            pricing = self.pricing_repository.first_with_supplier(material_id) if material_id else None
            if material is None:
                logger.warning(f"Kit {kit_id} references unknown material {material_id}")
            lines.append(
                build_kit_line_item(
                    kit_item,
                    material.item_name if material else None,
                    pricing,
                )
            )

        logger.info(f"Expanded kit {kit.kit_name} ({kit_id}) into {len(lines)} line items")
        return lines

    def scoping_line(self, material_id: str, supplier_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Price a single library material picked in the scoping wizard.

        With a supplier the line uses that supplier's price range; without
        one the first pricing record that names a supplier is used.

        Raises:
            EntityNotFoundException: If the material does not exist
        """
        material = self._guard_read("scoping line", self.material_repository.get_by_id, material_id)
        if not material:
            raise EntityNotFoundException("MaterialLibrary", material_id)

        if supplier_id:
            pricing = self._guard_read(
                "scoping line", self.pricing_repository.get_for_supplier, material_id, supplier_id
            )
        else:
            pricing = self._guard_read("scoping line", self.pricing_repository.first_with_supplier, material_id)
        if pricing is None:
            logger.warning(f"No pricing for material {material_id} (supplier {supplier_id})")
        return build_scoping_line_item(material, pricing, supplier_id)
