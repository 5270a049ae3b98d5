# File: tradedesk/api/deps.py
"""
FastAPI dependencies for TradeDesk.

Provides the database session, bearer-token authentication and service
injection for API routes. Users are managed by the identity layer; this
module only verifies the token it issued and passes the caller's identity
to services explicitly.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tradedesk.core.config import settings
from tradedesk.core.exceptions import TradeDeskException, UnauthorizedException
from tradedesk.core.security import decode_access_token
from tradedesk.db.session import get_db
from tradedesk.services.conversion_service import ConversionService
from tradedesk.services.estimate_service import EstimateService
from tradedesk.services.inventory_service import InventoryService
from tradedesk.services.job_service import JobService
from tradedesk.services.kit_service import KitService
from tradedesk.services.procurement_service import ProcurementService
from tradedesk.services.stock_ledger_service import StockLedgerService

logger = logging.getLogger(__name__)

# --- Authentication ---
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/token", auto_error=False
)


class CurrentUser(BaseModel):
    """Identity resolved from the bearer token."""
    id: str


def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> CurrentUser:
    """Get the caller's identity from the JWT bearer token."""
    try:
        if not token:
            raise UnauthorizedException()
        payload = decode_access_token(token)
    except UnauthorizedException as e:
        logger.warning("Rejected request with missing or invalid bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_dict(),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(id=str(payload["sub"]))


# --- Error mapping ---

STATUS_BY_CODE_PREFIX = {
    "DOMAIN_001": 404,
    "ESTIMATE_001": 409,
    "CONCURRENCY_001": 409,
    "LEDGER_": 500,
    "INTEGRATION_": 503,
    "VALIDATION_": 422,
    "SECURITY_": 401,
}


def http_status_for(exc: TradeDeskException) -> int:
    """HTTP status for a domain exception; business rule violations are 400."""
    for prefix, code in STATUS_BY_CODE_PREFIX.items():
        if exc.code.startswith(prefix):
            return code
    return 400


def to_http_exception(exc: TradeDeskException) -> HTTPException:
    return HTTPException(status_code=http_status_for(exc), detail=exc.to_dict())


# --- Services ---

def get_stock_ledger_service(db: Session = Depends(get_db)) -> StockLedgerService:
    """Injector providing StockLedgerService with session."""
    logger.debug("Providing StockLedgerService instance (deps).")
    return StockLedgerService(session=db)


def get_inventory_service(
    db: Session = Depends(get_db),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
) -> InventoryService:
    logger.debug("Providing InventoryService instance (deps).")
    return InventoryService(
        session=db,
        repository=ledger_service.inventory_repository,
        ledger_service=ledger_service,
    )


def get_conversion_service(
    db: Session = Depends(get_db),
    ledger_service: StockLedgerService = Depends(get_stock_ledger_service),
) -> ConversionService:
    logger.debug("Providing ConversionService instance (deps).")
    return ConversionService(session=db, ledger_service=ledger_service)


def get_kit_service(db: Session = Depends(get_db)) -> KitService:
    return KitService(session=db)


def get_estimate_service(
    db: Session = Depends(get_db),
    kit_service: KitService = Depends(get_kit_service),
) -> EstimateService:
    return EstimateService(session=db, kit_service=kit_service)


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    return JobService(session=db)


def get_procurement_service(db: Session = Depends(get_db)) -> ProcurementService:
    return ProcurementService(session=db)
