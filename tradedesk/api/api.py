# File: tradedesk/api/api.py

from fastapi import APIRouter

from tradedesk.api.endpoints import estimates, inventory, jobs, kits, procurement

api_router = APIRouter()

api_router.include_router(estimates.router, prefix="/estimates", tags=["Estimates"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["Inventory"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(kits.router, prefix="/kits", tags=["Material Kits"])
api_router.include_router(procurement.router, prefix="/procurement", tags=["Procurement"])
