from fastapi import APIRouter
from app.api.v1.endpoints import alerts, billing, dashboard, jobs, pos, registry, wallet

router = APIRouter()

router.include_router(pos.router, prefix="/pos", tags=["pos"])
router.include_router(wallet.router, prefix="/wallets", tags=["wallets"])
router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
router.include_router(registry.router, tags=["registry"])
router.include_router(billing.router, prefix="/billing", tags=["billing"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
