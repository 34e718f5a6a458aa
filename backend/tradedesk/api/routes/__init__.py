from fastapi import APIRouter

from tradedesk.api.routes import analytics, exports, health, ledger, outstanding, payments


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(analytics.router)
api_router.include_router(exports.router)
api_router.include_router(ledger.router)
api_router.include_router(outstanding.router)
api_router.include_router(payments.router)
