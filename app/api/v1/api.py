from fastapi import APIRouter
from app.api.v1.routes.payments import router as payments_router
from app.api.v1.routes.webhooks import router as webhooks_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(payments_router)
api_router.include_router(webhooks_router)
