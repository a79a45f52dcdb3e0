from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.log_config import configure_logging

DEV_ORIGINS = ["http://127.0.0.1:3000", "http://localhost:3000"]


def cors_origins() -> list[str]:
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    return origins or DEV_ORIGINS


configure_logging()

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok", "sandbox": settings.PAYMENTS_SANDBOX}
