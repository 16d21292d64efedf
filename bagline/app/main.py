from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bagline.app.api.v1.api import api_router
from bagline.app.core.config import settings
from bagline.app.core.logging import configure_logging

configure_logging()

app = FastAPI(title="Bagline Production & Inventory")

# ─── CORS ───────────────────────────────────────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)

app.include_router(api_router)
