# activation_hub/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from activation_hub.config import settings
from activation_hub.core.db import init_db, close_db
from activation_hub.core.bootstrap import ensure_default_admin

from activation_hub.api.v1.routers import auth, activation_codes

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie); desktop clients call verify without an Origin header
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-ID", "Cookie"],
    max_age=86400,
)

@app.on_event("startup")
async def on_startup():
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    if settings.enable_api_key_auth and not settings.api_key:
        logger.warning("[startup] ENABLE_API_KEY_AUTH is on but API_KEY is not set -> API key auth rejects every key")
    logger.info(
        "[startup] rate limiting=%s backend=%s, opportunistic cleanup=%s (%d min)",
        settings.enable_rate_limiting, settings.rate_limit_backend,
        settings.enable_opportunistic_cleanup, settings.cleanup_unused_minutes,
    )

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(activation_codes.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"ok": True}
