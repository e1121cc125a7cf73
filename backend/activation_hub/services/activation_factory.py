"""
Activation Service Factory

Builds the lifecycle service from settings: Tortoise store, optionally
wrapped in a fallback to an in-process store.
"""
import datetime as dt
import logging
from typing import Optional

from activation_hub.config import settings
from .activation_base import ActivationCodeStore
from .activation_service import ActivationCodeService
from .activation_store_fallback import FallbackActivationCodeStore
from .activation_store_memory import InMemoryActivationCodeStore
from .activation_store_tortoise import TortoiseActivationCodeStore

logger = logging.getLogger("uvicorn.error")

_service: Optional[ActivationCodeService] = None


def build_store() -> ActivationCodeStore:
    store: ActivationCodeStore = TortoiseActivationCodeStore()
    if settings.enable_fallback_store:
        store = FallbackActivationCodeStore(store, InMemoryActivationCodeStore())
    logger.info("[activation] using %s store", store.name)
    return store


def get_activation_service() -> ActivationCodeService:
    """
    Process-wide lifecycle service (FastAPI dependency).

    Tests replace it through app.dependency_overrides.
    """
    global _service
    if _service is None:
        _service = ActivationCodeService(
            store=build_store(),
            cleanup_age=dt.timedelta(minutes=settings.cleanup_unused_minutes),
            opportunistic_cleanup=settings.enable_opportunistic_cleanup,
            default_expiration_days=settings.default_expiration_days,
        )
    return _service
