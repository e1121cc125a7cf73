"""
Services Module

Activation code lifecycle:
- Code generation (code_generator)
- Storage port and adapters: Tortoise ORM / in-memory / primary-secondary fallback
- Lifecycle service: create, verify-and-consume, cleanup, stats, listing
"""
from .activation_base import (
    ActivationCodeRecord,
    ActivationCodeStore,
    CodeCounts,
    CodePage,
    CodeStatus,
)
from .activation_errors import (
    ActivationError,
    AlreadyUsedError,
    DuplicateCodeError,
    ExpiredError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .activation_factory import get_activation_service
from .activation_service import ActivationCodeService, CodeListing, CodeStats, ttl_from, utc_now
from .activation_store_fallback import FallbackActivationCodeStore
from .activation_store_memory import InMemoryActivationCodeStore
from .activation_store_tortoise import TortoiseActivationCodeStore
from .code_generator import generate_activation_code, mask_code, normalize_code

__all__ = [
    "ActivationCodeRecord",
    "ActivationCodeStore",
    "CodeCounts",
    "CodePage",
    "CodeStatus",
    "ActivationError",
    "AlreadyUsedError",
    "DuplicateCodeError",
    "ExpiredError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "get_activation_service",
    "ActivationCodeService",
    "CodeListing",
    "CodeStats",
    "ttl_from",
    "utc_now",
    "FallbackActivationCodeStore",
    "InMemoryActivationCodeStore",
    "TortoiseActivationCodeStore",
    "generate_activation_code",
    "mask_code",
    "normalize_code",
]
