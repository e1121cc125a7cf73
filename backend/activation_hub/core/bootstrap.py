# activation_hub/core/bootstrap.py
"""
Startup tasks: make sure an operator can sign in to manage activation codes.
"""
import os
import logging
from activation_hub.models.user import User
from activation_hub.core.security import hash_password

logger = logging.getLogger("uvicorn.error")

async def _free_username(base: str) -> str:
    """Return ``base`` or ``base2``, ``base3``... whichever is not taken yet."""
    candidate, suffix = base, 1
    while await User.filter(username=candidate).exists():
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate

async def ensure_default_admin() -> None:
    """
    Create the first admin from ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD
    when no admin exists yet. Without ADMIN_PASSWORD nothing is created, so
    API key auth (ENABLE_API_KEY_AUTH) is then the only way into admin routes.
    """
    if await User.filter(role="admin").exists():
        return

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return

    username = await _free_username(os.getenv("ADMIN_USERNAME", "admin"))
    u = await User.create(
        username=username,
        email=os.getenv("ADMIN_EMAIL", "admin@example.com"),
        password_hash=hash_password(admin_password),
        role="admin",
    )
    logger.warning("[bootstrap] Created default admin -> username=%s id=%s", u.username, u.id)
