"""
Activation code error taxonomy.

Every failure of the lifecycle service is one of these; the HTTP layer maps
``code`` to a status and ``payload()`` to the response detail.
"""
import datetime as dt
from typing import Optional


class ActivationError(Exception):
    """Base class for activation code failures."""
    code = "ACTIVATION_ERROR"
    default_message = "Activation code operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ActivationError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class NotFoundError(ActivationError):
    code = "CODE_NOT_FOUND"
    default_message = "Activation code not found"


class AlreadyUsedError(ActivationError):
    code = "CODE_ALREADY_USED"
    default_message = "Activation code has already been used"

    def __init__(self, used_at: Optional[dt.datetime], message: Optional[str] = None):
        self.used_at = used_at
        super().__init__(message)

    def payload(self) -> dict:
        data = super().payload()
        data["usedAt"] = self.used_at.isoformat() if self.used_at else None
        return data


class ExpiredError(ActivationError):
    code = "CODE_EXPIRED"
    default_message = "Activation code has expired"

    def __init__(self, expires_at: dt.datetime, message: Optional[str] = None):
        self.expires_at = expires_at
        super().__init__(message)

    def payload(self) -> dict:
        data = super().payload()
        data["expiresAt"] = self.expires_at.isoformat()
        return data


class DuplicateCodeError(ActivationError):
    code = "DUPLICATE_CODE"
    default_message = "Generated activation code collided with an existing one"


class StorageError(ActivationError):
    code = "STORAGE_ERROR"
    default_message = "Activation code storage is unavailable"
