# activation_hub/schemas/activation_code.py
"""
Pydantic schemas for activation code endpoints.
Field names are camelCase to match the admin panel and desktop clients.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ProductInfo(BaseModel):
    """
    What a code entitles its holder to. Extra keys are kept as-is.
    """
    name: str = "Default Product"
    version: str = "1.0.0"
    features: List[str] = Field(default_factory=lambda: ["basic"])

    class Config:
        extra = "allow"


class CreateCodeIn(BaseModel):
    """
    Request model for issuing one activation code.
    expirationHours takes precedence over expirationDays; both absent means the configured default.
    """
    expirationDays: Optional[float] = Field(default=None, ge=0, le=3650, description="Days until expiration")
    expirationHours: Optional[float] = Field(default=None, ge=0, le=87600, description="Hours until expiration")
    metadata: Dict[str, Any] = Field(default_factory=dict)  # customer email, order id, notes...
    productInfo: Optional[ProductInfo] = None


class VerifyCodeIn(BaseModel):
    """
    Request model for redeeming (or only checking) a code.
    Any JSON value is accepted; the service rejects blank, oversized or
    non-string codes with VALIDATION_ERROR (400) rather than a 422.
    """
    code: Any = None


class CleanupUnusedIn(BaseModel):
    minutesOld: int = Field(default=5, ge=1, le=1440, description="Delete unused codes older than this")


class CleanupExpiredIn(BaseModel):
    daysOld: int = Field(default=0, ge=0, le=3650, description="Only codes expired at least this many days ago")


class CleanupStaleIn(BaseModel):
    daysOld: int = Field(default=30, ge=0, le=3650, description="Only codes expired at least this many days ago")


class CodeOut(BaseModel):
    """Full code view (create / detail)."""
    id: str
    code: str
    createdAt: str
    expiresAt: str
    isUsed: bool
    usedAt: Optional[str] = None
    isExpired: bool
    productInfo: Dict[str, Any]
    metadata: Dict[str, Any]


class CodeListItem(BaseModel):
    """List view: the code itself is masked."""
    id: str
    codePreview: str
    createdAt: str
    expiresAt: str
    isUsed: bool
    usedAt: Optional[str] = None
    status: str
    productInfo: Dict[str, Any]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class CodeListOut(BaseModel):
    codes: List[CodeListItem]
    pagination: Pagination


class ActivationOut(BaseModel):
    """Successful redemption."""
    id: str
    code: str
    productInfo: Dict[str, Any]
    metadata: Dict[str, Any]
    activatedAt: str
    expiresAt: str
    remainingSeconds: int  # Validity left at the moment of activation


class StatsOut(BaseModel):
    total: int
    used: int
    unused: int
    expired: int
    active: int
    usageRate: float  # percent
    expirationRate: float  # percent
