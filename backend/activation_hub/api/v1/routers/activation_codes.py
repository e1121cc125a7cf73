from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    status,
)

from activation_hub.api.v1.deps import get_optional_user, rate_limited, require_admin
from activation_hub.config import settings
from activation_hub.models.user import User
from activation_hub.schemas.activation_code import (
    ActivationOut,
    CleanupExpiredIn,
    CleanupStaleIn,
    CleanupUnusedIn,
    CodeListItem,
    CodeListOut,
    CodeOut,
    CreateCodeIn,
    Pagination,
    StatsOut,
    VerifyCodeIn,
)
from activation_hub.services.activation_base import ActivationCodeRecord, CodeStatus
from activation_hub.services.activation_errors import (
    ActivationError,
    AlreadyUsedError,
    DuplicateCodeError,
    ExpiredError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from activation_hub.services.activation_factory import get_activation_service
from activation_hub.services.activation_service import ActivationCodeService, ttl_from
from activation_hub.services.code_generator import mask_code

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/activation-codes", tags=["activation-codes"])

_HTTP_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyUsedError: status.HTTP_409_CONFLICT,
    ExpiredError: status.HTTP_410_GONE,
    DuplicateCodeError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _http_error(exc: ActivationError) -> HTTPException:
    """Map a lifecycle failure to an HTTPException carrying its payload."""
    code = _HTTP_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("[activation] %s: %s", exc.code, exc.message)
    return HTTPException(status_code=code, detail=exc.payload())


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _code_out(r: ActivationCodeRecord, now: dt.datetime) -> dict:
    return CodeOut(
        id=r.id,
        code=r.code,
        createdAt=_iso(r.created_at),
        expiresAt=_iso(r.expires_at),
        isUsed=r.is_used,
        usedAt=_iso(r.used_at),
        isExpired=r.is_expired(now),
        productInfo=r.product_info,
        metadata=r.metadata,
    ).model_dump()


def _list_item(r: ActivationCodeRecord, now: dt.datetime) -> CodeListItem:
    return CodeListItem(
        id=r.id,
        codePreview=mask_code(r.code),
        createdAt=_iso(r.created_at),
        expiresAt=_iso(r.expires_at),
        isUsed=r.is_used,
        usedAt=_iso(r.used_at),
        status=r.status(now).value,
        productInfo=r.product_info,
    )


def _cleanup_preview_item(r: ActivationCodeRecord, now: dt.datetime) -> dict:
    return {
        "id": r.id,
        "codePreview": mask_code(r.code),
        "createdAt": _iso(r.created_at),
        "expiresAt": _iso(r.expires_at),
        "minutesSinceCreation": int((now - r.created_at).total_seconds() // 60),
    }


# ==============================================================================
# I. Issue / list / stats (admin)
# ==============================================================================
@router.post("", dependencies=[Depends(require_admin)])
async def create_code(
    body: CreateCodeIn,
    service: ActivationCodeService = Depends(get_activation_service),
):
    """
    Issue one activation code (admin only).

    Unused codes older than the cleanup window are purged first. The full
    code is returned here and by the detail route only.

    Raises:
        HTTPException (409): DUPLICATE_CODE, the generated code already existed
        HTTPException (500): STORAGE_ERROR
    """
    ttl = ttl_from(body.expirationDays, body.expirationHours, settings.default_expiration_days)
    product_info = body.productInfo.model_dump() if body.productInfo else None
    try:
        record = await service.create(ttl=ttl, metadata=body.metadata, product_info=product_info)
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {"success": True, "data": _code_out(record, service.clock())}


@router.get("", dependencies=[Depends(require_admin)])
async def list_codes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: CodeStatus = Query(CodeStatus.ALL, alias="status"),
    service: ActivationCodeService = Depends(get_activation_service),
):
    """
    Paginated listing, newest first, filtered by derived status
    (all / used / unused / expired / active). Codes are masked.
    """
    try:
        listing = await service.list(status_filter, page, limit)
    except ActivationError as exc:
        raise _http_error(exc) from exc
    now = service.clock()
    out = CodeListOut(
        codes=[_list_item(r, now) for r in listing.items],
        pagination=Pagination(
            page=listing.page,
            limit=listing.limit,
            total=listing.total,
            totalPages=listing.total_pages,
        ),
    )
    return {"success": True, "data": out.model_dump()}


@router.get("/stats", dependencies=[Depends(require_admin)])
async def code_stats(service: ActivationCodeService = Depends(get_activation_service)):
    """Counts by derived status plus usage / expiration rates in percent."""
    try:
        stats = await service.stats()
    except ActivationError as exc:
        raise _http_error(exc) from exc
    out = StatsOut(
        total=stats.total,
        used=stats.used,
        unused=stats.unused,
        expired=stats.expired,
        active=stats.active,
        usageRate=stats.usage_rate,
        expirationRate=stats.expiration_rate,
    )
    return {"success": True, "data": out.model_dump()}


# ==============================================================================
# II. Redemption (public, rate limited)
# ==============================================================================
@router.post("/verify", dependencies=[Depends(rate_limited("verify"))])
async def verify_code(
    body: VerifyCodeIn,
    current_user: Optional[User] = Depends(get_optional_user),
    service: ActivationCodeService = Depends(get_activation_service),
):
    """
    Redeem a code. Succeeds at most once per code.

    If the caller is signed in, the redeeming user is recorded.

    Raises:
        HTTPException (400): VALIDATION_ERROR (missing, blank, oversized or non-string code)
        HTTPException (404): CODE_NOT_FOUND
        HTTPException (409): CODE_ALREADY_USED, with usedAt
        HTTPException (410): CODE_EXPIRED, with expiresAt
    """
    used_by = str(current_user.id) if current_user else None
    try:
        record = await service.verify_and_consume(body.code, used_by=used_by)
    except ActivationError as exc:
        raise _http_error(exc) from exc

    remaining = max(0, int((record.expires_at - record.used_at).total_seconds()))
    out = ActivationOut(
        id=record.id,
        code=record.code,
        productInfo=record.product_info,
        metadata=record.metadata,
        activatedAt=_iso(record.used_at),
        expiresAt=_iso(record.expires_at),
        remainingSeconds=remaining,
    )
    return {"success": True, "data": out.model_dump()}


@router.post("/check", dependencies=[Depends(rate_limited("verify"))])
async def check_code(
    body: VerifyCodeIn,
    service: ActivationCodeService = Depends(get_activation_service),
):
    """Report whether a code could be redeemed right now, without redeeming it."""
    try:
        record = await service.check(body.code)
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {
        "success": True,
        "data": {
            "valid": True,
            "expiresAt": _iso(record.expires_at),
            "productInfo": record.product_info,
        },
    }


# ==============================================================================
# III. Cleanup (admin)
#     cleanup-unused: never-redeemed codes older than minutesOld
#     cleanup-expired / cleanup: unused codes past expiry (+ daysOld grace)
#     Used codes are never removed by any of these.
# ==============================================================================
@router.get("/cleanup-unused", dependencies=[Depends(require_admin)])
async def preview_cleanup_unused(
    minutesOld: int = Query(5, ge=1, le=1440),
    service: ActivationCodeService = Depends(get_activation_service),
):
    """Codes that POST /cleanup-unused would delete."""
    try:
        rows = await service.preview_cleanup(dt.timedelta(minutes=minutesOld))
    except ActivationError as exc:
        raise _http_error(exc) from exc
    now = service.clock()
    return {
        "success": True,
        "data": {
            "count": len(rows),
            "minutesOld": minutesOld,
            "cutoffTime": _iso(now - dt.timedelta(minutes=minutesOld)),
            "codes": [_cleanup_preview_item(r, now) for r in rows],
        },
    }


@router.post("/cleanup-unused", dependencies=[Depends(require_admin)])
async def cleanup_unused(
    body: Optional[CleanupUnusedIn] = None,
    service: ActivationCodeService = Depends(get_activation_service),
):
    body = body or CleanupUnusedIn()
    try:
        deleted = await service.cleanup(dt.timedelta(minutes=body.minutesOld))
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {
        "success": True,
        "data": {
            "deletedCount": deleted,
            "minutesOld": body.minutesOld,
            "cleanupTime": _iso(service.clock()),
        },
    }


@router.get("/cleanup-expired", dependencies=[Depends(require_admin)])
async def preview_cleanup_expired(
    daysOld: int = Query(0, ge=0, le=3650),
    service: ActivationCodeService = Depends(get_activation_service),
):
    """Expired, never-redeemed codes that POST /cleanup-expired would delete."""
    try:
        rows = await service.preview_expired(dt.timedelta(days=daysOld))
    except ActivationError as exc:
        raise _http_error(exc) from exc
    now = service.clock()
    return {
        "success": True,
        "data": {
            "count": len(rows),
            "daysOld": daysOld,
            "codes": [_cleanup_preview_item(r, now) for r in rows],
        },
    }


@router.post("/cleanup-expired", dependencies=[Depends(require_admin)])
async def cleanup_expired(
    body: Optional[CleanupExpiredIn] = None,
    service: ActivationCodeService = Depends(get_activation_service),
):
    body = body or CleanupExpiredIn()
    return await _run_expired_cleanup(service, body.daysOld)


@router.post("/cleanup", dependencies=[Depends(require_admin)])
async def cleanup_stale(
    body: Optional[CleanupStaleIn] = None,
    service: ActivationCodeService = Depends(get_activation_service),
):
    """Long-stale variant: unused codes expired more than daysOld (default 30) days ago."""
    body = body or CleanupStaleIn()
    return await _run_expired_cleanup(service, body.daysOld)


async def _run_expired_cleanup(service: ActivationCodeService, days_old: int) -> dict:
    try:
        deleted = await service.cleanup_expired(dt.timedelta(days=days_old))
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {
        "success": True,
        "data": {
            "deletedCount": deleted,
            "daysOld": days_old,
            "cleanupTime": _iso(service.clock()),
        },
    }


# ==============================================================================
# IV. Single code (admin)
# ==============================================================================
@router.get("/{code_id}", dependencies=[Depends(require_admin)])
async def get_code(
    code_id: str,
    service: ActivationCodeService = Depends(get_activation_service),
):
    """Full detail of one code, including the code string."""
    try:
        record = await service.get(code_id)
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {"success": True, "data": _code_out(record, service.clock())}


@router.delete("/{code_id}", dependencies=[Depends(require_admin)])
async def delete_code(
    code_id: str,
    service: ActivationCodeService = Depends(get_activation_service),
):
    """
    Hard-delete one code. The code string stays reserved in the issued-code ledger.

    Raises:
        HTTPException (404): CODE_NOT_FOUND
    """
    try:
        await service.delete(code_id)
    except ActivationError as exc:
        raise _http_error(exc) from exc
    return {"success": True, "data": {"ok": True}}
