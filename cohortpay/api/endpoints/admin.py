from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cohortpay.api.deps import get_today
from cohortpay.core.auth import require_basic_auth
from cohortpay.core.database import get_db
from cohortpay.schemas.coupon import CouponCreate, CouponOut, CouponStats, CouponUpdate
from cohortpay.services.coupons import (
    coupon_stats,
    create_coupon,
    delete_coupon,
    expire_stale_coupons,
    get_coupon,
    list_coupons,
    toggle_coupon_status,
    update_coupon,
)
from cohortpay.services.errors import CouponNotFound, InvalidInput


router = APIRouter(dependencies=[Depends(require_basic_auth)])


@router.get("/admin/coupons", response_model=list[CouponOut])
async def admin_list_coupons(
    status: str | None = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    return list_coupons(db, status=status, today=today)


@router.get("/admin/coupons/stats", response_model=CouponStats)
async def admin_coupon_stats(db: Session = Depends(get_db), today: date = Depends(get_today)) -> dict:
    expire_stale_coupons(db, today=today)
    return coupon_stats(db)


@router.post("/admin/coupons", response_model=CouponOut, status_code=201)
async def admin_create_coupon(
    body: CouponCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        return create_coupon(db, body, today=today)
    except InvalidInput as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/admin/coupons/expire")
async def admin_expire_coupons(db: Session = Depends(get_db), today: date = Depends(get_today)) -> dict:
    return {"ok": True, "expired": expire_stale_coupons(db, today=today)}


@router.get("/admin/coupons/{coupon_id}", response_model=CouponOut)
async def admin_get_coupon(coupon_id: str, db: Session = Depends(get_db)):
    try:
        return get_coupon(db, coupon_id)
    except CouponNotFound:
        raise HTTPException(status_code=404, detail="Coupon not found")


@router.put("/admin/coupons/{coupon_id}", response_model=CouponOut)
async def admin_update_coupon(
    coupon_id: str,
    body: CouponUpdate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        return update_coupon(db, coupon_id, body, today=today)
    except CouponNotFound:
        raise HTTPException(status_code=404, detail="Coupon not found")
    except InvalidInput as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))


@router.delete("/admin/coupons/{coupon_id}")
async def admin_delete_coupon(coupon_id: str, db: Session = Depends(get_db)) -> dict:
    try:
        delete_coupon(db, coupon_id)
    except CouponNotFound:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return {"ok": True}


@router.put("/admin/coupons/{coupon_id}/toggle", response_model=CouponOut)
async def admin_toggle_coupon(
    coupon_id: str,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        return toggle_coupon_status(db, coupon_id, today=today)
    except CouponNotFound:
        raise HTTPException(status_code=404, detail="Coupon not found")
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))
