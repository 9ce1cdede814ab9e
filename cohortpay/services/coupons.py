from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from cohortpay.models.coupon import Coupon
from cohortpay.models.course import Course
from cohortpay.schemas.coupon import CouponCreate, CouponUpdate
from cohortpay.services.errors import CouponNotFound, CouponRejected, InvalidInput, RejectReason
from cohortpay.services.pricing import (
    COUPON_STATUSES,
    DISCOUNT_TYPES,
    CourseSubset,
    applicability_from_json,
    normalize_code,
)


logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def get_coupon(db: Session, coupon_id: str) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == (coupon_id or "").strip()).first()
    if coupon is None:
        raise CouponNotFound(coupon_id)
    return coupon


def _find_by_code(db: Session, code: str) -> Coupon | None:
    return db.query(Coupon).filter(func.upper(Coupon.code) == normalize_code(code)).first()


def _validate_terms(
    *,
    discount_type: str,
    value: int,
    valid_from: date,
    valid_until: date,
    usage_limit: int,
    used_count: int,
    status: str,
) -> None:
    if discount_type not in DISCOUNT_TYPES:
        raise InvalidInput(f"Unsupported discount type: {discount_type}")
    if discount_type == "percentage" and not (0 < int(value) <= 100):
        raise InvalidInput("Percentage discount must be between 0 and 100")
    if discount_type == "flat" and int(value) < 0:
        raise InvalidInput("Flat discount must be >= 0")
    if valid_from > valid_until:
        raise InvalidInput("valid_from must be on or before valid_until")
    if int(usage_limit) <= 0:
        raise InvalidInput("usage_limit must be positive")
    if int(used_count) > int(usage_limit):
        raise InvalidInput("usage_limit cannot be lower than the current usage count")
    if status not in COUPON_STATUSES:
        raise InvalidInput(f"Unsupported status: {status}")


def _normalize_applicable_courses(db: Session, raw: Any) -> list[str] | None:
    applicability = applicability_from_json(raw)
    if not isinstance(applicability, CourseSubset):
        return None
    ids = applicability.to_json()
    if not ids:
        raise InvalidInput("applicable_courses must list at least one course")
    known = {cid for (cid,) in db.query(Course.id).filter(Course.id.in_(ids)).all()}
    missing = [cid for cid in ids if cid not in known]
    if missing:
        raise InvalidInput(f"Unknown course ids: {', '.join(missing)}")
    return ids


def _status_for_date(status: str, valid_until: date, today: date) -> str:
    if status == "active" and today > valid_until:
        return "expired"
    return status


def create_coupon(db: Session, payload: CouponCreate, today: date | None = None) -> Coupon:
    today = today or utc_today()
    code = normalize_code(payload.code)
    if not code:
        raise InvalidInput("Invalid code")
    if _find_by_code(db, code) is not None:
        raise InvalidInput("Coupon already exists")

    valid_from = payload.valid_from or today
    valid_until = payload.valid_until or (valid_from + timedelta(days=DEFAULT_VALIDITY_DAYS))
    usage_limit = int(payload.usage_limit)
    _validate_terms(
        discount_type=payload.discount_type,
        value=payload.value,
        valid_from=valid_from,
        valid_until=valid_until,
        usage_limit=usage_limit,
        used_count=0,
        status=payload.status,
    )
    applicable = _normalize_applicable_courses(db, payload.applicable_courses)

    coupon = Coupon(
        id=f"coupon-{uuid4().hex[:12]}",
        code=code,
        discount_type=payload.discount_type,
        value=int(payload.value),
        valid_from=valid_from,
        valid_until=valid_until,
        usage_limit=usage_limit,
        used_count=0,
        status=_status_for_date(payload.status, valid_until, today),
        applicable_courses=applicable,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    logger.info("coupons.create id=%s code=%s type=%s value=%s", coupon.id, coupon.code, coupon.discount_type, coupon.value)
    return coupon


def update_coupon(db: Session, coupon_id: str, payload: CouponUpdate, today: date | None = None) -> Coupon:
    today = today or utc_today()
    coupon = get_coupon(db, coupon_id)
    data = payload.model_dump(exclude_unset=True)

    if "code" in data:
        code = normalize_code(data["code"])
        if not code:
            raise InvalidInput("Invalid code")
        other = _find_by_code(db, code)
        if other is not None and other.id != coupon.id:
            raise InvalidInput("Coupon already exists")
        data["code"] = code

    merged = {
        "discount_type": data.get("discount_type") or coupon.discount_type,
        "value": data["value"] if data.get("value") is not None else coupon.value,
        "valid_from": data.get("valid_from") or coupon.valid_from,
        "valid_until": data.get("valid_until") or coupon.valid_until,
        "usage_limit": data["usage_limit"] if data.get("usage_limit") is not None else coupon.usage_limit,
        "used_count": int(coupon.used_count or 0),
        "status": data.get("status") or coupon.status,
    }
    _validate_terms(**merged)

    if "applicable_courses" in data:
        data["applicable_courses"] = _normalize_applicable_courses(db, data["applicable_courses"])

    for key, value in data.items():
        if key in merged and value is None:
            continue
        setattr(coupon, key, value)
    coupon.status = _status_for_date(merged["status"], merged["valid_until"], today)

    db.commit()
    db.refresh(coupon)
    logger.info("coupons.update id=%s fields=%s", coupon.id, ",".join(sorted(data.keys())))
    return coupon


def delete_coupon(db: Session, coupon_id: str) -> None:
    coupon = get_coupon(db, coupon_id)
    db.delete(coupon)
    db.commit()
    logger.info("coupons.delete id=%s code=%s", coupon_id, coupon.code)


def toggle_coupon_status(db: Session, coupon_id: str, today: date | None = None) -> Coupon:
    today = today or utc_today()
    coupon = get_coupon(db, coupon_id)
    if coupon.status == "active":
        coupon.status = "disabled"
    else:
        if today > coupon.valid_until:
            raise InvalidInput("Cannot reactivate an expired coupon")
        coupon.status = "active"
    db.commit()
    db.refresh(coupon)
    logger.info("coupons.toggle id=%s status=%s", coupon.id, coupon.status)
    return coupon


def expire_stale_coupons(db: Session, today: date | None = None) -> int:
    today = today or utc_today()
    result = db.execute(
        update(Coupon)
        .where(Coupon.status == "active", Coupon.valid_until < today)
        .values(status="expired")
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = int(result.rowcount or 0)
    if count:
        logger.info("coupons.expire count=%s today=%s", count, today.isoformat())
    return count


def list_coupons(db: Session, status: str | None = None, today: date | None = None) -> list[Coupon]:
    expire_stale_coupons(db, today=today)
    query = db.query(Coupon)
    if status:
        query = query.filter(Coupon.status == status.strip().lower())
    return query.order_by(Coupon.created_at.desc(), Coupon.id.asc()).all()


def coupon_stats(db: Session) -> dict[str, int]:
    total = int(db.query(func.count(Coupon.id)).scalar() or 0)
    active = int(db.query(func.count(Coupon.id)).filter(Coupon.status == "active").scalar() or 0)
    total_uses = int(db.query(func.coalesce(func.sum(Coupon.used_count), 0)).scalar() or 0)
    return {"total": total, "active": active, "total_uses": total_uses}


def record_coupon_usage(db: Session, coupon_id: str, *, commit: bool = True) -> int:
    """Increment ``used_count`` for a confirmed redemption and return the new count.

    The increment is a single conditional UPDATE, so concurrent redemptions
    can never push ``used_count`` past ``usage_limit``.
    """
    result = db.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id, Coupon.used_count < Coupon.usage_limit)
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        if db.query(Coupon.id).filter(Coupon.id == coupon_id).first() is None:
            raise CouponNotFound(coupon_id)
        raise CouponRejected(RejectReason.USAGE_LIMIT_REACHED)
    if commit:
        db.commit()
    used = db.query(Coupon.used_count).filter(Coupon.id == coupon_id).scalar()
    logger.info("coupons.usage.recorded id=%s used_count=%s", coupon_id, used)
    return int(used or 0)
