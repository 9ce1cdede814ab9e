from __future__ import annotations

from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from cohortpay.models.coupon import Coupon
from cohortpay.models.course import Course
from cohortpay.services.pricing import (
    CouponRecord,
    CourseRecord,
    applicability_from_json,
    find_coupon_by_code,
    normalize_code,
)


def course_record_from_row(row: Course) -> CourseRecord:
    return CourseRecord(
        id=str(row.id),
        title=str(row.title or ""),
        price=int(row.price or 0),
        original_price=int(row.original_price or 0),
    )


def coupon_record_from_row(row: Coupon) -> CouponRecord:
    return CouponRecord(
        id=str(row.id),
        code=str(row.code or ""),
        discount_type=str(row.discount_type or ""),
        value=int(row.value or 0),
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        usage_limit=int(row.usage_limit or 0),
        used_count=int(row.used_count or 0),
        status=str(row.status or ""),
        applicable_courses=applicability_from_json(row.applicable_courses),
    )


class SqlCatalog:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get_course_by_id(self, course_id: str) -> CourseRecord | None:
        cid = (course_id or "").strip()
        if not cid:
            return None
        row = self._db.query(Course).filter(Course.id == cid).first()
        return course_record_from_row(row) if row is not None else None

    def get_coupon_by_code(self, code: str) -> CouponRecord | None:
        wanted = normalize_code(code)
        if not wanted:
            return None
        row = self._db.query(Coupon).filter(func.upper(Coupon.code) == wanted).first()
        return coupon_record_from_row(row) if row is not None else None


class InMemoryCatalog:
    def __init__(self, courses: Iterable[CourseRecord] = (), coupons: Iterable[CouponRecord] = ()) -> None:
        self._courses: dict[str, CourseRecord] = {c.id: c for c in courses}
        self._coupons: list[CouponRecord] = list(coupons)

    def get_course_by_id(self, course_id: str) -> CourseRecord | None:
        return self._courses.get((course_id or "").strip())

    def get_coupon_by_code(self, code: str) -> CouponRecord | None:
        return find_coupon_by_code(self._coupons, code)
