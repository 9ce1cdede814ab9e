"""Coupon and pricing resolution for course checkout.

The pipeline is ``find_coupon_by_code -> check_coupon -> calculate_discount``.
Everything here is pure: the catalog and the current date are passed in by the
caller, and the usage counter is only touched by the payment confirmation step
(see ``cohortpay.services.coupons.record_coupon_usage``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

from cohortpay.services.errors import (
    NOT_YET_VALID_MESSAGE,
    REJECTION_MESSAGES,
    CouponRejected,
    CourseNotFound,
    InvalidInput,
    RejectReason,
)


DISCOUNT_TYPES: set[str] = {"percentage", "flat"}
COUPON_STATUSES: set[str] = {"active", "expired", "disabled"}

PAYMENT_METHOD_MONTHS: dict[str, int] = {
    "full": 1,
    "upi": 1,
    "emi-3": 3,
    "emi-6": 6,
}


@dataclass(frozen=True)
class AllCourses:
    kind: str = field(default="all", init=False)

    def includes(self, course_id: str) -> bool:
        return True

    def to_json(self) -> None:
        return None


@dataclass(frozen=True)
class CourseSubset:
    course_ids: frozenset[str]
    kind: str = field(default="subset", init=False)

    def includes(self, course_id: str) -> bool:
        return course_id in self.course_ids

    def to_json(self) -> list[str]:
        return sorted(self.course_ids)


Applicability = AllCourses | CourseSubset


def applicability_from_json(raw: object) -> Applicability:
    if raw is None:
        return AllCourses()
    if isinstance(raw, str):
        if raw.strip().lower() == "all":
            return AllCourses()
        raise InvalidInput("applicable_courses must be 'all' or a list of course ids")
    if isinstance(raw, (list, tuple, set, frozenset)):
        ids = {str(c).strip() for c in raw if str(c or "").strip()}
        return CourseSubset(frozenset(ids))
    raise InvalidInput("applicable_courses must be 'all' or a list of course ids")


@dataclass(frozen=True)
class CourseRecord:
    id: str
    title: str
    price: int
    original_price: int


@dataclass(frozen=True)
class CouponRecord:
    id: str
    code: str
    discount_type: str
    value: int
    valid_from: date
    valid_until: date
    usage_limit: int
    used_count: int
    status: str
    applicable_courses: Applicability = AllCourses()


@dataclass(frozen=True)
class PriceQuote:
    course_id: str
    price: int
    discount: int
    final_price: int
    applicable: bool
    reason: RejectReason | None = None
    message: str | None = None
    coupon: CouponRecord | None = None

    def as_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "price": self.price,
            "applicable": self.applicable,
            "reason": (self.reason.value if self.reason else None),
            "message": self.message,
            "discount": self.discount,
            "final_price": self.final_price,
            "coupon_code": (self.coupon.code if self.coupon else None),
        }


class Catalog(Protocol):
    def get_course_by_id(self, course_id: str) -> CourseRecord | None: ...

    def get_coupon_by_code(self, code: str) -> CouponRecord | None: ...


def normalize_code(code: str | None) -> str:
    return str(code or "").strip().upper()


def find_coupon_by_code(coupons: Iterable[CouponRecord], code: str | None) -> CouponRecord | None:
    wanted = normalize_code(code)
    if not wanted:
        return None
    for c in coupons:
        if normalize_code(c.code) == wanted:
            return c
    return None


def check_coupon(coupon: CouponRecord, course_id: str, today: date) -> None:
    """Raise ``CouponRejected`` for the first failing rule.

    Rules are checked in a fixed order so callers always see the same reason:
    status, date window (inclusive), usage cap, course applicability.
    """
    if coupon.status != "active":
        raise CouponRejected(RejectReason.INACTIVE)
    if today < coupon.valid_from:
        raise CouponRejected(RejectReason.OUT_OF_WINDOW, NOT_YET_VALID_MESSAGE)
    if today > coupon.valid_until:
        raise CouponRejected(RejectReason.OUT_OF_WINDOW)
    if coupon.used_count >= coupon.usage_limit:
        raise CouponRejected(RejectReason.USAGE_LIMIT_REACHED)
    if not coupon.applicable_courses.includes(course_id):
        raise CouponRejected(RejectReason.NOT_APPLICABLE)


def calculate_discount(price: int, coupon: CouponRecord) -> tuple[int, int]:
    """Return ``(discount, final_price)`` for an already-validated coupon."""
    price = int(price)
    if price < 0:
        raise InvalidInput("price must be >= 0")

    value = int(coupon.value)
    if coupon.discount_type == "percentage":
        # Integer floor division keeps the rounding exact.
        discount = (price * value) // 100
    elif coupon.discount_type == "flat":
        discount = value
    else:
        raise InvalidInput(f"Unsupported discount type: {coupon.discount_type}")

    discount = max(0, min(discount, price))
    final_price = max(0, price - discount)
    return discount, final_price


def resolve_discount(course: CourseRecord, coupon: CouponRecord, today: date) -> PriceQuote:
    try:
        check_coupon(coupon, course.id, today)
    except CouponRejected as exc:
        return PriceQuote(
            course_id=course.id,
            price=int(course.price),
            discount=0,
            final_price=int(course.price),
            applicable=False,
            reason=exc.reason,
            message=exc.message,
            coupon=coupon,
        )

    discount, final_price = calculate_discount(course.price, coupon)
    return PriceQuote(
        course_id=course.id,
        price=int(course.price),
        discount=discount,
        final_price=final_price,
        applicable=True,
        coupon=coupon,
    )


def full_price_quote(course: CourseRecord) -> PriceQuote:
    return PriceQuote(
        course_id=course.id,
        price=int(course.price),
        discount=0,
        final_price=int(course.price),
        applicable=False,
    )


def quote_checkout(catalog: Catalog, course_id: str, code: str | None, today: date) -> PriceQuote:
    course = catalog.get_course_by_id(course_id)
    if course is None:
        raise CourseNotFound(course_id)

    if not normalize_code(code):
        return full_price_quote(course)

    coupon = catalog.get_coupon_by_code(code)
    if coupon is None:
        return PriceQuote(
            course_id=course.id,
            price=int(course.price),
            discount=0,
            final_price=int(course.price),
            applicable=False,
            reason=RejectReason.NOT_FOUND,
            message=REJECTION_MESSAGES[RejectReason.NOT_FOUND],
        )
    return resolve_discount(course, coupon, today)


def emi_installment(final_price: int, months: int, interest_rate: float = 0.05) -> int:
    months = int(months)
    if months <= 0:
        raise InvalidInput("months must be positive")
    if months == 1:
        return int(final_price)
    total = Decimal(int(final_price)) * (Decimal("1") + Decimal(str(interest_rate)))
    return int((total / Decimal(months)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def installment_for_method(final_price: int, method: str, interest_rate: float = 0.05) -> tuple[int, int]:
    """Return ``(months, amount_per_installment)`` for a payment method."""
    months = PAYMENT_METHOD_MONTHS.get((method or "").strip().lower())
    if months is None:
        raise InvalidInput(f"Unsupported payment method: {method}")
    return months, emi_installment(final_price, months, interest_rate=interest_rate)


def savings_percent(price: int, original_price: int) -> int:
    original = int(original_price or 0)
    if original <= 0:
        return 0
    saved = original - int(price or 0)
    if saved <= 0:
        return 0
    return (saved * 100) // original
