from __future__ import annotations

from enum import Enum


class RejectReason(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    OUT_OF_WINDOW = "out_of_window"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    NOT_APPLICABLE = "not_applicable"


class CouponRejected(ValueError):
    """A coupon that cannot be applied. Recoverable: checkout continues at full price."""

    def __init__(self, reason: RejectReason, message: str | None = None) -> None:
        self.reason = RejectReason(reason)
        self.message = message or REJECTION_MESSAGES[self.reason]
        super().__init__(self.reason.value)


class InvalidInput(ValueError):
    pass


class CourseNotFound(LookupError):
    pass


class CouponNotFound(LookupError):
    pass


class PaymentGatewayError(RuntimeError):
    pass


REJECTION_MESSAGES: dict[RejectReason, str] = {
    RejectReason.NOT_FOUND: "Invalid coupon code",
    RejectReason.INACTIVE: "This coupon is no longer valid",
    RejectReason.OUT_OF_WINDOW: "This coupon has expired",
    RejectReason.USAGE_LIMIT_REACHED: "This coupon has reached its usage limit",
    RejectReason.NOT_APPLICABLE: "This coupon is not applicable to this course",
}

NOT_YET_VALID_MESSAGE = "This coupon is not valid yet"
