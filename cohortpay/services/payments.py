from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol
from uuid import uuid4

from sqlalchemy.orm import Session

from cohortpay.core.settings import settings
from cohortpay.models.payment import Payment
from cohortpay.services.coupons import record_coupon_usage, utc_today, utcnow
from cohortpay.services.errors import CouponNotFound, CouponRejected, InvalidInput, PaymentGatewayError
from cohortpay.services.pricing import Catalog, installment_for_method, normalize_code, quote_checkout


logger = logging.getLogger(__name__)

PAYMENT_FAILED_MESSAGE = "Payment processing failed. Please try again."


@dataclass(frozen=True)
class ChargeResult:
    transaction_id: str


class PaymentGateway(Protocol):
    def charge(self, *, amount: int, reference: str, metadata: dict[str, Any]) -> ChargeResult: ...


def _new_transaction_id() -> str:
    return f"TXN-{int(utcnow().timestamp() * 1000)}-{uuid4().hex[:6].upper()}"


class SimulatedPaymentGateway:
    def __init__(self, *, failure_rate: float = 0.0, rng: random.Random | None = None) -> None:
        self._failure_rate = min(1.0, max(0.0, float(failure_rate or 0.0)))
        self._rng = rng or random.Random()

    def charge(self, *, amount: int, reference: str, metadata: dict[str, Any]) -> ChargeResult:
        if self._failure_rate and self._rng.random() < self._failure_rate:
            raise PaymentGatewayError(PAYMENT_FAILED_MESSAGE)
        return ChargeResult(transaction_id=_new_transaction_id())


class HttpPaymentGateway:
    def __init__(self, *, url: str, api_key: str | None, timeout_s: float = 30.0) -> None:
        self._url = (url or "").strip()
        self._api_key = (api_key or "").strip()
        self._timeout_s = float(timeout_s or 30.0)

    def charge(self, *, amount: int, reference: str, metadata: dict[str, Any]) -> ChargeResult:
        import requests

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            resp = requests.post(
                self._url,
                headers=headers,
                json={"amount": int(amount), "reference": reference, "metadata": metadata},
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise PaymentGatewayError("Payment provider unreachable") from exc
        if resp.status_code >= 400:
            raise PaymentGatewayError(f"Payment provider error ({resp.status_code})")
        try:
            data = resp.json() or {}
        except ValueError as exc:
            logger.exception("payments.gateway.bad_response reference=%s status=%s", reference, resp.status_code)
            raise PaymentGatewayError("Payment provider returned an invalid response") from exc
        if not isinstance(data, dict):
            logger.warning("payments.gateway.bad_response reference=%s type=%s", reference, type(data).__name__)
            raise PaymentGatewayError("Payment provider returned an invalid response")
        txn = str(data.get("transaction_id") or data.get("id") or "").strip()
        if not txn:
            raise PaymentGatewayError("Payment provider returned no transaction id")
        return ChargeResult(transaction_id=txn)


def build_payment_gateway() -> PaymentGateway:
    if settings.payment_gateway_url:
        return HttpPaymentGateway(
            url=settings.payment_gateway_url,
            api_key=settings.payment_gateway_api_key,
            timeout_s=settings.payment_gateway_timeout_s,
        )
    return SimulatedPaymentGateway(failure_rate=settings.payment_simulated_failure_rate)


def checkout_summary(
    catalog: Catalog,
    *,
    course_id: str,
    coupon_code: str | None,
    payment_method: str,
    today: date | None = None,
) -> dict[str, Any]:
    quote = quote_checkout(catalog, course_id, coupon_code, today or utc_today())
    months, per_installment = installment_for_method(
        quote.final_price, payment_method, interest_rate=settings.emi_interest_rate
    )
    return {
        "course_id": quote.course_id,
        "price": quote.price,
        "discount": quote.discount,
        "final_price": quote.final_price,
        "coupon_code": (quote.coupon.code if quote.coupon and quote.applicable else None),
        "coupon_applied": quote.applicable,
        "reason": (quote.reason.value if quote.reason else None),
        "message": quote.message,
        "payment_method": payment_method,
        "installments": months,
        "installment_amount": per_installment,
    }


def process_payment(
    db: Session,
    catalog: Catalog,
    gateway: PaymentGateway,
    *,
    course_id: str,
    student_id: str,
    payment_method: str,
    coupon_code: str | None = None,
    today: date | None = None,
) -> Payment:
    """Charge a student for a course and record the outcome.

    The price is always re-resolved from the catalog. A coupon that no longer
    passes the validity checks raises ``CouponRejected`` before anything is
    charged; the caller can retry without the coupon at full price.
    Coupon usage is recorded only once the gateway confirms the charge.
    """
    today = today or utc_today()
    student_id = (student_id or "").strip()
    if not student_id:
        raise InvalidInput("student_id is required")
    quote = quote_checkout(catalog, course_id, coupon_code, today)
    if normalize_code(coupon_code) and not quote.applicable:
        raise CouponRejected(quote.reason, quote.message)
    months, _per_installment = installment_for_method(
        quote.final_price, payment_method, interest_rate=settings.emi_interest_rate
    )

    coupon = quote.coupon if quote.applicable else None
    payment = Payment(
        course_id=quote.course_id,
        student_id=student_id,
        amount=quote.final_price,
        discount=quote.discount,
        coupon_code=(coupon.code if coupon else None),
        coupon_id=(coupon.id if coupon else None),
        method=payment_method,
        status="pending",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    if quote.final_price <= 0:
        transaction_id = _new_transaction_id()
    else:
        try:
            charge = gateway.charge(
                amount=quote.final_price,
                reference=f"payment:{payment.id}",
                metadata={
                    "course_id": payment.course_id,
                    "student_id": payment.student_id,
                    "coupon_code": payment.coupon_code,
                    "installments": months,
                },
            )
        except PaymentGatewayError as exc:
            payment.status = "failed"
            payment.error = str(exc) or PAYMENT_FAILED_MESSAGE
            db.commit()
            db.refresh(payment)
            logger.warning("payments.process.failed payment_id=%s error=%s", payment.id, payment.error)
            return payment
        except Exception:
            logger.exception("payments.process.error payment_id=%s", payment.id)
            payment.status = "failed"
            payment.error = PAYMENT_FAILED_MESSAGE
            db.commit()
            raise
        transaction_id = charge.transaction_id

    payment.status = "completed"
    payment.transaction_id = transaction_id
    payment.paid_at = utcnow()
    if coupon is not None:
        try:
            record_coupon_usage(db, coupon.id, commit=False)
        except CouponRejected:
            # Charge already captured; the payment stays completed.
            logger.warning(
                "payments.coupon_usage.limit_reached payment_id=%s coupon_id=%s", payment.id, coupon.id
            )
        except CouponNotFound:
            logger.warning("payments.coupon_usage.missing payment_id=%s coupon_id=%s", payment.id, coupon.id)
    db.commit()
    db.refresh(payment)
    logger.info(
        "payments.process.completed payment_id=%s course_id=%s amount=%s discount=%s coupon=%s",
        payment.id,
        payment.course_id,
        payment.amount,
        payment.discount,
        payment.coupon_code,
    )
    return payment


def list_payments(db: Session, student_id: str, limit: int = 50, offset: int = 0) -> list[Payment]:
    student_id = (student_id or "").strip()
    if not student_id:
        raise InvalidInput("student_id is required")
    limit = max(1, min(int(limit or 50), 200))
    offset = max(0, int(offset or 0))
    query = db.query(Payment).filter(Payment.student_id == student_id)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).offset(offset).limit(limit).all()
