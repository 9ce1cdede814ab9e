from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cohortpay.api.deps import get_catalog, get_payment_gateway, get_today
from cohortpay.core.database import get_db
from cohortpay.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from cohortpay.schemas.payment import CheckoutSummary, PaymentRequest, PaymentResponse, PaymentResult
from cohortpay.services.catalog import SqlCatalog
from cohortpay.services.errors import CouponRejected, CourseNotFound, InvalidInput
from cohortpay.services.payments import PaymentGateway, checkout_summary, list_payments, process_payment
from cohortpay.services.pricing import quote_checkout


router = APIRouter()


@router.post("/payments/validate-coupon", response_model=CouponValidateResponse)
async def validate_coupon(
    body: CouponValidateRequest,
    catalog: SqlCatalog = Depends(get_catalog),
    today: date = Depends(get_today),
) -> dict:
    code = (body.code or "").strip()
    if not code:
        raise HTTPException(status_code=400, detail="Invalid code")
    try:
        quote = quote_checkout(catalog, body.course_id, code, today)
    except CourseNotFound:
        raise HTTPException(status_code=404, detail="Course not found")
    return quote.as_dict()


@router.get("/payments/quote", response_model=CheckoutSummary)
async def get_checkout_quote(
    course_id: str,
    coupon_code: str | None = None,
    payment_method: str = "full",
    catalog: SqlCatalog = Depends(get_catalog),
    today: date = Depends(get_today),
) -> dict:
    try:
        return checkout_summary(
            catalog,
            course_id=course_id,
            coupon_code=coupon_code,
            payment_method=payment_method,
            today=today,
        )
    except CourseNotFound:
        raise HTTPException(status_code=404, detail="Course not found")
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/payments/process", response_model=PaymentResult)
async def process(
    body: PaymentRequest,
    db: Session = Depends(get_db),
    catalog: SqlCatalog = Depends(get_catalog),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    today: date = Depends(get_today),
) -> PaymentResult:
    try:
        payment = process_payment(
            db,
            catalog,
            gateway,
            course_id=body.course_id,
            student_id=body.student_id,
            payment_method=body.payment_method,
            coupon_code=body.coupon_code,
            today=today,
        )
    except CourseNotFound:
        raise HTTPException(status_code=404, detail="Course not found")
    except CouponRejected as exc:
        raise HTTPException(status_code=400, detail={"reason": exc.reason.value, "message": exc.message})
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    out = PaymentResponse.model_validate(payment)
    if payment.status != "completed":
        return PaymentResult(success=False, error=payment.error, payment=out)
    return PaymentResult(success=True, transaction_id=payment.transaction_id, payment=out)


@router.get("/payments", response_model=list[PaymentResponse])
async def payment_history(
    student_id: str,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    try:
        return list_payments(db, student_id=student_id, limit=limit, offset=offset)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))
