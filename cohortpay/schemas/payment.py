from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentRequest(BaseModel):
    course_id: str
    student_id: str
    payment_method: str = Field(default="full", pattern="^(full|emi-3|emi-6|upi)$")
    coupon_code: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    transaction_id: Optional[str] = None
    course_id: str
    student_id: str
    amount: int
    discount: int
    coupon_code: Optional[str] = None
    method: str
    status: PaymentStatus
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None
    payment: Optional[PaymentResponse] = None


class CheckoutSummary(BaseModel):
    course_id: str
    price: int
    discount: int
    final_price: int
    coupon_code: Optional[str] = None
    coupon_applied: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    payment_method: str
    installments: int
    installment_amount: int
