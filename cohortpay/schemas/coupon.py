from __future__ import annotations

from datetime import date
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


ApplicableCourses = Union[Literal["all"], list[str]]


class CouponCreate(BaseModel):
    code: str
    discount_type: str = Field(default="percentage", pattern="^(percentage|flat)$")
    value: int = 10
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    usage_limit: int = 100
    status: str = Field(default="active", pattern="^(active|expired|disabled)$")
    applicable_courses: ApplicableCourses = "all"


class CouponUpdate(BaseModel):
    code: Optional[str] = None
    discount_type: Optional[str] = Field(default=None, pattern="^(percentage|flat)$")
    value: Optional[int] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    usage_limit: Optional[int] = None
    status: Optional[str] = Field(default=None, pattern="^(active|expired|disabled)$")
    applicable_courses: Optional[ApplicableCourses] = None


class CouponOut(BaseModel):
    id: str
    code: str
    discount_type: str
    value: int
    valid_from: date
    valid_until: date
    usage_limit: int
    used_count: int
    status: str
    applicable_courses: ApplicableCourses = "all"

    class Config:
        from_attributes = True

    @field_validator("applicable_courses", mode="before")
    @classmethod
    def _all_when_empty(cls, v):
        if v is None:
            return "all"
        return v


class CouponStats(BaseModel):
    total: int
    active: int
    total_uses: int


class CouponValidateRequest(BaseModel):
    course_id: str
    code: str


class CouponValidateResponse(BaseModel):
    course_id: str
    price: int
    applicable: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    discount: int
    final_price: int
    coupon_code: Optional[str] = None
