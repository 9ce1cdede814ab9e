from sqlalchemy import JSON, CheckConstraint, Column, Date, DateTime, Integer, String
from sqlalchemy.sql import func

from cohortpay.core.database import Base


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
        CheckConstraint("used_count <= usage_limit", name="ck_coupons_used_count_within_limit"),
        CheckConstraint("valid_from <= valid_until", name="ck_coupons_window_ordered"),
    )

    id = Column(String, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    discount_type = Column(String, nullable=False, default="percentage")
    value = Column(Integer, nullable=False, default=0)
    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)
    usage_limit = Column(Integer, nullable=False, default=100)
    used_count = Column(Integer, nullable=False, default=0)
    status = Column(String, index=True, nullable=False, default="active")
    # NULL means every course; otherwise a JSON list of course ids.
    applicable_courses = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
