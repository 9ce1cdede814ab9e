from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from cohortpay.core.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(String, unique=True, index=True, nullable=True)
    course_id = Column(String, index=True, nullable=False)
    student_id = Column(String, index=True, nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    discount = Column(Integer, nullable=False, default=0)
    coupon_code = Column(String, index=True, nullable=True)
    coupon_id = Column(String, index=True, nullable=True)
    method = Column(String, nullable=False, default="full")
    status = Column(String, index=True, nullable=False, default="pending")
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    paid_at = Column(DateTime(timezone=True), nullable=True)
