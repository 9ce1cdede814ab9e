from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from cohortpay.core.database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, index=True, nullable=True)
    category = Column(String, nullable=True)
    level = Column(String, nullable=True)
    price = Column(Integer, nullable=False, default=0)
    original_price = Column(Integer, nullable=False, default=0)
    status = Column(String, index=True, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
