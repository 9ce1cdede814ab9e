from pydantic import BaseModel
from typing import Optional


class CourseResponse(BaseModel):
    id: str
    title: str
    slug: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    price: int
    original_price: int
    savings_percent: int = 0
    status: Optional[str] = None

    class Config:
        from_attributes = True
