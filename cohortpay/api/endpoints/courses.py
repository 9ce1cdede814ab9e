from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cohortpay.core.database import get_db
from cohortpay.models.course import Course
from cohortpay.schemas.course import CourseResponse
from cohortpay.services.pricing import savings_percent


router = APIRouter()


def _to_response(course: Course) -> CourseResponse:
    out = CourseResponse.model_validate(course)
    out.savings_percent = savings_percent(out.price, out.original_price)
    return out


@router.get("/courses", response_model=list[CourseResponse])
async def list_courses(category: str | None = None, db: Session = Depends(get_db)) -> list[CourseResponse]:
    query = db.query(Course)
    if category:
        query = query.filter(Course.category.ilike(category.strip()))
    return [_to_response(c) for c in query.order_by(Course.id.asc()).all()]


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(course_id: str, db: Session = Depends(get_db)) -> CourseResponse:
    course = db.query(Course).filter(Course.id == (course_id or "").strip()).first()
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return _to_response(course)
