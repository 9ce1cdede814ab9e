from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from cohortpay.models.coupon import Coupon
from cohortpay.models.course import Course
from cohortpay.services.coupons import utc_today


logger = logging.getLogger(__name__)


DEMO_COURSES: list[dict] = [
    {
        "id": "course-1",
        "title": "Full-Stack Web Development Bootcamp",
        "slug": "full-stack-web-development",
        "category": "Web Development",
        "level": "Beginner",
        "price": 499,
        "original_price": 799,
    },
    {
        "id": "course-2",
        "title": "Machine Learning & AI Fundamentals",
        "slug": "machine-learning-ai-fundamentals",
        "category": "Data Science",
        "level": "Intermediate",
        "price": 599,
        "original_price": 999,
    },
    {
        "id": "course-3",
        "title": "Cloud Architecture & DevOps",
        "slug": "cloud-architecture-devops",
        "category": "Cloud Computing",
        "level": "Intermediate",
        "price": 549,
        "original_price": 899,
    },
    {
        "id": "course-4",
        "title": "Advanced React & TypeScript",
        "slug": "advanced-react-typescript",
        "category": "Web Development",
        "level": "Advanced",
        "price": 399,
        "original_price": 599,
    },
    {
        "id": "course-5",
        "title": "System Design Masterclass",
        "slug": "system-design-masterclass",
        "category": "System Design",
        "level": "Advanced",
        "price": 449,
        "original_price": 699,
    },
]

# Validity windows are day offsets from the seeding date.
DEMO_COUPONS: list[dict] = [
    {
        "id": "coupon-1",
        "code": "LAUNCH50",
        "discount_type": "percentage",
        "value": 50,
        "valid_from_days": -30,
        "valid_until_days": 30,
        "usage_limit": 100,
        "used_count": 45,
        "status": "active",
        "applicable_courses": None,
    },
    {
        "id": "coupon-2",
        "code": "FLAT100",
        "discount_type": "flat",
        "value": 100,
        "valid_from_days": -16,
        "valid_until_days": 45,
        "usage_limit": 50,
        "used_count": 12,
        "status": "active",
        "applicable_courses": ["course-1", "course-2"],
    },
    {
        "id": "coupon-3",
        "code": "EXPIRED20",
        "discount_type": "percentage",
        "value": 20,
        "valid_from_days": -91,
        "valid_until_days": -31,
        "usage_limit": 100,
        "used_count": 78,
        "status": "expired",
        "applicable_courses": None,
    },
]


def seed_demo_catalog(db: Session, today: date | None = None) -> dict[str, int]:
    """Insert the demo courses and coupons into empty tables. Existing rows are left alone."""
    today = today or utc_today()
    added = {"courses": 0, "coupons": 0}
    if int(db.query(func.count(Course.id)).scalar() or 0) == 0:
        for row in DEMO_COURSES:
            db.add(Course(**row))
        added["courses"] = len(DEMO_COURSES)
    if int(db.query(func.count(Coupon.id)).scalar() or 0) == 0:
        for row in DEMO_COUPONS:
            fields = dict(row)
            fields["valid_from"] = today + timedelta(days=fields.pop("valid_from_days"))
            fields["valid_until"] = today + timedelta(days=fields.pop("valid_until_days"))
            db.add(Coupon(**fields))
        added["coupons"] = len(DEMO_COUPONS)
    db.commit()
    if added["courses"] or added["coupons"]:
        logger.info("demo_data.seeded courses=%s coupons=%s", added["courses"], added["coupons"])
    return added
