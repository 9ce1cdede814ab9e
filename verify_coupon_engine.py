from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cohortpay.core.database import Base
from cohortpay.models.coupon import Coupon
from cohortpay.models.payment import Payment
from cohortpay.services.catalog import SqlCatalog
from cohortpay.services.coupons import record_coupon_usage
from cohortpay.services.demo_data import seed_demo_catalog
from cohortpay.services.errors import CouponRejected, RejectReason
from cohortpay.services.payments import SimulatedPaymentGateway, process_payment
from cohortpay.services.pricing import quote_checkout

import cohortpay.models.course  # noqa: F401


def main() -> None:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        today = date(2024, 12, 1)
        seed_demo_catalog(db, today=today)
        catalog = SqlCatalog(db)

        quote = quote_checkout(catalog, "course-1", "launch50", today)
        assert (quote.discount, quote.final_price) == (249, 250), quote

        quote = quote_checkout(catalog, "course-3", "FLAT100", today)
        assert quote.reason == RejectReason.NOT_APPLICABLE, quote
        assert quote.final_price == 549, quote

        quote = quote_checkout(catalog, "course-1", "EXPIRED20", today)
        assert quote.reason == RejectReason.INACTIVE, quote

        payment = process_payment(
            db,
            catalog,
            SimulatedPaymentGateway(),
            course_id="course-2",
            student_id="student-1",
            payment_method="emi-6",
            coupon_code="FLAT100",
            today=today,
        )
        assert payment.status == "completed", payment.status
        assert payment.amount == 499, payment.amount

        db.query(Coupon).filter(Coupon.id == "coupon-2").update({"used_count": 49})
        db.commit()
        assert record_coupon_usage(db, "coupon-2") == 50
        try:
            record_coupon_usage(db, "coupon-2")
        except CouponRejected as exc:
            assert exc.reason == RejectReason.USAGE_LIMIT_REACHED, exc.reason
        else:
            raise AssertionError("usage limit not enforced")

        used = db.query(Coupon.used_count).filter(Coupon.id == "coupon-2").scalar()
        assert used == 50, used
        assert db.query(Payment).count() == 1
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
