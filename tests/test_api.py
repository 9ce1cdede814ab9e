import unittest
from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from cohortpay.api.deps import get_payment_gateway, get_today
from cohortpay.core.database import Base, get_db
from cohortpay.core.settings import settings
from cohortpay.models.coupon import Coupon
from cohortpay.services.demo_data import seed_demo_catalog
from cohortpay.services.errors import PaymentGatewayError
from cohortpay.services.payments import SimulatedPaymentGateway


class _DecliningGateway:
    def charge(self, *, amount, reference, metadata):
        raise PaymentGatewayError("Payment processing failed. Please try again.")


class _ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        db = self.Session()
        try:
            seed_demo_catalog(db, today=date(2024, 12, 1))
        finally:
            db.close()

        self.today = date(2024, 12, 1)
        self.gateway = SimulatedPaymentGateway()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_today] = lambda: self.today
        app.dependency_overrides[get_payment_gateway] = lambda: self.gateway

        self._auth = (settings.basic_auth_enabled, settings.basic_auth_username, settings.basic_auth_password)
        settings.basic_auth_enabled = False
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        settings.basic_auth_enabled, settings.basic_auth_username, settings.basic_auth_password = self._auth
        Base.metadata.drop_all(bind=self.engine)
        self.engine.dispose()

    def _used(self, coupon_id: str) -> int:
        db = self.Session()
        try:
            return int(db.query(Coupon.used_count).filter(Coupon.id == coupon_id).scalar())
        finally:
            db.close()

    def _set_used(self, coupon_id: str, used: int) -> None:
        db = self.Session()
        try:
            db.query(Coupon).filter(Coupon.id == coupon_id).update({"used_count": used})
            db.commit()
        finally:
            db.close()


class TestValidateCoupon(_ApiTestCase):
    def _validate(self, course_id: str, code: str):
        return self.client.post("/api/payments/validate-coupon", json={"course_id": course_id, "code": code})

    def test_percentage_code_any_case(self):
        res = self._validate("course-1", "launch50")
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["applicable"])
        self.assertEqual((body["discount"], body["final_price"]), (249, 250))
        self.assertEqual(body["coupon_code"], "LAUNCH50")

    def test_flat_code_on_listed_course(self):
        body = self._validate("course-1", "FLAT100").json()
        self.assertTrue(body["applicable"])
        self.assertEqual(body["final_price"], 399)

    def test_flat_code_on_other_course(self):
        body = self._validate("course-3", "FLAT100").json()
        self.assertFalse(body["applicable"])
        self.assertEqual(body["reason"], "not_applicable")
        self.assertEqual(body["message"], "This coupon is not applicable to this course")
        self.assertEqual(body["final_price"], 549)

    def test_expired_status(self):
        body = self._validate("course-1", "EXPIRED20").json()
        self.assertFalse(body["applicable"])
        self.assertEqual(body["reason"], "inactive")
        self.assertEqual((body["discount"], body["final_price"]), (0, 499))

    def test_usage_limit_reached(self):
        self._set_used("coupon-2", 50)
        body = self._validate("course-1", "FLAT100").json()
        self.assertEqual(body["reason"], "usage_limit_reached")

    def test_unknown_code(self):
        body = self._validate("course-1", "NOPE").json()
        self.assertEqual(body["reason"], "not_found")
        self.assertEqual(body["message"], "Invalid coupon code")

    def test_unknown_course(self):
        self.assertEqual(self._validate("course-99", "LAUNCH50").status_code, 404)

    def test_blank_code(self):
        self.assertEqual(self._validate("course-1", "   ").status_code, 400)


class TestCheckoutQuote(_ApiTestCase):
    def test_emi_installment(self):
        res = self.client.get(
            "/api/payments/quote",
            params={"course_id": "course-1", "coupon_code": "LAUNCH50", "payment_method": "emi-3"},
        )
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["final_price"], 250)
        self.assertTrue(body["coupon_applied"])
        self.assertEqual((body["installments"], body["installment_amount"]), (3, 88))

    def test_unknown_method(self):
        res = self.client.get("/api/payments/quote", params={"course_id": "course-1", "payment_method": "cheque"})
        self.assertEqual(res.status_code, 400)


class TestProcessPayment(_ApiTestCase):
    def _pay(self, **overrides):
        body = {"course_id": "course-1", "student_id": "student-1", "payment_method": "full"}
        body.update(overrides)
        return self.client.post("/api/payments/process", json=body)

    def test_success_records_usage(self):
        res = self._pay(coupon_code="LAUNCH50")
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["transaction_id"].startswith("TXN-"))
        self.assertEqual(body["payment"]["amount"], 250)
        self.assertEqual(body["payment"]["status"], "completed")
        self.assertEqual(self._used("coupon-1"), 46)

    def test_declined_charge_leaves_usage(self):
        self.gateway = _DecliningGateway()
        body = self._pay(coupon_code="LAUNCH50").json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Payment processing failed. Please try again.")
        self.assertEqual(body["payment"]["status"], "failed")
        self.assertEqual(self._used("coupon-1"), 45)

    def test_rejected_coupon(self):
        res = self._pay(coupon_code="EXPIRED20")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["reason"], "inactive")

    def test_exhausted_coupon(self):
        self._set_used("coupon-2", 50)
        res = self._pay(coupon_code="FLAT100")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["reason"], "usage_limit_reached")
        self.assertEqual(self._used("coupon-2"), 50)

    def test_bad_method(self):
        self.assertEqual(self._pay(payment_method="cheque").status_code, 422)

    def test_history(self):
        self._pay(coupon_code="FLAT100")
        self._pay(student_id="student-2")
        res = self.client.get("/api/payments", params={"student_id": "student-1"})
        self.assertEqual(res.status_code, 200)
        rows = res.json()
        self.assertEqual(len(rows), 1)
        self.assertEqual((rows[0]["amount"], rows[0]["coupon_code"]), (399, "FLAT100"))

    def test_history_requires_student(self):
        self._pay()
        self.assertEqual(self.client.get("/api/payments").status_code, 422)
        self.assertEqual(self.client.get("/api/payments", params={"student_id": "  "}).status_code, 400)


class TestAdminCoupons(_ApiTestCase):
    def test_crud(self):
        res = self.client.post("/api/admin/coupons", json={"code": "winter25", "value": 25})
        self.assertEqual(res.status_code, 201)
        created = res.json()
        self.assertEqual(created["code"], "WINTER25")
        self.assertEqual(created["applicable_courses"], "all")

        res = self.client.put(
            f"/api/admin/coupons/{created['id']}",
            json={"applicable_courses": ["course-4"]},
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["applicable_courses"], ["course-4"])

        res = self.client.get(f"/api/admin/coupons/{created['id']}")
        self.assertEqual(res.json()["value"], 25)

        self.assertEqual(self.client.delete(f"/api/admin/coupons/{created['id']}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/admin/coupons/{created['id']}").status_code, 404)

    def test_create_rejects_duplicate(self):
        res = self.client.post("/api/admin/coupons", json={"code": "LAUNCH50"})
        self.assertEqual(res.status_code, 400)

    def test_toggle(self):
        res = self.client.put("/api/admin/coupons/coupon-1/toggle")
        self.assertEqual(res.json()["status"], "disabled")
        body = self.client.post(
            "/api/payments/validate-coupon", json={"course_id": "course-1", "code": "LAUNCH50"}
        ).json()
        self.assertEqual(body["reason"], "inactive")
        self.assertEqual(self.client.put("/api/admin/coupons/coupon-3/toggle").status_code, 400)

    def test_expire_and_stats(self):
        self.today = date(2025, 2, 1)
        res = self.client.post("/api/admin/coupons/expire")
        self.assertEqual(res.json(), {"ok": True, "expired": 2})
        stats = self.client.get("/api/admin/coupons/stats").json()
        self.assertEqual(stats, {"total": 3, "active": 0, "total_uses": 135})

    def test_list_by_status(self):
        rows = self.client.get("/api/admin/coupons", params={"status": "expired"}).json()
        self.assertEqual([r["code"] for r in rows], ["EXPIRED20"])


class TestAdminAuth(_ApiTestCase):
    def setUp(self):
        super().setUp()
        settings.basic_auth_enabled = True
        settings.basic_auth_username = "admin"
        settings.basic_auth_password = "s3cret"

    def test_requires_credentials(self):
        self.assertEqual(self.client.get("/api/admin/coupons").status_code, 401)
        self.assertEqual(self.client.get("/api/admin/coupons", auth=("admin", "wrong")).status_code, 401)
        self.assertEqual(self.client.get("/api/admin/coupons", auth=("admin", "s3cret")).status_code, 200)

    def test_checkout_stays_public(self):
        self.assertEqual(self.client.get("/api/courses").status_code, 200)


class TestCourses(_ApiTestCase):
    def test_list(self):
        rows = self.client.get("/api/courses").json()
        self.assertEqual(len(rows), 5)
        self.assertEqual(rows[0]["savings_percent"], 37)

    def test_filter_by_category(self):
        rows = self.client.get("/api/courses", params={"category": "web development"}).json()
        self.assertEqual(sorted(r["id"] for r in rows), ["course-1", "course-4"])

    def test_detail(self):
        self.assertEqual(self.client.get("/api/courses/course-4").json()["savings_percent"], 33)
        self.assertEqual(self.client.get("/api/courses/course-99").status_code, 404)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})


if __name__ == "__main__":
    unittest.main()
