import random
import unittest
from unittest import mock

import requests

from cohortpay.core.settings import settings
from cohortpay.services.errors import PaymentGatewayError
from cohortpay.services.payments import (
    HttpPaymentGateway,
    SimulatedPaymentGateway,
    build_payment_gateway,
)


def _response(status_code: int, payload=None, bad_json: bool = False):
    resp = mock.Mock()
    resp.status_code = status_code
    if bad_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


class TestHttpPaymentGateway(unittest.TestCase):
    def setUp(self):
        self.gateway = HttpPaymentGateway(url="https://pay.example.test/charge", api_key="key-1", timeout_s=5)

    def _charge(self):
        return self.gateway.charge(amount=250, reference="payment:1", metadata={"course_id": "course-1"})

    def test_posts_charge(self):
        with mock.patch("requests.post", return_value=_response(200, {"transaction_id": "txn_123"})) as post:
            result = self._charge()
        self.assertEqual(result.transaction_id, "txn_123")
        _args, kwargs = post.call_args
        self.assertEqual(kwargs["json"]["amount"], 250)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer key-1")
        self.assertEqual(kwargs["timeout"], 5.0)

    def test_provider_error(self):
        with mock.patch("requests.post", return_value=_response(502, {})):
            with self.assertRaises(PaymentGatewayError):
                self._charge()

    def test_unreachable(self):
        with mock.patch("requests.post", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(PaymentGatewayError):
                self._charge()

    def test_missing_transaction_id(self):
        with mock.patch("requests.post", return_value=_response(200, {"status": "ok"})):
            with self.assertRaises(PaymentGatewayError):
                self._charge()

    def test_non_object_json(self):
        for payload in (["ok"], "ok", 42):
            with mock.patch("requests.post", return_value=_response(200, payload)):
                with self.assertRaises(PaymentGatewayError):
                    self._charge()

    def test_invalid_json(self):
        with mock.patch("requests.post", return_value=_response(200, bad_json=True)):
            with self.assertRaises(PaymentGatewayError):
                self._charge()


class TestSimulatedPaymentGateway(unittest.TestCase):
    def test_transaction_id_format(self):
        result = SimulatedPaymentGateway().charge(amount=1, reference="payment:1", metadata={})
        prefix, millis, suffix = result.transaction_id.split("-")
        self.assertEqual(prefix, "TXN")
        self.assertTrue(millis.isdigit())
        self.assertEqual(len(suffix), 6)

    def test_always_fails_at_full_rate(self):
        gateway = SimulatedPaymentGateway(failure_rate=1.0, rng=random.Random(7))
        with self.assertRaises(PaymentGatewayError):
            gateway.charge(amount=1, reference="payment:1", metadata={})


class TestBuildPaymentGateway(unittest.TestCase):
    def setUp(self):
        self._url = settings.payment_gateway_url

    def tearDown(self):
        settings.payment_gateway_url = self._url

    def test_simulated_without_url(self):
        settings.payment_gateway_url = None
        self.assertIsInstance(build_payment_gateway(), SimulatedPaymentGateway)

    def test_http_with_url(self):
        settings.payment_gateway_url = "https://pay.example.test/charge"
        self.assertIsInstance(build_payment_gateway(), HttpPaymentGateway)


if __name__ == "__main__":
    unittest.main()
