"""
Unit tests for the PayPal plan verifier.
"""
import random
import time

import httpx
import pytest

from dualpay.core.errors import InvalidRequestError, MissingCredentialsError
from dualpay.services.paypal_auth import PayPalCredentialBroker, PayPalEnvironment
from dualpay.services.paypal_plans import PayPalPlanVerifier


CREDENTIALS = {
    PayPalEnvironment.LIVE: ("live-id", "live-secret"),
    PayPalEnvironment.SANDBOX: ("sb-id", "sb-secret"),
}

ACTIVE_PLAN = {
    "id": "P-1",
    "product_id": "PROD-1",
    "name": "Pro Monthly",
    "status": "ACTIVE",
    "billing_cycles": [
        {
            "frequency": {"interval_unit": "DAY", "interval_count": 7},
            "tenure_type": "TRIAL",
            "sequence": 1,
            "pricing_scheme": {"fixed_price": {"value": "0", "currency_code": "USD"}},
        },
        {
            "frequency": {"interval_unit": "MONTH", "interval_count": 1},
            "tenure_type": "REGULAR",
            "sequence": 2,
            "pricing_scheme": {"fixed_price": {"value": "4.99", "currency_code": "USD"}},
        },
    ],
    "payment_preferences": {"auto_bill_outstanding": True},
    "taxes": {"percentage": "0", "inclusive": False},
    "update_time": "2024-05-01T10:00:00Z",
}


class PayPalApi:
    """MockTransport handler for the token and plan endpoints."""

    def __init__(self, plans=None, reject_tokens=(), jitter=False):
        self.plans = plans or {}
        self.reject_tokens = set(reject_tokens)
        self.jitter = jitter
        self.token_requests = 0
        self.plan_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"t{self.token_requests}", "expires_in": 32400})

        plan_id = request.url.path.rsplit("/", 1)[-1]
        self.plan_requests.append((plan_id, request.headers["authorization"]))
        if self.jitter:
            time.sleep(random.uniform(0, 0.02))
        if request.headers["authorization"].split()[-1] in self.reject_tokens:
            return httpx.Response(401, json={"error": "invalid_token"})
        if plan_id not in self.plans:
            return httpx.Response(404, text='{"name":"RESOURCE_NOT_FOUND"}')
        payload = self.plans[plan_id]
        if isinstance(payload, str):
            return httpx.Response(200, text=payload)
        return httpx.Response(200, json=payload)


def make_verifier(api, credentials=None, max_workers=4):
    client = httpx.Client(transport=httpx.MockTransport(api))
    broker = PayPalCredentialBroker(credentials if credentials is not None else CREDENTIALS, http_client=client)
    return PayPalPlanVerifier(broker, http_client=client, max_workers=max_workers)


def test_valid_plan_is_normalized():
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN})
    verifier = make_verifier(api)

    [result] = verifier.verify_plans("live", ["P-1"])

    assert result.ok is True
    assert result.status == "ACTIVE"
    assert result.name == "Pro Monthly"
    assert result.product_id == "PROD-1"
    assert [c.frequency for c in result.billing_cycles] == ["7 DAY", "1 MONTH"]
    assert result.billing_cycles[0].tenure_type == "TRIAL"
    assert result.billing_cycles[1].pricing_scheme == {"value": "4.99", "currency_code": "USD"}
    assert result.error is None


def test_failure_on_one_id_does_not_abort_batch():
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN, "P-3": ACTIVE_PLAN})
    verifier = make_verifier(api)

    results = verifier.verify_plans("live", ["P-1", "P-2", "P-3"])

    assert [r.id for r in results] == ["P-1", "P-2", "P-3"]
    assert [r.ok for r in results] == [True, False, True]
    assert "404" in results[1].error
    assert "RESOURCE_NOT_FOUND" in results[1].error


def test_output_order_matches_input_under_concurrency():
    plan_ids = [f"P-{i}" for i in range(20)]
    api = PayPalApi(plans={pid: {**ACTIVE_PLAN, "name": pid} for pid in plan_ids}, jitter=True)
    verifier = make_verifier(api, max_workers=8)

    results = verifier.verify_plans(PayPalEnvironment.LIVE, plan_ids)

    assert [r.id for r in results] == plan_ids
    assert [r.name for r in results] == plan_ids
    assert api.token_requests == 1


def test_empty_plan_list_fails_fast():
    api = PayPalApi()
    verifier = make_verifier(api)

    with pytest.raises(InvalidRequestError):
        verifier.verify_plans("live", [])
    assert api.token_requests == 0


def test_missing_credentials_propagate():
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN})
    verifier = make_verifier(api, credentials={})

    with pytest.raises(MissingCredentialsError):
        verifier.verify_plans("sandbox", ["P-1"])
    assert api.plan_requests == []


def test_rejected_token_is_refreshed_and_id_retried_once():
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN}, reject_tokens={"t1"})
    verifier = make_verifier(api, max_workers=1)

    [result] = verifier.verify_plans("live", ["P-1"])

    assert result.ok is True
    assert api.token_requests == 2
    assert api.plan_requests == [("P-1", "Bearer t1"), ("P-1", "Bearer t2")]


def test_invalid_json_is_a_per_item_failure():
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN, "P-BAD": "not json"})
    verifier = make_verifier(api)

    results = verifier.verify_plans("live", ["P-BAD", "P-1"])

    assert results[0].ok is False
    assert results[0].error.startswith("Invalid plan payload")
    assert results[1].ok is True


@pytest.mark.parametrize("cycles", [
    [{"frequency": "MONTHLY"}],
    [{"frequency": {"interval_unit": "MONTH", "interval_count": 1}, "pricing_scheme": "4.99"}],
    ["REGULAR"],
])
def test_malformed_billing_cycle_is_a_per_item_failure(cycles):
    api = PayPalApi(plans={"P-1": ACTIVE_PLAN, "P-BAD": {**ACTIVE_PLAN, "billing_cycles": cycles}})
    verifier = make_verifier(api)

    results = verifier.verify_plans("live", ["P-1", "P-BAD"])

    assert [r.ok for r in results] == [True, False]
    assert results[1].error.startswith("Invalid plan payload")


def test_sandbox_uses_sandbox_host():
    seen = []

    def handler(request):
        seen.append(request.url.host)
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "t", "expires_in": 100})
        return httpx.Response(200, json=ACTIVE_PLAN)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    verifier = PayPalPlanVerifier(PayPalCredentialBroker(CREDENTIALS, http_client=client), http_client=client)
    verifier.verify_plans("sandbox", ["P-1"])

    assert set(seen) == {"api-m.sandbox.paypal.com"}
