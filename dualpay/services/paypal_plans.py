"""
PayPal plan verifier.

Fetches plan details for a batch of PayPal plan ids and normalizes them, so
operators can confirm the configured plans exist and are ACTIVE before
go-live. A failure on one id never aborts the batch.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence
from urllib.parse import quote

import httpx

from dualpay.core.errors import InvalidRequestError, UpstreamAuthError
from dualpay.schemas.billing import PlanVerificationResult
from dualpay.services.paypal_auth import AccessToken, PayPalCredentialBroker, PayPalEnvironment

logger = logging.getLogger(__name__)

PLAN_PATH = "/v1/billing/plans/{plan_id}"
DEFAULT_TIMEOUT = 15.0


class PayPalPlanVerifier:
    """Best-effort batch lookup of PayPal billing plans."""

    def __init__(
        self,
        broker: PayPalCredentialBroker,
        http_client: Optional[httpx.Client] = None,
        max_workers: int = 4,
    ):
        self.broker = broker
        self._http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self.max_workers = max(1, max_workers)

    def verify_plans(self, environment, plan_ids: Sequence[str]) -> List[PlanVerificationResult]:
        """
        Verify each plan id against PayPal.

        Args:
            environment: PayPalEnvironment or 'live' / 'sandbox'
            plan_ids: Ordered plan ids

        Returns:
            One result per input id, in input order

        Raises:
            InvalidRequestError: empty plan list or unknown environment
            MissingCredentialsError / UpstreamAuthError: no token could be obtained
        """
        environment = PayPalEnvironment.parse(environment)
        plan_ids = list(plan_ids)
        if not plan_ids:
            raise InvalidRequestError("Missing plans query parameter: plans=P-XXXX,P-YYYY", field="plans")

        token = self.broker.get_access_token(environment)

        # Slots are pre-allocated by index; completion order does not matter
        results: List[Optional[PlanVerificationResult]] = [None] * len(plan_ids)

        def run(index: int) -> None:
            results[index] = self._verify_one(environment, token, plan_ids[index])

        workers = min(self.max_workers, len(plan_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # list() re-raises anything _verify_one failed to turn into a result
            list(pool.map(run, range(len(plan_ids))))

        ok_count = sum(1 for r in results if r.ok)
        logger.info(f"Verified PayPal plans: env={environment.value}, total={len(results)}, ok={ok_count}")
        return results

    def _verify_one(self, environment: PayPalEnvironment, token: AccessToken, plan_id: str) -> PlanVerificationResult:
        try:
            response = self._fetch(token, plan_id)
            if response.status_code == 401:
                # Token rejected: drop it, get a fresh one and retry this id once
                self.broker.invalidate(environment, token)
                token = self.broker.get_access_token(environment)
                response = self._fetch(token, plan_id)
        except httpx.HTTPError as e:
            logger.warning(f"PayPal plan fetch failed: plan_id={plan_id}, error={e}")
            return PlanVerificationResult.failure(plan_id, f"Request failed: {e}")
        except UpstreamAuthError as e:
            return PlanVerificationResult.failure(plan_id, e.message)

        if not response.is_success:
            logger.warning(f"PayPal plan lookup rejected: plan_id={plan_id}, status={response.status_code}")
            return PlanVerificationResult.failure(plan_id, f"({response.status_code}) {response.text}")

        try:
            return PlanVerificationResult.from_paypal(plan_id, response.json())
        except ValueError as e:
            return PlanVerificationResult.failure(plan_id, f"Invalid plan payload: {e}")

    def _fetch(self, token: AccessToken, plan_id: str) -> httpx.Response:
        url = token.api_base + PLAN_PATH.format(plan_id=quote(plan_id, safe=""))
        return self._http.get(
            url,
            headers={
                "Authorization": f"Bearer {token.token}",
                "Content-Type": "application/json",
            },
        )
