"""
Stripe service for redirect-based subscription checkout.
"""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import stripe

from dualpay.core.config import CHECKOUT_TRIAL_DAYS
from dualpay.core.errors import InvalidRequestError, MissingCredentialsError, UpstreamBillingError
from dualpay.core.plan_registry import Cadence, PlanRegistry, Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSessionResult:
    session_id: str
    redirect_url: str


class CheckoutService:
    """Creates Stripe Checkout sessions for a plan, cadence and user."""

    def __init__(self, registry: PlanRegistry, secret_key: Optional[str], trial_days: int = CHECKOUT_TRIAL_DAYS):
        self.registry = registry
        self.secret_key = secret_key
        self.trial_days = trial_days
        if not secret_key:
            logger.warning("STRIPE_SECRET_KEY not configured - Stripe checkout disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def create_checkout_session(
        self,
        plan_key: Optional[str],
        cadence,
        user_id: Optional[str],
        origin_url: str,
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout session for a subscription with a free trial.

        Args:
            plan_key: Commercial plan (pro, family)
            cadence: Cadence or the client's isYearly boolean
            user_id: Account id; stored as client_reference_id and in
                subscription metadata so webhooks can attribute the subscription
            origin_url: Site origin for the success/cancel redirects

        Returns:
            CheckoutSessionResult with the session id and redirect URL

        Raises:
            MissingCredentialsError: STRIPE_SECRET_KEY not set
            InvalidRequestError: missing plan, cadence or user id
            ConfigurationError: no price configured for the plan/cadence
            UpstreamBillingError: Stripe rejected the call
        """
        if not self.secret_key:
            raise MissingCredentialsError("Stripe is not configured on the server", provider="stripe")

        if not plan_key or not isinstance(plan_key, str):
            raise InvalidRequestError("Missing planId", field="planId")
        cadence = Cadence.coerce(cadence)
        if not user_id or not isinstance(user_id, str):
            raise InvalidRequestError("Missing userId", field="userId")

        price_id = self.registry.resolve_price(plan_key, cadence, Provider.STRIPE)
        origin = origin_url.rstrip("/")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{
                    "price": price_id,
                    "quantity": 1,
                }],
                success_url=f"{origin}/?checkout=success",
                cancel_url=f"{origin}/?checkout=cancel",
                allow_promotion_codes=True,
                client_reference_id=user_id,
                subscription_data={
                    "metadata": {
                        "userId": user_id,
                    },
                    "trial_period_days": self.trial_days,
                },
            )
        except stripe.StripeError as e:
            # Not retried: a repeated create may open a duplicate session
            logger.error(f"Stripe error creating checkout session: plan={plan_key}, cadence={cadence.value}, error={e}")
            raise UpstreamBillingError(
                f"Failed to create checkout session: {e.user_message or str(e)}",
                status_code=e.http_status,
            )

        logger.info(
            f"Created checkout session: session_id={session.id}, user_id={user_id}, "
            f"plan={plan_key}, cadence={cadence.value}"
        )
        return CheckoutSessionResult(session_id=session.id, redirect_url=session.url)


def load_checkout_service(registry: PlanRegistry, environ: Optional[Mapping[str, str]] = None) -> CheckoutService:
    """Build the checkout service from environment variables."""
    if environ is None:
        environ = os.environ
    trial_days = int(environ.get("CHECKOUT_TRIAL_DAYS") or CHECKOUT_TRIAL_DAYS)
    return CheckoutService(registry, environ.get("STRIPE_SECRET_KEY"), trial_days=trial_days)
