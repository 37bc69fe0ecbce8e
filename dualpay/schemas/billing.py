"""
Pydantic schemas for billing endpoints.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class CheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""
    id: str = Field(..., description="Stripe checkout session ID")
    url: str = Field(..., description="Stripe checkout session URL")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "cs_test_...",
                "url": "https://checkout.stripe.com/c/pay/cs_test_..."
            }
        }


class BillingCycleSummary(BaseModel):
    """One billing cycle of a PayPal plan, flattened."""
    frequency: str = Field(..., description="Interval count and unit, e.g. '1 MONTH'")
    tenure_type: Optional[str] = Field(None, description="TRIAL or REGULAR")
    pricing_scheme: Optional[Dict[str, Any]] = Field(None, description="Fixed price {value, currency_code}")

    @classmethod
    def from_paypal(cls, cycle: Any) -> "BillingCycleSummary":
        """
        Flatten one entry of a plan's billing_cycles.

        Raises:
            ValueError: the cycle, its frequency or its pricing_scheme is not an object
        """
        if not isinstance(cycle, dict):
            raise ValueError(f"Unexpected billing cycle type: {type(cycle).__name__}")
        frequency = cycle.get("frequency") or {}
        pricing = cycle.get("pricing_scheme") or {}
        if not isinstance(frequency, dict):
            raise ValueError(f"Unexpected billing cycle frequency: {frequency!r}")
        if not isinstance(pricing, dict):
            raise ValueError(f"Unexpected billing cycle pricing_scheme: {pricing!r}")
        return cls(
            frequency=f"{frequency.get('interval_count')} {frequency.get('interval_unit')}",
            tenure_type=cycle.get("tenure_type"),
            pricing_scheme=pricing.get("fixed_price"),
        )


class PlanVerificationResult(BaseModel):
    """Normalized outcome for one PayPal plan id."""
    id: str
    ok: bool
    plan: Optional[str] = Field(None, description="Commercial plan the id is configured for")
    status: Optional[str] = None
    name: Optional[str] = None
    product_id: Optional[str] = None
    billing_cycles: Optional[List[BillingCycleSummary]] = None
    payment_preferences: Optional[Dict[str, Any]] = None
    taxes: Optional[Dict[str, Any]] = None
    update_time: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_paypal(cls, plan_id: str, payload: Any) -> "PlanVerificationResult":
        """
        Validate an untyped plan-detail payload into a result.

        Raises:
            ValueError: payload is not a JSON object
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected plan payload type: {type(payload).__name__}")
        cycles = payload.get("billing_cycles")
        return cls(
            id=plan_id,
            ok=True,
            status=payload.get("status"),
            name=payload.get("name"),
            product_id=payload.get("product_id"),
            billing_cycles=[BillingCycleSummary.from_paypal(c) for c in cycles] if isinstance(cycles, list) else None,
            payment_preferences=payload.get("payment_preferences"),
            taxes=payload.get("taxes"),
            update_time=payload.get("update_time"),
        )

    @classmethod
    def failure(cls, plan_id: str, error: str) -> "PlanVerificationResult":
        return cls(id=plan_id, ok=False, error=error)


class PlanCheckResponse(BaseModel):
    """Response schema for the PayPal plan check endpoint."""
    env: str
    results: List[PlanVerificationResult]


class ClientBillingConfig(BaseModel):
    """Browser-safe billing configuration. Never carries secrets."""
    paypal_client_id: Optional[str] = None
    paypal_client_id_sandbox: Optional[str] = None
    currency: str = "USD"
    trial_days: int = 7
    paypal_plans: Dict[str, Dict[str, Optional[str]]] = Field(default_factory=dict)
    stripe_checkout_enabled: bool = False
