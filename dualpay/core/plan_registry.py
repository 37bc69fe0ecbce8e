"""
Plan registry.

Single source of truth mapping a commercial plan and billing cadence to the
provider-specific price (Stripe) or plan (PayPal) identifier. Loaded once
from the environment at process start and never mutated afterwards.
"""
import enum
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from dualpay.core.config import BILLING_CURRENCY
from dualpay.core.errors import ConfigurationError, InvalidRequestError


class Cadence(str, enum.Enum):
    """Billing interval, backed by the client's `isYearly` flag."""
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def from_is_yearly(cls, is_yearly: bool) -> "Cadence":
        return cls.YEARLY if is_yearly else cls.MONTHLY

    @classmethod
    def coerce(cls, value: Union["Cadence", str, bool, None]) -> "Cadence":
        """
        Accept a Cadence, its string value, or a strict boolean.

        Raises:
            InvalidRequestError: for anything else (including ints and None)
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.from_is_yearly(value)
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        raise InvalidRequestError(f"Unrecognized billing cadence: {value!r}", field="isYearly")


class Provider(str, enum.Enum):
    """Payment providers known to the registry."""
    STRIPE = "stripe"
    PAYPAL = "paypal"


@dataclass(frozen=True)
class Plan:
    """A sellable plan with per-cadence identifiers for each provider."""
    key: str
    stripe_prices: Mapping[Cadence, Optional[str]] = field(default_factory=dict)
    paypal_plans: Mapping[Cadence, Optional[str]] = field(default_factory=dict)
    currency: str = "USD"

    def identifiers_for(self, provider: Provider) -> Mapping[Cadence, Optional[str]]:
        if provider == Provider.STRIPE:
            return self.stripe_prices
        return self.paypal_plans


# Commercial plans sold through both providers
PLAN_KEYS: List[str] = ["pro", "family"]


class PlanRegistry:
    """Immutable lookup table of commercial plans."""

    def __init__(self, plans: List[Plan]):
        self._plans: Dict[str, Plan] = {plan.key: plan for plan in plans}

    def get_plan(self, plan_key: str) -> Plan:
        plan = self._plans.get(plan_key)
        if plan is None:
            raise ConfigurationError(
                f"Unknown plan: {plan_key}",
                details={"plan": plan_key},
            )
        return plan

    def resolve_price(self, plan_key: str, cadence: Cadence, provider: Provider) -> str:
        """
        Resolve the provider identifier for a plan and cadence.

        Args:
            plan_key: Commercial plan key (pro, family)
            cadence: Billing cadence
            provider: Stripe (price id) or PayPal (plan id)

        Returns:
            Non-empty provider identifier

        Raises:
            ConfigurationError: unknown plan key or no identifier configured
        """
        plan = self.get_plan(plan_key)
        cadence = Cadence.coerce(cadence)
        identifier = plan.identifiers_for(Provider(provider)).get(cadence)
        if not identifier:
            raise ConfigurationError(
                f"Price not configured for plan {plan_key} ({cadence.value})",
                details={"plan": plan_key, "cadence": cadence.value, "provider": Provider(provider).value},
            )
        return identifier

    def plan_for_identifier(self, provider: Provider, identifier: Optional[str]) -> Optional[str]:
        """Get the commercial plan key owning a provider identifier."""
        if not identifier:
            return None
        for plan in self._plans.values():
            if identifier in plan.identifiers_for(provider).values():
                return plan.key
        return None

    def configured_identifiers(self, provider: Provider) -> List[str]:
        """All non-empty identifiers configured for a provider, in plan order."""
        identifiers = []
        for plan in self._plans.values():
            for cadence in Cadence:
                identifier = plan.identifiers_for(provider).get(cadence)
                if identifier:
                    identifiers.append(identifier)
        return identifiers

    def public_paypal_plans(self) -> Dict[str, Dict[str, Optional[str]]]:
        """PayPal plan ids per plan and cadence; safe to send to the browser."""
        return {
            plan.key: {cadence.value: plan.paypal_plans.get(cadence) or None for cadence in Cadence}
            for plan in self._plans.values()
        }


def _env_identifier(environ: Mapping[str, str], prefix: str, plan_key: str, cadence: Cadence) -> Optional[str]:
    value = environ.get(f"{prefix}_{plan_key.upper()}_{cadence.value.upper()}")
    if value and value.strip():
        return value.strip()
    return None


def load_plan_registry(environ: Optional[Mapping[str, str]] = None) -> PlanRegistry:
    """
    Build the registry from environment variables.

    Reads STRIPE_PRICE_<PLAN>_<CADENCE> and PAYPAL_PLAN_<PLAN>_<CADENCE>.
    Missing variables leave that slot empty; resolving it later fails.
    """
    if environ is None:
        environ = os.environ
    currency = environ.get("BILLING_CURRENCY") or BILLING_CURRENCY
    plans = []
    for plan_key in PLAN_KEYS:
        plans.append(Plan(
            key=plan_key,
            stripe_prices={c: _env_identifier(environ, "STRIPE_PRICE", plan_key, c) for c in Cadence},
            paypal_plans={c: _env_identifier(environ, "PAYPAL_PLAN", plan_key, c) for c in Cadence},
            currency=currency,
        ))
    return PlanRegistry(plans)
