"""
Unit tests for the plan registry.
"""
import pytest

from dualpay.core.errors import ConfigurationError, InvalidRequestError
from dualpay.core.plan_registry import Cadence, Plan, PlanRegistry, Provider, load_plan_registry


FULL_ENV = {
    "STRIPE_PRICE_PRO_MONTHLY": "price_pro_m",
    "STRIPE_PRICE_PRO_YEARLY": "price_pro_y",
    "STRIPE_PRICE_FAMILY_MONTHLY": "price_fam_m",
    "STRIPE_PRICE_FAMILY_YEARLY": "price_fam_y",
    "PAYPAL_PLAN_PRO_MONTHLY": "P-PRO-M",
    "PAYPAL_PLAN_PRO_YEARLY": "P-PRO-Y",
    "PAYPAL_PLAN_FAMILY_MONTHLY": "P-FAM-M",
    "PAYPAL_PLAN_FAMILY_YEARLY": "P-FAM-Y",
}


@pytest.fixture
def registry():
    return load_plan_registry(FULL_ENV)


def test_resolve_is_total_over_configured_matrix(registry):
    """Every plan, cadence and provider resolves to its configured id."""
    expected = {
        ("pro", Cadence.MONTHLY, Provider.STRIPE): "price_pro_m",
        ("pro", Cadence.YEARLY, Provider.STRIPE): "price_pro_y",
        ("family", Cadence.MONTHLY, Provider.STRIPE): "price_fam_m",
        ("family", Cadence.YEARLY, Provider.STRIPE): "price_fam_y",
        ("pro", Cadence.MONTHLY, Provider.PAYPAL): "P-PRO-M",
        ("pro", Cadence.YEARLY, Provider.PAYPAL): "P-PRO-Y",
        ("family", Cadence.MONTHLY, Provider.PAYPAL): "P-FAM-M",
        ("family", Cadence.YEARLY, Provider.PAYPAL): "P-FAM-Y",
    }
    for (plan, cadence, provider), identifier in expected.items():
        assert registry.resolve_price(plan, cadence, provider) == identifier
        # Deterministic
        assert registry.resolve_price(plan, cadence, provider) == identifier


def test_resolve_unconfigured_cadence_fails():
    """A known plan with an empty cadence slot is a configuration error, not a fallback."""
    env = dict(FULL_ENV)
    del env["STRIPE_PRICE_PRO_YEARLY"]
    registry = load_plan_registry(env)

    assert registry.resolve_price("pro", Cadence.MONTHLY, Provider.STRIPE) == "price_pro_m"
    with pytest.raises(ConfigurationError) as exc:
        registry.resolve_price("pro", Cadence.YEARLY, Provider.STRIPE)
    assert "pro" in exc.value.message
    assert "yearly" in exc.value.message


def test_resolve_blank_value_is_unconfigured():
    registry = load_plan_registry({**FULL_ENV, "PAYPAL_PLAN_FAMILY_MONTHLY": "   "})
    with pytest.raises(ConfigurationError):
        registry.resolve_price("family", Cadence.MONTHLY, Provider.PAYPAL)


def test_resolve_unknown_plan_fails(registry):
    with pytest.raises(ConfigurationError):
        registry.resolve_price("enterprise", Cadence.MONTHLY, Provider.STRIPE)


def test_cadence_coerce_accepts_booleans_and_values():
    assert Cadence.coerce(True) is Cadence.YEARLY
    assert Cadence.coerce(False) is Cadence.MONTHLY
    assert Cadence.coerce("monthly") is Cadence.MONTHLY
    assert Cadence.coerce(Cadence.YEARLY) is Cadence.YEARLY


@pytest.mark.parametrize("value", [None, 1, 0, "weekly", "true"])
def test_cadence_coerce_rejects_unrecognized(value):
    with pytest.raises(InvalidRequestError):
        Cadence.coerce(value)


def test_plan_for_identifier(registry):
    assert registry.plan_for_identifier(Provider.STRIPE, "price_fam_y") == "family"
    assert registry.plan_for_identifier(Provider.PAYPAL, "P-PRO-M") == "pro"
    assert registry.plan_for_identifier(Provider.PAYPAL, "price_pro_m") is None
    assert registry.plan_for_identifier(Provider.STRIPE, None) is None


def test_configured_identifiers_skip_empty_slots():
    registry = PlanRegistry([
        Plan(key="pro", paypal_plans={Cadence.MONTHLY: "P-1", Cadence.YEARLY: None}),
        Plan(key="family", paypal_plans={Cadence.YEARLY: "P-2"}),
    ])
    assert registry.configured_identifiers(Provider.PAYPAL) == ["P-1", "P-2"]
    assert registry.configured_identifiers(Provider.STRIPE) == []


def test_public_paypal_plans(registry):
    public = registry.public_paypal_plans()
    assert public["pro"] == {"monthly": "P-PRO-M", "yearly": "P-PRO-Y"}
    assert set(public) == {"pro", "family"}
