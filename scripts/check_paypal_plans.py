"""
Go-live check: verify that PayPal plan ids exist and are ACTIVE.

Run: python -m scripts.check_paypal_plans [--env sandbox] [P-XXXX ...]
Without plan ids, every PAYPAL_PLAN_* configured in the environment is checked.
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dualpay.core.errors import BillingError
from dualpay.core.plan_registry import PlanRegistry, Provider, load_plan_registry
from dualpay.services.paypal_auth import PayPalCredentialBroker, load_paypal_credentials
from dualpay.services.paypal_plans import PayPalPlanVerifier
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_plans(environment: str, plan_ids: list, registry: PlanRegistry = None) -> bool:
    """Verify plans and print one line per id. Returns True when all are ACTIVE."""
    registry = registry or load_plan_registry()
    verifier = PayPalPlanVerifier(PayPalCredentialBroker(load_paypal_credentials()))
    try:
        results = verifier.verify_plans(environment, plan_ids)
    except BillingError as e:
        logger.error(f"Plan check failed: {e.message}")
        return False

    all_ok = True
    for result in results:
        result.plan = registry.plan_for_identifier(Provider.PAYPAL, result.id)
        label = f"{result.id} ({result.plan or 'unassigned'})"
        if not result.ok:
            all_ok = False
            print(f"[FAIL] {label}: {result.error}")
        elif result.status != "ACTIVE":
            all_ok = False
            print(f"[WARN] {label}: status={result.status} ({result.name})")
        else:
            cycles = ", ".join(f"{c.tenure_type} {c.frequency}" for c in result.billing_cycles or [])
            print(f"[OK]   {label}: {result.name} [{cycles}]")
    return all_ok


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Verify PayPal billing plans")
    parser.add_argument("plans", nargs="*", help="PayPal plan ids (default: all configured)")
    parser.add_argument("--env", choices=["live", "sandbox"], default="live")
    args = parser.parse_args(argv)

    registry = load_plan_registry()
    plan_ids = args.plans or registry.configured_identifiers(Provider.PAYPAL)
    if not plan_ids:
        logger.error("No PayPal plan ids given and none configured (PAYPAL_PLAN_<PLAN>_<CADENCE>)")
        return 2

    logger.info(f"Checking {len(plan_ids)} PayPal plan(s) in {args.env}")
    return 0 if check_plans(args.env, plan_ids, registry) else 1


if __name__ == "__main__":
    sys.exit(main())
