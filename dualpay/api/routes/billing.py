"""
Billing endpoints.

- POST /billing/create-checkout-session: Stripe Checkout redirect
- GET  /billing/paypal-plan-check: verify PayPal plan ids (CORS-enabled)
- GET  /billing/client-config: browser-safe billing configuration
"""
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from dualpay.core import config
from dualpay.core.errors import ConfigurationError, InvalidRequestError, MissingCredentialsError, UpstreamBillingError
from dualpay.core.plan_registry import PlanRegistry, Provider, load_plan_registry
from dualpay.schemas.billing import CheckoutSessionResponse, ClientBillingConfig, PlanCheckResponse
from dualpay.services.paypal_auth import PayPalCredentialBroker, PayPalEnvironment, load_paypal_credentials
from dualpay.services.paypal_plans import PayPalPlanVerifier
from dualpay.services.stripe_service import CheckoutService, load_checkout_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


# ============================================
# ✅ PROCESS-WIDE SERVICES
# ============================================

@lru_cache
def get_plan_registry() -> PlanRegistry:
    return load_plan_registry()


@lru_cache
def get_checkout_service() -> CheckoutService:
    return load_checkout_service(get_plan_registry())


@lru_cache
def get_plan_verifier() -> PayPalPlanVerifier:
    # The broker's token cache lives as long as the process
    return PayPalPlanVerifier(PayPalCredentialBroker(load_paypal_credentials()))


# ✅ HEALTH CHECK FOR BILLING
@router.get("/status")
def billing_status():
    return {"status": "billing service active"}


# ============================================
# ✅ STRIPE CHECKOUT
# ============================================

@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: Request,
    service: CheckoutService = Depends(get_checkout_service),
):
    if not service.is_configured:
        return PlainTextResponse("Stripe is not configured on the server", status_code=500)

    try:
        body = await request.json()
    except ValueError:
        return PlainTextResponse("Request body must be JSON", status_code=400)
    if not isinstance(body, dict):
        return PlainTextResponse("Request body must be a JSON object", status_code=400)

    plan_id = body.get("planId")
    is_yearly = body.get("isYearly")
    user_id = body.get("userId")
    if not plan_id or not isinstance(is_yearly, bool) or not user_id:
        return PlainTextResponse("Missing planId, isYearly, or userId", status_code=400)

    origin = config.SITE_URL or request.headers.get("origin") or config.DEFAULT_SITE_URL

    try:
        result = await run_in_threadpool(service.create_checkout_session, plan_id, is_yearly, user_id, origin)
    except InvalidRequestError as e:
        return PlainTextResponse(e.message, status_code=400)
    except MissingCredentialsError as e:
        return PlainTextResponse(e.message, status_code=500)
    except ConfigurationError as e:
        # Unconfigured price for this plan/cadence
        return PlainTextResponse(e.message, status_code=400)
    except UpstreamBillingError:
        return PlainTextResponse("Failed to create checkout session", status_code=500)

    return CheckoutSessionResponse(id=result.session_id, url=result.redirect_url)


# ============================================
# ✅ PAYPAL PLAN CHECK
# ============================================

@router.api_route("/paypal-plan-check", methods=["GET", "OPTIONS"], response_model=PlanCheckResponse)
def paypal_plan_check(
    request: Request,
    verifier: PayPalPlanVerifier = Depends(get_plan_verifier),
    registry: PlanRegistry = Depends(get_plan_registry),
):
    origin = request.headers.get("origin") or "*"
    cors = {"Access-Control-Allow-Origin": origin}

    if request.method == "OPTIONS":
        return Response(
            status_code=status.HTTP_204_NO_CONTENT,
            headers={**cors, "Access-Control-Allow-Headers": "Content-Type, Authorization"},
        )

    environment = PayPalEnvironment.from_query(request.query_params.get("env"))
    plans_param = request.query_params.get("plans") or ""
    plan_ids = [p.strip() for p in plans_param.split(",") if p.strip()]

    try:
        results = verifier.verify_plans(environment, plan_ids)
    except InvalidRequestError as e:
        return JSONResponse({"error": e.message}, status_code=400, headers=cors)
    except Exception as e:
        logger.exception(f"PayPal plan check failed: env={environment.value}")
        message = getattr(e, "message", None) or str(e)
        return JSONResponse({"error": message}, status_code=500, headers=cors)

    for result in results:
        result.plan = registry.plan_for_identifier(Provider.PAYPAL, result.id)

    payload = PlanCheckResponse(env=environment.value, results=results)
    return JSONResponse(payload.model_dump(exclude_none=True), headers=cors)


# ============================================
# ✅ CLIENT CONFIG
# ============================================

@router.get("/client-config", response_model=ClientBillingConfig)
def client_config(
    registry: PlanRegistry = Depends(get_plan_registry),
    service: CheckoutService = Depends(get_checkout_service),
):
    return ClientBillingConfig(
        paypal_client_id=config.PUBLIC_PAYPAL_CLIENT_ID,
        paypal_client_id_sandbox=config.PUBLIC_PAYPAL_CLIENT_ID_SANDBOX,
        currency=config.BILLING_CURRENCY,
        trial_days=service.trial_days,
        paypal_plans=registry.public_paypal_plans(),
        stripe_checkout_enabled=service.is_configured,
    )
