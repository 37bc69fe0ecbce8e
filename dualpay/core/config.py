import os

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ✅ Site
SITE_URL = os.getenv("SITE_URL")
DEFAULT_SITE_URL = "http://localhost:5173"

# ✅ Billing defaults
BILLING_CURRENCY = os.getenv("BILLING_CURRENCY", "USD")
CHECKOUT_TRIAL_DAYS = int(os.getenv("CHECKOUT_TRIAL_DAYS", "7"))

# ✅ Stripe (checkout provider)
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")

# ✅ PayPal (button provider)
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET")
PAYPAL_CLIENT_ID_SANDBOX = os.getenv("PAYPAL_CLIENT_ID_SANDBOX")
PAYPAL_CLIENT_SECRET_SANDBOX = os.getenv("PAYPAL_CLIENT_SECRET_SANDBOX")

# Browser-safe client ids
PUBLIC_PAYPAL_CLIENT_ID = os.getenv("PUBLIC_PAYPAL_CLIENT_ID")
PUBLIC_PAYPAL_CLIENT_ID_SANDBOX = os.getenv("PUBLIC_PAYPAL_CLIENT_ID_SANDBOX")

# Price / plan identifiers are read per plan and cadence by
# dualpay.core.plan_registry.load_plan_registry:
#   STRIPE_PRICE_<PLAN>_<CADENCE>, PAYPAL_PLAN_<PLAN>_<CADENCE>
