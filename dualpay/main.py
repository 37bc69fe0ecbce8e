from contextlib import asynccontextmanager

from fastapi import FastAPI

from dualpay.api.routes import billing
from dualpay.core.config import LOG_LEVEL
from dualpay.core.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL)
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

# No CORSMiddleware: checkout is same-origin, and the plan check endpoint
# answers its own preflight by echoing the caller's origin.
app = FastAPI(title="Dualpay Billing", lifespan=lifespan)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(billing.router)


# ============================================
# ✅ HEALTH CHECK ROOT ENDPOINT
# ============================================

@app.get("/")
def root():
    return {"status": "Dualpay billing API running"}
