from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from bakerypos.database.database import sync_engine, Base

# Import middleware
from bakerypos.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from bakerypos.modules.stores.router import store_router
from bakerypos.modules.users.router import user_router
from bakerypos.modules.categories.router import categories_router
from bakerypos.modules.brands.router import brand_router
from bakerypos.modules.suppliers.router import supplier_router
from bakerypos.modules.products.router import product_router
from bakerypos.modules.transactions.router import transaction_router
from bakerypos.modules.payments.router import payment_router
from bakerypos.modules.dashboard.router import dashboard_router

# Import models for table creation
import bakerypos.modules.stores.models
import bakerypos.modules.auth.models
import bakerypos.modules.categories.models
import bakerypos.modules.brands.models
import bakerypos.modules.suppliers.models
import bakerypos.modules.products.models
import bakerypos.modules.transactions.models

from bakerypos.core.config import settings
from bakerypos.modules.payments.gateway import MidtransGateway

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Bakery POS API",
    description="Multi-store bakery point of sale: catalog, checkout, payments and reports",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(store_router)
app.include_router(user_router)
app.include_router(categories_router)
app.include_router(brand_router)
app.include_router(supplier_router)
app.include_router(product_router)
app.include_router(transaction_router)
app.include_router(payment_router)
app.include_router(dashboard_router)


@app.get("/")
async def read_root():
    return {
        "message": "Bakery POS API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Bakery POS API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Create database tables (only for development; no migration tooling)
    if settings.ENVIRONMENT == "development":
        Base.metadata.create_all(bind=sync_engine)

    app.state.payment_gateway = MidtransGateway.from_settings(settings)
    if not settings.MIDTRANS_SERVER_KEY:
        logger.warning("MIDTRANS_SERVER_KEY is not set; digital payments will be rejected by the gateway")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Bakery POS API shutting down...")
    gateway = getattr(app.state, "payment_gateway", None)
    if gateway is not None:
        await gateway.aclose()
