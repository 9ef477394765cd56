"""
GemTrade - Main FastAPI Application
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gemtrade.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Gemstone sales and inventory with GST invoicing",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.on_event("startup")
def create_tables():
    """Create missing tables when AUTO_CREATE_TABLES is set (no migrations in this deployment)."""
    if not settings.AUTO_CREATE_TABLES:
        return
    from gemtrade.database import Base, engine
    import gemtrade.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info("Tables ensured on %s", engine.url.render_as_string(hide_password=True))


# Import and include routers
from gemtrade.api import clients_router, inventory_router, sales_router  # noqa: E402

app.include_router(sales_router, prefix="/api/sales", tags=["Sales"])
app.include_router(inventory_router, prefix="/api/inventory", tags=["Inventory"])
app.include_router(clients_router, prefix="/api/clients", tags=["Clients"])
