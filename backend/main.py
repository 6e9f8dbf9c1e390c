from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .config import settings
from .database import engine, Base, DATABASE_URL
from .routers import materials, products, pricing, advisor

logger = logging.getLogger("pricing_calculator")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

BASE_REVISION = "5b1c0e7a9d42"


def _run_migrations():
    """Run pending Alembic migrations on startup.

    A database created by Base.metadata.create_all() has the tables but no
    alembic_version table; it is stamped at the base revision first.
    """
    try:
        from alembic.config import Config
        from alembic import command
        from sqlalchemy import inspect

        alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini):
            logger.info("alembic.ini not found, skipping migrations")
            return

        alembic_cfg = Config(alembic_ini)
        alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)

        insp = inspect(engine)
        has_alembic = "alembic_version" in insp.get_table_names()
        has_products = "products" in insp.get_table_names()

        if not has_alembic and has_products:
            logger.info(f"Stamping base migration {BASE_REVISION} (tables already exist)")
            command.stamp(alembic_cfg, BASE_REVISION)

        logger.info("Running pending Alembic migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception as e:
        # Never let migration errors prevent app startup
        logger.warning(f"Alembic migration warning: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Cost breakdown, pricing strategy and AI pricing advice for handmade products",
    version="2.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(materials.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(pricing.router, prefix="/api")
app.include_router(advisor.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "product-pricing-calculator"}


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    _run_migrations()


@app.on_event("startup")
def auto_seed():
    """Seed the starter catalog and sample product on first run."""
    if not settings.SEED_DEFAULTS:
        return
    from .database import SessionLocal
    db = SessionLocal()
    try:
        seeded = materials.seed_default_materials(db)
        product = products.seed_default_product(db)
        logger.info(
            f"Seeded {seeded} material(s)"
            + (f" and sample product {product.product_name!r}" if product else "")
        )
    except Exception as e:
        # Storage trouble must not stop the calculator from starting
        db.rollback()
        logger.warning(f"Default data seeding failed: {e}")
    finally:
        db.close()
