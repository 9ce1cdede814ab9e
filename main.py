import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cohortpay.api.endpoints import admin, courses, payments
from cohortpay.core.database import Base, SessionLocal, engine
from cohortpay.core.settings import settings
from cohortpay.services.coupons import expire_stale_coupons
from cohortpay.services.demo_data import seed_demo_catalog

import cohortpay.models.coupon  # noqa: F401
import cohortpay.models.course  # noqa: F401
import cohortpay.models.payment  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("cohortpay")

app = FastAPI(title="Cohort Checkout API")

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    if settings.basic_auth_enabled and (settings.basic_auth_username is None or settings.basic_auth_password is None):
        raise RuntimeError("Basic Auth is enabled but BASIC_AUTH_USERNAME/BASIC_AUTH_PASSWORD are not set")
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if settings.seed_demo_data:
            seed_demo_catalog(db)
        expired = expire_stale_coupons(db)
        logger.info("startup.ready environment=%s expired_coupons=%s", settings.environment, expired)
    finally:
        db.close()


# API Routes
app.include_router(courses.router, prefix="/api", tags=["courses"])
app.include_router(payments.router, prefix="/api", tags=["payments"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
