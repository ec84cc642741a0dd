"""
AdmitFlow - Patient Onboarding API
Guided hospital admission: personal, insurance and medical intake with an
emergency fast path, document pre-fill and a staff dashboard.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.access_log_middleware import AccessLogMiddleware
from .core.errors import register_exception_handlers
from .models.base import Base, engine
from .models import patient, activity, document  # noqa: F401 - register tables
from .api import onboarding, patients, activities, dashboard, emergency, navigation
from .seed_demo import seed_demo_data

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create all database tables
Base.metadata.create_all(bind=engine)

if settings.SEED_DEMO_DATA:
    seed_demo_data()

app = FastAPI(
    title="AdmitFlow Patient Onboarding API",
    description=(
        "Step-by-step patient onboarding with an emergency fast path, "
        "admission location assignment, AI document pre-fill and staff dashboard."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AccessLogMiddleware)

register_exception_handlers(app)

app.include_router(onboarding.router, prefix="/api/v1")
app.include_router(patients.router, prefix="/api/v1")
app.include_router(activities.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(emergency.router, prefix="/api/v1")
app.include_router(navigation.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
