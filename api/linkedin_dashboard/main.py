"""
Application FastAPI du dashboard LinkedIn Ads

Lancement: uvicorn linkedin_dashboard.main:app --reload (depuis api/)
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from .config import settings
from .middleware.csrf import CSRFFromCookieGuard
from .routers import accounts, analytics, auth, entities

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format='%(asctime)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LinkedIn Ads Dashboard API",
    version=settings.API_VERSION,
    debug=settings.DEBUG,
)

# Ordre: le dernier ajouté s'exécute en premier (CORS → session → CSRF)
app.add_middleware(CSRFFromCookieGuard)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    same_site="lax",
    https_only=not settings.DEBUG,
    max_age=600,  # Seul le state OAuth vit en session
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(auth.router, prefix="/auth")
app.include_router(accounts.router, prefix="/api/accounts", tags=["accounts"])
app.include_router(entities.router, prefix="/api", tags=["entities"])
app.include_router(analytics.router, prefix="/api", tags=["analytics"])


@app.get("/health")
def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}


logger.info(f"LinkedIn Ads Dashboard API started ({settings.ENVIRONMENT}, LinkedIn-Version {settings.LINKEDIN_API_VERSION})")
