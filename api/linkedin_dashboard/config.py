"""
Configuration centralisée pour l'API FastAPI
Utilise pydantic-settings pour validation et typage fort
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuration de l'application avec validation Pydantic"""

    # Application
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_VERSION: str = "v1"
    SECRET_KEY: str
    SESSION_SECRET: str
    LOG_LEVEL: str = "INFO"

    # LinkedIn OAuth
    LINKEDIN_CLIENT_ID: str
    LINKEDIN_CLIENT_SECRET: str
    LINKEDIN_REDIRECT_URI: str
    LINKEDIN_SCOPES: str = "openid profile email r_ads r_ads_reporting"

    # LinkedIn Marketing API
    LINKEDIN_API_VERSION: str = "202504"
    LINKEDIN_MAX_CONCURRENCY: int = 5  # Appels LinkedIn simultanés par requête (rate limits)

    # Analytics pipeline
    ANALYTICS_PAGE_SIZE: int = 100
    ANALYTICS_MAX_OFFSET: int = 10000  # Safety limit (100 pages de 100 rows)
    ANALYTICS_TIMEOUT_SECONDS: float = 50.0
    TOP_PERFORMERS_LIMIT: int = 5

    # LLM report
    ANTHROPIC_API_KEY: str = ""
    REPORT_MODEL: str = "claude-sonnet-4-5"
    REPORT_MAX_TOKENS: int = 2000

    # Security
    TOKEN_ENCRYPTION_KEY: str
    FERNET_OLD_KEYS: str = ""  # Anciennes clés séparées par virgule (rotation)
    JWT_ISSUER: str = "linkedin-ads-dashboard"  # JWT issuer claim

    # Cookie settings (cross-site compatibility)
    COOKIE_SAMESITE: str = "lax"  # "none" if dashboard and API on different eTLD+1
    COOKIE_DOMAIN: str = ""  # ".yourdomain.com" for subdomain sharing

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # Dashboard URL (for OAuth redirect after success)
    DASHBOARD_URL: str = "http://localhost:3000/"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra fields from .env without failing


# Instance globale
settings = Settings()
