"""
Protection CSRF pour l'authentification par cookie HttpOnly

Le dashboard appelle l'API avec le cookie access_token, et toutes ses lectures
de données sont des POST (sélections de comptes / campagnes / ads, /api/analytics,
/api/report). Un site tiers pourrait donc déclencher ces appels avec le cookie
du membre et consommer son quota LinkedIn ou Anthropic.

Règles:
- GET/HEAD/OPTIONS → toujours autorisés (callback OAuth, /api/accounts, /health)
- Authorization: Bearer présent → autorisé (un navigateur ne l'ajoute jamais seul)
- Sinon Origin (ou à défaut Referer) doit être le dashboard ou une origine CORS déclarée
- Sinon → 403
"""
from typing import Set
from urllib.parse import urlparse

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..config import settings


def trusted_netlocs() -> Set[str]:
    """Hôtes (domaine:port) autorisés: DASHBOARD_URL + ALLOWED_ORIGINS"""
    origins = [settings.DASHBOARD_URL] + settings.allowed_origins_list
    return {urlparse(origin).netloc for origin in origins if origin}


class CSRFFromCookieGuard(BaseHTTPMiddleware):
    """
    Bloque les requêtes cross-origin authentifiées par cookie

    Une requête est bloquée si elle:
    1. Modifie ou lit via POST/PUT/DELETE/PATCH
    2. N'a pas de Bearer token
    3. Vient d'une origine absente de trusted_netlocs()
    """

    SAFE_METHODS = ("GET", "HEAD", "OPTIONS")

    # DEBUG uniquement: appelé hors navigateur (curl, scripts)
    CSRF_EXEMPT_PATHS = (
        "/auth/linkedin/dev-login",
    )

    async def dispatch(self, request, call_next):
        if request.url.path in self.CSRF_EXEMPT_PATHS or request.method in self.SAFE_METHODS:
            return await call_next(request)

        # Bearer token → CSRF-safe
        auth_header = request.headers.get("authorization", "")
        if auth_header.lower().startswith("bearer "):
            return await call_next(request)

        # Referer est une URL complète (chemin inclus): seul le netloc compte
        source = request.headers.get("origin") or request.headers.get("referer", "")
        source_netloc = urlparse(source).netloc if source else ""

        if not source_netloc or source_netloc not in trusted_netlocs():
            return JSONResponse(
                status_code=403,
                content={
                    "detail": "CSRF protection: cross-origin requests must use Bearer token authentication"
                }
            )

        return await call_next(request)
