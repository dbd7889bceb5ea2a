"""
Route guard for the API.

Every /api/ request outside the public table must carry a decodable session
cookie. Role checks are left to the route dependencies.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)

PUBLIC_ROUTES = (
    "/",
    "/api/health",
    "/api/auth/login",
    "/api/auth/logout",
)


def is_public_route(path: str) -> bool:
    for route in PUBLIC_ROUTES:
        if route == "/":
            if path == "/":
                return True
        elif path == route or path.startswith(route + "/"):
            return True
    return False


def _unauthorized() -> JSONResponse:
    return JSONResponse({"detail": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)


async def route_guard(request: Request, call_next):
    path = request.url.path
    if request.method == "OPTIONS" or not path.startswith("/api/") or is_public_route(path):
        return await call_next(request)

    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        return _unauthorized()

    if decode_access_token(token) is None:
        logger.debug(f"Rejected invalid or expired session cookie on {path}")
        response = _unauthorized()
        response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
        return response

    return await call_next(request)
