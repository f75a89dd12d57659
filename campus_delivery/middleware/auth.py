"""
Campus Delivery: JWT Authentication Middleware
Shopper routes are open; admin routes need a Bearer token carrying a known role.
"""
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from campus_delivery.core.errors import AppError, ErrorType
from campus_delivery.core.security import decode_token
from campus_delivery.models.roles import Principal

# Paths that do NOT require authentication
PUBLIC_PATHS = {
    "/health",
    "/metrics",
    "/",
    "/docs",
    "/openapi.json",
}

PUBLIC_PREFIXES = ("/catalog", "/session", "/cart", "/fees", "/checkout", "/metrics")


def is_public(path: str) -> bool:
    if path in PUBLIC_PATHS:
        return True
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PUBLIC_PREFIXES)


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"type": ErrorType.AUTHENTICATION.value, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """
    Intercepts every request. On protected paths, validates the Bearer token
    and attaches the caller as request.state.principal (raw token in
    request.state.token, forwarded to the backend).
    """

    def __init__(self, app, settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if is_public(path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return _unauthorized("Missing or invalid Authorization header. Expected: Bearer <token>")

        token = auth_header.split(" ", 1)[1]
        try:
            claims = decode_token(token, self.settings)
        except JWTError as exc:
            return _unauthorized(f"Invalid or expired JWT: {exc}")

        try:
            principal = Principal.from_claims(claims)
        except AppError as exc:
            return JSONResponse(status_code=exc.http_status, content=exc.normalized.model_dump(mode="json"))

        request.state.principal = principal
        request.state.token = token
        return await call_next(request)
