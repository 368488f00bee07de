"""Coarse edge gate.

Sheds anonymous traffic before it reaches a handler. It only looks for the
*presence* of a session cookie or an Authorization header and never decodes
either; handlers always re-verify through autocrew.security.
"""

import logging
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

logger = logging.getLogger(__name__)

PUBLIC_ROUTES = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/login",
    "/setup-password",
    "/api/auth/login",
    "/api/auth/magic-link/verify",
]


def matches_route(pathname: str, routes: list[str]) -> bool:
    """True if `pathname` is one of `routes` or nested below one."""
    for route in routes:
        if route.endswith("*"):
            if pathname.startswith(route[:-1]):
                return True
        elif pathname == route or pathname.startswith(f"{route}/"):
            return True
    return False


class EdgeGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, cookie_name: str, public_routes: list[str] | None = None):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.public_routes = public_routes if public_routes is not None else PUBLIC_ROUTES

    def has_credentials(self, request: Request) -> bool:
        return bool(request.cookies.get(self.cookie_name) or request.headers.get("authorization"))

    async def dispatch(self, request: Request, call_next):
        pathname = request.url.path

        if request.method == "OPTIONS" or matches_route(pathname, self.public_routes):
            return await call_next(request)

        if self.has_credentials(request):
            return await call_next(request)

        if pathname.startswith("/api/"):
            return JSONResponse(status_code=401, content={"detail": "Authentication required"})

        return RedirectResponse(url=f"/login?callbackUrl={quote(pathname, safe='')}", status_code=307)
