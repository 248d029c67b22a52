"""
Permissive cross-origin headers.

Uploads and file URLs are meant to be embedded and called from any
origin, so every response gets the same headers, errors included, and
every OPTIONS request is answered with an empty 200.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-API-Key",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Adds CORS headers and short-circuits preflight requests."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response
