"""
Tenant Middleware

Resolves the tenant a request operates on and makes it available
throughout the request lifecycle. This is CRITICAL for multi-tenant
isolation.

Resolution order:
1. Path: /api/tenants/{tenant_id}/... (most routes)
2. X-Tenant-ID header (inventory routes, API clients)
3. tenant_id claim of the bearer token

The token is only decoded here, not verified against the database;
get_current_user does the full check later.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
import re

from taskbrick.database import SessionLocal
from taskbrick.models.tenant import Tenant
from taskbrick.core.security import decode_access_token
from taskbrick.utils.logging import bind_request_context, get_logger

logger = get_logger(__name__)

TENANT_PATH_RE = re.compile(r"^/api/tenants/([^/]+)")


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Middleware to extract and validate tenant from request.

    This runs on EVERY request and adds tenant context to request.state.

    SECURITY: This is the first line of defense for tenant isolation.
    """

    def __init__(self, app):
        super().__init__(app)
        self.excluded_prefixes = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
            "/api/auth/",
            "/api/uploads/",
        ]
        # Matched exactly; /api/tenants/{id} is tenant-scoped
        self.excluded_exact = {
            "/",
            "/api/register",
            "/api/validate-invitation",
            "/api/tenants",
        }

    def _is_excluded(self, path: str) -> bool:
        if path in self.excluded_exact or path.rstrip("/") in self.excluded_exact:
            return True
        return any(path.startswith(prefix) for prefix in self.excluded_prefixes)

    async def dispatch(self, request: Request, call_next):
        """Process each request and inject tenant context."""

        # Preflight requests carry no credentials
        if request.method == "OPTIONS" or self._is_excluded(request.url.path):
            return await call_next(request)

        tenant_id = self._extract_tenant_identifier(request)

        if not tenant_id:
            logger.warning(f"No tenant identifier in request: {request.url.path}")
            return JSONResponse(
                status_code=400,
                content={"detail": "Tenant identifier required (path, X-Tenant-ID header or token)"}
            )

        # NOTE: This is a DB query on every request. In high-scale systems,
        # you'd want to cache this in Redis with TTL.
        db = SessionLocal()
        try:
            tenant = self._load_tenant(db, tenant_id)
        finally:
            db.close()

        if not tenant:
            logger.warning(f"Tenant not found: {tenant_id}")
            return JSONResponse(
                status_code=404,
                content={"detail": "Tenant not found"}
            )

        if not tenant.is_active:
            logger.warning(f"Inactive tenant attempted access: {tenant_id}")
            return JSONResponse(
                status_code=403,
                content={"detail": "Tenant account is inactive"}
            )

        # Inject tenant context into request state
        request.state.tenant = tenant
        request.state.tenant_id = tenant.id
        bind_request_context(tenant_id=tenant.id)

        logger.debug(f"Request for tenant: {tenant.domain} ({tenant.id})")

        return await call_next(request)

    def _extract_tenant_identifier(self, request: Request) -> Optional[str]:
        match = TENANT_PATH_RE.match(request.url.path)
        if match:
            return match.group(1)

        tenant_id = request.headers.get("X-Tenant-ID")
        if tenant_id:
            return tenant_id.strip()

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_access_token(auth_header[len("Bearer "):])
            if payload and payload.get("tenant_id"):
                return payload["tenant_id"]

        return None

    def _load_tenant(self, db: Session, tenant_id: str) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()
