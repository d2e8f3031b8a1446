"""FastAPI application entry point."""

import asyncio
import logging
import json
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from app.api.routes import api_router
from app.core.auth import AuthContext, RequireManager, context_from_payload
from app.core.config import settings
from app.core.errors import NotFound, ServiceDegraded, ServiceError
from app.core.metrics import MetricsMiddleware, metrics
from app.core.rate_limit import limiter
from app.core.security import decode_access_token
from app.db.base import Base
from app.db.errors import is_missing_table
from app.db.session import engine, SessionLocal
from app.services.kitchen_display_service import ensure_kds_enabled
from app.services.realtime import SubscriptionSet, channel_name, hub, install_change_capture
from app.services.realtime.views import dashboard_view, kds_view, order_tracking_view

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import sys

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")

install_change_capture()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with a request id, echoed back in X-Request-ID."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in ("/health", "/health/ready", "/", "/docs", "/openapi.json"):
            return await call_next(request)

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        request_logger.info(f"[{request_id}] {request.method} {request.url.path} from {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"[{request_id}] {request.method} {request.url.path} raised "
                f"{type(e).__name__} after {process_time:.3f}s"
            )
            raise

        process_time = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"in {process_time:.3f}s"
        )
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Tabletop ordering API")

    # Create tables if they don't exist (for SQLite dev)
    # In production with PostgreSQL, use Alembic migrations
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    yield

    hub.reset()
    logger.info("Shutting down Tabletop ordering API")


app = FastAPI(
    title="Tabletop Ordering API",
    description="Multi-tenant restaurant ordering, kitchen display and payments",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ===== Error rendering: {"error": ..., "reason"?: ...} =====

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    if is_missing_table(exc):
        logger.warning(f"Missing table on {request.method} {request.url.path}: {exc.orig}")
        return JSONResponse(status_code=503, content=ServiceDegraded().to_body())
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Metrics middleware (Prometheus-compatible)
app.add_middleware(MetricsMiddleware)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - MUST be added last so it runs first (Starlette LIFO order).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,  # Cache preflight for 10 minutes
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with database connectivity and realtime hub check."""
    checks = {
        "database": "unknown",
        "realtime": "unknown",
    }

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    checks["realtime"] = (
        f"healthy ({hub.subscriber_count()} subscriptions, "
        f"{metrics.ws_active_connections} connections)"
    )

    all_healthy = all(c.startswith("healthy") for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Tabletop Ordering API",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/metrics")
@limiter.limit("30/minute")
def prometheus_metrics(request: Request, current_user: RequireManager):
    """Prometheus-compatible metrics endpoint."""
    return PlainTextResponse(metrics.get_prometheus_metrics(), media_type="text/plain")


# ===== WebSocket Authentication Helper =====

async def _authenticate_websocket(
    websocket: WebSocket,
    token: Optional[str],
    view: str,
) -> Optional[AuthContext]:
    """Authenticate a WebSocket connection. Returns the tenant context or None (rejected).

    The token comes from the ``token`` query parameter, falling back to the
    access_token cookie. Connections without a valid tenant-scoped token are
    rejected with 1008 Policy Violation.
    """
    payload = decode_access_token(token) if token else None
    if not payload:
        cookie_token = websocket.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    context = context_from_payload(payload)
    if context is None or not context.tenant_id:
        logger.warning(f"WebSocket rejected for '{view}': no valid tenant token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return context


def _build_view(builder: Callable, *args) -> dict:
    db = SessionLocal()
    try:
        return builder(db, *args)
    finally:
        db.close()


async def _ws_loop(
    websocket: WebSocket,
    view: str,
    push: Callable[[], Awaitable[None]],
    subscriptions: SubscriptionSet,
):
    """Standard live-view loop: initial push, then ping/pong until disconnect."""
    metrics.ws_active_connections += 1
    try:
        await push()
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected from '{view}'")
    except Exception as e:
        logger.error(f"WebSocket error in {view}: {e}", exc_info=True)
    finally:
        subscriptions.close()
        metrics.ws_active_connections -= 1


def _pusher(websocket: WebSocket, view: str, builder: Callable, *args) -> Callable[[], Awaitable[None]]:
    async def push() -> None:
        data = await run_in_threadpool(_build_view, builder, *args)
        await websocket.send_json({"event": view, "data": data})
    return push


# WebSocket endpoints for live views (ALL require a tenant-scoped JWT)
@app.websocket("/ws/kds")
async def websocket_kds(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Live KDS lanes, refreshed on order and status event changes."""
    auth = await _authenticate_websocket(websocket, token, "kds")
    if auth is None:
        return
    try:
        ensure_kds_enabled()
    except ServiceError as exc:
        logger.info(f"WebSocket rejected for 'kds': {exc.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    push = _pusher(websocket, "lanes", kds_view, auth.tenant_id)
    subscriptions = SubscriptionSet(loop=asyncio.get_running_loop())
    subscriptions.watch(
        "lanes",
        [channel_name("orders", auth.tenant_id), channel_name("order_status_events", auth.tenant_id)],
        push,
    )
    await _ws_loop(websocket, "kds", push, subscriptions)


@app.websocket("/ws/dashboard")
async def websocket_dashboard(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Live dashboard summary, refreshed on order, status and payment changes."""
    auth = await _authenticate_websocket(websocket, token, "dashboard")
    if auth is None:
        return

    await websocket.accept()
    push = _pusher(websocket, "dashboard", dashboard_view, auth.tenant_id)
    subscriptions = SubscriptionSet(loop=asyncio.get_running_loop())
    subscriptions.watch(
        "dashboard",
        [
            channel_name("orders", auth.tenant_id),
            channel_name("order_status_events", auth.tenant_id),
            channel_name("payment_intents", auth.tenant_id),
        ],
        push,
    )
    await _ws_loop(websocket, "dashboard", push, subscriptions)


@app.websocket("/ws/orders/{order_id}")
async def websocket_order_tracking(websocket: WebSocket, order_id: str, token: Optional[str] = Query(None)):
    """Live tracking of one order: detail plus status history."""
    auth = await _authenticate_websocket(websocket, token, f"order-{order_id}")
    if auth is None:
        return

    try:
        await run_in_threadpool(_build_view, order_tracking_view, auth.tenant_id, order_id)
    except NotFound:
        logger.info(f"WebSocket rejected for order {order_id}: not found for tenant {auth.tenant_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    push = _pusher(websocket, "order", order_tracking_view, auth.tenant_id, order_id)
    subscriptions = SubscriptionSet(loop=asyncio.get_running_loop())
    subscriptions.watch(
        "order",
        [channel_name("orders", auth.tenant_id), channel_name("order_status_events", auth.tenant_id)],
        push,
        event_filter=lambda event: event.order_id == order_id,
    )
    await _ws_loop(websocket, f"order-{order_id}", push, subscriptions)
