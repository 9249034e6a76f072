import os
import time
import hashlib
import traceback
from typing import Dict
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config import settings
from .db import init_db
from .errors import SizeChartError
from .routers.admin import router as admin_router
from .routers.measurement_template import router as measurement_template_router
from .routers.size_chart import router as size_chart_router
from .security import create_jwt, verify_api_key


logger = structlog.get_logger("sizechart")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


app = FastAPI(title="Size Chart Service", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


# Token-bucket rate limit per client ip
_buckets: Dict[str, tuple[float, float]] = {}
_MAX_BUCKETS = 10000


def _prune_buckets(now: float, refill_seconds: float) -> None:
    # A bucket idle long enough to refill is the same as no bucket
    for ident in [k for k, (_, last) in _buckets.items() if now - last >= refill_seconds]:
        del _buckets[ident]


def _rate_limit(ident: str, requests_per_min: int, burst: int) -> bool:
    refill_rate = requests_per_min / 60.0
    capacity = float(burst)
    now = time.time()
    if len(_buckets) >= _MAX_BUCKETS:
        _prune_buckets(now, capacity / refill_rate if refill_rate > 0 else float("inf"))
    tokens, last = _buckets.get(ident, (capacity, now))
    tokens = min(capacity, tokens + refill_rate * (now - last))
    if tokens < 1.0:
        _buckets[ident] = (tokens, now)
        return False
    _buckets[ident] = (tokens - 1.0, now)
    return True


def _request_id(request: Request) -> str:
    return hashlib.md5(f"{request.client.host if request.client else 'unknown'}{time.time()}".encode()).hexdigest()[:8]


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    if not settings.api_key or settings.api_key == "change-me":
        errors.append("API_KEY must be set to a secure value")
    if not settings.s3_bucket:
        errors.append("AWS_S3_BUCKET_NAME must be set to build guide image URLs")
    if settings.jwt_secret == "dev-secret" and not settings.is_development:
        errors.append("JWT_SECRET must be set outside development")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        else:
            for e in errors:
                logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = _request_id(request)
    resp = None

    try:
        client_ip = request.client.host if request.client else "unknown"
        if request.method != "OPTIONS" and not _rate_limit(client_ip, settings.rate_limit_per_min, settings.rate_limit_burst):
            logger.warning("rate_limit_exceeded", client_ip=client_ip, request_id=request_id)
            resp = JSONResponse(status_code=429, content={"error": "Too Many Requests"}, headers=CORS_HEADERS)
            return resp

        logger.info("request_started",
                   request_id=request_id,
                   path=str(request.url.path),
                   method=request.method,
                   client_ip=client_ip,
                   origin=request.headers.get("origin", "unknown"))

        resp = await call_next(request)
        return resp

    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error("request_failed",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    error=str(e),
                    duration_ms=duration_ms,
                    exc_info=True)
        raise
    finally:
        duration_ms = int((time.time() - start) * 1000)
        status_code = getattr(resp, "status_code", 0) if resp else 0
        logger.info("request_completed",
                   request_id=request_id,
                   path=str(request.url.path),
                   method=request.method,
                   status=status_code,
                   duration_ms=duration_ms)


@app.exception_handler(SizeChartError)
async def handle_size_chart_error(request: Request, exc: SizeChartError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_rejected",
        path=str(request.url.path),
        status=exc.status_code,
        error=exc.message,
        error_type=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=CORS_HEADERS)


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = _request_id(request)

    logger.error("unhandled_exception",
                request_id=request_id,
                path=str(request.url.path),
                method=request.method,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True)

    content = {
        "error": str(exc) or "Internal server error",
        "error_code": "INTERNAL_ERROR",
        "request_id": request_id,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    }
    if settings.is_development:
        content["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content, headers=CORS_HEADERS)


@app.get("/v1/health")
async def health():
    return {"status": "ok"}


@app.post("/v1/auth/token", dependencies=[Depends(verify_api_key)])
async def issue_token(shop: str):
    """Merchant session token; ``sub`` is the shop the admin routes act on."""
    token = create_jwt(shop)
    return {"token": token}


# Storefront routes keep the paths theme code calls; merchant routes are versioned
app.include_router(size_chart_router)
app.include_router(measurement_template_router)
app.include_router(admin_router, prefix="/v1")

init_db()

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
