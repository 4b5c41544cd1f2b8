from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv
from typing import Optional
import os
import sys
import traceback
import logging
from datetime import datetime

from drm_backend.config.env import Env
from drm_backend.context import AppContext, get_context
from drm_backend.routers import broadcast, callback, health, player, settings, token
from drm_backend.utils.cors import OriginPatternCORSMiddleware
from drm_backend.utils.settings_store import SettingsStore

load_dotenv()
ENV = Env.from_environ()

# Robust logging configuration with fallback when file writing is not permitted
LOG_FILE_PATH = ENV.log_file
FILE_LOG_ENABLED = False

handlers = []

console_handler = logging.StreamHandler(sys.stdout)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
console_handler.setFormatter(formatter)
handlers.append(console_handler)

if ENV.log_to_file:
    try:
        os.makedirs(os.path.dirname(LOG_FILE_PATH) or ".", exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE_PATH, encoding='utf-8')
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
        FILE_LOG_ENABLED = True
    except OSError:
        # Console-only when the file cannot be opened (e.g. read-only filesystem)
        FILE_LOG_ENABLED = False

logging.basicConfig(
    level=getattr(logging, ENV.log_level.upper(), logging.INFO),
    handlers=handlers
)
logger = logging.getLogger(__name__)

CORS_ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "x-api-key",
    "x-dt-auth-token",
    "x-dt-custom-data",
]


def _error_content(detail) -> dict:
    if isinstance(detail, dict):
        content = dict(detail)
        content["error"] = content.pop("message", None) or content.get("error") or "Error"
        return content
    return {"error": detail}


def create_app(env: Optional[Env] = None, settings_store: Optional[SettingsStore] = None) -> FastAPI:
    env = env or ENV
    if settings_store is None:
        settings_store = SettingsStore(path=env.settings_file)
    settings_store.initialize_defaults()

    app = FastAPI(
        title="DRM Backend",
        description="DRMtoday callback authorization and player DRM configuration for WebRTC streams",
        version="1.0.0"
    )
    app.state.context = AppContext(env=env, settings=settings_store)

    app.add_middleware(
        OriginPatternCORSMiddleware,
        allowed_origins=env.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    @app.middleware("http")
    async def log_requests_and_responses(request: Request, call_next):
        """Log every request with status and timing, and turn crashes into JSON 500s"""
        start_time = datetime.now()
        client = request.client.host if request.client else "unknown"
        logger.info(f"🔍 REQUEST: {request.method} {request.url.path} from {client}")

        try:
            response = await call_next(request)
            process_time = (datetime.now() - start_time).total_seconds()
            marker = "✅" if response.status_code < 400 else "⚠️"
            logger.info(f"{marker} RESPONSE: {response.status_code} in {process_time:.3f}s")
            return response

        except Exception as e:
            process_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"❌ ERROR in {request.method} {request.url.path} after {process_time:.3f}s")
            logger.error(f"   Error Type: {type(e).__name__}")
            logger.error(f"   Error Message: {str(e)}")
            logger.error(traceback.format_exc())
            return JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "status": 500,
                        "message": "Internal Server Error" if env.is_production else str(e),
                        "type": type(e).__name__,
                    },
                    "timestamp": datetime.now().isoformat(),
                    "path": request.url.path,
                }
            )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            content = {
                "error": {
                    "status": 404,
                    "message": f"Route not found: {request.method} {request.url.path}",
                }
            }
        else:
            content = _error_content(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        logger.warning(f"⚠️ Invalid request body for {request.method} {request.url.path}: {details}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler that logs everything"""
        logger.error("🚨 GLOBAL EXCEPTION HANDLER TRIGGERED")
        logger.error(f"   Request: {request.method} {request.url.path}")
        logger.error(f"   Exception Type: {type(exc).__name__}")
        logger.error(f"   Exception Message: {str(exc)}")
        logger.error(traceback.format_exc())

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "status": 500,
                    "message": "Internal Server Error" if env.is_production else str(exc),
                    "type": type(exc).__name__,
                },
                "timestamp": datetime.now().isoformat(),
                "path": request.url.path,
            }
        )

    app.include_router(health.router, prefix="", tags=["health"])
    app.include_router(callback.router, prefix="", tags=["callback"])
    app.include_router(token.router, prefix="", tags=["token"])
    app.include_router(settings.router, prefix="", tags=["settings"])
    app.include_router(broadcast.router, prefix="", tags=["broadcast"])
    app.include_router(player.router, prefix="", tags=["player"])

    @app.on_event("startup")
    async def startup_diagnostics():
        logger.info("🔧 Startup diagnostics: checking configuration...")
        missing = env.missing_required()
        if missing:
            logger.error(f"❌ Missing required environment variables: {', '.join(missing)}")
        logger.info(f"✅ Configuration (sanitized): {env.summary()}")
        if env.token_auth_available:
            logger.info("🔑 Authorization: Callback + Token/Fallback available")
        else:
            logger.info("🔑 Authorization: Callback only (set DRM_JWT_SHARED_SECRET and DRM_JWT_KID for tokens)")

    @app.get("/")
    async def root():
        return {"message": "DRM Backend API", "callback": "/api/callback", "health": "/health"}

    @app.get("/debug/status")
    async def get_debug_status(request: Request):
        """Endpoint to check server status and configuration"""
        ctx = get_context(request)
        return {
            "status": "running",
            "timestamp": datetime.now().isoformat(),
            "uptime": round(ctx.uptime, 3),
            "environment": ctx.env.summary(),
            "settings": {
                "file": ctx.settings.path,
                "encryption_enabled": ctx.settings.get("drm.encryption.enabled", True),
            },
            "broadcasts": {"active": len(ctx.broadcasts.list_active())},
            "logging": {
                "level": ctx.env.log_level,
                "file_enabled": FILE_LOG_ENABLED,
                "log_file_path": LOG_FILE_PATH,
            },
        }

    return app


app = create_app()
