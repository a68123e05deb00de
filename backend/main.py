"""FastAPI main application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api import turns as turns_api
from backend.app.content.scenario_loader import resolve_scenario_dir, list_scenario_ids
from backend.app.core.error_handling import create_error_response, log_error_with_context
from shared.runtime_settings import load_api_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SETTINGS = load_api_settings()


def _validate_environment() -> None:
    """Log environment health checks at startup. Never fails."""
    scenario_dir = resolve_scenario_dir()
    if not scenario_dir.exists():
        logger.warning("Scenario directory missing: %s", scenario_dir)
        return
    ids = list_scenario_ids()
    if ids:
        logger.info("Scenarios: %d found in %s", len(ids), scenario_dir)
    else:
        logger.warning("No scenario files in %s", scenario_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not SETTINGS.dev_mode:
        if "*" in SETTINGS.cors_allow_origins:
            raise RuntimeError(
                "Unsafe CORS config: '*' is only allowed in dev mode. "
                "Set GAMEMASTER_CORS_ALLOW_ORIGINS to explicit origins."
            )
        if not SETTINGS.api_token:
            raise RuntimeError("GAMEMASTER_API_TOKEN is required when GAMEMASTER_DEV_MODE=0.")
    _validate_environment()
    logger.info(
        "API startup complete (dev_mode=%s, auth=%s)",
        SETTINGS.dev_mode,
        "enabled" if SETTINGS.auth_required else "disabled",
    )
    yield


app = FastAPI(title="Game Master Engine API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _extract_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "").strip()
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return request.headers.get("X-API-Key", "").strip()


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    if request.method.upper() == "OPTIONS" or not SETTINGS.auth_required:
        return await call_next(request)
    path = request.url.path or ""
    if path in ("/", "/health"):
        return await call_next(request)

    if _extract_token(request) != SETTINGS.api_token:
        error_response = create_error_response(
            error_code="AUTH_HTTP_401",
            message="Unauthorized",
            stage="api",
            details={"path": path},
        )
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=error_response)
    return await call_next(request)


def _stage_for(path: str) -> str:
    if "/turns" in path:
        return "turn"
    if "/endings" in path:
        return "endings"
    if "/sessions" in path:
        return "session"
    return "api"


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPExceptions with structured error responses."""
    stage = _stage_for(request.url.path)
    error_response = create_error_response(
        error_code=f"{stage.upper()}_HTTP_{exc.status_code}",
        message=exc.detail,
        stage=stage,
        details={"status_code": exc.status_code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler: structured error response plus logging."""
    stage = _stage_for(request.url.path)
    log_error_with_context(
        error=exc,
        stage=stage,
        extra_context={"method": request.method, "path": request.url.path},
    )
    error_response = create_error_response(
        error_code=f"{stage.upper()}_ERROR",
        message=str(exc) or f"An error occurred: {type(exc).__name__}",
        stage=stage,
        details={"exception_type": type(exc).__name__, "path": request.url.path},
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)


app.include_router(turns_api.router)


@app.get("/")
async def root():
    return {"message": "Game Master Engine API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy", "scenarios": list_scenario_ids()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
