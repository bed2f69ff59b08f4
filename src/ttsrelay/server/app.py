"""FastAPI application for the ttsrelay HTTP server."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..cache.storage import CacheStore
from ..config import RelayConfig, load_config
from ..providers import ProviderRegistry
from ..tts.errors import SynthesisFailed, TTSValidationError
from ..tts.pipeline import CacheOrchestrator
from .presenters import API_PREFIX, error_body
from .routes import router

logger = logging.getLogger(__name__)

# Browser hardening headers added to every response
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
}


def build_orchestrator(config: RelayConfig) -> CacheOrchestrator:
    """Wire the cache store and configured gateway into an orchestrator.

    Raises:
        KeyError: If the configured provider is unknown
        UpstreamAuthError: If the provider's credentials are missing
    """
    store = CacheStore(config.cache.dir, enabled=config.cache.enabled)
    gateway = ProviderRegistry.create(config.provider)
    return CacheOrchestrator(store, gateway)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    msg = str(errors[0].get("msg", "Invalid request"))
    # pydantic prefixes messages raised from validators
    return msg.removeprefix("Value error, ")


def create_app(
    config: RelayConfig | None = None,
    orchestrator: CacheOrchestrator | None = None,
) -> FastAPI:
    """Create the ttsrelay FastAPI application.

    Args:
        config: Relay configuration, loaded from disk if omitted
        orchestrator: Pre-built orchestrator; built from config at startup
            when omitted

    Returns:
        Configured FastAPI app
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.orchestrator is None:
            app.state.orchestrator = build_orchestrator(config)
        gateway = type(app.state.orchestrator.gateway).__name__
        logger.info(
            f"ttsrelay {__version__} ready (gateway={gateway}, "
            f"cache={config.cache.dir if config.cache.enabled else 'disabled'})"
        )
        yield
        logger.info("ttsrelay shutting down")

    app = FastAPI(
        title="ttsrelay",
        version=__version__,
        description="Caching text-to-speech relay",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Voice-Type",
            "X-Sample-Rate",
            "X-Emotion-Category",
            "X-Cached",
        ],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_body(_validation_message(exc)))

    @app.exception_handler(TTSValidationError)
    async def tts_validation_handler(
        request: Request, exc: TTSValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_body(str(exc)))

    @app.exception_handler(SynthesisFailed)
    async def synthesis_failed_handler(
        request: Request, exc: SynthesisFailed
    ) -> JSONResponse:
        # Upstream throttling is reported as temporary unavailability
        status = 503 if exc.status_code == 429 else 502
        return JSONResponse(status_code=status, content=error_body(str(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message = "Endpoint not found" if exc.detail == "Not Found" else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=error_body(message))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error_body("Internal server error"))

    @app.get("/")
    async def index() -> dict:
        return {
            "name": "ttsrelay",
            "version": __version__,
            "endpoints": {
                "synthesize": f"POST {API_PREFIX}/tts",
                "synthesize_raw": f"GET {API_PREFIX}/tts",
                "voices": f"GET {API_PREFIX}/voices",
                "cache_info": f"GET {API_PREFIX}/cache/info",
                "cache_file": f"GET {API_PREFIX}/cache/{{filename}}",
                "clear_cache": f"DELETE {API_PREFIX}/cache",
                "health": f"GET {API_PREFIX}/health",
            },
        }

    app.include_router(router)
    return app


def run_server(
    config: RelayConfig,
    host: str | None = None,
    port: int | None = None,
    log_level: str = "info",
) -> None:
    """Run the HTTP server until interrupted.

    The gateway is built before the server starts so configuration and
    credential errors surface to the caller.
    """
    host = host or config.server.host
    port = port or config.server.port
    logger.info(f"Starting ttsrelay on http://{host}:{port}")
    app = create_app(config, build_orchestrator(config))
    uvicorn.run(app, host=host, port=port, log_level=log_level)
