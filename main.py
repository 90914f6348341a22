import asyncio
import inspect
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import BASE_DIR, AppConfig, load_config
from routes.analysis_route import router as analysis_router
from routes.chat_route import router as chat_router
from services.image_store import ImageStore
from services.openai.model_gateway import ModelGateway
from services.sessions.session_store import InMemorySessionStore, SessionStore
from services.sessions.sqlite_session_store import SqliteSessionStore
from utils.database_init import AsyncDatabaseInitializer
from utils.session_sweeper import SessionSweeper

PUBLIC_DIR = BASE_DIR / "public"

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


def build_session_store(config: AppConfig) -> SessionStore:
    if config.session_backend == "sqlite":
        return SqliteSessionStore(
            AsyncDatabaseInitializer(config.database_dir),
            ttl_seconds=config.session_ttl_seconds,
        )
    return InMemorySessionStore(ttl_seconds=config.session_ttl_seconds)


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception:
        LOGGER.warning("Error while closing the OpenAI client", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the session store (in-memory or SQLite, per SESSION_BACKEND)
      - the OpenAI async client and model gateway, when an API key is set
      - the hourly sweeper task for expired sessions and old uploads
    and attach them to `app.state`.
    """
    config: AppConfig = app.state.config

    store = app.state.session_store
    if store is None:
        store = build_session_store(config)
    await store.open()
    app.state.session_store = store

    client = app.state.openai_client
    if client is None and config.model_configured:
        try:
            client = AsyncOpenAI(api_key=config.openai_api_key, max_retries=0)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = client

    if client is not None:
        app.state.model_gateway = ModelGateway(client, config)
    else:
        app.state.model_gateway = None
        LOGGER.warning("OPENAI_API_KEY is not set; /api/analyze and /api/chat will answer 503")

    sweeper = SessionSweeper(store, app.state.image_store, config.upload_retention_seconds)
    sweeper_task = asyncio.create_task(sweeper.run_periodic_cleanup(config.sweep_interval_seconds))
    LOGGER.info(
        "Service started: backend=%s ttl=%ss sweep_interval=%ss",
        config.session_backend,
        config.session_ttl_seconds,
        config.sweep_interval_seconds,
    )

    try:
        yield
    finally:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task
        await store.close()
        if client is not None:
            await _close_client(client)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render errors as `{"error": ..., "details": ...}` bodies."""
    if isinstance(exc.detail, dict):
        body = dict(exc.detail)
    else:
        body = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": str(exc.errors())},
    )


def create_app(
    config: Optional[AppConfig] = None,
    openai_client: Optional[AsyncOpenAI] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    `openai_client` and `session_store` override the ones built from config.
    """
    config = config or load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.openai_client = openai_client
    app.state.session_store = session_store
    app.state.model_gateway = None

    image_store = ImageStore(config.upload_dir)
    image_store.ensure_directory()
    app.state.image_store = image_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.mount("/uploads", StaticFiles(directory=config.upload_dir), name="uploads")
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    # Register application routers
    app.include_router(analysis_router)
    app.include_router(chat_router)

    return app


app = create_app()
