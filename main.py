import inspect
import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from models.settings_models import AmbientSettings
from routes.realtime_ws import router as realtime_router
from routes.session_route import router as session_router
from services.openai.code_generator import CodeGenerator
from services.realtime.channel import StreamingChannel
from services.realtime.session_store import DEFAULT_IDLE_TIMEOUT, SessionStore

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the ambient settings merged into every generation request
      - the OpenAI async client and the code generator streaming from it
      - the in-memory session store
    and attach them to `app.state`.
    """
    settings = AmbientSettings.from_env()
    app.state.settings = settings

    # Initialize OpenAI async client
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    app.state.openai_client = openai_client
    app.state.http_client = httpx.AsyncClient(timeout=60.0)

    generator = CodeGenerator(openai_client)
    app.state.session_store = SessionStore(
        lambda: StreamingChannel(generator.stream),
        settings,
        idle_timeout=float(os.getenv("SESSION_IDLE_SECONDS", DEFAULT_IDLE_TIMEOUT)),
    )

    try:
        yield
    finally:
        app.state.session_store.close_all()
        await app.state.http_client.aclose()
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception:
                    # Ignore shutdown errors to avoid masking more important issues.
                    pass


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports the session store and OpenAI client presence.
        """
        store = getattr(request.app.state, "session_store", None)
        has_openai = (
            hasattr(request.app.state, "openai_client")
            and request.app.state.openai_client is not None
        )
        return {
            "ok": True,
            "openai_available": has_openai,
            "active_sessions": len(store) if store is not None else 0,
        }

    # Register application routers
    app.include_router(session_router)
    app.include_router(realtime_router)

    return app


app = create_app()
