"""
SecondBrain - Personal Knowledge Capture

FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import init_db, close_db, async_session
from .config import settings
from .api import conversations_router, thoughts_router
from .engine import CaptureAssistant
from .mirror import VaultMirror
from .storage import SQLAlchemyThoughtStore
from .tracer import setup_follow_through_logging

# Configure logging based on mode
if settings.debug:
    log_level = logging.DEBUG
elif settings.follow_through:
    log_level = logging.WARNING  # Suppress normal logs, let tracer handle output
else:
    log_level = logging.INFO

logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Quiet down noisy loggers when not in debug mode
if not settings.debug:
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

setup_follow_through_logging()

logger = logging.getLogger(__name__)


def create_app(assistant: Optional[CaptureAssistant] = None) -> FastAPI:
    """
    Build the application.

    With no assistant, startup validates the provider key, creates the
    tables and wires the assistant from settings. A prebuilt assistant
    is used as-is.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if assistant is not None:
            app.state.assistant = assistant
            yield
            assistant.states.shutdown()
            return

        logger.info("Starting SecondBrain...")
        try:
            settings.validate_provider_key()
            logger.info(f"Using LLM provider: {settings.llm_provider}")
        except ValueError as e:
            logger.error(f"Configuration error: {e}")
            raise

        await init_db()
        logger.info("Database initialized")

        mirror = VaultMirror.from_settings()
        if mirror.enabled:
            logger.info(f"Mirroring to vault repository {settings.vault_github_repo}")

        app.state.assistant = CaptureAssistant.from_settings(
            settings,
            store=SQLAlchemyThoughtStore(async_session),
            mirror=mirror,
        )
        logger.info(f"Persistence strategy: {settings.persistence_strategy}")

        yield

        logger.info("Shutting down SecondBrain...")
        app.state.assistant.states.shutdown()
        await mirror.aclose()
        await close_db()

    app = FastAPI(
        title="SecondBrain",
        description="""
        Personal knowledge capture through conversation.

        ## Features
        - **Conversations**: Chat about what you learned, decided or noticed
        - **Thought Extraction**: Turn a conversation into atomic, typed thoughts
        - **Quick Notes**: Capture a single fact or preference in one call
        - **Search**: Semantic and hybrid search over saved thoughts
        - **Provenance**: Every thought links back to its source transcript
        """,
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(conversations_router)
    app.include_router(thoughts_router)

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "SecondBrain",
            "version": "1.0.0",
            "description": "Personal knowledge capture",
            "provider": settings.llm_provider,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
