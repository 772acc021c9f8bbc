from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from statement_categorizer.api.routes import categorize, mappings
from statement_categorizer.core import settings as settings_module
from statement_categorizer.logger import get_logger, setup_logging
from statement_categorizer.manager import build_categorizer

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing categorizer...")
        settings = settings_module.load_settings()
        settings_module.log_settings(settings)

        categorizer = build_categorizer(settings)
        app.state.settings = settings
        app.state.categorizer = categorizer

        logger.info("Categorizer initialized.")
        yield
        logger.info("Service shutting down.")
        categorizer.close()

    app = FastAPI(title="Statement Categorizer", lifespan=lifespan)

    app.include_router(categorize.router)
    app.include_router(mappings.router)

    return app


app = create_app()
