from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from hookreview.api.routes import app as app_endpoints
from hookreview.api.routes import reviews as review_endpoints
from hookreview.api.routes import webhooks as webhook_endpoints
from hookreview.api.handlers.exception_handlers import (
    hookreview_exception_handler,
    unprocessable_entity_exception_handler,
)
from hookreview.config.db import init_db
from hookreview.core.exceptions import HookReviewError
from hookreview.events.dispatcher import start_workers, stop_workers
from hookreview.integrations.registry import default_registry
from hookreview.llms.llm_factory import review_client
from hookreview.utils.logger import logger, setup_logger

setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    On startup it creates the tables, builds the adapter registry (refusing to
    start when a platform has no adapter), primes the review client and starts
    the in-process workers. On shutdown it drains the queued reviews.
    """
    logger.info("Starting up...")
    init_db()
    default_registry()
    review_client()
    start_workers()

    yield

    logger.info("Shutting down...")
    stop_workers(drain=True)


app = FastAPI(
    title="hookreview",
    description="Webhook-driven AI code review for GitHub, GitLab and Bitbucket",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_exception_handler(RequestValidationError, unprocessable_entity_exception_handler)
app.add_exception_handler(HookReviewError, hookreview_exception_handler)

app.include_router(app_endpoints.router, tags=["general"])
app.include_router(webhook_endpoints.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(review_endpoints.router, prefix="/api/reviews", tags=["reviews"])
