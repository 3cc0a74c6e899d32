"""LoopHub API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LoopHubError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loophub import __version__
from loophub.api.error_handlers import register_error_handlers
from loophub.api.routes import (
    badges, bookmarks, comments, communities, feed, forums, gamification,
    health, notifications, polls, profile, reactions, reports, search,
    subscriptions, threads, username, users, votes,
)
from loophub.config import get_settings
from loophub.infrastructure import database as db_module
from loophub.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_module.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("LoopHub API started")
    yield
    if db_module.db_manager is not None:
        await db_module.db_manager.dispose()
    logger.info("LoopHub API shutting down")


app = FastAPI(title="LoopHub API", version=__version__, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset",
    ],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(forums.router)
app.include_router(threads.router)
app.include_router(comments.router)
app.include_router(votes.router)
app.include_router(reactions.router)
app.include_router(bookmarks.router)
app.include_router(subscriptions.router)
app.include_router(users.router)
app.include_router(feed.router)
app.include_router(notifications.router)
app.include_router(polls.router)
app.include_router(gamification.router)
app.include_router(profile.router)
app.include_router(username.router)
app.include_router(reports.router)
app.include_router(search.router)
app.include_router(badges.router)
app.include_router(communities.router)

register_error_handlers(app)
