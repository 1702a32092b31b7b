import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sweeper import ExpirySweeper
from src.api.deps import get_rules, get_settings
from src.app_shell.config import validate_email_rules
from src.app_shell.context import ServiceContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules(settings)
    except (FileNotFoundError, ValueError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    problems = validate_email_rules(rules)
    if problems:
        for problem in problems:
            logger.critical("Invalid rules: %s", problem)
        sys.exit(1)
    logger.info("Rules loaded from %s", settings.rules_path)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()

    sweeper: ExpirySweeper | None = None
    if rules.invitations.sweep_interval_seconds > 0:
        ctx = ServiceContext.create(settings.db_path, rules)
        sweeper = ExpirySweeper(ctx.invitation_service, rules.invitations.sweep_interval_seconds)
        sweeper.start()

    yield

    if sweeper is not None:
        sweeper.stop()


app = FastAPI(
    title="Board Invitations API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import invitations  # noqa: E402

app.include_router(invitations.router, tags=["Invitations"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
