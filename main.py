import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
import uvicorn
from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.cors import get_cors_headers
from app.core.database import Base, SessionLocal, engine
from app.core.decorator import DBException
from app.core.exceptions import CheckoutError, WebhookError
from app.core.init import initialize_application
from app.core.limiter import custom_rate_limit_exceeded_handler, limiter
from app.models import *
from app.routers import routes

# ============================================================================
# Paths
# ============================================================================
BASE_DIR = Path(__file__).parent
LOG_FILE = BASE_DIR / settings.log_file
LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "stripe")


# ============================================================================
# Logging
# ============================================================================
def setup_logging():
    """Send application logs to stdout and to a rotating file under logs/."""
    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )

    file_handler = RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout), file_handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("marketplace")


logger = setup_logging()


# ============================================================================
# Startup / Shutdown
# ============================================================================
def prepare_database():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        initialize_application(db)
    finally:
        db.close()


def check_payment_config():
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout will fail")
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhooks will be rejected")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    try:
        prepare_database()
        check_payment_config()
    except Exception as e:
        logger.error(f"✗ Startup aborted: {e}", exc_info=True)
        raise
    logger.info("✓ Ready to accept requests")

    yield

    logger.info(f"{settings.app_name} stopped")


# ============================================================================
# Application
# ============================================================================
docs_enabled = settings.debug

app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    docs_url="/docs" if docs_enabled else None,
    redoc_url="/redoc" if docs_enabled else None,
    openapi_url="/openapi.json" if docs_enabled else None,
    debug=settings.debug,
    lifespan=lifespan,
)
app.state.limiter = limiter


# ============================================================================
# Middleware
# ============================================================================
@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every response with a request id and its handling time."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
    return response


# Registered last so it wraps everything, preflight included
@app.middleware("http")
async def cors_allow_list(request: Request, call_next):
    cors_headers = get_cors_headers(request.headers.get("origin"))
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=cors_headers)

    response = await call_next(request)
    response.headers.update(cors_headers)
    return response


# ============================================================================
# Error Responses
# ============================================================================
def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@app.exception_handler(CheckoutError)
async def handle_checkout_error(request: Request, exc: CheckoutError):
    logger.warning(f"Checkout rejected ({type(exc).__name__}): {exc.message}")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(WebhookError)
async def handle_webhook_error(request: Request, exc: WebhookError):
    # Stripe redelivers on 5xx only
    if exc.status_code >= 500:
        return error_response(exc.status_code, exc.message)
    return PlainTextResponse(exc.message, status_code=exc.status_code)


@app.exception_handler(DBException)
async def handle_db_exception(request: Request, exc: DBException):
    logger.error(f"Database write failed on {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, type="database_error")


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "loc": list(err.get("loc", [])),
            "msg": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    logger.warning(f"Rejected payload on {request.url.path}: {details}")
    return error_response(422, "Validation error", details=details)


@app.exception_handler(SQLAlchemyError)
async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
    logger.error(f"Unhandled database error: {type(exc).__name__}", exc_info=True)
    return error_response(500, "Database error occurred", type=type(exc).__name__)


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)


# ============================================================================
# Status Endpoints
# ============================================================================
def environment_name() -> str:
    return "production" if settings.production else "development"


def database_status() -> str:
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        return "unhealthy"
    finally:
        db.close()


@app.get("/")
async def root():
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": environment_name(),
    }


@app.get("/health")
@limiter.limit("10/minute")
def health_check(request: Request):
    """Database reachability and payment configuration."""
    db_status = database_status()
    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "timestamp": time.time(),
        "environment": environment_name(),
        "database": db_status,
        "payments": "configured" if settings.stripe_secret_key else "unconfigured",
    }


for router in routes:
    app.include_router(router)


# ============================================================================
# CLI
# ============================================================================
def run_migrations():
    command.upgrade(Config(str(BASE_DIR / "alembic.ini")), "head")
    logger.info("✓ Database schema is up to date")


def gunicorn_command(host: str, port: int, workers: int) -> list:
    return [
        "gunicorn",
        "main:app",
        "--worker-class", "uvicorn.workers.UvicornWorker",
        "--workers", str(workers),
        "--bind", f"{host}:{port}",
        "--access-logfile", "-",
        "--error-logfile", "-",
        "--timeout", "120",
        "--graceful-timeout", "30",
    ]


@click.group()
def cli():
    """Course marketplace management commands."""


@cli.command()
def migrate():
    """Upgrade the database to the latest migration."""
    try:
        run_migrations()
    except Exception as e:
        raise click.ClickException(f"Migration failed: {e}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--reload", is_flag=True, help="Restart on code changes")
def dev(host: str, port: int, reload: bool):
    """Serve the API with uvicorn for local development."""
    logger.info(f"Development server on http://{host}:{port} (reload={reload})")
    uvicorn.run("main:app", host=host, port=port, reload=reload, log_level="debug")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--workers", default=4, show_default=True)
def prod(host: str, port: int, workers: int):
    """Apply migrations, then serve the API with gunicorn."""
    try:
        run_migrations()
    except Exception as e:
        raise click.ClickException(f"Migration failed: {e}")

    logger.info(f"Production server on {host}:{port} with {workers} workers")
    try:
        subprocess.run(gunicorn_command(host, port, workers), check=True)
    except FileNotFoundError:
        raise click.ClickException("gunicorn is not installed (pip install '.[prod]')")
    except subprocess.CalledProcessError as e:
        raise click.ClickException(f"gunicorn exited with status {e.returncode}")


@cli.command()
def info():
    """Print the effective configuration (secrets omitted)."""
    rows = [
        ("Application", f"{settings.app_name} {settings.app_version}"),
        ("Environment", environment_name()),
        ("Debug", settings.debug),
        ("Allowed origins", ", ".join(settings.cors_allowed_origins)),
        ("Stripe key set", bool(settings.stripe_secret_key)),
        ("Webhook secret set", bool(settings.stripe_webhook_secret)),
        ("Rate limiting", settings.rate_limit_enabled),
        ("Log file", LOG_FILE),
    ]
    for label, value in rows:
        click.echo(f"{label:<20} {value}")


if __name__ == "__main__":
    cli()
