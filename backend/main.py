import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.endpoints import admin, credits
from app.core.database import Base, engine
from app.core.logging_config import configure_logging
from app.core.settings import settings
from app.models import app_config, ledger_entry, user_balance  # noqa: F401  registers tables

configure_logging()
logger = logging.getLogger("ledger.api")

app = FastAPI(title="Credit Ledger API")

origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    # Production schema comes from Alembic; create_all is for local runs and tests.
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)
    logger.info("ledger.startup environment=%s auto_create=%s", settings.environment, settings.db_auto_create)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("ledger.store_error path=%s error=%s", request.url.path, exc.__class__.__name__)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "STORE_UNAVAILABLE", "message": "Ledger store error"}},
    )


app.include_router(credits.router, prefix="/api", tags=["credits"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
