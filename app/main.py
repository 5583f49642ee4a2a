import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse, Response

import app.models  # noqa: F401
from app.config import settings
from app.db import Base, SessionLocal, engine
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware
from app.web import router as web_router
from app.web.session import session_cookie_middleware

app = FastAPI(title="Simple CRUD")
logger = logging.getLogger(__name__)

configure_logging()
app.middleware("http")(session_cookie_middleware)
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)

app.include_router(web_router)

app.mount("/static", StaticFiles(directory="static"), name="static")


@app.get("/health")
def health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed")
        return JSONResponse({"status": "error"}, status_code=503)
    finally:
        db.close()
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def _create_schema():
    if not settings.db_auto_create:
        return
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured")
