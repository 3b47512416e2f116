import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.auth.errors import register_auth_exception_handlers
from app.auth.routes import router as auth_router
from app.config import settings
from app.db import dispose_db, init_db
from app.services.mail import build_mailer

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Process-level resources: database tables and connections, and the
    shared SMTP mailer. Both are torn down when the server stops.
    """
    if settings.CREATE_TABLES_ON_STARTUP:
        init_db()

    app.state.mailer = build_mailer()
    logger.info("Auth service started")
    try:
        yield
    finally:
        app.state.mailer.close()
        dispose_db()
        logger.info("Auth service stopped")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)

register_auth_exception_handlers(app)


@app.get("/")
def root():
    return {"status": "ok"}
