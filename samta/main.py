import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the repo root .env (tests configure the environment themselves)
repo_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(repo_dir, ".env"))

# Import after dotenv is loaded
from samta.core.config import settings, validate_config  # noqa: E402
from samta.core.logging import configure_logging  # noqa: E402
from samta.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from samta.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from samta.api import admin, ai, conversations, health, interests, users  # noqa: E402
from samta.features.store.memory import get_store  # noqa: E402

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("samta")
    logger.info("Starting Samta backend...")
    app.state.startup_time = time.time()
    store = get_store()
    logger.info(f"[startup] store: {type(store).__name__}")
    try:
        yield
    finally:
        logging.getLogger("samta").info("Stopping Samta backend...")


app = FastAPI(title="Samta - Matchmaking API", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(interests.router)
app.include_router(conversations.router)
app.include_router(admin.router)
app.include_router(ai.router)
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("samta.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=settings.ENV == "development")
