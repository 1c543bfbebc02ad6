import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from constants import STATIC_DIR
from directory import room_directory
from logging_config import get_logger, setup_logging
from routers.signaling import signaling_router

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Signaling relay starting")
    yield
    # Close every connection so keepalive tasks end with their peers
    await room_directory.close_all()
    logger.info("Signaling relay stopped")


app = FastAPI(lifespan=lifespan)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(signaling_router)


@app.get("/health")
async def health():
    return {"status": "ok", **room_directory.stats()}


# Registered last so the signaling and health routes take precedence over "/"
if STATIC_DIR:
    if os.path.isdir(STATIC_DIR):
        app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="client")
        logger.info(f"Serving static client from {STATIC_DIR}")
    else:
        logger.warning(f"STATIC_DIR {STATIC_DIR} is not a directory, static client disabled")

logger.info("FastAPI application initialized")
