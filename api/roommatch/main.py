import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DEV_MODE
from .database import init_db
from .routes import include_modular_routers

logger = logging.getLogger(__name__)

app = FastAPI(title="Roommate Match API")
include_modular_routers(app)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if DEV_MODE:
        logger.warning("[STARTUP][DEV] tables ensured, origins=%s", ALLOWED_ORIGINS)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
