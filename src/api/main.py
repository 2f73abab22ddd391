"""FastAPI application entry point."""

import os
import sys
import logging
import tomllib
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Must be called before importing modules that read env vars at import time
load_dotenv()

# main.py is at src/api/main.py, src is two levels up
_src_path = Path(__file__).parent.parent
sys.path.insert(0, str(_src_path))

from api.dependencies import get_password_hasher, get_user_repo
from api.models import ValidationErrorDetail
from api.routes import auth, health
from adapter.mongodb.connection import get_mongodb_client
from utils.identifiers import check_entropy_source
from utils.logging import setup_structured_logging

setup_structured_logging()

logger = logging.getLogger(__name__)

# Read version from pyproject.toml (single source of truth)
_project_root = _src_path.parent
with open(_project_root / "pyproject.toml", "rb") as f:
    VERSION = tomllib.load(f)["project"]["version"]

SERVICE_NAME = "Credential Service"
GZIP_MINIMUM_SIZE = int(os.getenv("GZIP_MINIMUM_SIZE", "500"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup checks and index creation."""
    check_entropy_source()

    # Builds the process-wide hasher and its dummy record before the first login
    get_password_hasher()

    if get_mongodb_client():
        get_user_repo()
    else:
        logger.warning("MongoDB unavailable, indexes will be created on first use")

    yield


app = FastAPI(
    title=SERVICE_NAME,
    description="Registers users and verifies their passwords",
    version=VERSION,
    lifespan=lifespan,
)

# CORS_ORIGINS="*" cannot be combined with credentials in browsers
cors_origins_env = os.getenv("CORS_ORIGINS", "*")
if cors_origins_env == "*":
    cors_origins = ["*"]
    allow_credentials = False
else:
    cors_origins = [origin.strip() for origin in cors_origins_env.split(",")]
    allow_credentials = True
    logger.info(f"CORS configured with specific origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies as 400 with the same envelope as field validation."""
    errors = {}
    for error in exc.errors():
        fields = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors[".".join(fields) or "body"] = error.get("msg", "Invalid value")
    detail = ValidationErrorDetail(errors=errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": detail.model_dump()},
    )


app.include_router(auth.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        access_log=False,
    )
