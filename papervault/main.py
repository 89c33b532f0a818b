import logging
import os
from functools import partial
from pathlib import Path
from typing import Dict

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from papervault.api.errors import install_error_handlers
from papervault.api.v1.api import api_router
from papervault.core.config import settings
from papervault.core.db import lifespan
from papervault.logging_config import setup_logging

setup_logging(app_level=settings.log_level)
logger = logging.getLogger(__name__)

# Bind settings into the lifespan so tests can build apps with their own.
lifespan_with_settings = partial(lifespan, settings=settings)

app = FastAPI(
    title=f"{settings.project_name} API",
    description="Submit, moderate and browse PDF question papers.",
    version="1.0.0",
    lifespan=lifespan_with_settings,
)

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


@app.get("/health", status_code=200, tags=["Health"])
async def health_check() -> Dict[str, str]:
    """Returns 200 with status "ok" while the server is running."""
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_prefix)

# Local blobs are served back by the app itself; Supabase hands out its own URLs.
if settings.blob_backend == "local":
    Path(settings.local_upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.local_upload_url_prefix,
        StaticFiles(directory=settings.local_upload_dir),
        name="uploads",
    )


if __name__ == "__main__":
    logger.info("Running FastAPI app with uvicorn (debug mode)...")
    uvicorn.run(
        "papervault.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 5000)),
        reload=True,
        log_level="info",
    )
