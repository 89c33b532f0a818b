import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
import psycopg_pool
from supabase import create_client

from papervault.core.config import Settings
from papervault.classification.classifier import build_classifier
from papervault.repositories.blob_store import (
    BlobStore,
    LocalBlobStore,
    SupabaseBlobStore,
)

logger = logging.getLogger(__name__)


def build_blob_store(settings: Settings) -> BlobStore:
    """Creates the blob store selected by `BLOB_BACKEND`."""
    if settings.blob_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise RuntimeError(
                "BLOB_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY."
            )
        # Storage writes need the service-role key, not the anon key.
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        logger.info(
            f"Supabase client initialized with URL: {settings.supabase_url} "
            f"(bucket '{settings.supabase_bucket}')"
        )
        return SupabaseBlobStore(client=client, bucket=settings.supabase_bucket)

    return LocalBlobStore(
        root_dir=settings.local_upload_dir,
        url_prefix=settings.local_upload_url_prefix,
    )


# --- Lifespan Management ---
@asynccontextmanager
async def lifespan(app: FastAPI, settings: Settings) -> AsyncGenerator[None, None]:
    """
    Handles application startup and shutdown.

    Opens the PostgreSQL pool, builds the blob store and the content
    classifier, and stores them on `app.state` for the dependency providers.
    Receives settings explicitly so tests can pass their own.
    """
    logger.info("Application lifespan startup: Initializing resources...")

    app.state.pg_pool = None
    app.state.blob_store = None
    app.state.classifier = None

    db_url = settings.database_url
    if not db_url:
        logger.error(
            "CRITICAL: DATABASE_URL is not configured in settings. Cannot initialize PostgreSQL pool."
        )
        raise RuntimeError("Database URL is not configured, cannot start application.")

    try:
        logger.info("Initializing PostgreSQL pool...")
        pool = psycopg_pool.AsyncConnectionPool(
            conninfo=db_url,
            min_size=settings.pg_pool_min_size,
            max_size=settings.pg_pool_max_size,
            open=False,
        )
        await pool.open()
        app.state.pg_pool = pool
        logger.info("PostgreSQL pool opened and assigned to app.state.pg_pool.")
    except Exception as e:
        logger.exception(f"Failed to initialize PostgreSQL pool: {e}")
        raise RuntimeError("PostgreSQL pool initialization failed") from e

    try:
        app.state.blob_store = build_blob_store(settings)
        logger.info(f"Blob store ready (backend={settings.blob_backend}).")
    except Exception as e:
        logger.exception(f"Failed to initialize blob store: {e}")
        await pool.close()
        app.state.pg_pool = None
        raise RuntimeError("Blob store initialization failed") from e

    try:
        app.state.classifier = build_classifier(settings)
    except Exception as e:
        logger.exception(f"Failed to initialize content classifier: {e}")
        await pool.close()
        app.state.pg_pool = None
        raise RuntimeError("Content classifier initialization failed") from e
    logger.info(
        f"Content classifier ready: {type(app.state.classifier).__name__} "
        f"(strategy={settings.classifier_strategy})."
    )

    logger.info("Resource initialization process completed.")

    try:
        yield
    finally:
        logger.info("Application lifespan shutdown: Cleaning up resources...")
        pg_pool = getattr(app.state, "pg_pool", None)
        if pg_pool:
            try:
                await pg_pool.close()
                logger.info("PostgreSQL pool closed.")
            except Exception as e:
                logger.warning(f"Error closing PostgreSQL pool: {e}")
        app.state.pg_pool = None

        classifier = getattr(app.state, "classifier", None)
        aclose = getattr(classifier, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
                logger.info("Content classifier client closed.")
            except Exception as e:
                logger.warning(f"Error closing content classifier client: {e}")
        app.state.classifier = None
        logger.info("Resource cleanup finished.")
