"""
FastAPI dependency providers.

Shared resources (PostgreSQL pool, blob store, classifier) are created by the
`lifespan` in `papervault.core.db` and stored on `app.state`; the functions
here pull them out of the request's app state and assemble repositories and
the moderation service. Endpoints declare them with `Depends(...)`, and tests
replace them through `app.dependency_overrides`.

Also provides the admin-key guard used by every moderation endpoint.
"""

import hmac
import logging
from typing import Optional, cast

from fastapi import Depends, Header, HTTPException, Request, status
from psycopg_pool import AsyncConnectionPool
from starlette.datastructures import State

from papervault.classification.classifier import ContentClassifier
from papervault.core.config import Settings, settings as global_settings
from papervault.repositories.blob_store import BlobStore
from papervault.repositories.postgres_repo import PostgresRepository
from papervault.services.moderation_service import ModerationService

logger = logging.getLogger(__name__)


# --- Shared resource getters --- #


def get_app_state(request: Request) -> State:
    """Returns `request.app.state`, where the lifespan keeps shared resources."""
    if not hasattr(request.app, "state"):
        logger.error("Application state not found; lifespan did not run.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application state is not initialized.",
        )
    return cast(State, request.app.state)


def get_settings() -> Settings:
    return global_settings


def get_postgres_pool(state: State = Depends(get_app_state)) -> AsyncConnectionPool:
    pool = getattr(state, "pg_pool", None)
    if pool is None:
        logger.error("PostgreSQL pool is not initialized in app state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection pool is not available.",
        )
    return cast(AsyncConnectionPool, pool)


def get_blob_store(state: State = Depends(get_app_state)) -> BlobStore:
    blob_store = getattr(state, "blob_store", None)
    if blob_store is None:
        logger.error("Blob store is not initialized in app state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="File storage is not available.",
        )
    return cast(BlobStore, blob_store)


def get_classifier(state: State = Depends(get_app_state)) -> ContentClassifier:
    classifier = getattr(state, "classifier", None)
    if classifier is None:
        logger.error("Content classifier is not initialized in app state.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service is not available.",
        )
    return cast(ContentClassifier, classifier)


# --- Repositories and services --- #


def get_postgres_repository(
    pool: AsyncConnectionPool = Depends(get_postgres_pool),
) -> PostgresRepository:
    return PostgresRepository(pool=pool)


def get_moderation_service(
    pg_repo: PostgresRepository = Depends(get_postgres_repository),
    blob_store: BlobStore = Depends(get_blob_store),
    classifier: ContentClassifier = Depends(get_classifier),
) -> ModerationService:
    return ModerationService(
        pg_repo=pg_repo, blob_store=blob_store, classifier=classifier
    )


# --- Admin guard --- #


def require_admin(
    x_admin_key: Optional[str] = Header(default=None),
    app_settings: Settings = Depends(get_settings),
) -> None:
    """Rejects the request with 401 unless `x-admin-key` matches ADMIN_KEY."""
    expected = app_settings.admin_key
    if (
        not x_admin_key
        or not expected
        or not hmac.compare_digest(x_admin_key.encode(), expected.encode())
    ):
        logger.warning("Rejected moderation request with missing or invalid admin key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
