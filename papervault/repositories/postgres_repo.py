from typing import List, Dict, Any, Optional
from uuid import UUID
import logging

import psycopg
from psycopg import errors as psycopg_errors
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from papervault.core.exceptions import DuplicateSubmission, StorageFailure
from papervault.models.paper import ApprovedFilter, Paper, PaperMetadata, PaperStatus

logger = logging.getLogger(__name__)

PAPER_COLUMNS = "id, category, subject, semester, year, blob_ref, status, created_at"


class PostgresRepository:
    """Record store for papers, backed by an async psycopg connection pool.

    Driver errors are logged and re-raised as `StorageFailure`; callers never
    see `psycopg.Error` directly.
    """

    def __init__(self, pool: AsyncConnectionPool):
        """Initializes the repository with an async connection pool."""
        self.pool = pool
        self.logger = logger

    async def _fetch_all(
        self, query: str, params: Dict[str, Any], context: str
    ) -> List[Paper]:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    rows = await cur.fetchall()
                    return [Paper.model_validate(dict(row)) for row in rows]
        except psycopg.Error as e:
            self.logger.error(f"Error {context} from PG: {e}")
            raise StorageFailure(f"Failed {context}.") from e

    async def _fetch_one(
        self, query: str, params: Dict[str, Any], context: str
    ) -> Optional[Paper]:
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
                    return Paper.model_validate(dict(row)) if row else None
        except psycopg.Error as e:
            self.logger.error(f"Error {context} from PG: {e}")
            raise StorageFailure(f"Failed {context}.") from e

    async def find_active_duplicate(self, metadata: PaperMetadata) -> Optional[Paper]:
        """Returns a non-rejected paper sharing the metadata tuple, if any."""
        query = f"""
            SELECT {PAPER_COLUMNS}
            FROM papers
            WHERE category = %(category)s
              AND subject = %(subject)s
              AND semester = %(semester)s
              AND year = %(year)s
              AND status <> %(rejected)s
            LIMIT 1;
        """
        params: Dict[str, Any] = {
            **metadata.duplicate_key(),
            "rejected": PaperStatus.REJECTED.value,
        }
        return await self._fetch_one(query, params, "checking for duplicate papers")

    async def insert_paper(
        self,
        paper_id: UUID,
        metadata: PaperMetadata,
        blob_ref: str,
        status: PaperStatus,
    ) -> Paper:
        """Inserts a new paper row and returns it with its server-side timestamp.

        The partial unique index on the metadata tuple turns a lost duplicate
        race into `DuplicateSubmission`.
        """
        query = f"""
            INSERT INTO papers (id, category, subject, semester, year, blob_ref, status)
            VALUES (%(id)s, %(category)s, %(subject)s, %(semester)s, %(year)s,
                    %(blob_ref)s, %(status)s)
            RETURNING {PAPER_COLUMNS};
        """
        params: Dict[str, Any] = {
            "id": paper_id,
            **metadata.duplicate_key(),
            "blob_ref": blob_ref,
            "status": status.value,
        }
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
        except psycopg_errors.UniqueViolation as e:
            self.logger.warning(
                f"Unique index rejected paper {paper_id} as a duplicate: {e}"
            )
            raise DuplicateSubmission() from e
        except psycopg.Error as e:
            self.logger.error(f"Error inserting paper {paper_id} into PG: {e}")
            raise StorageFailure("Failed inserting paper.") from e

        if row is None:
            raise StorageFailure("Insert returned no row.")
        return Paper.model_validate(dict(row))

    async def get_paper_by_id(self, paper_id: UUID) -> Optional[Paper]:
        query = f"SELECT {PAPER_COLUMNS} FROM papers WHERE id = %(id)s;"
        return await self._fetch_one(
            query, {"id": paper_id}, f"fetching paper {paper_id}"
        )

    async def list_papers_by_status(
        self,
        status: PaperStatus,
        filters: Optional[ApprovedFilter] = None,
    ) -> List[Paper]:
        """Lists papers in one status, newest first."""
        params: Dict[str, Any] = {"status": status.value}
        where_clauses = ["status = %(status)s"]

        if filters is not None:
            if filters.category:
                where_clauses.append("LOWER(category) = LOWER(%(category)s)")
                params["category"] = filters.category
            if filters.semester:
                where_clauses.append("semester = %(semester)s")
                params["semester"] = filters.semester
            if filters.year:
                where_clauses.append("year = %(year)s")
                params["year"] = filters.year
            if filters.q:
                where_clauses.append("subject ILIKE %(subject_like)s")
                params["subject_like"] = f"%{filters.q}%"

        where_sql = " AND ".join(where_clauses)
        query = f"""
            SELECT {PAPER_COLUMNS}
            FROM papers
            WHERE {where_sql}
            ORDER BY created_at DESC, id DESC;
        """
        return await self._fetch_all(
            query, params, f"listing {status.value} papers"
        )

    async def transition_status(
        self,
        paper_id: UUID,
        from_status: PaperStatus,
        to_status: PaperStatus,
    ) -> Optional[Paper]:
        """Compare-and-set on status.

        Returns the updated paper, or None when no row matched (unknown id or
        the paper is no longer in `from_status`).
        """
        query = f"""
            UPDATE papers
            SET status = %(to_status)s
            WHERE id = %(id)s AND status = %(from_status)s
            RETURNING {PAPER_COLUMNS};
        """
        params: Dict[str, Any] = {
            "id": paper_id,
            "from_status": from_status.value,
            "to_status": to_status.value,
        }
        return await self._fetch_one(
            query, params, f"updating status of paper {paper_id}"
        )

    async def delete_paper(self, paper_id: UUID) -> bool:
        """Deletes the row. Returns False if it did not exist."""
        query = "DELETE FROM papers WHERE id = %(id)s;"
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, {"id": paper_id})
                    return cur.rowcount > 0
        except psycopg.Error as e:
            self.logger.error(f"Error deleting paper {paper_id} from PG: {e}")
            raise StorageFailure(f"Failed deleting paper {paper_id}.") from e

