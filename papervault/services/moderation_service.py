import logging
import uuid
from typing import List, Optional
from uuid import UUID

from papervault.classification.classifier import ContentClassifier
from papervault.core.exceptions import (
    AlreadyProcessed,
    DuplicateSubmission,
    NotFound,
    PaperVaultError,
    ValidationError,
)
from papervault.models.paper import (
    ApprovedFilter,
    Paper,
    PaperMetadata,
    PaperStatus,
    SubmissionResult,
    SubmittedDocument,
)
from papervault.repositories.blob_store import PDF_CONTENT_TYPE, BlobStore
from papervault.repositories.postgres_repo import PostgresRepository

logger = logging.getLogger(__name__)


class ModerationService:
    """Owns the paper lifecycle: submission, moderation and removal.

    Holds no state of its own between calls; the record store, blob store and
    classifier are injected.
    """

    def __init__(
        self,
        pg_repo: PostgresRepository,
        blob_store: BlobStore,
        classifier: ContentClassifier,
    ):
        """Initializes the service with necessary dependencies."""
        self.pg_repo = pg_repo
        self.blob_store = blob_store
        self.classifier = classifier

    # --- Submission ---

    async def submit(
        self,
        metadata: PaperMetadata,
        content: bytes,
        filename: Optional[str] = None,
    ) -> SubmissionResult:
        """Stores a new paper, auto-approving it if the classifier agrees.

        Order matters: duplicate check, classification, blob write, record
        insert. A duplicate never touches the blob store.
        """
        if not content:
            raise ValidationError("No file uploaded")

        existing = await self.pg_repo.find_active_duplicate(metadata)
        if existing is not None:
            logger.info(
                f"Rejected duplicate submission {metadata.duplicate_key()} "
                f"(existing paper {existing.id}, status={existing.status.value})"
            )
            raise DuplicateSubmission()

        document = SubmittedDocument(
            content=content, metadata=metadata, filename=filename
        )
        auto_approved = await self._classify(document)

        paper_id = uuid.uuid4()
        blob_name = f"{uuid.uuid4()}.pdf"
        blob_ref = await self.blob_store.put(blob_name, content, PDF_CONTENT_TYPE)

        status = PaperStatus.APPROVED if auto_approved else PaperStatus.PENDING
        try:
            paper = await self.pg_repo.insert_paper(
                paper_id=paper_id,
                metadata=metadata,
                blob_ref=blob_ref,
                status=status,
            )
        except PaperVaultError:
            await self._discard_blob(blob_ref)
            raise

        logger.info(
            f"Paper {paper.id} submitted for {metadata.duplicate_key()} "
            f"with status={paper.status.value}"
        )
        return SubmissionResult(paper_id=paper.id, auto_approved=auto_approved)

    async def _classify(self, document: SubmittedDocument) -> bool:
        try:
            return bool(await self.classifier.classify(document))
        except Exception as e:
            # classifiers are meant to be total; fail closed if one is not
            logger.exception(f"Classifier raised, leaving paper pending: {e}")
            return False

    async def _discard_blob(self, blob_ref: str) -> None:
        try:
            await self.blob_store.delete(blob_ref)
        except Exception as e:
            logger.error(f"Could not remove orphaned blob {blob_ref}: {e}")

    # --- Listings ---

    async def list_pending(self) -> List[Paper]:
        return await self.pg_repo.list_papers_by_status(PaperStatus.PENDING)

    async def list_approved(self, filters: Optional[ApprovedFilter] = None) -> List[Paper]:
        """Approved papers, most recent first."""
        if filters is not None and filters.is_empty():
            filters = None
        return await self.pg_repo.list_papers_by_status(
            PaperStatus.APPROVED, filters=filters
        )

    async def list_rejected(self) -> List[Paper]:
        return await self.pg_repo.list_papers_by_status(PaperStatus.REJECTED)

    async def get_paper(self, paper_id: UUID) -> Paper:
        paper = await self.pg_repo.get_paper_by_id(paper_id)
        if paper is None:
            raise NotFound(f"Paper {paper_id} not found")
        return paper

    # --- Moderation ---

    async def approve(self, paper_id: UUID) -> Paper:
        return await self._transition(paper_id, PaperStatus.APPROVED)

    async def reject(self, paper_id: UUID) -> Paper:
        """Soft reject: the record stays, and the metadata may be resubmitted."""
        return await self._transition(paper_id, PaperStatus.REJECTED)

    async def _transition(self, paper_id: UUID, target: PaperStatus) -> Paper:
        updated = await self.pg_repo.transition_status(
            paper_id, from_status=PaperStatus.PENDING, to_status=target
        )
        if updated is not None:
            logger.info(f"Paper {paper_id} moved pending -> {target.value}")
            return updated

        # Nothing matched: tell unknown ids apart from already-processed ones.
        current = await self.pg_repo.get_paper_by_id(paper_id)
        if current is None:
            raise NotFound(f"Paper {paper_id} not found")
        logger.info(
            f"Refused {target.value} for paper {paper_id}: "
            f"already {current.status.value}"
        )
        raise AlreadyProcessed(
            f"Paper {paper_id} has already been {current.status.value}."
        )

    async def delete(self, paper_id: UUID) -> None:
        """Removes a paper in any state. Blob cleanup is best effort; the
        record deletion is what must succeed.
        """
        paper = await self.get_paper(paper_id)

        try:
            removed = await self.blob_store.delete(paper.blob_ref)
            if not removed:
                logger.warning(
                    f"Blob {paper.blob_ref} for paper {paper_id} was already missing"
                )
        except Exception as e:
            logger.error(
                f"Failed deleting blob {paper.blob_ref} for paper {paper_id}, "
                f"deleting record anyway: {e}"
            )

        deleted = await self.pg_repo.delete_paper(paper_id)
        if not deleted:
            # removed concurrently between lookup and delete
            raise NotFound(f"Paper {paper_id} not found")
        logger.info(f"Paper {paper_id} deleted")
