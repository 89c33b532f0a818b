"""
Paper models: the moderation status enum, submission metadata and the
record / response shapes used by the repository, service and API layers.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class PaperStatus(str, Enum):
    """Canonical three-state moderation lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def code(self) -> int:
        """Signed integer view: 0 pending, 1 approved, -1 rejected."""
        return _STATUS_TO_CODE[self]

    @classmethod
    def from_code(cls, value: Union[int, bool, str]) -> "PaperStatus":
        """
        Accepts the legacy encodings (signed int, also as text, and the boolean
        `approved` flag) as well as the canonical string.
        """
        if isinstance(value, PaperStatus):
            return value
        if isinstance(value, bool):
            return cls.APPROVED if value else cls.PENDING
        if isinstance(value, int):
            try:
                return _CODE_TO_STATUS[value]
            except KeyError:
                raise ValueError(f"Unknown status code: {value}") from None
        text = str(value).strip().lower()
        if text.lstrip("-").isdigit():
            return cls.from_code(int(text))
        return cls(text)


_STATUS_TO_CODE = {
    PaperStatus.PENDING: 0,
    PaperStatus.APPROVED: 1,
    PaperStatus.REJECTED: -1,
}
_CODE_TO_STATUS = {code: status for status, code in _STATUS_TO_CODE.items()}


class PaperMetadata(BaseModel):
    """
    Caller-supplied descriptive metadata. Values are taken as given (strings or
    numbers) and stored as trimmed text; the four fields together form the
    duplicate key.
    """

    category: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    semester: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)

    @field_validator("category", "subject", "semester", "year", mode="before")
    @classmethod
    def coerce_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    def duplicate_key(self) -> Dict[str, str]:
        return self.model_dump()


@dataclass(frozen=True)
class SubmittedDocument:
    """What a content classifier gets to look at."""

    content: bytes
    metadata: PaperMetadata
    filename: Optional[str] = None


class Paper(BaseModel):
    """A row of the 'papers' table (used by the repository and service layers)."""

    id: UUID
    category: str
    subject: str
    semester: str
    year: str
    blob_ref: str
    status: PaperStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def approved(self) -> bool:
        return self.status is PaperStatus.APPROVED

    @property
    def status_code(self) -> int:
        return self.status.code


class SubmissionResult(BaseModel):
    paper_id: UUID
    auto_approved: bool


# --- API response models ---


class UploadResponse(BaseModel):
    success: bool = True
    id: UUID
    auto_approved: bool = Field(..., serialization_alias="autoApproved")


class ActionResponse(BaseModel):
    success: bool = True


class ApprovedPaperItem(BaseModel):
    """Public listing entry, in the shape the browsing page consumes."""

    id: UUID
    category: str
    subject: str
    semester: str
    year: str
    file_url: str = Field(..., serialization_alias="fileUrl")
    created_at: datetime = Field(..., serialization_alias="createdAt")

    @classmethod
    def from_paper(cls, paper: Paper) -> "ApprovedPaperItem":
        return cls(
            id=paper.id,
            category=paper.category,
            subject=paper.subject,
            semester=paper.semester,
            year=paper.year,
            file_url=paper.blob_ref,
            created_at=paper.created_at,
        )


class AdminPaperItem(ApprovedPaperItem):
    """Moderation listing entry; carries the status and its boolean view."""

    status: PaperStatus
    approved: bool

    @classmethod
    def from_paper(cls, paper: Paper) -> "AdminPaperItem":
        return cls(
            id=paper.id,
            category=paper.category,
            subject=paper.subject,
            semester=paper.semester,
            year=paper.year,
            file_url=paper.blob_ref,
            created_at=paper.created_at,
            status=paper.status,
            approved=paper.approved,
        )


class ApprovedFilter(BaseModel):
    """Optional filters for the public approved listing."""

    category: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[str] = None
    q: Optional[str] = None

    @field_validator("category", "semester", "year", "q", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def is_empty(self) -> bool:
        return not any((self.category, self.semester, self.year, self.q))
