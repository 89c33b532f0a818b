"""
Domain errors raised by the moderation service and its collaborators.

The HTTP layer maps each of these onto a status code; everything below
`PaperVaultError` is safe to show to a client except `StorageFailure`, whose
message is only logged.
"""

from typing import Optional


class PaperVaultError(Exception):
    """Base class for all domain errors."""

    default_message = "Paper operation failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PaperVaultError):
    """Missing file, missing metadata field or unsupported content type."""

    default_message = "Invalid submission."


class DuplicateSubmission(PaperVaultError):
    """A non-rejected paper with the same metadata tuple already exists."""

    default_message = "This paper already exists."


class AlreadyProcessed(PaperVaultError):
    """A conditional transition found the paper no longer pending."""

    default_message = "Paper has already been processed."


class NotFound(PaperVaultError):
    """The targeted paper id does not exist."""

    default_message = "Not found"


class StorageFailure(PaperVaultError):
    """The record store or blob store failed."""

    default_message = "Storage operation failed."


class ClassifierFailure(PaperVaultError):
    """Raised inside classifiers only; always converted to a negative signal."""

    default_message = "Classification failed."
