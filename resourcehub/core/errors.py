"""
Error taxonomy for the post write path.

Every failure the publish orchestrator can hit (object storage errors,
database errors, not-found results, validation problems) is mapped to a
stable ``ErrorKind`` by ``classify_error``. Callers only ever see the kind
and a human-readable message; provider error codes, storage keys and stack
traces stay in the logs.
"""

import enum
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError
from sqlalchemy.exc import NoResultFound, SQLAlchemyError


class ErrorKind(str, enum.Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    ASSET_UPLOAD_FAILED = "ASSET_UPLOAD_FAILED"
    WRITE_FAILED = "WRITE_FAILED"
    NOT_FOUND = "NOT_FOUND"
    COMPENSATION_FAILED = "COMPENSATION_FAILED"
    INTERNAL = "INTERNAL"


ERROR_MESSAGES = {
    ErrorKind.VALIDATION_FAILED: "The submitted post is not valid.",
    ErrorKind.ASSET_UPLOAD_FAILED: "File upload failed. Please try again.",
    ErrorKind.WRITE_FAILED: "The post could not be saved. Please try again.",
    ErrorKind.NOT_FOUND: "Post not found.",
    ErrorKind.COMPENSATION_FAILED: "Uploaded file cleanup failed.",
    ErrorKind.INTERNAL: "Unexpected error. Please try again later.",
}

HTTP_STATUS_CODES = {
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.ASSET_UPLOAD_FAILED: 502,
    ErrorKind.WRITE_FAILED: 500,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.COMPENSATION_FAILED: 500,
    ErrorKind.INTERNAL: 500,
}


class AssetStoreError(Exception):
    """Base class for object storage failures."""


class AssetUploadError(AssetStoreError):
    pass


class AssetDeleteError(AssetStoreError):
    pass


class PostNotFoundError(Exception):
    def __init__(self, post_id: str):
        self.post_id = post_id
        super().__init__(f"Post with ID {post_id} not found")


class VariantMismatchError(Exception):
    """An update payload tried to change a post's variant (text <-> resource)."""

    def __init__(self, post_id: str, stored_type: str):
        self.post_id = post_id
        self.stored_type = stored_type
        super().__init__(f"Post {post_id} is a {stored_type} post and keeps that shape on update")


class WriteReturnedNothingError(Exception):
    """The write transaction finished without producing a post record."""


class PublishError(Exception):
    """The only exception raised by the publish orchestrator."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or ERROR_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_CODES[self.kind]


def classify_error(error: BaseException) -> ErrorKind:
    """Map any failure to an ErrorKind. Never raises."""
    if isinstance(error, PublishError):
        return error.kind
    if isinstance(error, (ValidationError, VariantMismatchError)):
        return ErrorKind.VALIDATION_FAILED
    if isinstance(error, AssetDeleteError):
        return ErrorKind.COMPENSATION_FAILED
    if isinstance(error, (AssetUploadError, ClientError, BotoCoreError)):
        return ErrorKind.ASSET_UPLOAD_FAILED
    # NoResultFound is a SQLAlchemyError, so it must be checked first
    if isinstance(error, (PostNotFoundError, NoResultFound)):
        return ErrorKind.NOT_FOUND
    if isinstance(error, (WriteReturnedNothingError, SQLAlchemyError)):
        return ErrorKind.WRITE_FAILED
    return ErrorKind.INTERNAL
