"""
Post write-path orchestration.

Creating a resource post touches two systems that fail independently: the
object store and the database. The file is always uploaded first, so a
committed row can never point at a missing object. If the database write
then fails, the upload is compensated by deleting the file once, best-effort;
a failed cleanup is logged as an orphan and the caller still gets the
original write error.

    VALIDATED -> UPLOADING (resource create only) -> COMMITTING -> COMMITTED
                                                  `-> COMPENSATING (if uploaded) -> FAILED
"""

import enum
import logging
from typing import Any, Dict, Optional

from resourcehub.core.config import settings
from resourcehub.core.errors import (
    ErrorKind,
    PublishError,
    VariantMismatchError,
    WriteReturnedNothingError,
    classify_error,
)
from resourcehub.core.storage import AssetStore, UploadedAsset
from resourcehub.modules.posts.models.post import PostType, TEXT_POST_TYPES
from resourcehub.modules.posts.schemas.post import (
    PostCreate,
    PostEditOut,
    PostOut,
    PostUpdate,
    ResourcePostCreate,
    ResourcePostUpdate,
)
from resourcehub.modules.posts.services.assembler import assemble_edit_response, assemble_post
from resourcehub.modules.posts.services.cleanup import AssetCleanupService
from resourcehub.modules.posts.services.repository import PostRepository

logger = logging.getLogger(__name__)


class PublishState(str, enum.Enum):
    VALIDATED = "VALIDATED"
    UPLOADING = "UPLOADING"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    COMPENSATING = "COMPENSATING"
    FAILED = "FAILED"


class PublishService:
    """Runs one create/update/delete request; holds no state between requests."""

    def __init__(
        self,
        repository: PostRepository,
        store: AssetStore,
        upload_timeout: Optional[float] = None,
        write_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.store = store
        self.upload_timeout = upload_timeout if upload_timeout is not None else settings.ASSET_UPLOAD_TIMEOUT_SECONDS
        self.write_timeout = write_timeout if write_timeout is not None else settings.DB_WRITE_TIMEOUT_SECONDS
        self.cleanup = AssetCleanupService(store, timeout=self.upload_timeout)

    def create_post(self, post_in: PostCreate, author_id: str) -> PostOut:
        state = self._enter(PublishState.VALIDATED, "create")
        uploaded: Optional[UploadedAsset] = None

        if isinstance(post_in, ResourcePostCreate):
            state = self._enter(PublishState.UPLOADING, "create")
            staged = post_in.file
            try:
                uploaded = self.store.upload(
                    staged.content,
                    staged.filename,
                    staged.content_type,
                    author_id,
                    timeout=self.upload_timeout,
                )
            except Exception as e:
                # Nothing was written and nothing was stored: no compensation.
                # Whatever the store raised (timeouts included) is an upload failure.
                kind = e.kind if isinstance(e, PublishError) else ErrorKind.ASSET_UPLOAD_FAILED
                raise self._fail("create", state, e, kind=kind) from e

        state = self._enter(PublishState.COMMITTING, "create")
        try:
            raw = self.repository.create_post_tx(
                self._create_fields(post_in, author_id, uploaded),
                post_in.tag_ids,
                timeout=self.write_timeout,
            )
            if raw is None:
                raise WriteReturnedNothingError("Post creation returned no record")
        except Exception as e:
            if uploaded is not None:
                self._enter(PublishState.COMPENSATING, "create")
                self.cleanup.cleanup_asset(uploaded.asset_id, "PublishService.create_post")
            raise self._fail("create", state, e) from e

        self._enter(PublishState.COMMITTED, "create")
        logger.info(
            f"[PUBLISH] Post {raw['id']} created by {author_id} "
            f"(type={raw['type']}, has_file={uploaded is not None}, tags={len(post_in.tag_ids)})"
        )
        return assemble_post(raw)

    def update_post(self, post_id: str, post_in: PostUpdate) -> PostOut:
        """Patch title/body or title/file name and replace all tags. Never touches storage."""
        self._enter(PublishState.VALIDATED, "update")
        if isinstance(post_in, ResourcePostUpdate):
            fields = {"title": post_in.title, "file_name": post_in.file_name}
            post_types = (PostType.RESOURCE.value,)
        else:
            fields = {"title": post_in.title, "content": post_in.content}
            post_types = TEXT_POST_TYPES

        state = self._enter(PublishState.COMMITTING, "update")
        try:
            raw = self.repository.update_post_tx(
                post_id, fields, post_in.tag_ids, post_types, timeout=self.write_timeout
            )
            if raw is None:
                raise WriteReturnedNothingError(f"Post {post_id} update returned no record")
        except Exception as e:
            raise self._fail("update", state, e, post_id) from e

        self._enter(PublishState.COMMITTED, "update")
        logger.info(f"[PUBLISH] Post {post_id} updated (type={raw['type']}, tags={len(post_in.tag_ids)})")
        return assemble_post(raw)

    def delete_post(self, post_id: str) -> None:
        """
        Remove the post row, then its file. The row goes first so a post never
        references a deleted file; a failed file cleanup only leaves an orphan.
        """
        try:
            file_ref = self.repository.delete_post_tx(post_id)
        except Exception as e:
            raise self._fail("delete", PublishState.COMMITTING, e, post_id) from e

        if file_ref.get("asset_id") or file_ref.get("file_url"):
            self.cleanup.cleanup_resource(file_ref.get("asset_id"), file_ref.get("file_url"), "PublishService.delete_post")
        logger.info(f"[PUBLISH] Post {post_id} deleted")

    def get_post(self, post_id: str) -> PostOut:
        return assemble_post(self._read(post_id))

    def get_post_for_edit(self, post_id: str) -> PostEditOut:
        return assemble_edit_response(self._read(post_id))

    def _read(self, post_id: str) -> Dict[str, Any]:
        try:
            raw = self.repository.read_post(post_id)
        except Exception as e:
            raise self._fail("read", PublishState.VALIDATED, e, post_id) from e
        if raw is None:
            raise PublishError(ErrorKind.NOT_FOUND)
        return raw

    @staticmethod
    def _create_fields(post_in: PostCreate, author_id: str, uploaded: Optional[UploadedAsset]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"title": post_in.title, "type": post_in.type, "author_id": author_id}
        if isinstance(post_in, ResourcePostCreate):
            fields.update(
                asset_id=uploaded.asset_id,
                file_url=uploaded.url,
                file_name=post_in.file.filename,
                file_size=uploaded.byte_size,
                mime_type=post_in.file.content_type,
            )
        else:
            fields["content"] = post_in.content
        return fields

    @staticmethod
    def _enter(state: PublishState, operation: str) -> PublishState:
        logger.debug(f"[PUBLISH] {operation}: {state.value}")
        return state

    def _fail(self, operation: str, state: PublishState, error: Exception,
              post_id: Optional[str] = None, kind: Optional[ErrorKind] = None) -> PublishError:
        kind = kind or classify_error(error)
        self._enter(PublishState.FAILED, operation)
        target = f" post {post_id}" if post_id else ""
        if kind in (ErrorKind.NOT_FOUND, ErrorKind.VALIDATION_FAILED):
            logger.warning(f"[PUBLISH] {operation}{target} rejected in {state.value}: {kind.value}: {error}")
        else:
            logger.error(f"[PUBLISH] {operation}{target} failed in {state.value}: {kind.value}: {error}", exc_info=error)

        # Variant mismatch messages carry no internals; everything else gets the stock message
        message = str(error) if isinstance(error, VariantMismatchError) else None
        return PublishError(kind, message)
