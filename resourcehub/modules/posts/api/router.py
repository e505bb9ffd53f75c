from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from resourcehub.core.config import settings
from resourcehub.core.errors import ErrorKind, PublishError
from resourcehub.deps import get_current_user, get_post_repository, get_publish_service
from resourcehub.modules.posts.models.post import Post
from resourcehub.modules.posts.schemas.post import PostEditOut, PostOut, PostUpdate, post_create_adapter
from resourcehub.modules.posts.services.publish import PublishService
from resourcehub.modules.posts.services.repository import PostRepository
from resourcehub.modules.user_management.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="")


def _parse_tag_ids(tag_ids: List[str]) -> Any:
    """Multipart clients send either repeated fields or one JSON array"""
    if len(tag_ids) == 1 and tag_ids[0].strip().startswith("["):
        try:
            return json.loads(tag_ids[0])
        except ValueError:
            # Left as-is so validation reports it
            return tag_ids[0]
    return tag_ids


def _error_details(error: ValidationError) -> List[dict]:
    # Inputs may be raw file bytes; only echo location, type and message
    return [
        {"loc": detail["loc"], "msg": detail["msg"], "type": detail["type"]}
        for detail in error.errors()
    ]


def _edit_window_expired(created_at: datetime, now: Optional[datetime] = None) -> bool:
    if settings.POST_EDIT_WINDOW_MINUTES <= 0 or created_at is None:
        return False
    # SQLite hands back naive timestamps, always in UTC
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - created_at > timedelta(minutes=settings.POST_EDIT_WINDOW_MINUTES)


def _get_own_post(repository: PostRepository, post_id: str, current_user: User) -> Post:
    post = repository.get_post_summary(post_id)
    if not post:
        raise PublishError(ErrorKind.NOT_FOUND)

    # Check if user is the author
    if post.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return post


@router.post("", response_model=PostOut, status_code=status.HTTP_201_CREATED)
async def create_new_post(
    *,
    title: str = Form(...),
    post_type: str = Form(..., alias="type"),
    content: str = Form(None),
    tag_ids: List[str] = Form(default=[]),
    file: UploadFile = File(None),
    current_user: User = Depends(get_current_user),
    publish_service: PublishService = Depends(get_publish_service),
) -> Any:
    """
    Create a text post (QUESTION/NOTE with content) or a RESOURCE post with a file.
    """
    data = {"title": title, "type": post_type, "tag_ids": _parse_tag_ids(tag_ids)}
    if content is not None:
        data["content"] = content
    if file is not None:
        # Multipart parsing already knows the size; skip reading oversized uploads
        if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE:
            raise RequestValidationError([{
                "loc": ("body", "file"),
                "msg": f"File too large. Maximum file size is {settings.MAX_UPLOAD_SIZE} bytes",
                "type": "value_error",
            }])
        data["file"] = {
            "filename": file.filename,
            "content_type": file.content_type,
            "content": await file.read(),
        }

    try:
        post_in = post_create_adapter.validate_python(data)
    except ValidationError as e:
        raise RequestValidationError(_error_details(e)) from e

    return await run_in_threadpool(publish_service.create_post, post_in, current_user.id)


@router.get("/{post_id}", response_model=PostOut)
def read_post_by_id(
    *,
    post_id: str,
    current_user: User = Depends(get_current_user),
    publish_service: PublishService = Depends(get_publish_service),
) -> Any:
    """
    Get post by ID.
    """
    return publish_service.get_post(post_id)


@router.get("/{post_id}/edit", response_model=PostEditOut)
def read_post_for_edit(
    *,
    post_id: str,
    current_user: User = Depends(get_current_user),
    repository: PostRepository = Depends(get_post_repository),
    publish_service: PublishService = Depends(get_publish_service),
) -> Any:
    """
    Get the editable fields of one of your own posts.
    """
    _get_own_post(repository, post_id, current_user)
    return publish_service.get_post_for_edit(post_id)


@router.put("/{post_id}", response_model=PostOut)
def update_post_by_id(
    *,
    post_id: str,
    post_in: PostUpdate,
    current_user: User = Depends(get_current_user),
    repository: PostRepository = Depends(get_post_repository),
    publish_service: PublishService = Depends(get_publish_service),
) -> Any:
    """
    Update a post's title, body or file name, replacing its tags.
    """
    post = _get_own_post(repository, post_id, current_user)
    if _edit_window_expired(post.created_at):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Edit time window has expired",
        )
    return publish_service.update_post(post_id, post_in)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post_by_id(
    *,
    post_id: str,
    current_user: User = Depends(get_current_user),
    repository: PostRepository = Depends(get_post_repository),
    publish_service: PublishService = Depends(get_publish_service),
) -> Response:
    """
    Delete a post with its comments, reactions and tags, then its file.
    """
    _get_own_post(repository, post_id, current_user)
    publish_service.delete_post(post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
