"""
Turns the repository's joined post record into the shapes returned to clients.

The raw record is the post's columns plus ``author`` (dict or None),
``post_tags`` (list of ``{"tag": {"id", "name"}}``) and ``_count``
(``{"comments", "likes"}``). Missing relations yield empty fields.
"""

from typing import Any, Dict, List

from resourcehub.modules.posts.models.post import PostType
from resourcehub.modules.posts.schemas.post import AuthorSummary, PostEditOut, PostOut, TagOut


def flatten_tags(raw: Dict[str, Any]) -> List[TagOut]:
    tags = []
    for post_tag in raw.get("post_tags") or []:
        tag = (post_tag or {}).get("tag")
        if tag:
            tags.append(TagOut(id=tag["id"], name=tag["name"]))
    return tags


def assemble_post(raw: Dict[str, Any]) -> PostOut:
    author = raw.get("author")
    counts = raw.get("_count") or {}
    return PostOut(
        id=raw["id"],
        title=raw["title"],
        type=raw["type"],
        content=raw.get("content"),
        file_url=raw.get("file_url"),
        file_name=raw.get("file_name"),
        file_size=raw.get("file_size"),
        mime_type=raw.get("mime_type"),
        author_id=raw.get("author_id"),
        author=AuthorSummary(**author) if author else None,
        tags=flatten_tags(raw),
        comment_count=counts.get("comments") or 0,
        like_count=counts.get("likes") or 0,
        created_at=raw.get("created_at"),
        updated_at=raw.get("updated_at"),
    )


def assemble_edit_response(raw: Dict[str, Any]) -> PostEditOut:
    """Edit view: content for text posts, file metadata for resource posts."""
    base = {
        "id": raw["id"],
        "title": raw["title"],
        "type": raw["type"],
        "tags": flatten_tags(raw),
    }
    if raw["type"] == PostType.RESOURCE.value:
        return PostEditOut(**base, has_file=True, file_name=raw.get("file_name"), file_size=raw.get("file_size"))
    return PostEditOut(**base, has_file=False, content=raw.get("content") or "")
