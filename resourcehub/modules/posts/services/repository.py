from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging
import uuid

from sqlalchemy import delete, func, insert, select, text, update
from sqlalchemy.orm import Session, joinedload, selectinload

from resourcehub.core.errors import PostNotFoundError, VariantMismatchError
from resourcehub.modules.posts.comments.models.comment import Comment
from resourcehub.modules.posts.models.post import Post, PostTag
from resourcehub.modules.posts.reactions.models.reaction import LIKE, Reaction

logger = logging.getLogger(__name__)

POST_COLUMNS = (
    "id", "title", "type", "content", "asset_id", "file_url", "file_name",
    "file_size", "mime_type", "author_id", "created_at", "updated_at",
)


class PostRepository:
    """
    Database side of the post write path.

    ``create_post_tx`` and ``update_post_tx`` each run as one transaction on
    the request's session: commit on success, rollback on any error, so no
    reader ever sees a post without its tags or with half-replaced tags.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_post_tx(self, fields: Dict[str, Any], tag_ids: Sequence[int],
                       timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Insert a post with its tag links and return the joined record."""
        post_id = str(uuid.uuid4())
        logger.info(f"Creating post {post_id} for author ID: {fields.get('author_id')}")
        try:
            self._apply_timeout(timeout)
            self.db.add(Post(id=post_id, **fields))
            self.db.flush()
            self._insert_tags(post_id, tag_ids)

            raw = self._read_back(post_id)
            if raw is None:
                self.db.rollback()
                return None
            self.db.commit()
            return raw
        except Exception:
            self.db.rollback()
            raise

    def update_post_tx(self, post_id: str, fields: Dict[str, Any], tag_ids: Sequence[int],
                       post_types: Iterable[str], timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """
        Patch the post's mutable fields and replace its tags.

        Only rows whose type is in ``post_types`` are updated, which keeps a
        post's variant fixed. Tags are replaced delete-then-insert, so an empty
        ``tag_ids`` simply clears them.
        """
        logger.info(f"Updating post with ID: {post_id}")
        try:
            self._apply_timeout(timeout)
            result = self.db.execute(
                update(Post)
                .where(Post.id == post_id, Post.type.in_(list(post_types)))
                .values(**fields, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                stored_type = self.db.scalar(select(Post.type).where(Post.id == post_id))
                if stored_type is None:
                    raise PostNotFoundError(post_id)
                raise VariantMismatchError(post_id, stored_type)

            self.db.execute(
                delete(PostTag)
                .where(PostTag.post_id == post_id)
                .execution_options(synchronize_session=False)
            )
            self._insert_tags(post_id, tag_ids)

            raw = self._read_back(post_id)
            if raw is None:
                self.db.rollback()
                return None
            self.db.commit()
            return raw
        except Exception:
            self.db.rollback()
            raise

    def delete_post_tx(self, post_id: str) -> Dict[str, Optional[str]]:
        """
        Delete the post with its reactions, comments and tag links.
        Returns the file reference the caller must clean up afterwards.
        """
        logger.info(f"Deleting post with ID: {post_id}")
        try:
            post = self.db.get(Post, post_id)
            if post is None:
                raise PostNotFoundError(post_id)
            file_ref = {"asset_id": post.asset_id, "file_url": post.file_url}

            # Dependents first to maintain referential integrity
            self.db.execute(delete(Reaction).where(Reaction.post_id == post_id).execution_options(synchronize_session=False))
            self.db.execute(delete(Comment).where(Comment.post_id == post_id).execution_options(synchronize_session=False))
            self.db.execute(delete(PostTag).where(PostTag.post_id == post_id).execution_options(synchronize_session=False))
            self.db.delete(post)
            self.db.commit()
            return file_ref
        except Exception:
            self.db.rollback()
            raise

    def get_post_summary(self, post_id: str) -> Optional[Post]:
        """Bare post row, used for ownership and edit-window checks."""
        return self.db.get(Post, post_id)

    def read_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        logger.info(f"Getting post with ID: {post_id}")
        return self._read_back(post_id)

    def _apply_timeout(self, timeout: Optional[float]) -> None:
        # SET LOCAL only lasts until the surrounding transaction ends
        if timeout and self.db.get_bind().dialect.name == "postgresql":
            self.db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))

    def _insert_tags(self, post_id: str, tag_ids: Sequence[int]) -> None:
        if tag_ids:
            self.db.execute(
                insert(PostTag),
                [{"post_id": post_id, "tag_id": tag_id} for tag_id in tag_ids],
            )

    def _read_back(self, post_id: str) -> Optional[Dict[str, Any]]:
        # Rows were changed with bulk statements; drop anything cached in the session
        self.db.expire_all()
        post = self.db.execute(
            select(Post)
            .options(
                joinedload(Post.author),
                selectinload(Post.post_tags).joinedload(PostTag.tag),
            )
            .where(Post.id == post_id)
        ).unique().scalar_one_or_none()
        if post is None:
            return None

        comment_count = self.db.scalar(
            select(func.count(Comment.id)).where(Comment.post_id == post_id)
        )
        like_count = self.db.scalar(
            select(func.count(Reaction.id)).where(Reaction.post_id == post_id, Reaction.reaction_type == LIKE)
        )
        return self._to_raw(post, comment_count or 0, like_count or 0)

    @staticmethod
    def _to_raw(post: Post, comment_count: int, like_count: int) -> Dict[str, Any]:
        raw: Dict[str, Any] = {column: getattr(post, column) for column in POST_COLUMNS}
        raw["author"] = (
            {"id": post.author.id, "username": post.author.username, "avatar_url": post.author.avatar_url}
            if post.author else None
        )
        post_tags: List[Dict[str, Any]] = []
        for post_tag in sorted(post.post_tags, key=lambda pt: pt.tag_id):
            post_tags.append({
                "post_id": post_tag.post_id,
                "tag_id": post_tag.tag_id,
                "tag": {"id": post_tag.tag.id, "name": post_tag.tag.name} if post_tag.tag else None,
            })
        raw["post_tags"] = post_tags
        raw["_count"] = {"comments": comment_count, "likes": like_count}
        return raw
