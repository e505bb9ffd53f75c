import enum

from sqlalchemy import CheckConstraint, Column, String, DateTime, Text, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from resourcehub.db.session import Base


class PostType(str, enum.Enum):
    QUESTION = "QUESTION"
    NOTE = "NOTE"
    RESOURCE = "RESOURCE"


TEXT_POST_TYPES = (PostType.QUESTION.value, PostType.NOTE.value)


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        # A post is exactly one of: text (content only) or resource (file columns only)
        CheckConstraint(
            "(type = 'RESOURCE' AND content IS NULL AND asset_id IS NOT NULL AND file_url IS NOT NULL)"
            " OR (type IN ('QUESTION', 'NOTE') AND content IS NOT NULL"
            " AND asset_id IS NULL AND file_url IS NULL AND file_name IS NULL)",
            name="ck_posts_single_variant",
        ),
    )

    id = Column(String, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=True)

    # Resource posts only; the bytes live in object storage
    asset_id = Column(String, nullable=True)
    file_url = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String, nullable=True)

    author_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    author = relationship("User")
    post_tags = relationship("PostTag", back_populates="post")


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id = Column(String, ForeignKey("posts.id"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), primary_key=True)

    post = relationship("Post", back_populates="post_tags")
    tag = relationship("Tag")
