from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from resourcehub.core.config import settings

MAX_TAGS = 10

TextPostType = Literal["QUESTION", "NOTE"]


class StagedFile(BaseModel):
    """An uploaded file held in memory until it is pushed to object storage"""
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str
    content: bytes = Field(..., repr=False)

    @field_validator("content_type")
    @classmethod
    def check_content_type(cls, v: str) -> str:
        if v not in settings.ALLOWED_UPLOAD_MIME_TYPES:
            raise ValueError(f"Unsupported file type: {v}")
        return v

    @field_validator("content")
    @classmethod
    def check_size(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("File is empty")
        if len(v) > settings.MAX_UPLOAD_SIZE:
            raise ValueError(f"File too large. Maximum file size is {settings.MAX_UPLOAD_SIZE} bytes")
        return v


class PostBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(..., min_length=5, max_length=100)
    tag_ids: List[Annotated[int, Field(gt=0)]] = Field(default_factory=list)

    @field_validator("tag_ids")
    @classmethod
    def collapse_duplicate_tags(cls, v: List[int]) -> List[int]:
        unique = list(dict.fromkeys(v))
        if len(unique) > MAX_TAGS:
            raise ValueError(f"A post can have at most {MAX_TAGS} tags")
        return unique


class TextPostCreate(PostBase):
    type: TextPostType
    content: str = Field(..., min_length=10, max_length=10000)


class ResourcePostCreate(PostBase):
    type: Literal["RESOURCE"]
    file: StagedFile


class TextPostUpdate(PostBase):
    type: TextPostType
    content: str = Field(..., min_length=10, max_length=10000)


class ResourcePostUpdate(PostBase):
    """The stored file is immutable; only its display name can change"""
    type: Literal["RESOURCE"]
    file_name: str = Field(..., min_length=1, max_length=255)


PostCreate = Annotated[Union[TextPostCreate, ResourcePostCreate], Field(discriminator="type")]
PostUpdate = Annotated[Union[TextPostUpdate, ResourcePostUpdate], Field(discriminator="type")]

post_create_adapter = TypeAdapter(PostCreate)
post_update_adapter = TypeAdapter(PostUpdate)


class TagOut(BaseModel):
    id: int
    name: str


class AuthorSummary(BaseModel):
    id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class PostOut(BaseModel):
    """Post model returned to client"""
    id: str
    title: str
    type: str
    content: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    author_id: Optional[str] = None
    author: Optional[AuthorSummary] = None
    tags: List[TagOut] = []
    comment_count: int = 0
    like_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostEditOut(BaseModel):
    """Pre-filled form data for the edit screen"""
    id: str
    title: str
    type: str
    tags: List[TagOut] = []
    has_file: bool
    content: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
