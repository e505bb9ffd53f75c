import os
import tempfile

# Settings are read at import time: point them at an in-memory database,
# a throwaway upload folder and no R2 before anything imports resourcehub.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIRECTORY"] = tempfile.mkdtemp(prefix="resourcehub-uploads-")
for name in ("R2_ENDPOINT", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_PUBLIC_URL"):
    os.environ[name] = ""

from typing import List, Optional

import pytest

from resourcehub.core.errors import AssetDeleteError, AssetUploadError
from resourcehub.core.storage import AssetStore, UploadedAsset, build_storage_key, resource_kind
from resourcehub.db import base  # noqa: F401
from resourcehub.db.session import Base, SessionLocal, engine
from resourcehub.modules.posts.services.publish import PublishService
from resourcehub.modules.posts.services.repository import PostRepository
from resourcehub.modules.tags.models.tag import Tag
from resourcehub.modules.user_management.models.user import User

AUTHOR_ID = "user-1"
OTHER_USER_ID = "user-2"
TAGS = {1: "Algorithms", 2: "Calculus", 3: "Physics", 4: "Exam prep"}


class FakeAssetStore(AssetStore):
    """In-memory object store that records every call."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.objects = {}
        self.uploads: List[str] = []
        self.uploaded_ids: List[str] = []
        self.deletes: List[str] = []

    def upload(self, content: bytes, original_name: str, mime_type: str, owner_id: str,
               timeout: Optional[float] = None) -> UploadedAsset:
        self.uploads.append(original_name)
        if self.fail_upload:
            raise AssetUploadError("simulated storage outage")
        asset_id = build_storage_key(original_name, owner_id)
        self.objects[asset_id] = content
        self.uploaded_ids.append(asset_id)
        return UploadedAsset(
            asset_id=asset_id,
            url=f"https://cdn.example.com/{asset_id}",
            byte_size=len(content),
            kind=resource_kind(mime_type),
        )

    def delete(self, asset_id: str, timeout: Optional[float] = None) -> None:
        self.deletes.append(asset_id)
        if self.fail_delete:
            raise AssetDeleteError("simulated storage outage")
        self.objects.pop(asset_id, None)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    session.add_all([
        User(id=AUTHOR_ID, email="ada@example.edu", username="ada"),
        User(id=OTHER_USER_ID, email="alan@example.edu", username="alan"),
    ])
    session.add_all([Tag(id=tag_id, name=name) for tag_id, name in TAGS.items()])
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def repository(db) -> PostRepository:
    return PostRepository(db)


@pytest.fixture
def service(repository, store) -> PublishService:
    return PublishService(repository, store)
