from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from resourcehub.core.config import settings
from resourcehub.core.security import verify_access_token
from resourcehub.core.storage import AssetStore
from resourcehub.db.session import get_db
from resourcehub.modules.posts.services.publish import PublishService
from resourcehub.modules.posts.services.repository import PostRepository
from resourcehub.modules.user_management.models.user import User

# Tokens are issued by the auth service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    """
    Dependency for getting current authenticated user
    """
    user_id = verify_access_token(token)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    return user

def get_asset_store(request: Request) -> AssetStore:
    """The store is created once per app and shared by all requests"""
    return request.app.state.asset_store

def get_post_repository(db: Session = Depends(get_db)) -> PostRepository:
    return PostRepository(db)

def get_publish_service(
    repository: PostRepository = Depends(get_post_repository),
    store: AssetStore = Depends(get_asset_store),
) -> PublishService:
    return PublishService(repository, store)
