from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from resourcehub.db.session import Base

LIKE = "like"

class Reaction(Base):
    __tablename__ = "reactions"

    id = Column(String, primary_key=True, index=True)
    reaction_type = Column(String, default=LIKE)
    user_id = Column(String, ForeignKey("users.id"))
    post_id = Column(String, ForeignKey("posts.id"), index=True)
    created_at = Column(DateTime(timezone=True), default=func.now())
