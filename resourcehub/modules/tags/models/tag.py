from sqlalchemy import Column, Integer, String

from resourcehub.db.session import Base

class Tag(Base):
    """Reference data; posts only link to existing tags."""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
