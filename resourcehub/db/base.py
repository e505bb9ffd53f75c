# Import all models here so metadata.create_all sees every table
from resourcehub.db.session import Base

from resourcehub.modules.user_management.models.user import User
from resourcehub.modules.tags.models.tag import Tag
from resourcehub.modules.posts.models.post import Post, PostTag
from resourcehub.modules.posts.comments.models.comment import Comment
from resourcehub.modules.posts.reactions.models.reaction import Reaction
