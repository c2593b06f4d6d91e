"""
External representations of entities.

A view group picks which attributes are exposed: list views of posts omit
the body and comments and expose only a count, detail views include
everything.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict

from .models import Comment, Post, User

LIST = "list"
DETAIL = "detail"


class View(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserView(View):
    id: int
    username: str
    email: str
    roles: List[str]
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            roles=user.get_roles(),
            created_at=user.created_at,
        )


class CommentView(View):
    id: int
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    post_id: int
    author_username: Optional[str] = None


class PostListView(View):
    id: int
    title: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    author_username: Optional[str] = None
    comments_count: int


class PostDetailView(PostListView):
    content: str
    comments: List[CommentView]


VIEWS: Dict[tuple, Type[View]] = {
    (Post, LIST): PostListView,
    (Post, DETAIL): PostDetailView,
    (Comment, LIST): CommentView,
    (Comment, DETAIL): CommentView,
}


class Serializer:
    def serialize(self, entity: Any, group: str = DETAIL) -> Dict[str, Any]:
        if isinstance(entity, User):
            return UserView.from_user(entity).model_dump(mode="json")
        try:
            view = VIEWS[(type(entity), group)]
        except KeyError:
            raise ValueError(
                f"No {group!r} view for {type(entity).__name__}"
            ) from None
        return view.model_validate(entity).model_dump(mode="json")

    def serialize_many(self, entities, group: str = LIST) -> List[Dict[str, Any]]:
        return [self.serialize(entity, group) for entity in entities]
