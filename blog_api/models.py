from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

DEFAULT_ROLE = "ROLE_USER"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(180), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255))
    roles: Mapped[List[str]] = mapped_column(JSON, default=lambda: [DEFAULT_ROLE])
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    posts: Mapped[List["Post"]] = relationship(back_populates="author")
    comments: Mapped[List["Comment"]] = relationship(back_populates="author")

    # Only set between construction and hashing, never persisted
    plain_password = None

    def __init__(self, **kwargs):
        kwargs.setdefault("roles", [DEFAULT_ROLE])
        super().__init__(**kwargs)

    def get_roles(self) -> List[str]:
        """Stored roles plus the default role, deduplicated."""
        roles = list(dict.fromkeys(self.roles or []))
        if DEFAULT_ROLE not in roles:
            roles.append(DEFAULT_ROLE)
        return roles

    def erase_credentials(self) -> None:
        self.plain_password = None

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    author_id: Mapped[int] = mapped_column(
        "user_id", ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )

    author: Mapped[User] = relationship(back_populates="posts", lazy="joined")
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=lambda: [Comment.created_at, Comment.id],
    )

    @property
    def author_username(self) -> Optional[str]:
        return self.author.username if self.author is not None else None

    @property
    def comments_count(self) -> int:
        return len(self.comments)

    def __repr__(self) -> str:
        return f"<Post id={self.id} title={self.title!r}>"


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    author_id: Mapped[int] = mapped_column(
        "user_id", ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), index=True
    )
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )

    author: Mapped[User] = relationship(back_populates="comments", lazy="joined")
    post: Mapped[Post] = relationship(back_populates="comments")

    @property
    def author_username(self) -> Optional[str]:
        return self.author.username if self.author is not None else None

    def __repr__(self) -> str:
        return f"<Comment id={self.id} post_id={self.post_id}>"
