"""
User, post and comment services.

Every mutation runs the same steps: validate the payload, authorize the
acting user, mutate and persist the entity, then invalidate the cache
entries it made stale. Reads go through the cache and return serialized
views.
"""
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from .cache import CacheService
from .exceptions import (
    CommentNotFoundError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    PostNotFoundError,
    UserNotFoundError,
)
from .models import DEFAULT_ROLE, Comment, Post, User
from .pagination import page_metadata
from .repositories import CommentRepository, PostRepository, UserRepository
from .security import PasswordHasher, TokenManager
from .serializers import DETAIL, LIST, Serializer
from .validators import CommentValidator, PostValidator, UserValidator

Payload = Optional[Dict[str, Any]]


class UserService:
    def __init__(
        self,
        users: UserRepository,
        validator: UserValidator,
        hasher: PasswordHasher,
        tokens: TokenManager,
    ):
        self.users = users
        self.validator = validator
        self.hasher = hasher
        self.tokens = tokens

    async def register_user(self, payload: Payload) -> User:
        self.validator.validate_shape(payload)
        email = payload["email"].strip()
        await self.validator.check_email_unique(email)

        user = User(
            username=payload["username"].strip(),
            email=email,
            roles=[DEFAULT_ROLE],
        )
        user.plain_password = payload["password"]
        await self.validator.validate_entity(user)

        user.password = self.hasher.hash(user.plain_password)
        user.erase_credentials()

        try:
            await self.users.save(user)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            await self.users.session.rollback()
            raise EmailAlreadyExistsError(f"Email {email} already exists") from exc

        logger.info("Registered user {} ({})", user.id, user.username)
        return user

    async def authenticate(self, payload: Payload) -> User:
        self.validator.validate_credentials_shape(payload)
        user = await self.users.find_by_email(payload["email"].strip())
        if user is None or not self.hasher.verify(payload["password"], user.password):
            raise InvalidCredentialsError()
        return user

    async def get_by_id(self, user_id: int) -> User:
        user = await self.users.find(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def issue_token(self, user: User) -> str:
        return self.tokens.create(user)


class PostService:
    def __init__(
        self,
        posts: PostRepository,
        validator: PostValidator,
        serializer: Serializer,
        cache: CacheService,
    ):
        self.posts = posts
        self.validator = validator
        self.serializer = serializer
        self.cache = cache

    async def get_paginated(self, page: int, limit: int) -> Dict[str, Any]:
        async def load():
            posts = await self.posts.find_page(page, limit)
            total = await self.posts.count()
            return {
                "posts": self.serializer.serialize_many(posts, LIST),
                "pagination": page_metadata(page, limit, total),
            }

        key = self.cache.posts_list_key(page, limit)
        return await self.cache.remember(key, self.cache.list_ttl, load)

    async def get_by_id(self, post_id: int) -> Dict[str, Any]:
        async def load():
            post = await self.posts.find(post_id)
            return self.serializer.serialize(post, DETAIL) if post else None

        key = self.cache.post_detail_key(post_id)
        view = await self.cache.remember(key, self.cache.detail_ttl, load)
        if view is None:
            raise PostNotFoundError()
        return view

    async def find(self, post_id: int) -> Post:
        post = await self.posts.find(post_id)
        if post is None:
            raise PostNotFoundError()
        return post

    async def create(self, payload: Payload, acting_user: User) -> Post:
        self.validator.validate_shape(payload)

        post = Post(
            title=payload["title"].strip(),
            content=payload["content"].strip(),
            author=acting_user,
        )
        self.validator.validate_entity(post)
        await self.posts.save(post)

        self.cache.clear_posts_list()
        logger.info("Post {} created by user {}", post.id, acting_user.id)
        return post

    async def update(self, post_id: int, payload: Payload, acting_user: User) -> Post:
        post = await self.find(post_id)
        self.validator.check_ownership(post, acting_user)
        self.validator.validate_shape(payload, partial=True)

        if "title" in payload:
            post.title = payload["title"].strip()
        if "content" in payload:
            post.content = payload["content"].strip()

        self.validator.validate_entity(post)
        await self.posts.save(post)

        self.cache.clear_post_detail(post_id)
        self.cache.clear_posts_list()
        logger.info("Post {} updated by user {}", post_id, acting_user.id)
        return post

    async def delete(self, post_id: int, acting_user: User) -> None:
        post = await self.find(post_id)
        self.validator.check_ownership(post, acting_user)

        comment_ids = [comment.id for comment in post.comments]
        await self.posts.remove(post)

        self.cache.clear_post_related(post_id)
        for comment_id in comment_ids:
            self.cache.clear_comment_detail(comment_id)
        logger.info(
            "Post {} deleted by user {} ({} comments removed)",
            post_id,
            acting_user.id,
            len(comment_ids),
        )

    def serialize(self, post: Post, group: str = DETAIL) -> Dict[str, Any]:
        return self.serializer.serialize(post, group)


class CommentService:
    def __init__(
        self,
        comments: CommentRepository,
        posts: PostRepository,
        validator: CommentValidator,
        serializer: Serializer,
        cache: CacheService,
    ):
        self.comments = comments
        self.posts = posts
        self.validator = validator
        self.serializer = serializer
        self.cache = cache

    async def get_paginated(self, post_id: int, page: int, limit: int) -> Dict[str, Any]:
        if not await self.posts.exists(post_id):
            raise PostNotFoundError(f"Post with ID {post_id} not found")

        async def load():
            comments = await self.comments.find_page_for_post(post_id, page, limit)
            total = await self.comments.count_for_post(post_id)
            return {
                "comments": self.serializer.serialize_many(comments, LIST),
                "pagination": page_metadata(page, limit, total),
            }

        key = self.cache.comments_list_key(post_id, page, limit)
        return await self.cache.remember(key, self.cache.list_ttl, load)

    async def get_by_id(self, comment_id: int) -> Dict[str, Any]:
        async def load():
            comment = await self.comments.find(comment_id)
            return self.serializer.serialize(comment, DETAIL) if comment else None

        key = self.cache.comment_detail_key(comment_id)
        view = await self.cache.remember(key, self.cache.detail_ttl, load)
        if view is None:
            raise CommentNotFoundError(f"Comment with ID {comment_id} not found")
        return view

    async def find(self, comment_id: int) -> Comment:
        comment = await self.comments.find(comment_id)
        if comment is None:
            raise CommentNotFoundError(f"Comment with ID {comment_id} not found")
        return comment

    async def create(self, payload: Payload, post_id: int, acting_user: User) -> Comment:
        self.validator.validate_shape(payload)

        post = await self.posts.find(post_id)
        if post is None:
            raise PostNotFoundError(f"Post with ID {post_id} not found")

        comment = Comment(
            content=payload["content"].strip(),
            post=post,
            author=acting_user,
        )
        self.validator.validate_entity(comment)
        await self.comments.save(comment)

        self._invalidate(comment.id, post_id)
        logger.info(
            "Comment {} added to post {} by user {}", comment.id, post_id, acting_user.id
        )
        return comment

    async def update(self, comment_id: int, payload: Payload, acting_user: User) -> Comment:
        comment = await self.find(comment_id)
        self.validator.check_ownership(comment, acting_user)
        self.validator.validate_shape(payload, partial=True)

        comment.content = payload["content"].strip()
        self.validator.validate_entity(comment)
        await self.comments.save(comment)

        self._invalidate(comment_id, comment.post_id)
        logger.info("Comment {} updated by user {}", comment_id, acting_user.id)
        return comment

    async def delete(self, comment_id: int, acting_user: User) -> None:
        comment = await self.find(comment_id)
        self.validator.check_ownership(comment, acting_user)

        post_id = comment.post_id
        await self.comments.remove(comment)

        self._invalidate(comment_id, post_id)
        logger.info("Comment {} deleted by user {}", comment_id, acting_user.id)

    def serialize(self, comment: Comment, group: str = DETAIL) -> Dict[str, Any]:
        return self.serializer.serialize(comment, group)

    def _invalidate(self, comment_id: int, post_id: int) -> None:
        self.cache.clear_comment_related(comment_id, post_id)
        # Post views embed comments and a comment count
        self.cache.clear_post_detail(post_id)
        self.cache.clear_posts_list()
