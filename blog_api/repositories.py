from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Comment, Post, User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def email_exists(self, email: str) -> bool:
        stmt = select(func.count(User.id)).where(User.email == email)
        return (await self.session.scalar(stmt) or 0) > 0

    async def username_exists(self, username: str) -> bool:
        stmt = select(func.count(User.id)).where(User.username == username)
        return (await self.session.scalar(stmt) or 0) > 0

    async def save(self, user: User) -> None:
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)


class PostRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, post_id: int) -> Optional[Post]:
        # populate_existing so a post already in the identity map picks up
        # comments committed since it was first loaded
        stmt = (
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def exists(self, post_id: int) -> bool:
        stmt = select(func.count(Post.id)).where(Post.id == post_id)
        return (await self.session.scalar(stmt) or 0) > 0

    async def find_page(self, page: int, limit: int) -> List[Post]:
        stmt = (
            select(Post)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        return await self.session.scalar(select(func.count(Post.id))) or 0

    async def save(self, post: Post) -> None:
        self.session.add(post)
        await self.session.commit()
        await self.session.refresh(post)

    async def remove(self, post: Post) -> None:
        await self.session.delete(post)
        await self.session.commit()


class CommentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, comment_id: int) -> Optional[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_page_for_post(self, post_id: int, page: int, limit: int) -> List[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_post(self, post_id: int) -> int:
        stmt = select(func.count(Comment.id)).where(Comment.post_id == post_id)
        return await self.session.scalar(stmt) or 0

    async def save(self, comment: Comment) -> None:
        self.session.add(comment)
        await self.session.commit()
        await self.session.refresh(comment)

    async def remove(self, comment: Comment) -> None:
        await self.session.delete(comment)
        await self.session.commit()
