import asyncio
import os
import time

from faker import Faker
from sqlalchemy import text

from blog_api.config import get_settings
from blog_api.database import create_engine, create_schema, create_sessionmaker
from blog_api.models import Comment, Post, User
from blog_api.security import PasswordHasher

# Configuration
NUM_USERS = int(os.getenv("SEED_USERS", 100))
NUM_POSTS = int(os.getenv("SEED_POSTS", 500))
NUM_COMMENTS = int(os.getenv("SEED_COMMENTS", 2000))
BATCH_SIZE = 500
# Every seeded account shares one password so the load test can log in
SEED_PASSWORD = os.getenv("SEED_PASSWORD", "password123")

fake = Faker()


def batches(items, size=BATCH_SIZE):
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def seed_users(sessionmaker):
    print(f"Seeding {NUM_USERS} users...")
    password_hash = PasswordHasher().hash(SEED_PASSWORD)
    users = [
        User(
            username=fake.unique.user_name()[:50],
            email=fake.unique.email(),
            password=password_hash,
        )
        for _ in range(NUM_USERS)
    ]
    async with sessionmaker() as session:
        for chunk in batches(users):
            session.add_all(chunk)
            await session.commit()
    print("Users seeded.")
    return [user.id for user in users]


async def seed_posts(sessionmaker, user_ids):
    print(f"Seeding {NUM_POSTS} posts...")
    posts = [
        Post(
            author_id=fake.random_element(user_ids),
            title=fake.sentence()[:255],
            content=fake.text(),
        )
        for _ in range(NUM_POSTS)
    ]
    async with sessionmaker() as session:
        for chunk in batches(posts):
            session.add_all(chunk)
            await session.commit()
    print("Posts seeded.")
    return [post.id for post in posts]


async def seed_comments(sessionmaker, user_ids, post_ids):
    print(f"Seeding {NUM_COMMENTS} comments...")
    comments = [
        Comment(
            author_id=fake.random_element(user_ids),
            post_id=fake.random_element(post_ids),
            content=fake.text(),
        )
        for _ in range(NUM_COMMENTS)
    ]
    async with sessionmaker() as session:
        for chunk in batches(comments):
            session.add_all(chunk)
            await session.commit()
    print("Comments seeded.")


async def main():
    start_time = time.time()
    engine = create_engine(get_settings())
    sessionmaker = create_sessionmaker(engine)

    await create_schema(engine)
    if engine.dialect.name == "postgresql":
        async with engine.begin() as conn:
            print("Cleaning up existing data...")
            await conn.execute(
                text("TRUNCATE TABLE comments, posts, users RESTART IDENTITY CASCADE")
            )

    user_ids = await seed_users(sessionmaker)
    post_ids = await seed_posts(sessionmaker, user_ids)
    await seed_comments(sessionmaker, user_ids, post_ids)

    await engine.dispose()
    print(f"Total Seeding Time: {time.time() - start_time:.2f} seconds")


if __name__ == "__main__":
    asyncio.run(main())
