import pytest
from httpx import ASGITransport, AsyncClient

from blog_api.config import Settings
from blog_api.database import create_schema
from blog_api.main import create_app
from blog_api.repositories import CommentRepository, PostRepository, UserRepository
from blog_api.services import CommentService, PostService, UserService
from blog_api.validators import CommentValidator, PostValidator, UserValidator


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}",
        create_schema=False,
        jwt_secret="test-secret-key-that-is-long-enough-for-hs256",
        log_level="WARNING",
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    await create_schema(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def cache(app):
    return app.state.cache


@pytest.fixture
async def session(app):
    async with app.state.sessionmaker() as session:
        yield session


@pytest.fixture
def user_service(app, session):
    users = UserRepository(session)
    return UserService(users, UserValidator(users), app.state.hasher, app.state.tokens)


@pytest.fixture
def post_service(app, session, cache):
    return PostService(PostRepository(session), PostValidator(), app.state.serializer, cache)


@pytest.fixture
def comment_service(app, session, cache):
    return CommentService(
        CommentRepository(session),
        PostRepository(session),
        CommentValidator(),
        app.state.serializer,
        cache,
    )


@pytest.fixture
def make_user(user_service):
    async def _make_user(username="alice", password="secret123"):
        return await user_service.register_user(
            {"username": username, "email": f"{username}@example.com", "password": password}
        )

    return _make_user


@pytest.fixture
def register(client):
    """Register through the API and return (auth headers, user body)."""

    async def _register(username="alice"):
        response = await client.post(
            "/api/registration",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": "secret123",
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register
