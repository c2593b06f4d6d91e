import pytest

from blog_api.exceptions import (
    AccessDeniedError,
    CommentNotFoundError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    PostNotFoundError,
    ValidationError,
)
from blog_api.models import DEFAULT_ROLE


async def test_register_user_hashes_password(user_service):
    user = await user_service.register_user(
        {"username": "alice", "email": "alice@example.com", "password": "secret123"}
    )

    assert user.id is not None
    assert user.get_roles() == [DEFAULT_ROLE]
    assert user.password != "secret123"
    assert user.plain_password is None
    assert user_service.hasher.verify("secret123", user.password)


async def test_duplicate_email_wins_over_field_errors(user_service, make_user):
    await make_user("alice")

    with pytest.raises(EmailAlreadyExistsError):
        await user_service.register_user(
            {"username": "x", "email": "alice@example.com", "password": "1"}
        )


async def test_duplicate_username_is_a_validation_error(user_service, make_user):
    await make_user("alice")

    with pytest.raises(ValidationError) as exc_info:
        await user_service.register_user(
            {"username": "alice", "email": "other@example.com", "password": "secret123"}
        )
    assert "username" in exc_info.value.details


async def test_authenticate(user_service, make_user):
    user = await make_user("alice", password="secret123")

    found = await user_service.authenticate({"email": "alice@example.com", "password": "secret123"})
    assert found.id == user.id

    with pytest.raises(InvalidCredentialsError):
        await user_service.authenticate({"email": "alice@example.com", "password": "wrong-one"})
    with pytest.raises(InvalidCredentialsError):
        await user_service.authenticate({"email": "nobody@example.com", "password": "secret123"})


async def test_issued_token_identifies_user(user_service, make_user):
    user = await make_user("alice")
    token = user_service.issue_token(user)
    assert user_service.tokens.user_id_from(token) == user.id


async def test_create_post_reports_field_errors(post_service, make_user):
    author = await make_user()

    with pytest.raises(ValidationError) as exc_info:
        await post_service.create({"title": "Hi", "content": "short"}, author)
    assert set(exc_info.value.details) == {"title", "content"}


async def test_create_and_read_post(post_service, make_user):
    author = await make_user()
    post = await post_service.create({"title": "  Hello  ", "content": "A long enough body"}, author)

    view = await post_service.get_by_id(post.id)
    assert view["title"] == "Hello"
    assert view["author_username"] == "alice"
    assert view["comments"] == []
    assert view["comments_count"] == 0


async def test_missing_post(post_service):
    with pytest.raises(PostNotFoundError):
        await post_service.get_by_id(999)


async def test_only_the_author_may_change_a_post(post_service, make_user):
    author = await make_user("alice")
    intruder = await make_user("mallory")
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)

    # Ownership is checked before the payload
    with pytest.raises(AccessDeniedError):
        await post_service.update(post.id, {"title": "x"}, intruder)
    with pytest.raises(AccessDeniedError):
        await post_service.delete(post.id, intruder)


async def test_partial_update_invalidates_detail(post_service, cache, make_user):
    author = await make_user()
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)
    await post_service.get_by_id(post.id)
    assert cache.post_detail_key(post.id) in cache.store

    await post_service.update(post.id, {"title": "Renamed"}, author)

    assert cache.post_detail_key(post.id) not in cache.store
    view = await post_service.get_by_id(post.id)
    assert view["title"] == "Renamed"
    assert view["content"] == "A long enough body"


async def test_posts_list_is_newest_first(post_service, make_user):
    author = await make_user()
    first = await post_service.create({"title": "First", "content": "A long enough body"}, author)
    second = await post_service.create({"title": "Second", "content": "A long enough body"}, author)

    result = await post_service.get_paginated(1, 10)

    assert [p["id"] for p in result["posts"]] == [second.id, first.id]
    assert "content" not in result["posts"][0]


async def test_posts_list_sweep_is_bounded(post_service, make_user):
    author = await make_user()
    await post_service.create({"title": "First", "content": "A long enough body"}, author)
    swept = await post_service.get_paginated(1, 10)
    unswept = await post_service.get_paginated(1, 3)

    await post_service.create({"title": "Second", "content": "A long enough body"}, author)

    assert (await post_service.get_paginated(1, 10))["pagination"]["total_items"] == (
        swept["pagination"]["total_items"] + 1
    )
    # limit 3 is not on the sweep grid, it stays stale until its TTL expires
    assert await post_service.get_paginated(1, 3) == unswept


async def test_comment_round_trip(post_service, comment_service, make_user):
    author = await make_user()
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)
    before = await comment_service.get_paginated(post.id, 1, 10)

    comment = await comment_service.create({"content": "Nice post!"}, post.id, author)

    after = await comment_service.get_paginated(post.id, 1, 10)
    assert after["pagination"]["total_items"] == before["pagination"]["total_items"] + 1
    assert after["comments"][0]["id"] == comment.id
    assert (await post_service.get_by_id(post.id))["comments_count"] == 1


async def test_comment_update_is_visible(post_service, comment_service, make_user):
    author = await make_user()
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)
    comment = await comment_service.create({"content": "First draft"}, post.id, author)
    assert (await comment_service.get_by_id(comment.id))["content"] == "First draft"

    await comment_service.update(comment.id, {"content": "Second draft"}, author)

    assert (await comment_service.get_by_id(comment.id))["content"] == "Second draft"


async def test_comments_of_missing_post(comment_service, make_user):
    author = await make_user()
    with pytest.raises(PostNotFoundError):
        await comment_service.get_paginated(999, 1, 10)
    with pytest.raises(PostNotFoundError):
        await comment_service.create({"content": "Hello there"}, 999, author)


async def test_only_the_author_may_change_a_comment(post_service, comment_service, make_user):
    author = await make_user("alice")
    intruder = await make_user("mallory")
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)
    comment = await comment_service.create({"content": "Nice post!"}, post.id, author)

    with pytest.raises(AccessDeniedError):
        await comment_service.update(comment.id, {"content": "Hijacked"}, intruder)
    with pytest.raises(AccessDeniedError):
        await comment_service.delete(comment.id, intruder)


async def test_post_delete_cascades_comments(post_service, comment_service, cache, make_user):
    author = await make_user()
    post = await post_service.create({"title": "Hello", "content": "A long enough body"}, author)
    comment = await comment_service.create({"content": "Nice post!"}, post.id, author)
    await comment_service.get_by_id(comment.id)
    assert cache.comment_detail_key(comment.id) in cache.store

    await post_service.delete(post.id, author)

    assert cache.comment_detail_key(comment.id) not in cache.store
    with pytest.raises(PostNotFoundError):
        await post_service.get_by_id(post.id)
    with pytest.raises(CommentNotFoundError):
        await comment_service.get_by_id(comment.id)
