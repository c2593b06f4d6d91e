import pytest

from blog_api.exceptions import (
    AccessDeniedError,
    EmailAlreadyExistsError,
    InvalidInputError,
    ValidationError,
)
from blog_api.models import Comment, Post, User
from blog_api.validators import CommentValidator, PostValidator, UserValidator


class StubUsers:
    def __init__(self, emails=(), usernames=()):
        self.emails = set(emails)
        self.usernames = set(usernames)

    async def email_exists(self, email):
        return email in self.emails

    async def username_exists(self, username):
        return username in self.usernames


def make_user(username="alice", email="alice@example.com", password="secret123", id=None):
    user = User(id=id, username=username, email=email)
    user.plain_password = password
    return user


@pytest.mark.parametrize("payload", [None, {}, [], "text"])
def test_shape_rejects_missing_body(payload):
    with pytest.raises(InvalidInputError, match="Invalid JSON body"):
        PostValidator().validate_shape(payload)


def test_shape_rejects_blank_field():
    with pytest.raises(InvalidInputError, match="Field title is required"):
        PostValidator().validate_shape({"title": "   ", "content": "Some content here"})


def test_shape_rejects_non_string_field():
    with pytest.raises(InvalidInputError, match="Field content is required"):
        CommentValidator().validate_shape({"content": 12345})


def test_partial_shape_accepts_single_field():
    PostValidator().validate_shape({"title": "New title"}, partial=True)


def test_partial_shape_requires_a_known_field():
    with pytest.raises(InvalidInputError):
        PostValidator().validate_shape({"unknown": "value"}, partial=True)


def test_partial_shape_rejects_explicit_null():
    with pytest.raises(InvalidInputError, match="Field content is required"):
        PostValidator().validate_shape({"title": "Fine title", "content": None}, partial=True)


def test_post_reports_every_failing_field():
    post = Post(title="Hi", content="short")
    errors = PostValidator().field_errors(post)
    assert errors == {
        "title": "Title must be at least 3 characters long",
        "content": "Content must be at least 10 characters long",
    }


def test_post_title_too_long():
    post = Post(title="x" * 256, content="Long enough content")
    with pytest.raises(ValidationError) as exc_info:
        PostValidator().validate_entity(post)
    assert exc_info.value.details == {"title": "Title cannot be longer than 255 characters"}


def test_valid_post_passes():
    PostValidator().validate_entity(Post(title="Hello", content="Long enough content"))


def test_comment_too_short():
    errors = CommentValidator().field_errors(Comment(content="hey"))
    assert errors == {"content": "Content must be at least 5 characters"}


def test_user_field_errors():
    user = make_user(username="bad name!", email="not-an-email", password="123")
    errors = UserValidator(StubUsers()).field_errors(user)
    assert errors == {
        "username": "Username can only contain letters, numbers, and underscores.",
        "email": "Please enter a valid email address.",
        "password": "Password must be at least 6 characters long.",
    }


async def test_taken_username_is_reported_as_field_error():
    validator = UserValidator(StubUsers(usernames={"alice"}))
    with pytest.raises(ValidationError) as exc_info:
        await validator.validate_entity(make_user())
    assert exc_info.value.details == {"username": "This username is already taken"}


async def test_valid_user_passes():
    await UserValidator(StubUsers()).validate_entity(make_user())


async def test_email_uniqueness_precheck():
    validator = UserValidator(StubUsers(emails={"alice@example.com"}))
    await validator.check_email_unique("bob@example.com")
    with pytest.raises(EmailAlreadyExistsError):
        await validator.check_email_unique("alice@example.com")


def test_ownership_compares_user_ids():
    owner = make_user(id=1)
    other = make_user(username="bob", email="bob@example.com", id=2)
    post = Post(title="Hello", content="Long enough content", author_id=1)

    PostValidator().check_ownership(post, owner)
    with pytest.raises(AccessDeniedError):
        PostValidator().check_ownership(post, other)


def test_comment_ownership():
    comment = Comment(content="A comment", author_id=2)
    with pytest.raises(AccessDeniedError, match="your own comments"):
        CommentValidator().check_ownership(comment, make_user(id=1))
