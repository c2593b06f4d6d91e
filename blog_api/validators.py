"""
Payload and entity validation for users, posts and comments.

Entity rules are declared as pydantic models and checked against the ORM
object; every failing field is reported, keyed by field name.
"""
from typing import Annotated, Any, Dict, Iterable, Mapping, Optional, Protocol, Type

import pydantic
from pydantic import AfterValidator, BaseModel, ConfigDict, StringConstraints
from pydantic.networks import validate_email

from .exceptions import (
    AccessDeniedError,
    EmailAlreadyExistsError,
    InvalidInputError,
    ValidationError,
)
from .models import Comment, Post, User

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


def _email_format(value: str) -> str:
    validate_email(value)
    return value


class UserRules(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: Annotated[
        str, StringConstraints(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    ]
    email: Annotated[str, StringConstraints(max_length=180), AfterValidator(_email_format)]
    plain_password: Annotated[str, StringConstraints(min_length=6)]


class PostRules(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255)
    ]
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]


class CommentRules(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=5)]


# field -> pydantic error type -> message; "*" covers missing/blank/wrong type
USER_MESSAGES = {
    "username": {
        "string_too_short": "Username must be at least 3 characters long.",
        "string_too_long": "Username cannot be longer than 50 characters.",
        "string_pattern_mismatch": "Username can only contain letters, numbers, and underscores.",
        "*": "Username cannot be blank.",
    },
    "email": {
        "string_too_long": "Email cannot be longer than 180 characters.",
        "value_error": "Please enter a valid email address.",
        "*": "Email cannot be blank.",
    },
    "plain_password": {
        "string_too_short": "Password must be at least 6 characters long.",
        "*": "Password cannot be blank.",
    },
}

POST_MESSAGES = {
    "title": {
        "string_too_short": "Title must be at least 3 characters long",
        "string_too_long": "Title cannot be longer than 255 characters",
        "*": "Title cannot be blank.",
    },
    "content": {
        "string_too_short": "Content must be at least 10 characters long",
        "*": "Content cannot be blank.",
    },
}

COMMENT_MESSAGES = {
    "content": {
        "string_too_short": "Content must be at least 5 characters",
        "*": "Content cannot be blank",
    },
}


def collect_field_errors(
    rules: Type[BaseModel], entity: Any, messages: Mapping[str, Mapping[str, str]]
) -> Dict[str, str]:
    try:
        rules.model_validate(entity)
    except pydantic.ValidationError as exc:
        errors: Dict[str, str] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            field_messages = messages.get(field, {})
            errors.setdefault(
                field, field_messages.get(error["type"], field_messages.get("*", error["msg"]))
            )
        return errors
    return {}


def check_payload_shape(
    payload: Any, required: Iterable[str], updatable: Iterable[str] = (), partial: bool = False
) -> None:
    if not payload or not isinstance(payload, Mapping):
        raise InvalidInputError("Invalid JSON body")

    if partial:
        present = [field for field in updatable if field in payload]
        if not present:
            raise InvalidInputError(
                "At least one of the fields {} is required".format(", ".join(updatable))
            )
        fields = present
    else:
        fields = list(required)

    for field in fields:
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError(f"Field {field} is required")


class Owned(Protocol):
    author_id: int


def check_author(entity: Owned, user: User, message: str) -> None:
    if entity.author_id != user.id:
        raise AccessDeniedError(message)


class UserValidator:
    required_fields = ("username", "email", "password")

    def __init__(self, users):
        self.users = users

    def validate_shape(self, payload: Any) -> None:
        check_payload_shape(payload, self.required_fields)

    def validate_credentials_shape(self, payload: Any) -> None:
        check_payload_shape(payload, ("email", "password"))

    async def check_email_unique(self, email: str) -> None:
        if await self.users.email_exists(email):
            raise EmailAlreadyExistsError(f"Email {email} already exists")

    async def check_username_unique(self, username: str) -> Optional[str]:
        if await self.users.username_exists(username):
            return "This username is already taken"
        return None

    def field_errors(self, user: User) -> Dict[str, str]:
        errors = collect_field_errors(UserRules, user, USER_MESSAGES)
        # The plain password is exposed to clients as "password"
        if "plain_password" in errors:
            errors["password"] = errors.pop("plain_password")
        return errors

    async def validate_entity(self, user: User) -> None:
        errors = self.field_errors(user)
        if "username" not in errors:
            taken = await self.check_username_unique(user.username)
            if taken:
                errors["username"] = taken
        if errors:
            raise ValidationError(errors)


class PostValidator:
    required_fields = ("title", "content")

    def validate_shape(self, payload: Any, partial: bool = False) -> None:
        check_payload_shape(payload, self.required_fields, self.required_fields, partial)

    def field_errors(self, post: Post) -> Dict[str, str]:
        return collect_field_errors(PostRules, post, POST_MESSAGES)

    def validate_entity(self, post: Post) -> None:
        errors = self.field_errors(post)
        if errors:
            raise ValidationError(errors)

    def check_ownership(self, post: Post, user: User) -> None:
        check_author(post, user, "Access denied. You can only modify your own posts")


class CommentValidator:
    required_fields = ("content",)

    def validate_shape(self, payload: Any, partial: bool = False) -> None:
        check_payload_shape(payload, self.required_fields, self.required_fields, partial)

    def field_errors(self, comment: Comment) -> Dict[str, str]:
        return collect_field_errors(CommentRules, comment, COMMENT_MESSAGES)

    def validate_entity(self, comment: Comment) -> None:
        errors = self.field_errors(comment)
        if errors:
            raise ValidationError(errors)

    def check_ownership(self, comment: Comment, user: User) -> None:
        check_author(comment, user, "Access denied. You can only modify your own comments")
