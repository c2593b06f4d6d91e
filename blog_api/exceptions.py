"""
Domain failures raised by validators and services.

Each class carries the HTTP status and machine-readable code it maps to;
the app factory registers one handler that turns any BlogError into a
JSON error body.
"""
from typing import Any, Dict, Optional


class BlogError(Exception):
    status_code = 400
    code = "BLOG_ERROR"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class InvalidInputError(BlogError):
    code = "INVALID_INPUT"
    default_message = "Invalid JSON body"


class ValidationError(BlogError):
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(self, details: Dict[str, str], message: Optional[str] = None):
        super().__init__(message)
        self.details = dict(details)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["details"] = self.details
        return body


class NotAuthenticatedError(BlogError):
    status_code = 401
    code = "NOT_AUTHENTICATED"
    default_message = "User not authenticated"


class UserNotAuthenticatedError(NotAuthenticatedError):
    code = "USER_NOT_AUTHENTICATED"


class InvalidCredentialsError(NotAuthenticatedError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccessDeniedError(BlogError):
    status_code = 403
    code = "ACCESS_DENIED"
    default_message = "Access denied"


class NotFoundError(BlogError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class PostNotFoundError(NotFoundError):
    code = "POST_NOT_FOUND"
    default_message = "Post not found"


class CommentNotFoundError(NotFoundError):
    code = "COMMENT_NOT_FOUND"
    default_message = "Comment not found"


class EmailAlreadyExistsError(BlogError):
    status_code = 409
    code = "EMAIL_EXISTS"
    default_message = "Email already exists"


class CacheError(BlogError):
    status_code = 500
    code = "CACHE_ERROR"
    default_message = "Cache backend failure"
