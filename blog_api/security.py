from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from .exceptions import NotAuthenticatedError
from .models import User


class PasswordHasher:
    def __init__(self, schemes=("pbkdf2_sha256",)):
        self.context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, plain_password: str) -> str:
        return self.context.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        return self.context.verify(plain_password, hashed_password)


class TokenManager:
    """Issues and verifies HS256 bearer tokens whose subject is the user id."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_seconds: int = 3600):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(seconds=ttl_seconds)

    def create(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user.id),
            "username": user.username,
            "roles": user.get_roles(),
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def user_id_from(self, token: str) -> int:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return int(claims["sub"])
        except jwt.ExpiredSignatureError as exc:
            raise NotAuthenticatedError("Token has expired") from exc
        except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
            raise NotAuthenticatedError("Invalid token") from exc
