from fastapi import APIRouter, Depends, status

from ..dependencies import get_json_payload, get_profile_user, get_serializer, get_user_service
from ..models import User
from ..serializers import Serializer
from ..services import UserService

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/registration", status_code=status.HTTP_201_CREATED)
async def registration(
    payload=Depends(get_json_payload),
    users: UserService = Depends(get_user_service),
    serializer: Serializer = Depends(get_serializer),
):
    """Create a new user and return a JWT for it."""
    user = await users.register_user(payload)
    return {
        "message": "User successfully registered",
        "code": "REGISTRATION_SUCCESS",
        "user": serializer.serialize(user),
        "token": users.issue_token(user),
    }


@router.post("/login")
async def login(
    payload=Depends(get_json_payload),
    users: UserService = Depends(get_user_service),
    serializer: Serializer = Depends(get_serializer),
):
    """Exchange email and password for a JWT."""
    user = await users.authenticate(payload)
    return {"token": users.issue_token(user), "user": serializer.serialize(user)}


@router.get("/profile")
async def profile(
    user: User = Depends(get_profile_user),
    serializer: Serializer = Depends(get_serializer),
):
    return {"user": serializer.serialize(user)}
