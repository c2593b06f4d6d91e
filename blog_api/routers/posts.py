from fastapi import APIRouter, Depends, status

from ..dependencies import get_current_user, get_json_payload, get_page_request, get_post_service
from ..models import User
from ..pagination import PageRequest
from ..services import PostService

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("")
async def list_posts(
    page: PageRequest = Depends(get_page_request),
    posts: PostService = Depends(get_post_service),
):
    """Paginated posts, newest first."""
    return await posts.get_paginated(page.page, page.limit)


@router.get("/{post_id}")
async def show_post(post_id: int, posts: PostService = Depends(get_post_service)):
    return await posts.get_by_id(post_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    payload=Depends(get_json_payload),
    user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    post = await posts.create(payload, user)
    return posts.serialize(post)


@router.put("/{post_id}")
async def update_post(
    post_id: int,
    payload=Depends(get_json_payload),
    user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Partial update: only the fields present in the body are changed."""
    post = await posts.update(post_id, payload, user)
    return posts.serialize(post)


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    await posts.delete(post_id, user)
    return {"message": "Post deleted successfully", "code": "POST_DELETED"}
