from fastapi import APIRouter, Depends, status

from ..dependencies import (
    get_comment_service,
    get_current_user,
    get_json_payload,
    get_page_request,
)
from ..exceptions import CommentNotFoundError
from ..models import User
from ..pagination import PageRequest
from ..services import CommentService

router = APIRouter(prefix="/api/posts/{post_id}/comments", tags=["comments"])


async def _comment_of_post(comments: CommentService, post_id: int, comment_id: int):
    comment = await comments.find(comment_id)
    if comment.post_id != post_id:
        raise CommentNotFoundError()
    return comment


@router.get("")
async def list_comments(
    post_id: int,
    page: PageRequest = Depends(get_page_request),
    comments: CommentService = Depends(get_comment_service),
):
    """Paginated comments of a post, oldest first."""
    return await comments.get_paginated(post_id, page.page, page.limit)


@router.get("/{comment_id}")
async def show_comment(
    post_id: int,
    comment_id: int,
    comments: CommentService = Depends(get_comment_service),
):
    view = await comments.get_by_id(comment_id)
    if view["post_id"] != post_id:
        raise CommentNotFoundError()
    return view


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    payload=Depends(get_json_payload),
    user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    comment = await comments.create(payload, post_id, user)
    return comments.serialize(comment)


@router.api_route("/{comment_id}", methods=["PATCH", "PUT"])
async def update_comment(
    post_id: int,
    comment_id: int,
    payload=Depends(get_json_payload),
    user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    await _comment_of_post(comments, post_id, comment_id)
    comment = await comments.update(comment_id, payload, user)
    return comments.serialize(comment)


@router.delete("/{comment_id}")
async def delete_comment(
    post_id: int,
    comment_id: int,
    user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    await _comment_of_post(comments, post_id, comment_id)
    await comments.delete(comment_id, user)
    return {"message": "Comment deleted successfully", "code": "COMMENT_DELETED"}
