# app/routes/comments.py

"""
API endpoints для комментариев.

Все endpoints кроме GET требуют авторизации.
Удаление - только для автора комментария.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from app.schemas import (
    CommentCreate,
    CommentLikesResponse,
    CommentThread,
    CommentWithAuthor,
)
from app.models import User
from app.utils.database import get_db
from app.dependencies import get_current_user, get_current_user_id
from app.services.comment_service import (
    create_comment_for_user,
    delete_comment_for_user,
    get_comment_by_id,
    like_comment,
    list_comments_for_post,
    unlike_comment,
)


router = APIRouter(prefix="/api/v1", tags=["comments"])


@router.get("/posts/{slug}/comments", response_model=list[CommentThread])
async def list_comments(
    slug: str,
    db: Session = Depends(get_db),
    viewer_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Все комментарии поста деревом (корневые + ответы).

    Не требует авторизации.
    """
    return await list_comments_for_post(db=db, slug=slug, viewer_id=viewer_id)


@router.get("/comments/{comment_id}", response_model=CommentWithAuthor)
async def get_comment(
    comment_id: int,
    db: Session = Depends(get_db),
):
    """
    Получить конкретный комментарий. Удаленный - 404.
    """
    return await get_comment_by_id(db=db, comment_id=comment_id)


@router.post(
    "/comments",
    response_model=CommentWithAuthor,
    status_code=status.HTTP_201_CREATED
)
async def create_comment(
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создаём комментарий к посту или ответ на комментарий.

    Только для авторизованных пользователей.
    """
    return await create_comment_for_user(
        db=db,
        user_id=current_user.id,
        comment_in=comment,
    )


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удалить комментарий (мягко).

    Только автор комментария.
    """
    await delete_comment_for_user(
        db=db,
        user_id=current_user.id,
        comment_id=comment_id,
    )
    return None


@router.post("/comments/{comment_id}/like", response_model=CommentLikesResponse)
async def like(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    likes = await like_comment(db=db, user_id=current_user.id, comment_id=comment_id)
    return {"comment_id": comment_id, "likes": likes}


@router.delete("/comments/{comment_id}/like", response_model=CommentLikesResponse)
async def unlike(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    likes = await unlike_comment(db=db, user_id=current_user.id, comment_id=comment_id)
    return {"comment_id": comment_id, "likes": likes}
