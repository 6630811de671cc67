"""
API endpoints для публикаций

Роуты тонкие: вся логика в app.services.post_services,
доменные ошибки превращает в HTTP-ответ app_error_handler.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.schemas import (
    PostCreate,
    PostPage,
    PostResponse,
    PostStatsResponse,
    PostWithAuthor,
)
from app.models import User
from app.utils.database import get_db
from app.dependencies import get_current_user, get_current_user_id
from app.services.post_services import (
    create_post_for_user,
    delete_post_for_user,
    get_post_by_id,
    get_post_by_slug,
    like_post,
    list_posts_by_cursor,
    search_posts,
    unlike_post,
)

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


# ===============
# ЛЕНТА ПУБЛИКАЦИЙ
# ===============

@router.get("", response_model=PostPage)
async def list_posts(
    cursor: Optional[int] = None,
    db: Session = Depends(get_db),
    viewer_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Лента постов по курсору, новые сверху.

    Не требует авторизации. Для авторизованного пользователя
    у каждого поста заполнен is_liked.
    """
    return await list_posts_by_cursor(db=db, cursor=cursor, viewer_id=viewer_id)


@router.get("/search", response_model=list[PostWithAuthor])
async def search(
    keyword: str = Query(min_length=1),
    db: Session = Depends(get_db),
    viewer_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Поиск постов по заголовку и тексту, без пагинации.
    """
    return await search_posts(db=db, keyword=keyword, viewer_id=viewer_id)


@router.get("/id/{post_id}", response_model=PostWithAuthor)
async def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    viewer_id: Optional[int] = Depends(get_current_user_id),
):
    return await get_post_by_id(db=db, post_id=post_id, viewer_id=viewer_id)


@router.get("/{slug}", response_model=PostWithAuthor)
async def get_post_slug(
    slug: str,
    db: Session = Depends(get_db),
    viewer_id: Optional[int] = Depends(get_current_user_id),
):
    """
    Пост по slug (так он открывается на фронте).
    """
    return await get_post_by_slug(db=db, slug=slug, viewer_id=viewer_id)


# =========================
# СОЗДАНИЕ НОВОЙ ПУБЛИКАЦИИ
# =========================

@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создание публикации с привязкой к текущему пользователю.
    """
    return await create_post_for_user(db=db, author_id=current_user.id, post_in=post)


# =====
# ЛАЙКИ
# =====

@router.post("/{post_id}/like", response_model=PostStatsResponse)
async def like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await like_post(db=db, user_id=current_user.id, post_id=post_id)


@router.delete("/{post_id}/like", response_model=PostStatsResponse)
async def unlike(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await unlike_post(db=db, user_id=current_user.id, post_id=post_id)


# ==================
# УДАЛИТЬ ПУБЛИКАЦИЮ
# ==================

@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удаление поста. Только автор.
    """
    await delete_post_for_user(db=db, user_id=current_user.id, post_id=post_id)
    return None
