# app/schemas/__init__.py

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

# =======================
# СХЕМЫ ДЛЯ ПОЛЬЗОВАТЕЛЕЙ
# =======================

class AuthorSummary(BaseModel):
    """
    Краткая информация об авторе (пост / комментарий).
    У удаленного комментария оба поля None.
    """
    id: Optional[int] = None
    username: Optional[str] = None

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """
    Схема ответа с инфо о пользователе
    """
    id: int
    email: str
    username: str
    created_at: datetime

    class Config:
        from_attributes = True


# ====================
# СХЕМЫ ДЛЯ ПУБЛИКАЦИИ
# ====================


class PostCreate(BaseModel):
    """Создание поста"""
    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1)


class PostStatsResponse(BaseModel):
    """Счетчики поста"""
    post_id: int
    likes: int
    comments_count: int

    class Config:
        from_attributes = True


class PostResponse(BaseModel):
    """Ответ с информацией о посте"""
    id: int
    slug: str
    title: str
    body: str
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PostWithAuthor(PostResponse):
    """Пост с автором, счетчиками и отметкой лайка текущего пользователя"""
    author: AuthorSummary
    stats: Optional[PostStatsResponse] = None
    is_liked: bool = False


class PostPage(BaseModel):
    """Страница ленты: посты + курсор на следующую страницу"""
    posts: List[PostWithAuthor]
    next_cursor: Optional[int] = None


# ======================
# СХЕМЫ ДЛЯ КОММЕНТАРИЕВ
# ======================

class CommentCreate(BaseModel):
    """Создание комментария (или ответа, если указан parent_comment_id)"""
    text: str = Field(min_length=1)
    post_id: int
    parent_comment_id: Optional[int] = None


class CommentResponse(BaseModel):
    id: int
    text: str
    user_id: Optional[int] = None
    post_id: int
    parent_comment_id: Optional[int] = None
    level: int
    likes: int
    sub_comments_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommentWithAuthor(CommentResponse):
    """Комментарий с инфо об авторе"""
    author: AuthorSummary
    is_liked: bool = False
    is_deleted: bool = False


class CommentThread(CommentWithAuthor):
    """Корневой комментарий со своими ответами"""
    sub_comments: List[CommentWithAuthor] = []


class CommentLikesResponse(BaseModel):
    """Актуальное число лайков комментария"""
    comment_id: int
    likes: int
