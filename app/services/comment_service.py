# app/services/comment_service.py

"""
Сервисный слой для комментариев.

Знает про Comment/Post и БД, но не про HTTP-исключения.

Дерево комментариев двухуровневое: корневые (level=0) и ответы на них
(level=1). Удаленные комментарии не пропадают из списка, а маскируются,
чтобы ответы под ними остались на своих местах.
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.models import Comment, CommentLike, Post, PostStats, MAX_COMMENT_LEVEL
from app.schemas import CommentCreate, CommentWithAuthor
from app.utils.exceptions import BadRequest, NotFound, Unauthorized
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Подставляется вместо дат у удаленного комментария
EPOCH = datetime(1970, 1, 1)


def _serialize_comment(comment: Comment) -> dict:
    return CommentWithAuthor.model_validate(comment).model_dump()


def _get_comment_liked_map(
    db: Session,
    comment_ids: List[int],
    user_id: int,
) -> dict[int, CommentLike]:
    """
    Лайки пользователя среди переданных комментариев одним запросом.
    """
    if not comment_ids:
        return {}

    comment_likes = (
        db.query(CommentLike)
        .filter(
            CommentLike.comment_id.in_(comment_ids),
            CommentLike.user_id == user_id,
        )
        .all()
    )
    return {like.comment_id: like for like in comment_likes}


def _merge_comment_liked(comment: dict, comment_like: Optional[CommentLike]) -> dict:
    return {**comment, "is_liked": comment_like is not None}


def hide_deleted_comments(comments: List[dict]) -> List[dict]:
    """
    Замаскировать удаленные комментарии.

    id, parent_comment_id и level не трогаем - по ним строится дерево.
    """
    result = []
    for comment in comments:
        if comment.get("deleted_at") is None:
            result.append({**comment, "is_deleted": False})
            continue

        result.append({
            **comment,
            "text": "",
            "likes": 0,
            "user_id": None,
            "author": {"id": None, "username": None},
            "created_at": EPOCH,
            "updated_at": EPOCH,
            "is_deleted": True,
        })
    return result


def group_sub_comments(comments: List[dict]) -> List[dict]:
    """
    Собрать плоский список в дерево: корневые + их ответы в sub_comments.

    Порядок внутри групп сохраняется как во входном списке.
    """
    root_comments = [c for c in comments if c["parent_comment_id"] is None]

    sub_comments_map: dict[int, List[dict]] = {}
    for comment in comments:
        parent_id = comment["parent_comment_id"]
        if parent_id is None:
            continue
        sub_comments_map.setdefault(parent_id, []).append(comment)

    return [
        {**root, "sub_comments": sub_comments_map.get(root["id"], [])}
        for root in root_comments
    ]


# ======
# ЧТЕНИЕ
# ======

async def list_comments_for_post(
    db: Session,
    slug: str,
    viewer_id: Optional[int] = None,
) -> List[dict]:
    """
    Все комментарии поста деревом, с отметкой лайка для viewer_id.
    """
    post = db.query(Post).filter(Post.slug == slug).first()
    if not post:
        raise NotFound("Post not found")

    comments = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.post_id == post.id)
        .order_by(Comment.created_at.asc(), Comment.level.asc(), Comment.id.asc())
        .all()
    )

    data = []
    for comment in comments:
        item = _serialize_comment(comment)
        # deleted_at нужен только для маскировки, наружу не отдаем
        item["deleted_at"] = comment.deleted_at
        data.append(item)

    liked_map = (
        _get_comment_liked_map(db, [c["id"] for c in data], viewer_id)
        if viewer_id is not None
        else {}
    )
    comments_with_liked = [
        _merge_comment_liked(c, liked_map.get(c["id"])) for c in data
    ]

    visible_comments = hide_deleted_comments(comments_with_liked)
    for comment in visible_comments:
        comment.pop("deleted_at")

    return group_sub_comments(visible_comments)


def _find_comment(db: Session, comment_id: int) -> Comment:
    """
    Живой комментарий по id. Удаленный для прямого доступа не существует.
    """
    comment = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.id == comment_id)
        .first()
    )
    if not comment or comment.deleted_at is not None:
        raise NotFound("Comment not found")
    return comment


async def get_comment_by_id(
    db: Session,
    comment_id: int,
) -> Comment:
    return _find_comment(db, comment_id)


# =========
# ИЗМЕНЕНИЯ
# =========

async def update_post_comments_count(db: Session, post_id: int) -> int:
    """
    Пересчитать comments_count поста.

    Считаем все комментарии, включая удаленные.
    """
    comments_count = (
        db.query(func.count(Comment.id))
        .filter(Comment.post_id == post_id)
        .scalar()
    )

    stats = db.query(PostStats).filter(PostStats.post_id == post_id).first()
    if stats is None:
        stats = PostStats(post_id=post_id, likes=0)
        db.add(stats)
    stats.comments_count = comments_count
    db.commit()

    return comments_count


async def update_sub_comments_count(db: Session, parent: Comment) -> int:
    sub_comments_count = (
        db.query(func.count(Comment.id))
        .filter(Comment.parent_comment_id == parent.id)
        .scalar()
    )
    parent.sub_comments_count = sub_comments_count
    db.commit()

    return sub_comments_count


async def create_comment_for_user(
    db: Session,
    user_id: int,
    comment_in: CommentCreate,
) -> Comment:
    """
    Создать комментарий или ответ.

    Ответ на ответ запрещен: level не может превышать MAX_COMMENT_LEVEL.
    """
    post = db.query(Post).filter(Post.id == comment_in.post_id).first()
    if not post:
        raise NotFound("Post not found")

    parent_comment = None
    level = 0
    if comment_in.parent_comment_id is not None:
        parent_comment = _find_comment(db, comment_in.parent_comment_id)

        if parent_comment.post_id != post.id:
            raise BadRequest("Parent comment belongs to another post")

        level = parent_comment.level + 1
        if level > MAX_COMMENT_LEVEL:
            raise BadRequest("Replies to replies are not allowed")

    db_comment = Comment(
        text=comment_in.text,
        user_id=user_id,
        post_id=post.id,
        parent_comment_id=parent_comment.id if parent_comment else None,
        level=level,
    )
    db.add(db_comment)
    db.commit()

    if parent_comment is not None:
        await update_sub_comments_count(db, parent_comment)

    await update_post_comments_count(db, post.id)

    db.refresh(db_comment)
    logger.info(
        "Comment %s created by user %s on post %s (level=%s)",
        db_comment.id, user_id, post.id, level,
    )
    return db_comment


async def delete_comment_for_user(
    db: Session,
    user_id: int,
    comment_id: int,
) -> Comment:
    """
    Мягкое удаление: ставим deleted_at, счетчики не трогаем.
    """
    db_comment = _find_comment(db, comment_id)

    if db_comment.user_id != user_id:
        raise Unauthorized("Only the author can delete this comment")

    db_comment.deleted_at = datetime.utcnow()
    db.commit()
    db.refresh(db_comment)

    logger.info("Comment %s soft-deleted by user %s", comment_id, user_id)
    return db_comment


async def update_comment_likes(db: Session, comment_id: int) -> int:
    """
    Пересчитать likes комментария по таблице comment_likes.
    """
    comment_likes = (
        db.query(func.count(CommentLike.id))
        .filter(CommentLike.comment_id == comment_id)
        .scalar()
    )
    db.query(Comment).filter(Comment.id == comment_id).update(
        {Comment.likes: comment_likes},
        synchronize_session=False,
    )
    db.commit()

    logger.debug("Comment %s likes recomputed: %s", comment_id, comment_likes)
    return comment_likes


async def like_comment(
    db: Session,
    user_id: int,
    comment_id: int,
) -> int:
    _find_comment(db, comment_id)

    already_liked = (
        db.query(CommentLike)
        .filter(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
        .first()
    )
    if not already_liked:
        db.add(CommentLike(comment_id=comment_id, user_id=user_id))
        try:
            db.commit()
        except IntegrityError:
            # Параллельный запрос уже вставил эту пару
            db.rollback()

    return await update_comment_likes(db, comment_id)


async def unlike_comment(
    db: Session,
    user_id: int,
    comment_id: int,
) -> int:
    """
    Снять лайк. Для удаленного комментария тоже работает.
    """
    if not db.query(Comment.id).filter(Comment.id == comment_id).first():
        raise NotFound("Comment not found")

    already_liked = (
        db.query(CommentLike)
        .filter(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
        .first()
    )
    if already_liked:
        db.delete(already_liked)
        db.commit()

    return await update_comment_likes(db, comment_id)
