# app/services/post_services.py

"""
Сервисный слой для постов.

Знает про модели и БД, но не про HTTP-статусы.
Ошибки бросаем доменные (NotFound / Unauthorized), в HTTP их переводит
обработчик app_error_handler.

Счетчики в PostStats никогда не инкрементируем: после каждого изменения
пересчитываем их из исходной таблицы (post_likes), так они сами
выравниваются даже после гонки двух запросов.
"""

from typing import Optional

from sqlalchemy import and_, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models import Post, PostLike, PostStats
from app.schemas import PostCreate, PostWithAuthor
from app.utils.exceptions import NotFound, Unauthorized
from app.utils.logger import get_logger
from app.utils.slugify import generate_id, slugify

logger = get_logger(__name__)

# Размер страницы ленты
POSTS_PAGE_SIZE = settings.POSTS_PAGE_SIZE

# Slug, совпадающие со статическими путями /api/v1/posts/...
RESERVED_SLUGS = {"search", "id"}


def _posts_query(db: Session):
    """Базовый запрос: пост + автор + счетчики одним SELECT"""
    return db.query(Post).options(
        joinedload(Post.author),
        joinedload(Post.stats),
    )


def _serialize_post(post: Post) -> dict:
    return PostWithAuthor.model_validate(post).model_dump()


def _get_post_liked_map(
    db: Session,
    post_ids: list[int],
    user_id: int,
) -> dict[int, PostLike]:
    """
    Лайки пользователя среди переданных постов: {post_id: PostLike}.

    Один запрос на всю страницу, а не по запросу на каждый пост.
    """
    if not post_ids:
        return {}

    post_likes = (
        db.query(PostLike)
        .filter(
            PostLike.post_id.in_(post_ids),
            PostLike.user_id == user_id,
        )
        .all()
    )
    return {like.post_id: like for like in post_likes}


def _merge_post_liked(post: dict, post_like: Optional[PostLike]) -> dict:
    return {**post, "is_liked": post_like is not None}


def _merge_viewer_likes(
    db: Session,
    posts: list[Post],
    viewer_id: Optional[int],
) -> list[dict]:
    data = [_serialize_post(p) for p in posts]
    if viewer_id is None:
        return [_merge_post_liked(p, None) for p in data]

    liked_map = _get_post_liked_map(db, [p["id"] for p in data], viewer_id)
    return [_merge_post_liked(p, liked_map.get(p["id"])) for p in data]


def _get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFound("Post not found")
    return post


# ======
# ЧТЕНИЕ
# ======

async def get_post_by_id(
    db: Session,
    post_id: int,
    viewer_id: Optional[int] = None,
) -> dict:
    """
    Пост с автором {id, username} и счетчиками.
    """
    post = _posts_query(db).filter(Post.id == post_id).first()
    if not post:
        raise NotFound("Post not found")
    return _merge_viewer_likes(db, [post], viewer_id)[0]


async def list_posts_by_cursor(
    db: Session,
    cursor: Optional[int] = None,
    viewer_id: Optional[int] = None,
) -> dict:
    """
    Лента постов, новые сверху, по POSTS_PAGE_SIZE штук.

    cursor - id последнего поста предыдущей страницы, страница начинается
    строго после него. next_cursor - id последнего поста текущей страницы,
    если страница заполнена целиком, иначе None.
    """
    query = _posts_query(db)

    if cursor is not None:
        cursor_post = db.query(Post).filter(Post.id == cursor).first()
        if cursor_post is None:
            # Курсор указывает на удаленный/несуществующий пост
            return {"posts": [], "next_cursor": None}

        # Порядок (created_at desc, id desc), id разруливает одинаковое время
        query = query.filter(
            or_(
                Post.created_at < cursor_post.created_at,
                and_(
                    Post.created_at == cursor_post.created_at,
                    Post.id < cursor_post.id,
                ),
            )
        )

    posts = (
        query.order_by(desc(Post.created_at), desc(Post.id))
        .limit(POSTS_PAGE_SIZE)
        .all()
    )

    posts_with_liked = _merge_viewer_likes(db, posts, viewer_id)

    next_cursor = None
    if len(posts_with_liked) == POSTS_PAGE_SIZE:
        next_cursor = posts_with_liked[-1]["id"]

    return {"posts": posts_with_liked, "next_cursor": next_cursor}


async def search_posts(
    db: Session,
    keyword: str,
    viewer_id: Optional[int] = None,
) -> list[dict]:
    """
    Поиск по заголовку и тексту. Регистрозависимость - на совести БД.
    """
    posts = (
        _posts_query(db)
        .filter(
            or_(
                Post.title.contains(keyword, autoescape=True),
                Post.body.contains(keyword, autoescape=True),
            )
        )
        .order_by(desc(Post.created_at), desc(Post.id))
        .all()
    )
    return _merge_viewer_likes(db, posts, viewer_id)


async def get_post_by_slug(
    db: Session,
    slug: str,
    viewer_id: Optional[int] = None,
) -> dict:
    post = _posts_query(db).filter(Post.slug == slug).first()
    if not post:
        raise NotFound("Post not found")

    return _merge_viewer_likes(db, [post], viewer_id)[0]


# =========
# ИЗМЕНЕНИЯ
# =========

async def create_post_for_user(
    db: Session,
    author_id: int,
    post_in: PostCreate,
) -> Post:
    """
    Создать пост вместе с нулевыми счетчиками.

    Если такой slug уже занят или зарезервирован под роут - дописываем
    короткий случайный суффикс.
    """
    slug = slugify(post_in.title)
    base_slug = slug
    while slug in RESERVED_SLUGS or db.query(Post.id).filter(Post.slug == slug).first():
        slug = f"{base_slug}-{generate_id()}"

    db_post = Post(
        title=post_in.title,
        body=post_in.body,
        slug=slug,
        user_id=author_id,
    )
    db_post.stats = PostStats(likes=0, comments_count=0)

    db.add(db_post)
    db.commit()
    db.refresh(db_post)

    logger.info("Post %s created by user %s (slug=%s)", db_post.id, author_id, slug)
    return db_post


def _get_or_create_stats(db: Session, post_id: int) -> PostStats:
    stats = db.query(PostStats).filter(PostStats.post_id == post_id).first()
    if stats is None:
        stats = PostStats(post_id=post_id, likes=0, comments_count=0)
        db.add(stats)
    return stats


async def update_post_likes(db: Session, post_id: int) -> PostStats:
    """
    Пересчитать likes поста по таблице post_likes.
    """
    likes = (
        db.query(func.count(PostLike.id))
        .filter(PostLike.post_id == post_id)
        .scalar()
    )

    stats = _get_or_create_stats(db, post_id)
    stats.likes = likes
    db.commit()
    db.refresh(stats)

    logger.debug("Post %s likes recomputed: %s", post_id, likes)
    return stats


async def like_post(
    db: Session,
    user_id: int,
    post_id: int,
) -> PostStats:
    """
    Поставить лайк. Повторный лайк ничего не меняет.
    """
    _get_post_or_404(db, post_id)

    already_liked = (
        db.query(PostLike)
        .filter(PostLike.post_id == post_id, PostLike.user_id == user_id)
        .first()
    )
    if not already_liked:
        db.add(PostLike(post_id=post_id, user_id=user_id))
        try:
            db.commit()
        except IntegrityError:
            # Параллельный запрос уже вставил эту пару
            db.rollback()

    return await update_post_likes(db, post_id)


async def unlike_post(
    db: Session,
    user_id: int,
    post_id: int,
) -> PostStats:
    """
    Снять лайк. Повторное снятие ничего не меняет.
    """
    _get_post_or_404(db, post_id)

    already_liked = (
        db.query(PostLike)
        .filter(PostLike.post_id == post_id, PostLike.user_id == user_id)
        .first()
    )
    if already_liked:
        db.delete(already_liked)
        db.commit()

    return await update_post_likes(db, post_id)


async def delete_post_for_user(
    db: Session,
    user_id: int,
    post_id: int,
) -> None:
    """
    Удалить пост. Счетчики, лайки и комментарии уходят вместе с ним.
    """
    db_post = _get_post_or_404(db, post_id)

    if db_post.user_id != user_id:
        raise Unauthorized("Only the author can delete this post")

    db.delete(db_post)
    db.commit()

    logger.info("Post %s deleted by user %s", post_id, user_id)
