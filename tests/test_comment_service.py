"""Tests for the comment service layer."""

from datetime import datetime, timedelta

import pytest

from app.models import Comment, CommentLike, PostStats
from app.schemas import CommentCreate
from app.services.comment_service import (
    EPOCH,
    create_comment_for_user,
    delete_comment_for_user,
    get_comment_by_id,
    group_sub_comments,
    hide_deleted_comments,
    like_comment,
    list_comments_for_post,
    unlike_comment,
)
from app.utils.exceptions import BadRequest, NotFound, Unauthorized

from factories import make_comment, make_post, make_user

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def comment_dict(comment_id, parent_id=None, deleted_at=None, **kwargs) -> dict:
    """Helper to build a serialized comment as the service sees it."""
    data = {
        "id": comment_id,
        "text": f"comment {comment_id}",
        "user_id": 1,
        "post_id": 1,
        "parent_comment_id": parent_id,
        "level": 0 if parent_id is None else 1,
        "likes": 3,
        "sub_comments_count": 0,
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
        "author": {"id": 1, "username": "alice"},
        "is_liked": False,
        "deleted_at": deleted_at,
    }
    data.update(kwargs)
    return data


class TestHideDeletedComments:
    """Read-time masking of soft-deleted comments."""

    def test_alive_comment_untouched(self):
        result = hide_deleted_comments([comment_dict(1)])
        assert result[0]["text"] == "comment 1"
        assert result[0]["likes"] == 3
        assert result[0]["is_deleted"] is False

    def test_deleted_comment_masked(self):
        result = hide_deleted_comments([comment_dict(2, parent_id=1, deleted_at=BASE_TIME)])
        masked = result[0]
        assert masked["text"] == ""
        assert masked["likes"] == 0
        assert masked["user_id"] is None
        assert masked["author"] == {"id": None, "username": None}
        assert masked["created_at"] == EPOCH
        assert masked["updated_at"] == EPOCH
        assert masked["is_deleted"] is True

    def test_tree_fields_preserved(self):
        masked = hide_deleted_comments([comment_dict(2, parent_id=1, deleted_at=BASE_TIME)])[0]
        assert masked["id"] == 2
        assert masked["parent_comment_id"] == 1
        assert masked["level"] == 1


class TestGroupSubComments:
    """Two-level grouping of a flat comment list."""

    def test_replies_attached_to_roots(self):
        comments = [
            comment_dict(1),
            comment_dict(2),
            comment_dict(3, parent_id=2),
            comment_dict(4, parent_id=2),
        ]
        grouped = group_sub_comments(comments)

        assert [c["id"] for c in grouped] == [1, 2]
        assert grouped[0]["sub_comments"] == []
        assert [c["id"] for c in grouped[1]["sub_comments"]] == [3, 4]

    def test_reply_order_follows_input(self):
        comments = [comment_dict(1), comment_dict(5, parent_id=1), comment_dict(4, parent_id=1)]
        grouped = group_sub_comments(comments)
        assert [c["id"] for c in grouped[0]["sub_comments"]] == [5, 4]

    def test_empty(self):
        assert group_sub_comments([]) == []


@pytest.mark.asyncio
class TestListComments:
    """Listing a post's comments as a masked tree."""

    async def test_example_tree(self, db_session, alice, bob):
        post = make_post(db_session, alice, slug="tree")
        a = make_comment(db_session, alice, post, "A", created_at=BASE_TIME)
        b = make_comment(db_session, bob, post, "B", created_at=BASE_TIME + timedelta(minutes=1))
        c = make_comment(db_session, alice, post, "C", created_at=BASE_TIME + timedelta(minutes=2))
        b1 = make_comment(db_session, alice, post, "B1", parent=b,
                          created_at=BASE_TIME + timedelta(minutes=3))
        b2 = make_comment(db_session, bob, post, "B2", parent=b,
                          created_at=BASE_TIME + timedelta(minutes=4))
        await delete_comment_for_user(db_session, alice.id, c.id)

        result = await list_comments_for_post(db_session, "tree")

        assert [r["id"] for r in result] == [a.id, b.id, c.id]
        assert result[0]["sub_comments"] == []
        assert [s["id"] for s in result[1]["sub_comments"]] == [b1.id, b2.id]
        assert result[2]["text"] == ""
        assert result[2]["is_deleted"] is True
        assert result[2]["sub_comments"] == []
        assert result[0]["is_deleted"] is False
        assert "deleted_at" not in result[0]

    async def test_deleted_reply_keeps_position(self, db_session, alice, bob):
        post = make_post(db_session, alice, slug="p")
        root = make_comment(db_session, alice, post, "root", created_at=BASE_TIME)
        reply = make_comment(db_session, bob, post, "reply", parent=root,
                             created_at=BASE_TIME + timedelta(minutes=1))
        await like_comment(db_session, alice.id, reply.id)
        await delete_comment_for_user(db_session, bob.id, reply.id)

        result = await list_comments_for_post(db_session, "p")

        masked = result[0]["sub_comments"][0]
        assert masked["id"] == reply.id
        assert masked["parent_comment_id"] == root.id
        assert masked["text"] == ""
        assert masked["likes"] == 0
        assert masked["is_deleted"] is True
        assert masked["author"] == {"id": None, "username": None}

    async def test_missing_post(self, db_session):
        with pytest.raises(NotFound):
            await list_comments_for_post(db_session, "nope")

    async def test_is_liked_for_viewer(self, db_session, alice, bob):
        post = make_post(db_session, alice, slug="p")
        root = make_comment(db_session, alice, post, created_at=BASE_TIME)
        reply = make_comment(db_session, alice, post, parent=root,
                             created_at=BASE_TIME + timedelta(minutes=1))
        await like_comment(db_session, bob.id, reply.id)

        as_bob = await list_comments_for_post(db_session, "p", viewer_id=bob.id)
        assert as_bob[0]["is_liked"] is False
        assert as_bob[0]["sub_comments"][0]["is_liked"] is True

        anonymous = await list_comments_for_post(db_session, "p")
        assert anonymous[0]["sub_comments"][0]["is_liked"] is False


@pytest.mark.asyncio
class TestCreateComment:
    """Comment and reply creation with counter recomputation."""

    async def test_root_comment(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = await create_comment_for_user(
            db_session, alice.id, CommentCreate(text="hi", post_id=post.id)
        )
        assert comment.level == 0
        assert comment.parent_comment_id is None
        assert comment.author.username == "alice"

    async def test_reply_to_root_is_level_one(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        root = make_comment(db_session, alice, post)

        reply = await create_comment_for_user(
            db_session, bob.id,
            CommentCreate(text="re", post_id=post.id, parent_comment_id=root.id),
        )
        assert reply.level == 1
        assert reply.parent_comment_id == root.id

    async def test_reply_to_reply_rejected(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        root = make_comment(db_session, alice, post)
        reply = make_comment(db_session, bob, post, parent=root)

        with pytest.raises(BadRequest):
            await create_comment_for_user(
                db_session, alice.id,
                CommentCreate(text="deep", post_id=post.id, parent_comment_id=reply.id),
            )
        assert db_session.query(Comment).count() == 2

    async def test_parent_sub_comments_count(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        root = make_comment(db_session, alice, post)

        for text in ("one", "two"):
            await create_comment_for_user(
                db_session, bob.id,
                CommentCreate(text=text, post_id=post.id, parent_comment_id=root.id),
            )

        db_session.refresh(root)
        assert root.sub_comments_count == 2

    async def test_comments_count_includes_deleted(self, db_session, alice):
        post = make_post(db_session, alice)
        created = []
        for text in ("a", "b", "c"):
            created.append(await create_comment_for_user(
                db_session, alice.id, CommentCreate(text=text, post_id=post.id)
            ))
        await delete_comment_for_user(db_session, alice.id, created[0].id)

        stats = db_session.query(PostStats).filter(PostStats.post_id == post.id).one()
        assert stats.comments_count == 3

        await create_comment_for_user(
            db_session, alice.id, CommentCreate(text="d", post_id=post.id)
        )
        db_session.refresh(stats)
        assert stats.comments_count == 4

    async def test_reply_to_deleted_parent(self, db_session, alice):
        post = make_post(db_session, alice)
        root = make_comment(db_session, alice, post)
        await delete_comment_for_user(db_session, alice.id, root.id)

        with pytest.raises(NotFound):
            await create_comment_for_user(
                db_session, alice.id,
                CommentCreate(text="re", post_id=post.id, parent_comment_id=root.id),
            )

    async def test_parent_from_other_post(self, db_session, alice):
        post = make_post(db_session, alice, slug="one")
        other = make_post(db_session, alice, slug="two")
        root = make_comment(db_session, alice, other)

        with pytest.raises(BadRequest):
            await create_comment_for_user(
                db_session, alice.id,
                CommentCreate(text="re", post_id=post.id, parent_comment_id=root.id),
            )

    async def test_missing_post(self, db_session, alice):
        with pytest.raises(NotFound):
            await create_comment_for_user(
                db_session, alice.id, CommentCreate(text="x", post_id=404)
            )


@pytest.mark.asyncio
class TestGetAndDeleteComment:
    """Direct lookup and soft deletion."""

    async def test_get_alive(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post, "hello")
        found = await get_comment_by_id(db_session, comment.id)
        assert found.text == "hello"

    async def test_get_deleted_is_not_found(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)
        await delete_comment_for_user(db_session, alice.id, comment.id)

        with pytest.raises(NotFound):
            await get_comment_by_id(db_session, comment.id)

    async def test_soft_delete_keeps_row(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post, "hello")
        deleted = await delete_comment_for_user(db_session, alice.id, comment.id)

        assert deleted.deleted_at is not None
        assert db_session.query(Comment).filter(Comment.id == comment.id).count() == 1

    async def test_non_author_rejected(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)

        with pytest.raises(Unauthorized):
            await delete_comment_for_user(db_session, bob.id, comment.id)

    async def test_delete_twice(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)
        await delete_comment_for_user(db_session, alice.id, comment.id)

        with pytest.raises(NotFound):
            await delete_comment_for_user(db_session, alice.id, comment.id)


@pytest.mark.asyncio
class TestCommentLikes:
    """Idempotent comment likes."""

    async def test_like_twice(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)

        assert await like_comment(db_session, bob.id, comment.id) == 1
        assert await like_comment(db_session, bob.id, comment.id) == 1
        assert db_session.query(CommentLike).count() == 1

        db_session.refresh(comment)
        assert comment.likes == 1

    async def test_like_and_unlike_many(self, db_session, alice):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)
        users = [make_user(db_session, f"user{i}") for i in range(3)]

        for user in users:
            await like_comment(db_session, user.id, comment.id)
        likes = await unlike_comment(db_session, users[0].id, comment.id)
        assert likes == 2

        assert await unlike_comment(db_session, users[0].id, comment.id) == 2

    async def test_like_deleted_comment(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)
        await delete_comment_for_user(db_session, alice.id, comment.id)

        with pytest.raises(NotFound):
            await like_comment(db_session, bob.id, comment.id)

    async def test_unlike_deleted_comment_removes_like(self, db_session, alice, bob):
        post = make_post(db_session, alice)
        comment = make_comment(db_session, alice, post)
        await like_comment(db_session, bob.id, comment.id)
        await delete_comment_for_user(db_session, alice.id, comment.id)

        assert await unlike_comment(db_session, bob.id, comment.id) == 0
        assert db_session.query(CommentLike).count() == 0

    async def test_unlike_missing_comment(self, db_session, bob):
        with pytest.raises(NotFound):
            await unlike_comment(db_session, bob.id, 404)
