"""Post lookup, listing and response building."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from solfeed.models.engagement import Like, Repost
from solfeed.models.post import Post
from solfeed.schemas.post import PostCreate, PostResponse
from solfeed.schemas.user import UserPublic
from solfeed.services.counter_service import PostCounters


async def create_post(db: AsyncSession, user_id: UUID, data: PostCreate) -> Post:
    post = Post(user_id=user_id, content=data.content)
    db.add(post)
    await db.flush()
    await db.refresh(post)
    return post


async def get_post(db: AsyncSession, post_id: UUID) -> Post | None:
    """Non-deleted post with its author and (for reposts) the original loaded."""
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id, Post.deleted_at.is_(None))
        .options(selectinload(Post.user), selectinload(Post.original_post).selectinload(Post.user))
    )
    return result.scalar_one_or_none()


async def resolve_target(db: AsyncSession, post_id: UUID) -> Post | None:
    """The post whose relations and counters an interaction on ``post_id`` applies to.

    A repost row resolves to its original; a deleted post or a repost of a
    deleted original resolves to nothing.
    """
    post = await get_post(db, post_id)
    if post is None or post.original_post_id is None:
        return post
    original = post.original_post
    if original is None or original.deleted_at is not None:
        return None
    return original


async def get_feed_posts(db: AsyncSession, skip: int = 0, limit: int = 50) -> list[Post]:
    result = await db.execute(
        select(Post)
        .where(Post.deleted_at.is_(None))
        .order_by(desc(Post.created_at))
        .offset(skip)
        .limit(limit)
        .options(selectinload(Post.user), selectinload(Post.original_post).selectinload(Post.user))
    )
    posts = list(result.scalars().all())
    # Reposts of soft-deleted originals drop out of normal listings
    return [p for p in posts if p.original_post_id is None or (p.original_post and p.original_post.deleted_at is None)]


async def soft_delete_post(db: AsyncSession, post_id: UUID) -> bool:
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id, Post.deleted_at.is_(None))
        .values(deleted_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


async def get_user_liked_post_ids(
    db: AsyncSession,
    user_id: UUID,
    post_ids: list[UUID] | None = None,
) -> set[UUID]:
    """Return set of post IDs that the user has liked (all of them when post_ids is None)."""
    if post_ids is not None and not post_ids:
        return set()
    q = select(Like.post_id).where(Like.user_id == user_id)
    if post_ids is not None:
        q = q.where(Like.post_id.in_(post_ids))
    result = await db.execute(q)
    return set(row[0] for row in result.all() if row[0])


async def get_user_reposted_post_ids(
    db: AsyncSession,
    user_id: UUID,
    post_ids: list[UUID] | None = None,
) -> set[UUID]:
    """Return set of original post IDs that the user has reposted."""
    if post_ids is not None and not post_ids:
        return set()
    q = select(Repost.post_id).where(Repost.user_id == user_id)
    if post_ids is not None:
        q = q.where(Repost.post_id.in_(post_ids))
    result = await db.execute(q)
    return set(row[0] for row in result.all() if row[0])


def user_public(user) -> UserPublic | None:
    if user is None:
        return None
    return UserPublic(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        followers_count=user.followers_count or 0,
        following_count=user.following_count or 0,
        created_at=user.created_at,
    )


def post_to_response(
    post: Post,
    *,
    counters: PostCounters | None = None,
    is_liked: bool = False,
    is_reposted: bool = False,
) -> PostResponse:
    """Build the API shape. A repost row shows its original's counters."""
    source = post.original_post if post.original_post_id and post.original_post is not None else post
    if counters is None:
        counters = PostCounters(
            post_id=source.id,
            likes=source.likes_count or 0,
            reposts=source.reposts_count or 0,
            comments=source.comments_count or 0,
        )
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content,
        original_post_id=post.original_post_id,
        is_repost=post.original_post_id is not None,
        likes_count=counters.likes,
        comments_count=counters.comments,
        reposts_count=counters.reposts,
        created_at=post.created_at,
        user=user_public(post.user),
        is_liked=is_liked,
        is_reposted=is_reposted,
    )


async def get_interactions(db: AsyncSession, post_id: UUID) -> tuple[Post, list, list] | None:
    """Users who liked and who reposted the target of ``post_id``, newest first."""
    target = await resolve_target(db, post_id)
    if target is None:
        return None
    likes = await db.execute(
        select(Like)
        .where(Like.post_id == target.id)
        .order_by(desc(Like.created_at))
        .options(selectinload(Like.user))
    )
    reposts = await db.execute(
        select(Repost)
        .where(Repost.post_id == target.id)
        .order_by(desc(Repost.created_at))
        .options(selectinload(Repost.user))
    )
    return (
        target,
        [like.user for like in likes.scalars().all()],
        [repost.user for repost in reposts.scalars().all()],
    )
