"""Posts, likes and reposts."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from solfeed.api.deps import get_current_user, get_current_user_optional, get_db
from solfeed.models.user import User
from solfeed.realtime.bus import Event, bus, post_topic
from solfeed.schemas.post import (
    LikedPostsResponse,
    LikeToggleResponse,
    PostCreate,
    PostInteractionsResponse,
    PostResponse,
    RepostedPostsResponse,
    RepostToggleResponse,
)
from solfeed.services import counter_service, interaction_service, notification_service
from solfeed.services.counter_service import PostCounters, counters_event
from solfeed.services.interaction_service import InteractionResult
from solfeed.services.post_service import (
    create_post,
    get_feed_posts,
    get_interactions,
    get_post,
    get_user_liked_post_ids,
    get_user_reposted_post_ids,
    post_to_response,
    resolve_target,
    soft_delete_post,
    user_public,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _publish_counters(counters: PostCounters | None) -> None:
    if counters is not None:
        bus.publish(post_topic(counters.post_id), Event("post-counters", counters_event(counters)))


async def _finish(db: AsyncSession, result: InteractionResult) -> PostCounters | None:
    """Commit a toggle, then hand its side effects to the push path."""
    counters = await counter_service.snapshot(db, result.post_id) if result.changed else None
    await db.commit()
    notification_service.deliver(result.notification)
    _publish_counters(counters)
    return counters


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await create_post(db, current_user.id, data)
    await db.commit()
    post.user = current_user
    return post_to_response(post)


@router.get("", response_model=list[PostResponse])
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    posts = await get_feed_posts(db, skip=skip, limit=limit)
    target_ids = list({p.counter_target_id for p in posts})
    liked_ids: set[UUID] = set()
    reposted_ids: set[UUID] = set()
    if current_user:
        liked_ids = await get_user_liked_post_ids(db, current_user.id, target_ids)
        reposted_ids = await get_user_reposted_post_ids(db, current_user.id, target_ids)
    counters = await counter_service.snapshot_many(db, target_ids)
    return [
        post_to_response(
            p,
            counters=counters.get(p.counter_target_id),
            is_liked=p.counter_target_id in liked_ids,
            is_reposted=p.counter_target_id in reposted_ids,
        )
        for p in posts
    ]


@router.get("/likes/batch", response_model=LikedPostsResponse)
async def liked_posts_batch(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    liked_ids = await get_user_liked_post_ids(db, current_user.id)
    return LikedPostsResponse(liked_posts=sorted(liked_ids, key=str))


@router.get("/retweets/batch", response_model=RepostedPostsResponse)
async def reposted_posts_batch(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reposted_ids = await get_user_reposted_post_ids(db, current_user.id)
    return RepostedPostsResponse(retweeted_posts=sorted(reposted_ids, key=str))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post_endpoint(
    post_id: UUID,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    post = await get_post(db, post_id)
    target = await resolve_target(db, post_id) if post else None
    if not post or not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    counters = await counter_service.snapshot(db, target.id)
    is_liked = is_reposted = False
    if current_user:
        is_liked = target.id in await get_user_liked_post_ids(db, current_user.id, [target.id])
        is_reposted = target.id in await get_user_reposted_post_ids(db, current_user.id, [target.id])
    return post_to_response(post, counters=counters, is_liked=is_liked, is_reposted=is_reposted)


@router.get("/{post_id}/interactions", response_model=PostInteractionsResponse)
async def get_post_interactions(
    post_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Who liked and who reposted a post. A repost row answers for its original."""
    found = await get_interactions(db, post_id)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    target, likers, reposters = found
    return PostInteractionsResponse(
        post_id=target.id,
        likes=[user_public(u) for u in likers],
        reposts=[user_public(u) for u in reposters],
    )


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await get_post(db, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this post")
    if post.is_repost:
        # Deleting your repost row is the same as undoing the repost
        result = await interaction_service.unrepost_post(db, post.original_post_id, current_user)
        if result is not None and result.changed:
            await _finish(db, result)
            return None
    await soft_delete_post(db, post.id)
    await db.commit()
    return None


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def like_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await interaction_service.like_post(db, post_id, current_user)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    await _finish(db, result)
    return LikeToggleResponse(post_id=result.post_id, likes=result.count, liked=result.active)


@router.delete("/{post_id}/like", response_model=LikeToggleResponse)
async def unlike_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await interaction_service.unlike_post(db, post_id, current_user)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    await _finish(db, result)
    return LikeToggleResponse(post_id=result.post_id, likes=result.count, liked=result.active)


@router.post("/{post_id}/retweet", response_model=RepostToggleResponse)
async def repost_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await interaction_service.repost_post(db, post_id, current_user)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    is_liked = result.post_id in await get_user_liked_post_ids(db, current_user.id, [result.post_id])
    counters = await _finish(db, result)
    retweet_data = None
    if result.repost_post is not None:
        retweet_data = post_to_response(
            result.repost_post, counters=counters, is_liked=is_liked, is_reposted=True
        )
    return RepostToggleResponse(
        post_id=result.post_id,
        retweets=result.count,
        retweeted=result.active,
        retweet_data=retweet_data,
    )


@router.delete("/{post_id}/retweet", response_model=RepostToggleResponse)
async def unrepost_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await interaction_service.unrepost_post(db, post_id, current_user)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    await _finish(db, result)
    return RepostToggleResponse(post_id=result.post_id, retweets=result.count, retweeted=result.active)
