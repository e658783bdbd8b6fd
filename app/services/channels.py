"""
Read-only views derived from the users, subscriptions and videos tables.
Counts are computed per request; nothing here is stored.
"""

from typing import Any

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session, aliased

from app.core.errors import NotFoundError, ValidationError
from app.models.subscription import Subscription
from app.models.user import User, watch_history
from app.models.video import Video
from app.repositories.users import as_uuid


def get_channel_profile(
    db: Session, user_name: str | None, viewer_id: str | None = None
) -> dict[str, Any]:
    user_name = (user_name or "").strip().lower()
    if not user_name:
        raise ValidationError("Username is missing")

    subscribers = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )

    viewer = as_uuid(viewer_id) if viewer_id else None
    if viewer is not None:
        edge = aliased(Subscription)
        is_subscribed = exists().where(
            edge.channel_id == User.id, edge.subscriber_id == viewer
        )
    else:
        is_subscribed = None

    columns = [
        User.full_name,
        User.email,
        User.user_name,
        User.avatar,
        User.cover_image,
        subscribers.label("subscribers_count"),
        subscribed_to.label("subscribed_to_count"),
    ]
    if is_subscribed is not None:
        columns.append(is_subscribed.label("is_subscribed"))

    row = db.execute(select(*columns).where(User.user_name == user_name)).first()
    if row is None:
        raise NotFoundError("Channel does not exist")

    return {
        "fullName": row.full_name,
        "email": row.email,
        "userName": row.user_name,
        "avatar": row.avatar,
        "coverImage": row.cover_image,
        "subscribersCount": int(row.subscribers_count or 0),
        "channelSubscribedToCount": int(row.subscribed_to_count or 0),
        "isSubscribed": bool(row.is_subscribed) if is_subscribed is not None else False,
    }


def get_watch_history(db: Session, user_id: str) -> list[dict[str, Any]]:
    uid = as_uuid(user_id)
    if uid is None:
        return []

    owner = aliased(User)
    rows = db.execute(
        select(Video, owner, watch_history.c.watched_at)
        .join(watch_history, watch_history.c.video_id == Video.id)
        .join(owner, owner.id == Video.owner_id)
        .where(watch_history.c.user_id == uid)
        .order_by(watch_history.c.watched_at.desc())
    ).all()

    return [
        {
            "id": str(video.id),
            "title": video.title,
            "description": video.description,
            "videoFile": video.video_file,
            "thumbnail": video.thumbnail,
            "duration": video.duration,
            "views": video.views,
            "isPublished": video.is_published,
            "createdAt": video.created_at.isoformat() if video.created_at else None,
            "watchedAt": watched_at.isoformat() if watched_at else None,
            "owner": {
                "fullName": video_owner.full_name,
                "userName": video_owner.user_name,
                "avatar": video_owner.avatar,
            },
        }
        for video, video_owner, watched_at in rows
    ]
