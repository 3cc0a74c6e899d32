"""Content Service: creating and deleting threads and comments with their side effects.

Invariants:
    - Creating a thread pays +5, a comment +2, then milestones are checked (same transaction)
    - A new comment notifies the parent comment's author (reply), the thread author (comment)
      and thread subscribers (subscription), each recipient once, never the commenter
    - Moderator deletion of someone else's content applies THREAD_DELETED / CONTENT_DELETED
      to the author and is written to the moderation log
    - Owners deleting their own content pay no penalty
    - Locked threads accept no new comments
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import ModerationAction, NotificationType
from loophub.core.errors import (
    BusinessRuleError, PermissionDeniedError, ResourceNotFoundError,
)
from loophub.core.karma import KARMA_VALUES, KarmaSource
from loophub.core.moderation import ModeratorPermission
from loophub.core.validation import sanitize_html, truncate_text
from loophub.models.comment import Comment
from loophub.models.forum import Forum
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.models.thread_subscription import ThreadSubscription
from loophub.services import forum_moderation
from loophub.services import karma as karma_service
from loophub.services import notifications

logger = logging.getLogger(__name__)


async def get_thread_or_404(db: AsyncSession, thread_id: uuid.UUID) -> Thread:
    thread = await db.get(Thread, thread_id)
    if thread is None:
        raise ResourceNotFoundError("Thread", str(thread_id))
    return thread


async def get_comment_or_404(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise ResourceNotFoundError("Comment", str(comment_id))
    return comment


async def create_thread(
    db: AsyncSession, forum: Forum, author: Profile, title: str, content: str,
) -> Thread:
    thread = Thread(
        forum_id=forum.id,
        user_id=author.id,
        title=sanitize_html(title),
        content=sanitize_html(content),
    )
    db.add(thread)
    await db.flush()
    await karma_service.award_karma(
        db, author.id, KARMA_VALUES["CREATE_THREAD"], "Thread created",
        KarmaSource.THREAD, thread.id,
    )
    await karma_service.check_milestones(db, author.id)
    await db.commit()
    logger.info(
        f"Thread created in {forum.slug}",
        extra={"user_id": author.id, "thread_id": thread.id},
    )
    return thread


async def _comment_recipients(
    db: AsyncSession, thread: Thread, parent: Comment | None,
) -> list[tuple[uuid.UUID, NotificationType]]:
    recipients: dict[uuid.UUID, NotificationType] = {}
    if parent is not None and parent.user_id is not None:
        recipients[parent.user_id] = NotificationType.REPLY
    if thread.user_id is not None:
        recipients.setdefault(thread.user_id, NotificationType.COMMENT)
    result = await db.execute(
        select(ThreadSubscription.user_id)
        .where(ThreadSubscription.thread_id == thread.id)
    )
    for subscriber_id in result.scalars().all():
        recipients.setdefault(subscriber_id, NotificationType.SUBSCRIPTION)
    return list(recipients.items())


async def create_comment(
    db: AsyncSession,
    thread: Thread,
    author: Profile,
    content: str,
    parent_id: uuid.UUID | None = None,
) -> Comment:
    if thread.is_locked:
        raise BusinessRuleError("This thread is locked for new comments", "THREAD_LOCKED")
    parent = None
    if parent_id is not None:
        parent = await db.get(Comment, parent_id)
        if parent is None or parent.thread_id != thread.id:
            raise BusinessRuleError("Parent comment not found in this thread", "INVALID_PARENT")

    comment = Comment(
        thread_id=thread.id,
        user_id=author.id,
        parent_id=parent_id,
        content=sanitize_html(content),
    )
    db.add(comment)
    await db.flush()
    await karma_service.award_karma(
        db, author.id, KARMA_VALUES["CREATE_COMMENT"], "Comment created",
        KarmaSource.COMMENT, comment.id,
    )
    await karma_service.check_milestones(db, author.id)

    who = author.username or "Someone"
    excerpt = truncate_text(comment.content, 100)
    messages = {
        NotificationType.REPLY: f"{who} replied to your comment: {excerpt}",
        NotificationType.COMMENT: f"{who} commented on \"{thread.title}\": {excerpt}",
        NotificationType.SUBSCRIPTION: f"New comment on \"{thread.title}\": {excerpt}",
    }
    for recipient_id, kind in await _comment_recipients(db, thread, parent):
        await notifications.notify(
            db, recipient_id, kind, messages[kind],
            from_user_id=author.id, thread_id=thread.id, comment_id=comment.id,
        )
    await db.commit()
    return comment


async def delete_thread(
    db: AsyncSession, thread: Thread, actor: Profile, reason: str | None = None,
) -> None:
    """Owners delete freely; moderators removing someone else's thread penalize its author."""
    is_owner = thread.user_id == actor.id
    if not is_owner:
        await forum_moderation.require_forum_permission(
            db, thread.forum_id, actor, ModeratorPermission.DELETE_THREADS,
            "Only the author or a moderator can delete this thread",
        )
        if thread.user_id is not None:
            await karma_service.penalize_karma(
                db, thread.user_id, "THREAD_DELETED",
                f"Thread removed by moderator: {truncate_text(thread.title, 80)}",
                thread.id,
            )
        forum_moderation.record_action(
            db, actor.id, thread.forum_id, ModerationAction.DELETE_THREAD,
            "thread", thread.id, reason,
        )
    await db.delete(thread)
    await db.commit()
    logger.info(
        "Thread deleted", extra={"user_id": actor.id, "thread_id": thread.id},
    )


async def delete_comment(
    db: AsyncSession, comment: Comment, actor: Profile,
    as_moderator: bool = False, reason: str | None = None,
) -> None:
    """Owners delete their own comments; the moderator path penalizes the author."""
    if as_moderator:
        thread = await get_thread_or_404(db, comment.thread_id)
        await forum_moderation.require_forum_permission(
            db, thread.forum_id, actor, ModeratorPermission.DELETE_COMMENTS,
            "You are not allowed to delete comments in this forum",
        )
        if comment.user_id is not None and comment.user_id != actor.id:
            await karma_service.penalize_karma(
                db, comment.user_id, "CONTENT_DELETED",
                "Comment removed by moderator", comment.id,
            )
        forum_moderation.record_action(
            db, actor.id, thread.forum_id, ModerationAction.DELETE_COMMENT,
            "comment", comment.id, reason,
        )
    elif comment.user_id != actor.id:
        raise PermissionDeniedError("You can only delete your own comments")
    await db.delete(comment)
    await db.commit()
