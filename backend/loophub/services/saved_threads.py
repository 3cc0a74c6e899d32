"""Saved Threads: bookmark and subscription toggles over per-user thread link tables.

Invariants:
    - At most one link per (user, thread); toggling an existing link removes it
    - Only existing threads can be linked
    - Listings are newest link first; hasMore is computed by over-fetching one row
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.models.bookmark import Bookmark
from loophub.models.thread_subscription import ThreadSubscription
from loophub.models.thread import Thread
from loophub.services import content
from loophub.services.listings import thread_payloads

LinkModel = type[Bookmark] | type[ThreadSubscription]


async def find_link(
    db: AsyncSession, model: LinkModel, user_id: uuid.UUID, thread_id: uuid.UUID,
):
    return await db.scalar(
        select(model).where(model.user_id == user_id, model.thread_id == thread_id)
    )


async def toggle_link(
    db: AsyncSession, model: LinkModel, user_id: uuid.UUID, thread_id: uuid.UUID,
) -> tuple[bool, uuid.UUID | None]:
    """Flip the link; returns (linked_now, link id when created)."""
    await content.get_thread_or_404(db, thread_id)
    existing = await find_link(db, model, user_id, thread_id)
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        return False, None
    link = model(user_id=user_id, thread_id=thread_id)
    db.add(link)
    await db.commit()
    return True, link.id


async def list_links(
    db: AsyncSession, model: LinkModel, user_id: uuid.UUID, limit: int, offset: int,
) -> tuple[list[dict], bool]:
    result = await db.execute(
        select(model)
        .where(model.user_id == user_id)
        .order_by(model.created_at.desc())
        .offset(offset)
        .limit(limit + 1)
    )
    links = list(result.scalars().all())
    has_more = len(links) > limit
    links = links[:limit]

    threads = []
    if links:
        found = await db.execute(
            select(Thread).where(Thread.id.in_([link.thread_id for link in links]))
        )
        threads = list(found.scalars().all())
    payloads = {
        p["id"]: p for p in await thread_payloads(
            db, threads, include_forum=True,
        )
    }
    return [
        {
            "id": str(link.id),
            "created_at": link.created_at.isoformat(),
            "thread": payloads.get(str(link.thread_id)),
        }
        for link in links
    ], has_more
