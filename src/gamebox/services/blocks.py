"""Block relationships.

Blocking is one-way as stored but symmetric in effect: either direction
prevents new follows and hides the pair from each other's feeds. Existing
follow rows are left untouched when a block is created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gamebox.models import Block
from gamebox.services.notifications import purge_all_between
from gamebox.services.result import MutationOutcome
from gamebox.services.store import delete_where, insert_once

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockSets:
    """Users the viewer blocked and users who blocked the viewer."""

    i_blocked: frozenset[str] = frozenset()
    blocked_me: frozenset[str] = frozenset()

    @property
    def hidden(self) -> frozenset[str]:
        return self.i_blocked | self.blocked_me


def get_block_sets(db: Session, viewer_id: str | None) -> BlockSets:
    """Fetch both block directions for ``viewer_id`` in a single query."""
    if not viewer_id:
        return BlockSets()
    rows = db.execute(
        sa.select(Block.blocker_id, Block.blocked_id).where(
            sa.or_(Block.blocker_id == viewer_id, Block.blocked_id == viewer_id)
        )
    ).all()
    i_blocked = {blocked for blocker, blocked in rows if blocker == viewer_id}
    blocked_me = {blocker for blocker, blocked in rows if blocked == viewer_id}
    return BlockSets(frozenset(i_blocked), frozenset(blocked_me))


def block_user(db: Session, blocker_id: str, blocked_id: str) -> MutationOutcome:
    """Block ``blocked_id``; repeating the call is a no-op."""
    if blocker_id == blocked_id:
        return MutationOutcome(ok=False, error="You cannot block yourself")
    created = insert_once(db, Block, blocker_id=blocker_id, blocked_id=blocked_id)
    purged = purge_all_between(db, blocker_id, blocked_id)
    if purged:
        logger.info("Purged %d notifications after %s blocked %s", purged, blocker_id, blocked_id)
    return MutationOutcome(ok=True, extra={"created": created})


def unblock_user(db: Session, blocker_id: str, blocked_id: str) -> MutationOutcome:
    delete_where(db, Block, Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
    return MutationOutcome(ok=True)
