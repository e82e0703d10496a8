"""Combined viewer-to-target relationship state for profile pages."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from gamebox.services.blocks import get_block_sets
from gamebox.services.follows import is_following
from gamebox.services.mutes import get_mute_set

BLOCK_NONE = "none"
BLOCK_I_BLOCKED = "i-blocked"
BLOCK_BLOCKED_BY = "blocked-by"


@dataclass(frozen=True)
class Relationship:
    following: bool = False
    followed_by: bool = False
    block: str = BLOCK_NONE
    muted: bool = False


def get_relationship(db: Session, viewer_id: str | None, target_id: str) -> Relationship:
    """Describe how ``viewer_id`` relates to ``target_id``.

    A mutual block reports ``i-blocked`` since that is the side the viewer
    can undo.
    """
    if not viewer_id or viewer_id == target_id:
        return Relationship()
    blocks = get_block_sets(db, viewer_id)
    if target_id in blocks.i_blocked:
        block = BLOCK_I_BLOCKED
    elif target_id in blocks.blocked_me:
        block = BLOCK_BLOCKED_BY
    else:
        block = BLOCK_NONE
    return Relationship(
        following=is_following(db, viewer_id, target_id),
        followed_by=is_following(db, target_id, viewer_id),
        block=block,
        muted=target_id in get_mute_set(db, viewer_id),
    )
