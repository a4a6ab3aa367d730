from pydantic import Field

from shadowtalk.schemas.base import CamelModel


class ReactionCreate(CamelModel):
    emoji: str = Field(..., min_length=1, max_length=50)


class ReactionGroup(CamelModel):
    """All users that reacted to a message with one emoji."""

    emoji: str
    users: list[int]


class ReactionSummary(CamelModel):
    message_id: int
    reactions: list[ReactionGroup]


def group_reactions(reactions) -> list[ReactionGroup]:
    """Collapse Reaction rows into per-emoji groups, in first-use order."""
    groups: dict[str, list[int]] = {}
    for r in sorted(reactions, key=lambda r: r.id):
        groups.setdefault(r.emoji, []).append(r.user_id)
    return [ReactionGroup(emoji=emoji, users=users) for emoji, users in groups.items()]
