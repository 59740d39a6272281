"""
Vote aggregation and casting for community projects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from civic.db import DbClient, DuplicateRecordError, VoteRecord
from civic.types import VoteType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteCounts:
    upvotes: int = 0
    downvotes: int = 0

    @property
    def total(self) -> int:
        return self.upvotes + self.downvotes

    def as_dict(self) -> dict:
        return {
            "upvotes": self.upvotes,
            "downvotes": self.downvotes,
            "total": self.total,
        }


def tally_votes(vote_types: Iterable[VoteType]) -> VoteCounts:
    upvotes = downvotes = 0
    for vote_type in vote_types:
        if vote_type == VoteType.UPVOTE:
            upvotes += 1
        elif vote_type == VoteType.DOWNVOTE:
            downvotes += 1
    return VoteCounts(upvotes=upvotes, downvotes=downvotes)


def cast_vote(
    db: DbClient, user_id: int, project_id: int, vote_type: VoteType
) -> tuple[VoteRecord, bool]:
    """
    Record ``user_id``'s vote on ``project_id``, overwriting any earlier one.

    Returns the stored vote and whether a new record was created. The store's
    (user, project) uniqueness constraint decides races between two first
    votes: the loser updates the winner's record instead.
    """
    if db.get_vote(user_id, project_id):
        return db.update_vote(user_id, project_id, vote_type), False
    try:
        return db.create_vote(user_id, project_id, vote_type), True
    except DuplicateRecordError:
        logger.info(
            "Concurrent vote by user %s on project %s, updating instead",
            user_id,
            project_id,
        )
        return db.update_vote(user_id, project_id, vote_type), False
