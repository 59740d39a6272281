import unittest
from unittest.mock import patch

from civic.db import DuplicateRecordError, InMemoryDbClient
from civic.types import VoteType
from civic.voting import VoteCounts, cast_vote, tally_votes


class VotingTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.user = self.db.create_user("ada@example.com", "ada", "hash")
        self.project = self.db.create_project(
            "Borehole", "Water for the ward", self.user.id
        )

    def test_tally(self):
        counts = tally_votes(
            [VoteType.UPVOTE, VoteType.DOWNVOTE, VoteType.UPVOTE]
        )
        self.assertEqual(counts, VoteCounts(upvotes=2, downvotes=1))
        self.assertEqual(counts.total, 3)
        self.assertEqual(tally_votes([]).as_dict(), {"upvotes": 0, "downvotes": 0, "total": 0})

    def test_cast_then_overwrite(self):
        vote, created = cast_vote(self.db, self.user.id, self.project.id, VoteType.UPVOTE)
        self.assertTrue(created)
        again, created = cast_vote(
            self.db, self.user.id, self.project.id, VoteType.DOWNVOTE
        )
        self.assertFalse(created)
        self.assertEqual(again.id, vote.id)
        self.assertEqual(len(self.db.list_votes(self.project.id)), 1)

    def test_lost_race_updates_existing_vote(self):
        # Another request stores its vote after our lookup but before our insert.
        self.db.create_vote(self.user.id, self.project.id, VoteType.UPVOTE)
        with patch.object(self.db, "get_vote", return_value=None):
            vote, created = cast_vote(
                self.db, self.user.id, self.project.id, VoteType.DOWNVOTE
            )
        self.assertFalse(created)
        self.assertEqual(vote.vote_type, VoteType.DOWNVOTE)

    def test_duplicate_error_is_raised_by_store(self):
        self.db.create_vote(self.user.id, self.project.id, VoteType.UPVOTE)
        with self.assertRaises(DuplicateRecordError):
            self.db.create_vote(self.user.id, self.project.id, VoteType.UPVOTE)


if __name__ == "__main__":
    unittest.main()
