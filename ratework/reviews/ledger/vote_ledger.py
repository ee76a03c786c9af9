# ratework/reviews/ledger/vote_ledger.py

from typing import Dict, Optional, List, Tuple
from datetime import datetime
import threading
import logging

from ratework.core.exceptions import ValidationError
from ratework.core.utils import ensure_utc
from ratework.reviews.models import Vote, VoteAction

logger = logging.getLogger(__name__)

class VoteError(ValidationError):
    """Base exception for vote-related errors"""
    pass

class SelfVoteError(VoteError):
    """Raised when a user votes on their own review"""
    pass

class VoteLedger:
    """
    In-process record of one vote per (user, review).

    Mutations on the same review are serialized by a per-review lock, so two
    concurrent flips from one user can never leave two records behind. A
    multi-process deployment must provide the same guarantee at the storage
    layer: at most one concurrent vote mutation per (user, review) pair.
    """

    def __init__(self):
        self._votes: Dict[str, Dict[str, Vote]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, review_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(review_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[review_id] = lock
            return lock

    # 1. Mutations
    def cast(
        self,
        vote: Vote,
        review_author_id: Optional[str] = None
    ) -> Tuple[VoteAction, Vote]:
        """Insert a vote or flip an existing one (upsert)"""
        self._check_self_vote(vote, review_author_id)

        with self._lock_for(vote.review_id):
            review_votes = self._votes.setdefault(vote.review_id, {})
            existing = review_votes.get(vote.user_id)

            if existing is not None and existing.is_upvote == vote.is_upvote:
                return VoteAction.UNCHANGED, existing

            review_votes[vote.user_id] = vote
            action = VoteAction.CREATED if existing is None else VoteAction.UPDATED

        logger.debug(
            f"Vote {action.value} on review {vote.review_id} by {vote.user_id} "
            f"({'up' if vote.is_upvote else 'down'})"
        )
        return action, vote

    def toggle(
        self,
        vote: Vote,
        review_author_id: Optional[str] = None
    ) -> Tuple[VoteAction, Optional[Vote]]:
        """Cast a vote, or remove it when the same direction is cast again"""
        self._check_self_vote(vote, review_author_id)

        with self._lock_for(vote.review_id):
            review_votes = self._votes.setdefault(vote.review_id, {})
            existing = review_votes.get(vote.user_id)

            if existing is not None and existing.is_upvote == vote.is_upvote:
                del review_votes[vote.user_id]
                return VoteAction.REMOVED, None

            review_votes[vote.user_id] = vote
            action = VoteAction.CREATED if existing is None else VoteAction.UPDATED
            return action, vote

    def retract(self, user_id: str, review_id: str) -> Tuple[VoteAction, Optional[Vote]]:
        """Remove a user's vote on a review if present, returning the removed vote"""
        with self._lock_for(review_id):
            removed = self._votes.get(review_id, {}).pop(user_id, None)
            if removed is None:
                return VoteAction.NOT_FOUND, None

        logger.debug(f"Vote removed on review {review_id} by {user_id}")
        return VoteAction.REMOVED, removed

    # 2. Reads
    def get_vote(self, user_id: str, review_id: str) -> Optional[Vote]:
        with self._lock_for(review_id):
            return self._votes.get(review_id, {}).get(user_id)

    def votes_for(self, review_id: str) -> List[Vote]:
        """All current votes on a review, oldest first"""
        with self._lock_for(review_id):
            votes = list(self._votes.get(review_id, {}).values())
        return sorted(votes, key=lambda v: ensure_utc(v.cast_at))

    def counts(self, review_id: str) -> Tuple[int, int]:
        """(upvotes, downvotes) derived from the stored records"""
        votes = self.votes_for(review_id)
        upvotes = sum(1 for v in votes if v.is_upvote)
        return upvotes, len(votes) - upvotes

    def recent_votes(self, review_id: str, since: datetime) -> List[Vote]:
        since = ensure_utc(since)
        return [v for v in self.votes_for(review_id) if ensure_utc(v.cast_at) >= since]

    def bulk_status(self, user_id: str, review_ids: List[str]) -> Dict[str, Optional[bool]]:
        """Map each review to the user's vote direction, or None if not voted"""
        status = {}
        for review_id in review_ids:
            vote = self.get_vote(user_id, review_id)
            status[review_id] = vote.is_upvote if vote else None
        return status

    @staticmethod
    def _check_self_vote(vote: Vote, review_author_id: Optional[str]) -> None:
        if review_author_id is not None and vote.user_id == review_author_id:
            raise SelfVoteError(
                "Users cannot vote on their own review",
                details={"user_id": vote.user_id, "review_id": vote.review_id}
            )
