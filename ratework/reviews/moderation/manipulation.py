# ratework/reviews/moderation/manipulation.py

from typing import Dict, Iterable, Mapping, Optional
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging

from ratework.core.config import Config
from ratework.core.utils import ensure_utc, utcnow
from ratework.reviews.models import ManipulationReport, Vote

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ManipulationConfig:
    """Heuristic limits for suspicious vote patterns"""
    burst_threshold: int = 20
    burst_window: timedelta = timedelta(hours=1)
    new_account_ratio: float = 0.8
    new_account_age: timedelta = timedelta(days=7)
    pile_on_min_downvotes: int = 10
    pile_on_factor: int = 3

    @classmethod
    def from_config(cls, config: Config) -> "ManipulationConfig":
        return cls(
            burst_threshold=config.get("votes.burst_threshold", cls.burst_threshold),
            burst_window=timedelta(minutes=config.get("votes.burst_window_minutes", 60)),
            new_account_ratio=config.get("votes.new_account_ratio", cls.new_account_ratio),
            new_account_age=timedelta(days=config.get("votes.new_account_days", 7)),
            pile_on_min_downvotes=config.get("votes.pile_on_min_downvotes", cls.pile_on_min_downvotes),
            pile_on_factor=config.get("votes.pile_on_factor", cls.pile_on_factor)
        )

class VoteManipulationDetector:
    """
    Flags vote bursts and new-account surges on a single review.

    Read-only and side-effect free; re-run it after every vote mutation.
    Callers decide what a suspicious result means (freeze, report, log).
    """

    def __init__(self, config: Optional[ManipulationConfig] = None):
        self.config = config or ManipulationConfig()

    def analyze(
        self,
        review_id: str,
        recent_votes: Iterable[Vote],
        voter_account_ages: Mapping[str, timedelta],
        now: Optional[datetime] = None
    ) -> ManipulationReport:
        """Compute every signal for the trailing window ending at ``now``"""
        now = ensure_utc(now) if now else utcnow()
        cutoff = now - self.config.burst_window

        window_votes = [
            v for v in recent_votes
            if v.review_id == review_id and ensure_utc(v.cast_at) > cutoff
        ]
        voters = {v.user_id for v in window_votes}

        known_ages: Dict[str, timedelta] = {
            user_id: voter_account_ages[user_id]
            for user_id in voters
            if user_id in voter_account_ages
        }
        new_accounts = sum(
            1 for age in known_ages.values() if age < self.config.new_account_age
        )
        ratio = new_accounts / len(known_ages) if known_ages else 0.0

        vote_burst = len(window_votes) > self.config.burst_threshold
        new_account_surge = ratio > self.config.new_account_ratio

        reasons = []
        if vote_burst:
            reasons.append(
                f"{len(window_votes)} votes within {self.config.burst_window} "
                f"(limit {self.config.burst_threshold})"
            )
        if new_account_surge:
            reasons.append(
                f"{ratio:.0%} of voters have accounts younger than "
                f"{self.config.new_account_age.days} days"
            )

        report = ManipulationReport(
            review_id=review_id,
            votes_in_window=len(window_votes),
            distinct_voters=len(voters),
            new_account_voters=new_accounts,
            new_account_ratio=round(ratio, 4),
            vote_burst=vote_burst,
            new_account_surge=new_account_surge,
            reasons=reasons
        )

        if report.is_suspicious:
            logger.warning(
                f"Suspicious voting on review {review_id}: {'; '.join(reasons)}",
                extra={"review": review_id}
            )
        return report

    def is_suspicious(
        self,
        review_id: str,
        recent_votes: Iterable[Vote],
        voter_account_ages: Mapping[str, timedelta],
        now: Optional[datetime] = None
    ) -> bool:
        """Advisory boolean; malformed input is logged and treated as clean"""
        try:
            return self.analyze(review_id, recent_votes, voter_account_ages, now).is_suspicious
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Vote manipulation check skipped for review {review_id}: {e}")
            return False

    def is_downvote_pile_on(self, upvotes: int, downvotes: int) -> bool:
        """Heavily downvoted reviews are queued for moderation"""
        return (
            downvotes > self.config.pile_on_min_downvotes
            and downvotes > upvotes * self.config.pile_on_factor
        )
