# ratework/reviews/ranking/helpfulness.py

from typing import Optional
from dataclasses import dataclass
import logging

import numpy as np

from ratework.core.config import Config
from ratework.core.utils import clamp

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class HelpfulnessConfig:
    """Tuning knobs for the Wilson-score helpfulness ranking"""
    z_score: float = 1.96               # 95% confidence
    verified_multiplier: float = 1.2
    min_votes: int = 10                 # below this the score is scaled down linearly

    @classmethod
    def from_config(cls, config: Config) -> "HelpfulnessConfig":
        return cls(
            z_score=config.get("helpfulness.z_score", cls.z_score),
            verified_multiplier=config.get("helpfulness.verified_multiplier", cls.verified_multiplier),
            min_votes=config.get("helpfulness.min_votes", cls.min_votes)
        )

class HelpfulnessScorer:
    """
    Converts helpful/unhelpful vote counts into a 0-100 score.

    Uses the lower bound of the Wilson score interval so a review with a
    handful of unanimous votes does not outrank one with many consistent
    votes. Pure and deterministic.
    """

    def __init__(self, config: Optional[HelpfulnessConfig] = None):
        self.config = config or HelpfulnessConfig()

    def score(self, upvotes: int, downvotes: int, is_verified: bool = False) -> float:
        total = upvotes + downvotes
        if total == 0:
            return 0.0

        score = self.wilson_lower_bound(upvotes, total, self.config.z_score)

        if is_verified:
            score *= self.config.verified_multiplier

        if total < self.config.min_votes:
            score *= total / self.config.min_votes

        return round(clamp(score * 100, 0.0, 100.0), 2)

    @staticmethod
    def wilson_lower_bound(positive: int, total: int, z: float = 1.96) -> float:
        """Lower bound of the Wilson score interval for a Bernoulli proportion"""
        if total <= 0:
            return 0.0

        p = positive / total
        bound = (
            (p + z * z / (2 * total) - z * np.sqrt((p * (1 - p) + z * z / (4 * total)) / total))
            / (1 + z * z / total)
        )
        return max(0.0, float(bound))

    def credibility_score(
        self,
        is_verified: bool,
        user_review_count: int,
        user_average_score: float
    ) -> float:
        """Reviewer credibility from verification, experience and track record"""
        score = 0.0

        if is_verified:
            score += 40

        # Experience bonus
        if user_review_count >= 50:
            score += 30
        elif user_review_count >= 20:
            score += 20
        elif user_review_count >= 10:
            score += 15
        elif user_review_count >= 5:
            score += 10

        # Quality bonus
        if user_average_score >= 4.5:
            score += 30
        elif user_average_score >= 4.0:
            score += 25
        elif user_average_score >= 3.5:
            score += 20
        elif user_average_score >= 3.0:
            score += 15
        elif user_average_score >= 2.5:
            score += 10

        return clamp(score, 0.0, 100.0)

    def engagement_score(
        self,
        upvotes: int,
        downvotes: int,
        view_count: int,
        share_count: int = 0
    ) -> float:
        """Engagement of a review relative to how often it was seen"""
        total_votes = upvotes + downvotes
        engagement_rate = total_votes / view_count if view_count > 0 else 0.0

        score = engagement_rate * 50

        if total_votes > 0:
            score += (upvotes / total_votes) * 30

        if share_count > 0:
            score += min(share_count * 5, 20)

        # Minimum interaction penalty
        if total_votes < 3:
            score *= 0.5

        return round(clamp(score, 0.0, 100.0), 2)
