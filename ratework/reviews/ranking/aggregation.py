# ratework/reviews/ranking/aggregation.py

from typing import Dict, Iterable, List, Optional, Sequence
from datetime import datetime
import logging
import math

import numpy as np
import pandas as pd

from ratework.core.cancellation import CancellationToken, check_cancelled
from ratework.core.utils import clamp, utcnow
from ratework.reviews.models import CompanyRatingSnapshot, Review
from ratework.reviews.ranking.helpfulness import HelpfulnessScorer

logger = logging.getLogger(__name__)

VERIFIED_WEIGHT = 2.0
UNVERIFIED_WEIGHT = 1.0
HELPFULNESS_WEIGHT = 0.5

class CompanyRatingAggregator:
    """
    Combines a company's active reviews into one weighted rating.

    The overall average weights each review by verification and
    helpfulness. Category averages are plain means: they describe what
    reviewers say about a topic, not how trustworthy they are.
    """

    def __init__(
        self,
        helpfulness_scorer: Optional[HelpfulnessScorer] = None,
        recompute_helpfulness: bool = True
    ):
        self.helpfulness_scorer = helpfulness_scorer or HelpfulnessScorer()
        # Stored scores are derived data; by default they are rebuilt from votes
        self.recompute_helpfulness = recompute_helpfulness

    def aggregate(
        self,
        reviews: Iterable[Review],
        computed_at: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> CompanyRatingSnapshot:
        """Build a snapshot from the active reviews in ``reviews``"""
        check_cancelled(token)
        computed_at = computed_at or utcnow()
        active = [r for r in reviews if r.is_active]

        if not active:
            return CompanyRatingSnapshot(
                average_rating=0.0,
                total_review_count=0,
                category_averages={},
                computed_at=computed_at
            )

        ratings = [clamp(r.overall_rating, 0.0, 5.0) for r in active]
        weights = [
            self.review_weight(r.is_document_verified, self._helpfulness(r))
            for r in active
        ]
        verified = sum(1 for r in active if r.is_document_verified)

        snapshot = CompanyRatingSnapshot(
            average_rating=self.weighted_average(ratings, weights),
            total_review_count=len(active),
            category_averages=self.category_averages(active),
            verified_review_count=verified,
            verified_percentage=round(verified / len(active) * 100, 2),
            rating_distribution=self.rating_distribution(ratings),
            computed_at=computed_at
        )

        logger.debug(
            f"Aggregated {snapshot.total_review_count} reviews "
            f"into average {snapshot.average_rating}"
        )
        return snapshot

    def _helpfulness(self, review: Review) -> float:
        if self.recompute_helpfulness:
            return self.helpfulness_scorer.score(
                review.upvotes,
                review.downvotes,
                review.is_document_verified
            )
        return clamp(review.helpfulness_score, 0.0, 100.0)

    @staticmethod
    def review_weight(is_verified: bool, helpfulness_score: float) -> float:
        base = VERIFIED_WEIGHT if is_verified else UNVERIFIED_WEIGHT
        return base * (1 + HELPFULNESS_WEIGHT * clamp(helpfulness_score, 0.0, 100.0) / 100)

    @staticmethod
    def weighted_average(ratings: Sequence[float], weights: Sequence[float]) -> float:
        """Weighted mean rounded to 2 decimals; 0 when there is no weight"""
        if not ratings:
            return 0.0
        values = np.asarray(ratings, dtype=float)
        w = np.asarray(weights, dtype=float)
        total_weight = float(np.sum(w))
        if total_weight <= 0:
            return 0.0
        average = float(np.sum(values * w)) / total_weight
        return round(clamp(average, 0.0, 5.0), 2)

    @staticmethod
    def category_averages(reviews: List[Review]) -> Dict[str, float]:
        if not reviews:
            return {}

        df = pd.DataFrame([
            {
                "category": r.category.value,
                "rating": clamp(r.overall_rating, 0.0, 5.0)
            }
            for r in reviews
        ])
        means = df.groupby("category")["rating"].mean()
        return {
            str(category): round(clamp(float(value), 0.0, 5.0), 2)
            for category, value in sorted(means.items())
        }

    @staticmethod
    def rating_distribution(ratings: Sequence[float]) -> Dict[int, int]:
        """Count of reviews per star, half-stars rounding up"""
        distribution = {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
        for rating in ratings:
            star = min(5, max(1, int(math.floor(rating + 0.5))))
            distribution[star] += 1
        return distribution
