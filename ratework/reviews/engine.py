# ratework/reviews/engine.py

from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Union
from datetime import datetime, timedelta
from concurrent.futures import ThreadPoolExecutor
import asyncio
import dataclasses
import functools
import logging

from ratework.core.cancellation import CancellationToken, check_cancelled
from ratework.core.config import Config
from ratework.core.exceptions import ProcessingError, RateWorkError
from ratework.core.utils import ensure_utc, utcnow
from ratework.reviews.ledger import VoteLedger
from ratework.reviews.metrics import ReviewTrendAnalyzer, TrendConfig
from ratework.reviews.models import (
    CommentType,
    CompanyRatingSnapshot,
    ManipulationReport,
    QualityReport,
    Review,
    SimilarityMatch,
    SubmissionCheck,
    TrendReport,
    Vote,
    VoteAction,
    VoteOutcome
)
from ratework.reviews.moderation import (
    ContentConfig,
    ContentModerator,
    ManipulationConfig,
    ReviewValidator,
    SimilarityConfig,
    TextSimilarityDetector,
    VoteManipulationDetector
)
from ratework.reviews.ranking import (
    CompanyRatingAggregator,
    HelpfulnessConfig,
    HelpfulnessScorer,
    ReviewQualityScorer
)

logger = logging.getLogger(__name__)

class ReviewDataSource(Protocol):
    """Read-only access to persisted reviews and accounts"""

    async def list_active_reviews(self, company_id: str) -> List[Review]:
        ...

    async def list_user_reviews(self, user_id: str, since: datetime) -> List[Review]:
        ...

    async def get_account_ages(
        self,
        user_ids: Iterable[str],
        now: datetime
    ) -> Dict[str, timedelta]:
        ...

class ReviewCredibilityEngine:
    """
    Entry point for review credibility scoring and aggregation.

    This class handles:
    - Helpfulness and quality scoring of single reviews
    - Weighted company rating aggregation
    - Submission gating (content, near-duplicates, posting limits)
    - Vote mutations with manipulation checks
    - Trend reporting

    The engine never writes reviews. Vote methods return an updated review
    snapshot that the caller persists.
    """

    def __init__(
        self,
        config: Config,
        data_source: ReviewDataSource,
        ledger: Optional[VoteLedger] = None
    ):
        self.config = config
        self.data_source = data_source
        self.ledger = ledger or VoteLedger()
        self._executor = ThreadPoolExecutor(
            max_workers=config.get("engine.max_workers", 4)
        )

        self.helpfulness = HelpfulnessScorer(HelpfulnessConfig.from_config(config))
        self.quality_scorer = ReviewQualityScorer(self.helpfulness)
        self.aggregator = CompanyRatingAggregator(self.helpfulness)
        self.similarity = TextSimilarityDetector(SimilarityConfig.from_config(config))
        self.manipulation = VoteManipulationDetector(ManipulationConfig.from_config(config))
        self.moderator = ContentModerator(ContentConfig.from_config(config))
        self.validator = ReviewValidator(ContentConfig.from_config(config))
        self.trend_analyzer = ReviewTrendAnalyzer(TrendConfig.from_config(config))

        self.max_reviews_per_day = config.get("submission.max_reviews_per_day", 3)
        self.review_cooldown = timedelta(days=config.get("submission.review_cooldown_days", 365))

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    # 1. Scoring
    def score_helpfulness(
        self,
        upvotes: int,
        downvotes: int,
        verified: bool = False,
        token: Optional[CancellationToken] = None
    ) -> float:
        check_cancelled(token)
        return self.helpfulness.score(upvotes, downvotes, verified)

    def compute_quality(
        self,
        review: Review,
        token: Optional[CancellationToken] = None
    ) -> QualityReport:
        return self.quality_scorer.quality(review, token)

    def aggregate_company_rating(
        self,
        active_reviews: Iterable[Review],
        computed_at: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> CompanyRatingSnapshot:
        return self.aggregator.aggregate(active_reviews, computed_at, token)

    # 2. Detection
    def detect_near_duplicate(
        self,
        new_text: str,
        prior_texts: Iterable[str],
        threshold: Optional[float] = None,
        token: Optional[CancellationToken] = None
    ) -> bool:
        check_cancelled(token)
        return self.similarity.is_near_duplicate(new_text, prior_texts, threshold)

    def detect_vote_manipulation(
        self,
        recent_votes: Sequence[Vote],
        voter_ages: Dict[str, timedelta],
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> bool:
        """True when any review in ``recent_votes`` shows a suspicious pattern"""
        check_cancelled(token)
        try:
            review_ids = sorted({v.review_id for v in recent_votes})
        except (AttributeError, TypeError) as e:
            logger.warning(f"Vote manipulation check skipped: {e}")
            return False
        return any(
            self.manipulation.is_suspicious(review_id, recent_votes, voter_ages, now)
            for review_id in review_ids
        )

    def analyze_trends(
        self,
        reviews: Iterable[Review],
        start: Union[datetime, str],
        end: Union[datetime, str],
        company_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TrendReport:
        return self.trend_analyzer.trends(reviews, start, end, company_id, token)

    # 3. Submission gating
    async def check_submission(
        self,
        user_id: str,
        company_id: str,
        category: CommentType,
        text: str,
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> SubmissionCheck:
        """Decide whether a new review may be accepted"""
        check_cancelled(token)
        now = ensure_utc(now) if now else utcnow()
        moderation = self.moderator.moderate(text)

        duplicate_window = timedelta(days=self.similarity.config.window_days)
        look_back = max(duplicate_window, self.review_cooldown, timedelta(days=1))
        previous = await self.data_source.list_user_reviews(user_id, now - look_back)
        check_cancelled(token)

        is_near_duplicate = self.similarity.is_near_duplicate(
            text,
            [r.text for r in previous if ensure_utc(r.created_at) >= now - duplicate_window]
        )

        last_day = [r for r in previous if ensure_utc(r.created_at) >= now - timedelta(days=1)]
        exceeds_daily_limit = len(last_day) >= self.max_reviews_per_day

        in_cooldown = any(
            r.company_id == company_id
            and r.category == category
            and ensure_utc(r.created_at) >= now - self.review_cooldown
            for r in previous
        )

        reasons = []
        if not moderation.approved:
            reasons.append(moderation.reason)
        if is_near_duplicate:
            reasons.append("Review is too similar to one of your recent reviews")
        if exceeds_daily_limit:
            reasons.append(
                f"At most {self.max_reviews_per_day} reviews can be posted per 24 hours"
            )
        if in_cooldown:
            reasons.append(
                f"You already reviewed {category.value} for this company in the last "
                f"{self.review_cooldown.days} days"
            )

        check = SubmissionCheck(
            allowed=not reasons,
            moderation=moderation,
            is_near_duplicate=is_near_duplicate,
            exceeds_daily_limit=exceeds_daily_limit,
            in_cooldown=in_cooldown,
            reasons=reasons
        )

        if not check.allowed:
            logger.info(
                f"Submission by {user_id} rejected: {'; '.join(reasons)}",
                extra={"company": company_id}
            )
        return check

    async def find_similar_reviews(
        self,
        user_id: str,
        text: str,
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> List[SimilarityMatch]:
        """The user's recent reviews ranked by similarity to ``text``"""
        check_cancelled(token)
        now = ensure_utc(now) if now else utcnow()
        since = now - timedelta(days=self.similarity.config.window_days)
        previous = await self.data_source.list_user_reviews(user_id, since)
        return self.similarity.find_similar(text, [(r.id, r.text) for r in previous])

    # 4. Votes
    async def apply_vote(
        self,
        review: Review,
        voter_id: str,
        is_upvote: bool,
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> VoteOutcome:
        """Record a vote, flipping any earlier vote by the same user"""
        check_cancelled(token)
        self.validator.validate_vote(review, voter_id)
        now = ensure_utc(now) if now else utcnow()

        vote = Vote(user_id=voter_id, review_id=review.id, is_upvote=is_upvote, cast_at=now)
        action, stored = self.ledger.cast(vote, review_author_id=review.user_id)
        return await self._after_vote(review, action, stored, now)

    async def toggle_vote(
        self,
        review: Review,
        voter_id: str,
        is_upvote: bool,
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> VoteOutcome:
        """Like apply_vote, but casting the same direction twice removes the vote"""
        check_cancelled(token)
        self.validator.validate_vote(review, voter_id)
        now = ensure_utc(now) if now else utcnow()

        vote = Vote(user_id=voter_id, review_id=review.id, is_upvote=is_upvote, cast_at=now)
        action, stored = self.ledger.toggle(vote, review_author_id=review.user_id)
        return await self._after_vote(review, action, stored, now)

    async def retract_vote(
        self,
        review: Review,
        voter_id: str,
        now: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> VoteOutcome:
        check_cancelled(token)
        now = ensure_utc(now) if now else utcnow()

        action, _ = self.ledger.retract(voter_id, review.id)
        return await self._after_vote(review, action, None, now)

    async def _after_vote(
        self,
        review: Review,
        action: VoteAction,
        vote: Optional[Vote],
        now: datetime
    ) -> VoteOutcome:
        manipulation = await self._check_manipulation(review.id, now)

        # Counters come from the ledger records
        upvotes, downvotes = self.ledger.counts(review.id)
        helpfulness = self.helpfulness.score(upvotes, downvotes, review.is_document_verified)
        updated = dataclasses.replace(
            review,
            upvotes=upvotes,
            downvotes=downvotes,
            helpfulness_score=helpfulness
        )

        pile_on = self.manipulation.is_downvote_pile_on(upvotes, downvotes)
        if pile_on:
            logger.warning(
                f"Review {review.id} is heavily downvoted ({downvotes} down, {upvotes} up)",
                extra={"review": review.id, "company": review.company_id}
            )

        return VoteOutcome(
            review=updated,
            action=action,
            vote=vote,
            manipulation=manipulation,
            downvote_pile_on=pile_on,
            metadata={
                "previous_helpfulness": review.helpfulness_score,
                "helpfulness_delta": round(helpfulness - review.helpfulness_score, 2)
            }
        )

    async def _check_manipulation(self, review_id: str, now: datetime) -> ManipulationReport:
        window = self.manipulation.config.burst_window
        recent = self.ledger.recent_votes(review_id, now - window)
        try:
            ages = await self.data_source.get_account_ages({v.user_id for v in recent}, now)
            return self.manipulation.analyze(review_id, recent, ages, now)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(
                f"Vote manipulation check skipped for review {review_id}: {e}",
                extra={"review": review_id}
            )
            return ManipulationReport(
                review_id=review_id,
                votes_in_window=len(recent),
                distinct_voters=len({v.user_id for v in recent}),
                new_account_voters=0,
                new_account_ratio=0.0,
                vote_burst=False,
                new_account_surge=False
            )

    # 5. Company rating
    async def recompute_company_rating(
        self,
        company_id: str,
        computed_at: Optional[datetime] = None,
        token: Optional[CancellationToken] = None
    ) -> CompanyRatingSnapshot:
        """Rebuild a company's snapshot off the event loop"""
        check_cancelled(token)
        try:
            reviews = await self.data_source.list_active_reviews(company_id)
        except RateWorkError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to load reviews: {str(e)}",
                extra={"company": company_id}
            )
            raise ProcessingError(
                f"Rating recomputation failed for company {company_id}: {str(e)}",
                details={"company_id": company_id}
            ) from e

        snapshot = await asyncio.get_event_loop().run_in_executor(
            self._executor,
            functools.partial(self.aggregator.aggregate, reviews, computed_at, token)
        )

        logger.info(
            f"Company rating recomputed: {snapshot.average_rating} "
            f"from {snapshot.total_review_count} reviews",
            extra={"company": company_id}
        )
        return snapshot
