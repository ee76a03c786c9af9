# ratework/reviews/models.py

from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, date

class CommentType(Enum):
    """Review categories a user can comment on"""
    OVERALL = "Overall"
    WORK_ENVIRONMENT = "WorkEnvironment"
    MANAGEMENT = "Management"
    CAREER_GROWTH = "CareerGrowth"
    WORK_LIFE_BALANCE = "WorkLifeBalance"
    BENEFITS = "Benefits"
    SALARY = "Salary"
    CULTURE = "Culture"
    TRAINING = "Training"
    TECHNOLOGY = "Technology"

class VoteAction(Enum):
    """Effect of a vote mutation on the ledger"""
    CREATED = "created"       # First vote by this user on the review
    UPDATED = "updated"       # Direction flipped in place
    UNCHANGED = "unchanged"   # Same direction cast again
    REMOVED = "removed"       # Vote retracted
    NOT_FOUND = "not_found"   # Retraction with no existing vote

class QualityLevel(Enum):
    """Coarse quality bands for a review"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    VERY_POOR = "Very Poor"

@dataclass(frozen=True)
class Review:
    """Snapshot of a persisted review, as consumed by the engine"""
    id: str
    company_id: str
    user_id: str
    category: CommentType
    overall_rating: float
    text: str
    created_at: datetime
    is_document_verified: bool = False
    upvotes: int = 0
    downvotes: int = 0
    helpfulness_score: float = 0.0
    is_active: bool = True

    @property
    def total_votes(self) -> int:
        return self.upvotes + self.downvotes

@dataclass(frozen=True)
class Vote:
    """One user's vote on one review; (user_id, review_id) is the key"""
    user_id: str
    review_id: str
    is_upvote: bool
    cast_at: datetime

    @property
    def key(self) -> Tuple[str, str]:
        return (self.user_id, self.review_id)

@dataclass(frozen=True)
class CompanyRatingSnapshot:
    """Weighted company rating computed from active reviews"""
    average_rating: float
    total_review_count: int
    category_averages: Dict[str, float]
    verified_review_count: int = 0
    verified_percentage: float = 0.0
    rating_distribution: Dict[int, int] = field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )
    computed_at: Optional[datetime] = field(default=None, compare=False)

    def category_average(self, category: str) -> float:
        return self.category_averages.get(category, 0.0)

    def highest_rated_category(self) -> Optional[Tuple[str, float]]:
        if not self.category_averages:
            return None
        return max(self.category_averages.items(), key=lambda item: (item[1], item[0]))

    def lowest_rated_category(self) -> Optional[Tuple[str, float]]:
        if not self.category_averages:
            return None
        return min(self.category_averages.items(), key=lambda item: (item[1], item[0]))

@dataclass(frozen=True)
class QualityReport:
    """Composite quality breakdown of a single review, all scores 0-100"""
    length_score: float
    detail_score: float
    objectivity_score: float
    helpfulness_score: float
    overall_score: float
    quality_level: QualityLevel
    suggestions: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class ManipulationReport:
    """Signals raised while inspecting the vote stream of a review"""
    review_id: str
    votes_in_window: int
    distinct_voters: int
    new_account_voters: int
    new_account_ratio: float
    vote_burst: bool
    new_account_surge: bool
    reasons: List[str] = field(default_factory=list)

    @property
    def is_suspicious(self) -> bool:
        return self.vote_burst or self.new_account_surge

@dataclass(frozen=True)
class SimilarityMatch:
    """A prior review whose text resembles a candidate text"""
    review_id: str
    similarity: float

@dataclass(frozen=True)
class ModerationResult:
    """Outcome of the content gate for a review text"""
    approved: bool
    reason: str = ""
    flags: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class TrendReport:
    """Time-bucketed view of a company's reviews over a date range"""
    company_id: Optional[str]
    start: datetime
    end: datetime
    category_averages: Dict[str, float] = field(default_factory=dict)
    review_count_by_date: Dict[date, int] = field(default_factory=dict)
    mentioned_positive_keywords: List[str] = field(default_factory=list)
    mentioned_negative_keywords: List[str] = field(default_factory=list)
    sentiment_trend: float = 0.0
    rating_sentiment: Dict[str, float] = field(
        default_factory=lambda: {"positive": 0.0, "neutral": 0.0, "negative": 0.0}
    )
    text_sentiment: Dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "neutral": 0, "negative": 0}
    )
    top_keywords: List[Tuple[str, float]] = field(default_factory=list)
    total_reviews: int = 0

@dataclass(frozen=True)
class SubmissionCheck:
    """Result of gating a new review submission"""
    allowed: bool
    moderation: ModerationResult
    is_near_duplicate: bool = False
    exceeds_daily_limit: bool = False
    in_cooldown: bool = False
    reasons: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class VoteOutcome:
    """Everything a caller needs to persist after a vote mutation"""
    review: Review
    action: VoteAction
    vote: Optional[Vote]
    manipulation: ManipulationReport
    downvote_pile_on: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
