# ratework/reviews/moderation/content.py

from typing import List, Optional
from dataclasses import dataclass
import logging
import re

from ratework.core.config import Config
from ratework.core.exceptions import ValidationError
from ratework.reviews.ledger.vote_ledger import SelfVoteError
from ratework.reviews.models import CommentType, ModerationResult, Review

logger = logging.getLogger(__name__)

class ReviewValidationError(ValidationError):
    """Raised when review validation fails"""
    pass

PROHIBITED_PHRASES = (
    "http://", "https://", "www.", ".com", "click here", "free money", "buy now",
)

SPAM_KEYWORDS = (
    "promo", "discount", "click", "earn", "free", "guarantee", "money", "rich",
)

KEYBOARD_MASH = ("asdasd", "qwerty", "123456", "zxcvbn")

PERSONAL_INFO_PATTERNS = {
    "national_id": re.compile(r"\b\d{11}\b"),
    "tax_id": re.compile(r"\b\d{10}\b"),
    "phone": re.compile(r"\b0?\d{3}[\s-]?\d{3}[\s-]?\d{2}[\s-]?\d{2}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "credit_card": re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
}

_URL = re.compile(r"https?://|www\.", re.IGNORECASE)
_REPEATED_LETTERS = re.compile(r"([a-z])\1{5,}", re.IGNORECASE)

@dataclass(frozen=True)
class ContentConfig:
    """Limits enforced on review text at submission time"""
    min_length: int = 50
    max_length: int = 5000
    spam_score_threshold: float = 0.5

    @classmethod
    def from_config(cls, config: Config) -> "ContentConfig":
        return cls(
            min_length=config.get("submission.min_length", cls.min_length),
            max_length=config.get("submission.max_length", cls.max_length)
        )

class ReviewValidator:
    """Boundary checks for reviews and votes before they reach the engine"""

    def __init__(self, config: Optional[ContentConfig] = None):
        self.config = config or ContentConfig()

    def validate_review(self, review: Review) -> None:
        """Validate review content, rating and vote counters"""
        if not isinstance(review.category, CommentType):
            raise ReviewValidationError(f"Unknown review category: {review.category!r}")

        text_length = len(review.text or "")
        if text_length < self.config.min_length:
            raise ReviewValidationError(
                f"Review content too short. Minimum length is "
                f"{self.config.min_length} characters"
            )
        if text_length > self.config.max_length:
            raise ReviewValidationError(
                f"Review content too long. Maximum length is "
                f"{self.config.max_length} characters"
            )

        if not 0.0 <= review.overall_rating <= 5.0:
            raise ReviewValidationError(
                "Invalid overall rating. Must be between 0 and 5",
                details={"rating": review.overall_rating}
            )

        if review.upvotes < 0 or review.downvotes < 0:
            raise ReviewValidationError(
                "Vote counts cannot be negative",
                details={"upvotes": review.upvotes, "downvotes": review.downvotes}
            )

    def validate_vote(self, review: Review, voter_id: str) -> None:
        """Reject votes on inactive reviews and votes on one's own review"""
        if review.user_id == voter_id:
            raise SelfVoteError(
                "Users cannot vote on their own review",
                details={"user_id": voter_id, "review_id": review.id}
            )
        if not review.is_active:
            raise ReviewValidationError(
                f"Review {review.id} is not active",
                details={"review_id": review.id}
            )

class ContentModerator:
    """
    Rule-based content gate for new review text.

    Checks run in order and the first failing one decides the result:
    emptiness, length, prohibited phrases, personal information, spam.
    """

    def __init__(self, config: Optional[ContentConfig] = None):
        self.config = config or ContentConfig()

    def moderate(self, text: Optional[str]) -> ModerationResult:
        if not text or not text.strip():
            return ModerationResult(
                approved=False,
                reason="Review text cannot be empty",
                flags=["empty_content"]
            )

        if len(text) < self.config.min_length:
            return ModerationResult(
                approved=False,
                reason=f"Review must be at least {self.config.min_length} characters",
                flags=["too_short"],
                suggestions=[f"Write at least {self.config.min_length} characters (current: {len(text)})"]
            )

        if len(text) > self.config.max_length:
            return ModerationResult(
                approved=False,
                reason=f"Review must be at most {self.config.max_length} characters",
                flags=["too_long"],
                suggestions=["Please shorten your review"]
            )

        prohibited = self.find_prohibited_phrases(text)
        if prohibited:
            return ModerationResult(
                approved=False,
                reason="Inappropriate content detected",
                flags=prohibited,
                suggestions=["Remove links and promotional phrases", "Keep the language professional"]
            )

        personal_info = self.find_personal_info(text)
        if personal_info:
            return ModerationResult(
                approved=False,
                reason="Personal information detected",
                flags=[f"personal_info:{kind}" for kind in personal_info],
                suggestions=["Do not share personal contact or identity details"]
            )

        if self.is_spam_pattern(text):
            return ModerationResult(
                approved=False,
                reason="Content flagged as spam",
                flags=["spam_pattern"],
                suggestions=["Remove promotional content", "Describe your own experience"]
            )

        return ModerationResult(approved=True, reason="Content approved")

    @staticmethod
    def find_prohibited_phrases(text: str) -> List[str]:
        lowered = text.lower()
        return [phrase for phrase in PROHIBITED_PHRASES if phrase in lowered]

    @staticmethod
    def find_personal_info(text: str) -> List[str]:
        return [kind for kind, pattern in PERSONAL_INFO_PATTERNS.items() if pattern.search(text)]

    def spam_score(self, text: str) -> float:
        """Heuristic spam likelihood in [0, 1]"""
        score = 0.0
        lowered = text.lower()

        if _URL.search(text):
            score += 0.3

        words = lowered.split()
        if words:
            repetition = 1.0 - len(set(words)) / len(words)
            score += repetition * 0.3

        score += 0.1 * sum(1 for keyword in SPAM_KEYWORDS if keyword in lowered)

        return min(score, 1.0)

    def is_spam_pattern(self, text: str) -> bool:
        lowered = text.lower()
        if any(pattern in lowered for pattern in KEYBOARD_MASH):
            return True
        if _REPEATED_LETTERS.search(text):
            return True
        return self.spam_score(text) >= self.config.spam_score_threshold
