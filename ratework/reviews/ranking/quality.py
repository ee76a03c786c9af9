# ratework/reviews/ranking/quality.py

from typing import List, Optional
import logging
import re

from ratework.core.cancellation import CancellationToken, check_cancelled
from ratework.core.utils import clamp
from ratework.reviews.models import QualityLevel, QualityReport, Review
from ratework.reviews.moderation.similarity import TextSimilarityDetector
from ratework.reviews.ranking.helpfulness import HelpfulnessScorer

logger = logging.getLogger(__name__)

# Extremes on both ends count against objectivity
SUBJECTIVE_WORDS = frozenset({
    "amazing", "awesome", "perfect", "best", "fantastic", "incredible",
    "wonderful", "outstanding", "superb", "phenomenal", "flawless",
    "worst", "terrible", "horrible", "awful", "disgusting", "pathetic",
    "dreadful", "useless", "atrocious", "hate", "love",
})

QUALITY_WEIGHTS = {
    "length": 0.2,
    "detail": 0.3,
    "objectivity": 0.2,
    "helpfulness": 0.3,
}

SUGGESTION_THRESHOLD = 60.0

SUGGESTIONS = {
    "length": "Expand your review: reviews between 200 and 1000 characters are the most useful.",
    "detail": "Add specifics: describe concrete situations across several sentences.",
    "objectivity": "Tone down strongly emotional words and focus on facts you observed.",
    "helpfulness": "Reviews earn trust through votes; verifying your employment document also helps.",
}

_SENTENCE_SPLIT = re.compile(r"[.!?]")

class ReviewQualityScorer:
    """
    Composite 0-100 quality score for a single review.

    Reproducible from review state alone: no randomness, no I/O.
    """

    def __init__(self, helpfulness_scorer: Optional[HelpfulnessScorer] = None):
        self.helpfulness_scorer = helpfulness_scorer or HelpfulnessScorer()

    def quality(self, review: Review, token: Optional[CancellationToken] = None) -> QualityReport:
        check_cancelled(token)
        text = review.text or ""

        length = self.length_score(text)
        detail = self.detail_score(text)
        objectivity = self.objectivity_score(text)
        helpfulness = self.helpfulness_scorer.score(
            review.upvotes,
            review.downvotes,
            review.is_document_verified
        )

        overall = round(clamp(
            length * QUALITY_WEIGHTS["length"]
            + detail * QUALITY_WEIGHTS["detail"]
            + objectivity * QUALITY_WEIGHTS["objectivity"]
            + helpfulness * QUALITY_WEIGHTS["helpfulness"],
            0.0, 100.0
        ), 2)

        components = {
            "length": length,
            "detail": detail,
            "objectivity": objectivity,
            "helpfulness": helpfulness,
        }

        return QualityReport(
            length_score=length,
            detail_score=detail,
            objectivity_score=objectivity,
            helpfulness_score=helpfulness,
            overall_score=overall,
            quality_level=self.quality_level(overall),
            suggestions=self.suggestions(components)
        )

    @staticmethod
    def length_score(text: str) -> float:
        n = len(text)
        if 200 <= n <= 1000:
            return 100.0
        if 100 <= n <= 2000:
            return 80.0
        if n >= 50:
            return 60.0
        return 30.0

    @staticmethod
    def sentence_count(text: str) -> int:
        return sum(1 for part in _SENTENCE_SPLIT.split(text) if part.strip())

    def detail_score(self, text: str) -> float:
        unique_words = len(TextSimilarityDetector.normalize(text))
        return float(min(100, self.sentence_count(text) * 10 + unique_words * 2))

    @staticmethod
    def subjective_hits(text: str) -> int:
        """Occurrences (not distinct words) of strongly subjective terms"""
        lowered = re.sub(r"[^\w\s]+", " ", text.lower())
        return sum(1 for word in lowered.split() if word in SUBJECTIVE_WORDS)

    def objectivity_score(self, text: str) -> float:
        return float(max(0, 100 - 20 * self.subjective_hits(text)))

    @staticmethod
    def quality_level(overall: float) -> QualityLevel:
        if overall >= 80:
            return QualityLevel.EXCELLENT
        if overall >= 60:
            return QualityLevel.GOOD
        if overall >= 40:
            return QualityLevel.FAIR
        if overall >= 20:
            return QualityLevel.POOR
        return QualityLevel.VERY_POOR

    @staticmethod
    def suggestions(components: dict) -> List[str]:
        return [
            SUGGESTIONS[name]
            for name in ("length", "detail", "objectivity", "helpfulness")
            if components[name] < SUGGESTION_THRESHOLD
        ]
