# ratework/reviews/moderation/similarity.py

from typing import FrozenSet, Iterable, List, Optional, Tuple
from dataclasses import dataclass
import logging
import re

from ratework.core.config import Config
from ratework.reviews.models import SimilarityMatch

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]+", re.UNICODE)

@dataclass(frozen=True)
class SimilarityConfig:
    """Thresholds for near-duplicate detection"""
    spam_threshold: float = 0.8       # reject resubmissions at or above this
    similar_threshold: float = 0.7    # "find similar reviews" reporting
    window_days: int = 30             # look-back over the author's own reviews

    @classmethod
    def from_config(cls, config: Config) -> "SimilarityConfig":
        return cls(
            spam_threshold=config.get("similarity.spam_threshold", cls.spam_threshold),
            similar_threshold=config.get("similarity.similar_threshold", cls.similar_threshold),
            window_days=config.get("similarity.window_days", cls.window_days)
        )

class TextSimilarityDetector:
    """
    Token-set Jaccard similarity between review texts.

    Texts are lowercased, punctuation is replaced by spaces and the result is
    split on whitespace into a set, so repeated words count once. An empty
    token set is never similar to anything.
    """

    def __init__(self, config: Optional[SimilarityConfig] = None):
        self.config = config or SimilarityConfig()

    @staticmethod
    def normalize(text: Optional[str]) -> FrozenSet[str]:
        if not text:
            return frozenset()
        cleaned = _PUNCTUATION.sub(" ", text.lower())
        return frozenset(cleaned.split())

    def similarity(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        return self.jaccard(self.normalize(text_a), self.normalize(text_b))

    @staticmethod
    def jaccard(tokens_a: FrozenSet[str], tokens_b: FrozenSet[str]) -> float:
        if not tokens_a or not tokens_b:
            return 0.0
        return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)

    def is_near_duplicate(
        self,
        new_text: Optional[str],
        prior_texts: Iterable[Optional[str]],
        threshold: Optional[float] = None
    ) -> bool:
        """True when any prior text reaches the threshold"""
        threshold = self.config.spam_threshold if threshold is None else threshold
        new_tokens = self.normalize(new_text)
        if not new_tokens:
            return False

        for prior in prior_texts:
            score = self.jaccard(new_tokens, self.normalize(prior))
            if score >= threshold:
                logger.info(f"Near-duplicate text detected (similarity={score:.2f})")
                return True
        return False

    def find_similar(
        self,
        text: Optional[str],
        candidates: Iterable[Tuple[str, str]],
        threshold: Optional[float] = None
    ) -> List[SimilarityMatch]:
        """Rank (review_id, text) candidates at or above the threshold"""
        threshold = self.config.similar_threshold if threshold is None else threshold
        tokens = self.normalize(text)
        if not tokens:
            return []

        matches = []
        for review_id, candidate_text in candidates:
            score = self.jaccard(tokens, self.normalize(candidate_text))
            if score >= threshold:
                matches.append(SimilarityMatch(review_id=review_id, similarity=round(score, 4)))

        return sorted(matches, key=lambda m: (-m.similarity, m.review_id))
