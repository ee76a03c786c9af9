# ratework/reviews/metrics/trends.py

from typing import Dict, Iterable, List, Optional, Tuple, Union
from dataclasses import dataclass
from datetime import datetime
import logging

import numpy as np
import pandas as pd
from textblob import TextBlob
from sklearn.feature_extraction.text import TfidfVectorizer

from ratework.core.cancellation import CancellationToken, check_cancelled
from ratework.core.config import Config
from ratework.core.utils import clamp, ensure_utc, parse_datetime
from ratework.reviews.models import Review, TrendReport
from ratework.reviews.moderation.similarity import TextSimilarityDetector

logger = logging.getLogger(__name__)

POSITIVE_KEYWORDS = (
    "supportive", "flexible", "friendly", "growth", "collaborative", "fair",
    "benefits", "transparent", "balance", "learning", "respectful", "innovative",
)

NEGATIVE_KEYWORDS = (
    "toxic", "overtime", "underpaid", "stressful", "micromanagement", "unfair",
    "layoffs", "disorganized", "turnover", "burnout", "discrimination", "unpaid",
)

@dataclass(frozen=True)
class TrendConfig:
    """Settings for trend scans"""
    cancel_check_interval: int = 500   # reviews scanned between cancellation checks
    top_keywords: int = 10
    polarity_threshold: float = 0.1

    @classmethod
    def from_config(cls, config: Config) -> "TrendConfig":
        return cls(
            cancel_check_interval=config.get("trends.cancel_check_interval", cls.cancel_check_interval),
            top_keywords=config.get("trends.top_keywords", cls.top_keywords),
            polarity_threshold=config.get("trends.polarity_threshold", cls.polarity_threshold)
        )

class ReviewTrendAnalyzer:
    """
    Time-bucketed analysis of a company's reviews over a date range.

    Produces per-category averages, daily volume, keyword mentions and a
    month-over-range sentiment trend. Empty input yields an all-zero report.
    """

    def __init__(self, config: Optional[TrendConfig] = None):
        self.config = config or TrendConfig()

    def trends(
        self,
        reviews: Iterable[Review],
        start: Union[datetime, str],
        end: Union[datetime, str],
        company_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TrendReport:
        """Analyze active reviews created within [start, end]"""
        start = parse_datetime(start)
        end = parse_datetime(end)
        empty = TrendReport(company_id=company_id, start=start, end=end)

        if start > end:
            logger.warning(f"Empty trend range: start {start} is after end {end}")
            return empty

        in_range = self._scan(reviews, start, end, company_id, token)
        if not in_range:
            return empty

        df = pd.DataFrame([
            {
                "category": r.category.value,
                "rating": clamp(r.overall_rating, 0.0, 5.0),
                "date": ensure_utc(r.created_at).date(),
                "month": ensure_utc(r.created_at).strftime("%Y-%m"),
                "text": r.text or ""
            }
            for r in in_range
        ])

        check_cancelled(token)
        positives, negatives = self.mentioned_keywords(df["text"].tolist())

        report = TrendReport(
            company_id=company_id,
            start=start,
            end=end,
            category_averages=self._category_averages(df),
            review_count_by_date=self._count_by_date(df),
            mentioned_positive_keywords=positives,
            mentioned_negative_keywords=negatives,
            sentiment_trend=self.sentiment_trend(df),
            rating_sentiment=self._rating_sentiment(df),
            text_sentiment=self._text_sentiment(df["text"].tolist(), token),
            top_keywords=self.top_keywords(df["text"].tolist()),
            total_reviews=len(df)
        )

        logger.info(
            f"Analyzed {report.total_reviews} reviews between "
            f"{start.date()} and {end.date()}",
            extra={"company": company_id or "-"}
        )
        return report

    def _scan(
        self,
        reviews: Iterable[Review],
        start: datetime,
        end: datetime,
        company_id: Optional[str],
        token: Optional[CancellationToken]
    ) -> List[Review]:
        interval = max(1, self.config.cancel_check_interval)
        selected = []
        for index, review in enumerate(reviews):
            if index % interval == 0:
                check_cancelled(token)
            if not review.is_active:
                continue
            if company_id is not None and review.company_id != company_id:
                continue
            if start <= ensure_utc(review.created_at) <= end:
                selected.append(review)
        return selected

    @staticmethod
    def _category_averages(df: pd.DataFrame) -> Dict[str, float]:
        means = df.groupby("category")["rating"].mean()
        return {
            str(category): round(float(value), 2)
            for category, value in sorted(means.items())
        }

    @staticmethod
    def _count_by_date(df: pd.DataFrame) -> Dict:
        counts = df.groupby("date").size()
        return {day: int(count) for day, count in sorted(counts.items())}

    @staticmethod
    def mentioned_keywords(texts: List[str]) -> Tuple[List[str], List[str]]:
        """Keywords present anywhere in the texts, in list order, deduplicated"""
        tokens = set()
        for text in texts:
            tokens |= TextSimilarityDetector.normalize(text)

        positives = [word for word in POSITIVE_KEYWORDS if word in tokens]
        negatives = [word for word in NEGATIVE_KEYWORDS if word in tokens]
        return positives, negatives

    @staticmethod
    def sentiment_trend(df: pd.DataFrame) -> float:
        """Relative change between the first and last month's average rating"""
        if df.empty:
            return 0.0

        monthly = df.groupby("month")["rating"].mean().sort_index()
        if len(monthly) < 2:
            return 0.0

        first_avg = float(monthly.iloc[0])
        last_avg = float(monthly.iloc[-1])
        if first_avg == 0:
            return 0.0

        return round(clamp((last_avg - first_avg) / first_avg, -1.0, 1.0), 4)

    @staticmethod
    def _rating_sentiment(df: pd.DataFrame) -> Dict[str, float]:
        total = len(df)
        positive = int((df["rating"] >= 4).sum())
        negative = int((df["rating"] <= 2).sum())
        neutral = total - positive - negative
        return {
            "positive": round(positive / total, 4),
            "neutral": round(neutral / total, 4),
            "negative": round(negative / total, 4),
        }

    def _text_sentiment(
        self,
        texts: List[str],
        token: Optional[CancellationToken]
    ) -> Dict[str, int]:
        distribution = {"positive": 0, "neutral": 0, "negative": 0}
        interval = max(1, self.config.cancel_check_interval)
        for index, text in enumerate(texts):
            if index % interval == 0:
                check_cancelled(token)
            polarity = TextBlob(text).sentiment.polarity
            if polarity > self.config.polarity_threshold:
                distribution["positive"] += 1
            elif polarity < -self.config.polarity_threshold:
                distribution["negative"] += 1
            else:
                distribution["neutral"] += 1
        return distribution

    def top_keywords(self, texts: List[str]) -> List[Tuple[str, float]]:
        """Highest mean TF-IDF terms across the texts"""
        texts = [t for t in texts if t.strip()]
        if not texts:
            return []

        vectorizer = TfidfVectorizer(stop_words="english")
        try:
            tfidf_matrix = vectorizer.fit_transform(texts)
        except ValueError:
            # Only stop words in the corpus
            return []

        feature_names = vectorizer.get_feature_names_out()
        scores = np.asarray(tfidf_matrix.mean(axis=0)).ravel()

        ranked = sorted(
            zip(feature_names, scores),
            key=lambda item: (-item[1], item[0])
        )
        return [
            (str(term), round(float(score), 4))
            for term, score in ranked[:self.config.top_keywords]
        ]
