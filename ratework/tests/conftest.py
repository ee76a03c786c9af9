"""Global test configuration and fixtures."""
import pytest
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ratework.core.config import Config
from ratework.reviews.engine import ReviewCredibilityEngine
from ratework.reviews.models import CommentType, Review

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

GOOD_TEXT = (
    "The team is supportive and managers give clear feedback during weekly "
    "meetings, which keeps projects on track."
)

class InMemoryReviewSource:
    """ReviewDataSource backed by plain lists, for engine tests"""

    def __init__(
        self,
        reviews: Optional[List[Review]] = None,
        account_created: Optional[Dict[str, datetime]] = None
    ):
        self.reviews = list(reviews or [])
        self.account_created = dict(account_created or {})

    async def list_active_reviews(self, company_id: str) -> List[Review]:
        return [r for r in self.reviews if r.company_id == company_id and r.is_active]

    async def list_user_reviews(self, user_id: str, since: datetime) -> List[Review]:
        return [r for r in self.reviews if r.user_id == user_id and r.created_at >= since]

    async def get_account_ages(self, user_ids: Iterable[str], now: datetime) -> Dict[str, timedelta]:
        return {
            user_id: now - self.account_created[user_id]
            for user_id in user_ids
            if user_id in self.account_created
        }

@pytest.fixture(autouse=True)
def clean_env():
    """Keep RATEWORK_ environment variables out of every test"""
    saved_vars = {k: v for k, v in os.environ.items() if k.startswith("RATEWORK_")}
    for key in saved_vars:
        del os.environ[key]

    yield

    for key in list(os.environ.keys()):
        if key.startswith("RATEWORK_"):
            del os.environ[key]
    os.environ.update(saved_vars)

@pytest.fixture
def make_review():
    """Factory for review snapshots with sensible defaults"""
    counter = {"n": 0}

    def _make(**overrides) -> Review:
        counter["n"] += 1
        values = {
            "id": f"r{counter['n']}",
            "company_id": "acme",
            "user_id": f"author{counter['n']}",
            "category": CommentType.OVERALL,
            "overall_rating": 4.0,
            "text": GOOD_TEXT,
            "created_at": NOW - timedelta(days=10),
        }
        values.update(overrides)
        return Review(**values)

    return _make

@pytest.fixture
def data_source():
    return InMemoryReviewSource()

@pytest.fixture
def engine(data_source):
    """Engine over the in-memory source with default configuration"""
    engine = ReviewCredibilityEngine(Config(), data_source)
    yield engine
    engine.close()

@pytest.fixture
def now():
    return NOW

@pytest.fixture
def good_text():
    return GOOD_TEXT
