# ratework/tests/test_reviews/test_engine.py
import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from ratework.core.cancellation import CancellationToken
from ratework.core.config import Config
from ratework.core.exceptions import OperationCancelledError, ProcessingError
from ratework.reviews.engine import ReviewCredibilityEngine
from ratework.reviews.ledger import SelfVoteError
from ratework.reviews.models import CommentType, CompanyRatingSnapshot, Vote, VoteAction

ORIGINAL = "Great culture and good pay, management is supportive"
RESUBMITTED = "Great culture and good pay, management is very supportive and kind"

def test_scoring_passthrough(engine, make_review):
    """Test synchronous scoring entry points"""
    assert engine.score_helpfulness(0, 0, True) == 0
    assert engine.score_helpfulness(1, 0) == 2.07
    assert engine.compute_quality(make_review(text="Bad.")).overall_score == 29.6

    snapshot = engine.aggregate_company_rating([make_review(overall_rating=3.0)])
    assert snapshot.average_rating == 3.0

def test_cancelled_token_stops_scoring(engine, make_review):
    """Test every entry point honours a fired token"""
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        engine.score_helpfulness(3, 1, token=token)
    with pytest.raises(OperationCancelledError):
        engine.compute_quality(make_review(), token=token)
    with pytest.raises(OperationCancelledError):
        engine.aggregate_company_rating([make_review()], token=token)

def test_detect_near_duplicate(engine):
    """Test the near-duplicate example through the engine"""
    assert engine.detect_near_duplicate(RESUBMITTED, [ORIGINAL], threshold=0.8) is True
    assert engine.detect_near_duplicate(RESUBMITTED, []) is False

def test_detect_vote_manipulation(engine, now):
    """Test the manipulation example and malformed input"""
    votes = [
        Vote(f"u{i}", "r1", True, now - timedelta(seconds=20 * i))
        for i in range(25)
    ]
    ages = {f"u{i}": timedelta(days=1 if i < 22 else 90) for i in range(25)}

    assert engine.detect_vote_manipulation(votes, ages, now=now) is True
    assert engine.detect_vote_manipulation(votes[:5], {}, now=now) is False
    assert engine.detect_vote_manipulation([], {}, now=now) is False
    assert engine.detect_vote_manipulation(["garbage"], {}, now=now) is False

def test_analyze_trends(engine, make_review):
    """Test trend analysis is reachable through the engine"""
    reviews = [make_review(created_at=datetime(2025, 1, 5, tzinfo=timezone.utc))]
    report = engine.analyze_trends(reviews, "2025-01-01", "2025-01-31")
    assert report.total_reviews == 1

@pytest.mark.asyncio
async def test_submission_allowed(engine, now, good_text):
    """Test a first review passes every gate"""
    check = await engine.check_submission("u1", "acme", CommentType.OVERALL, good_text, now=now)

    assert check.allowed is True
    assert check.reasons == []

@pytest.mark.asyncio
async def test_submission_near_duplicate(engine, data_source, make_review, now):
    """Test a resubmitted review is rejected"""
    data_source.reviews.append(
        make_review(user_id="u1", company_id="globex", text=ORIGINAL, created_at=now - timedelta(days=5))
    )

    check = await engine.check_submission("u1", "acme", CommentType.OVERALL, RESUBMITTED, now=now)

    assert check.moderation.approved is True
    assert check.is_near_duplicate is True
    assert check.allowed is False

@pytest.mark.asyncio
async def test_old_duplicate_outside_window(engine, data_source, make_review, now):
    """Test only the last 30 days are compared for duplicates"""
    data_source.reviews.append(
        make_review(user_id="u1", company_id="globex", text=ORIGINAL, created_at=now - timedelta(days=45))
    )

    check = await engine.check_submission("u1", "acme", CommentType.OVERALL, RESUBMITTED, now=now)

    assert check.is_near_duplicate is False
    assert check.allowed is True

@pytest.mark.asyncio
async def test_submission_daily_limit(engine, data_source, make_review, now, good_text):
    """Test a fourth review within 24 hours is blocked"""
    for i, company in enumerate(["a", "b", "c"]):
        data_source.reviews.append(
            make_review(
                user_id="u1",
                company_id=company,
                text=f"Review number {i} about company {company} and its hiring process",
                created_at=now - timedelta(hours=i + 1)
            )
        )

    check = await engine.check_submission("u1", "acme", CommentType.OVERALL, good_text, now=now)

    assert check.exceeds_daily_limit is True
    assert check.allowed is False

@pytest.mark.asyncio
async def test_submission_cooldown(engine, data_source, make_review, now, good_text):
    """Test one review per company and category per year"""
    data_source.reviews.append(
        make_review(
            user_id="u1",
            company_id="acme",
            category=CommentType.SALARY,
            text="Salary bands are published and raises follow a yearly review cycle.",
            created_at=now - timedelta(days=100)
        )
    )

    same = await engine.check_submission("u1", "acme", CommentType.SALARY, good_text, now=now)
    other = await engine.check_submission("u1", "acme", CommentType.CULTURE, good_text, now=now)

    assert same.in_cooldown is True
    assert same.allowed is False
    assert other.in_cooldown is False
    assert other.allowed is True

@pytest.mark.asyncio
async def test_submission_content_rejected(engine, now):
    """Test content moderation failures are reported"""
    check = await engine.check_submission("u1", "acme", CommentType.OVERALL, "Too short", now=now)

    assert check.allowed is False
    assert check.moderation.flags == ["too_short"]
    assert check.reasons == [check.moderation.reason]

@pytest.mark.asyncio
async def test_find_similar_reviews(engine, data_source, make_review, now):
    """Test the user's recent reviews are ranked by similarity"""
    data_source.reviews.extend([
        make_review(id="close", user_id="u1", text=RESUBMITTED, created_at=now - timedelta(days=2)),
        make_review(id="same", user_id="u1", text=ORIGINAL, created_at=now - timedelta(days=3)),
        make_review(id="other", user_id="u2", text=ORIGINAL, created_at=now - timedelta(days=3)),
    ])

    matches = await engine.find_similar_reviews("u1", ORIGINAL, now=now)

    assert [m.review_id for m in matches] == ["same", "close"]

@pytest.mark.asyncio
async def test_apply_vote_updates_review(engine, make_review, now):
    """Test a vote returns an updated snapshot for persistence"""
    review = make_review(user_id="author")

    outcome = await engine.apply_vote(review, "voter", True, now=now)

    assert outcome.action == VoteAction.CREATED
    assert outcome.review.upvotes == 1
    assert outcome.review.downvotes == 0
    assert outcome.review.helpfulness_score == engine.score_helpfulness(1, 0)
    assert outcome.manipulation.is_suspicious is False
    assert review.upvotes == 0

    flipped = await engine.apply_vote(outcome.review, "voter", False, now=now)

    assert flipped.action == VoteAction.UPDATED
    assert (flipped.review.upvotes, flipped.review.downvotes) == (0, 1)

    again = await engine.apply_vote(flipped.review, "voter", False, now=now)

    assert again.action == VoteAction.UNCHANGED
    assert (again.review.upvotes, again.review.downvotes) == (0, 1)

@pytest.mark.asyncio
async def test_self_vote_rejected(engine, make_review, now):
    """Test authors cannot vote on their own review"""
    review = make_review(user_id="author")

    with pytest.raises(SelfVoteError):
        await engine.apply_vote(review, "author", True, now=now)

    assert engine.ledger.votes_for(review.id) == []

@pytest.mark.asyncio
async def test_toggle_and_retract(engine, make_review, now):
    """Test toggling off and retracting votes"""
    review = make_review(user_id="author")

    first = await engine.toggle_vote(review, "voter", True, now=now)
    second = await engine.toggle_vote(first.review, "voter", True, now=now)

    assert second.action == VoteAction.REMOVED
    assert second.vote is None
    assert second.review.upvotes == 0

    down = await engine.apply_vote(second.review, "voter", False, now=now)
    retracted = await engine.retract_vote(down.review, "voter", now=now)
    missing = await engine.retract_vote(retracted.review, "voter", now=now)

    assert retracted.action == VoteAction.REMOVED
    assert retracted.review.downvotes == 0
    assert missing.action == VoteAction.NOT_FOUND
    assert missing.review == retracted.review

@pytest.mark.asyncio
async def test_vote_burst_from_new_accounts(engine, data_source, make_review, now):
    """Test manipulation signals are attached to vote outcomes"""
    for i in range(25):
        data_source.account_created[f"v{i}"] = now - timedelta(days=1 if i < 22 else 300)

    review = make_review(user_id="author")
    outcome = None
    for i in range(25):
        outcome = await engine.apply_vote(review, f"v{i}", True, now=now + timedelta(seconds=20 * i))
        review = outcome.review

    assert outcome.manipulation.vote_burst is True
    assert outcome.manipulation.new_account_surge is True
    assert outcome.review.upvotes == 25

@pytest.mark.asyncio
async def test_downvote_pile_on(engine, make_review, now):
    """Test heavy downvoting is surfaced for moderation"""
    review = make_review(user_id="author")
    outcome = None
    for i in range(11):
        outcome = await engine.apply_vote(review, f"v{i}", False, now=now + timedelta(minutes=i))
        review = outcome.review

    assert outcome.review.downvotes == 11
    assert outcome.downvote_pile_on is True

@pytest.mark.asyncio
async def test_counts_come_from_ledger_not_snapshot(engine, make_review, now):
    """Test counters stored on a stale snapshot are replaced by the ledger records"""
    review = make_review(user_id="author", upvotes=7, downvotes=4)

    outcome = await engine.apply_vote(review, "voter", True, now=now)

    assert (outcome.review.upvotes, outcome.review.downvotes) == (1, 0)
    assert outcome.review.helpfulness_score == engine.score_helpfulness(1, 0)

class YieldingAccountSource:
    """Suspends on every account lookup so concurrent votes interleave"""

    async def get_account_ages(self, user_ids, now):
        await asyncio.sleep(0)
        return {}

@pytest.mark.asyncio
async def test_concurrent_votes_match_ledger(make_review, now):
    """Test concurrent votes on one snapshot all report the stored vote count"""
    engine = ReviewCredibilityEngine(Config(), YieldingAccountSource())
    try:
        review = make_review(user_id="author")
        outcomes = await asyncio.gather(
            engine.apply_vote(review, "v1", True, now=now),
            engine.apply_vote(review, "v2", True, now=now),
            engine.apply_vote(review, "v3", False, now=now)
        )

        assert engine.ledger.counts(review.id) == (2, 1)
        for outcome in outcomes:
            assert (outcome.review.upvotes, outcome.review.downvotes) == (2, 1)
    finally:
        engine.close()

@pytest.mark.asyncio
async def test_retract_after_flip_uses_stored_direction(engine, make_review, now):
    """Test retracting with a snapshot taken before a flip still empties the counters"""
    review = make_review(user_id="author")
    up = await engine.apply_vote(review, "voter", True, now=now)
    await engine.apply_vote(up.review, "voter", False, now=now)

    retracted = await engine.retract_vote(up.review, "voter", now=now)

    assert retracted.action == VoteAction.REMOVED
    assert (retracted.review.upvotes, retracted.review.downvotes) == (0, 0)
    assert engine.ledger.votes_for(review.id) == []

@pytest.mark.asyncio
async def test_recompute_company_rating(engine, data_source, make_review):
    """Test the snapshot is rebuilt from the data source"""
    data_source.reviews.extend([
        make_review(company_id="acme", overall_rating=4.0),
        make_review(company_id="acme", overall_rating=2.0),
        make_review(company_id="acme", overall_rating=1.0, is_active=False),
        make_review(company_id="globex", overall_rating=5.0),
    ])

    snapshot = await engine.recompute_company_rating("acme")
    empty = await engine.recompute_company_rating("initech")

    assert snapshot.total_review_count == 2
    assert snapshot.average_rating == 3.0
    assert empty == CompanyRatingSnapshot(0.0, 0, {})

class FailingSource:
    async def list_active_reviews(self, company_id):
        raise RuntimeError("database unavailable")

@pytest.mark.asyncio
async def test_data_source_failure():
    """Test storage errors surface as ProcessingError"""
    engine = ReviewCredibilityEngine(Config(), FailingSource())
    try:
        with pytest.raises(ProcessingError) as exc_info:
            await engine.recompute_company_rating("acme")
        assert exc_info.value.details == {"company_id": "acme"}
    finally:
        engine.close()

def test_thresholds_from_config(data_source):
    """Test engine components read their thresholds from Config"""
    config = Config()
    config.update({
        "similarity": {"spam_threshold": 0.95},
        "votes": {"burst_threshold": 5, "pile_on_min_downvotes": 2, "pile_on_factor": 1},
        "trends": {"top_keywords": 3, "polarity_threshold": 0.3},
        "submission": {"max_reviews_per_day": 1}
    })
    engine = ReviewCredibilityEngine(config, data_source)
    try:
        assert engine.similarity.config.spam_threshold == 0.95
        assert engine.manipulation.config.burst_threshold == 5
        assert engine.manipulation.is_downvote_pile_on(2, 3) is True
        assert engine.trend_analyzer.config.top_keywords == 3
        assert engine.trend_analyzer.config.polarity_threshold == 0.3
        assert engine.max_reviews_per_day == 1
        assert engine.detect_near_duplicate(RESUBMITTED, [ORIGINAL]) is False
    finally:
        engine.close()
