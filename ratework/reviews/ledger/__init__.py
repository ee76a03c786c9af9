# ratework/reviews/ledger/__init__.py

"""
Vote ledger enforcing one vote per (user, review).
"""

from .vote_ledger import VoteLedger, VoteError, SelfVoteError

__all__ = ['VoteLedger', 'VoteError', 'SelfVoteError']
