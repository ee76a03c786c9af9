"""
RateWork review credibility engine.

Scores individual company reviews, gates new submissions and votes, and
aggregates reviews into weighted company ratings.
"""

__version__ = "1.0.0"
