# ratework/reviews/ranking/__init__.py

"""
Review scoring: helpfulness, quality and company-level aggregation.
"""

from .helpfulness import HelpfulnessScorer, HelpfulnessConfig
from .quality import ReviewQualityScorer
from .aggregation import CompanyRatingAggregator

__all__ = [
    'HelpfulnessScorer',
    'HelpfulnessConfig',
    'ReviewQualityScorer',
    'CompanyRatingAggregator'
]
