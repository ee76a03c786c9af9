# ratework/reviews/metrics/__init__.py

"""
Reporting over review collections.
"""

from .trends import ReviewTrendAnalyzer, TrendConfig

__all__ = ['ReviewTrendAnalyzer', 'TrendConfig']
